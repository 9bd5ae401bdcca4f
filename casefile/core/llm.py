"""
Case File LLM Client

Unified interface for LLM interactions.
Supports:
  - Anthropic SDK (text prompts and PDF/image attachments)
  - aisuite for multi-provider access (text prompts only)

API keys are read from environment variables (use .env file).
Model and storage configuration is read from config.yaml.
"""

import base64
import logging
import os
import yaml
from pathlib import Path
from typing import Optional, Dict
from dataclasses import dataclass

# Load environment variables from .env
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # python-dotenv not installed, rely on system env vars

import anthropic

# Optional: aisuite for multi-model support (requires Python 3.10+)
try:
    import aisuite as ai
    AISUITE_AVAILABLE = True
except ImportError:
    AISUITE_AVAILABLE = False

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class Config:
    """Application configuration loaded from config.yaml."""
    default_model: str
    models: Dict[str, str]
    chat_max_tokens: int
    report_max_tokens: int
    summary_max_tokens: int
    chat_context_turns: int
    plan_context_count: int
    generation_backend: str
    service_url: str
    request_timeout: float
    storage_directory: str
    storage_slot: str
    school_name: str
    log_level: str

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """Load configuration from YAML file."""
        if config_path is None:
            config_path = os.environ.get("CASEFILE_CONFIG")
        if config_path is None:
            # Look for config.yaml at the repository root
            config_path = Path(__file__).parent.parent.parent / "config.yaml"

        data = {}
        if Path(config_path).exists():
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}

        generation = data.get("generation", {})
        storage = data.get("storage", {})
        return cls(
            default_model=data.get("default_model", DEFAULT_MODEL),
            models=data.get("models", {"Claude Sonnet 4": DEFAULT_MODEL}),
            chat_max_tokens=generation.get("chat_max_tokens", 4000),
            report_max_tokens=generation.get("report_max_tokens", 2000),
            summary_max_tokens=generation.get("summary_max_tokens", 1000),
            chat_context_turns=generation.get("chat_context_turns", 6),
            plan_context_count=generation.get("plan_context_count", 2),
            generation_backend=generation.get("backend", "anthropic"),
            service_url=os.environ.get(
                "CASEFILE_SERVICE_URL",
                generation.get("service_url", "http://localhost:8000/api"),
            ),
            request_timeout=float(generation.get("request_timeout", 60.0)),
            storage_directory=storage.get("directory", "data"),
            storage_slot=storage.get("slot", "students"),
            school_name=data.get("school_name", "مدرسة الإيمان"),
            log_level=os.environ.get("LOG_LEVEL", data.get("log_level", "INFO")),
        )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def get_available_models() -> Dict[str, str]:
    """Get dictionary of available models {display_name: model_id}."""
    config = get_config()

    # Filter out aisuite models if aisuite not available
    if not AISUITE_AVAILABLE:
        return {
            name: model_id
            for name, model_id in config.models.items()
            if ":" not in model_id
        }

    return config.models


# =============================================================================
# LLM CLIENT
# =============================================================================

class LLMClient:
    """
    Unified LLM client supporting multiple providers.

    Usage:
        client = LLMClient(model="claude-sonnet-4-20250514")
        text = client.complete(prompt)
        summary = client.complete_with_document(prompt, pdf_bytes, "application/pdf")
    """

    def __init__(self, model: Optional[str] = None):
        """
        Initialize LLM client.

        Args:
            model: Model identifier. If contains ":", uses aisuite.
                   Otherwise uses Anthropic SDK directly.
        """
        config = get_config()
        self.model = model or config.default_model
        self.config = config

        # Detect provider
        self.use_aisuite = ":" in self.model

        if self.use_aisuite:
            if not AISUITE_AVAILABLE:
                raise ImportError(
                    f"Model '{self.model}' requires aisuite (Python 3.10+). "
                    "Use a direct Claude model or upgrade Python."
                )
            self._client = ai.Client()
        else:
            api_key = os.environ.get("ANTHROPIC_API_KEY")
            self._client = anthropic.Anthropic(api_key=api_key) if api_key else anthropic.Anthropic()

    @property
    def supports_attachments(self) -> bool:
        """PDF and image blocks are only sent through the Anthropic SDK."""
        return not self.use_aisuite

    def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """
        Get a complete response for a single prompt.

        The prompt carries its own instructions, so no separate system
        prompt is sent. Works with all providers.
        """
        max_tokens = max_tokens or self.config.chat_max_tokens

        if self.use_aisuite:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
            )
            return response.choices[0].message.content or ""

        response = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    def complete_with_document(
        self,
        prompt: str,
        data: bytes,
        mime_type: str,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send a PDF or image together with a text prompt."""
        if not self.supports_attachments:
            raise ValueError(f"Model '{self.model}' cannot read attachments")

        max_tokens = max_tokens or self.config.summary_max_tokens
        block_type = "document" if mime_type == "application/pdf" else "image"
        response = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": block_type,
                            "source": {
                                "type": "base64",
                                "media_type": mime_type,
                                "data": base64.standard_b64encode(data).decode("ascii"),
                            },
                        },
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    def ping(self) -> bool:
        """Cheap reachability check against the provider."""
        if self.use_aisuite:
            return True
        try:
            self._client.models.list(limit=1)
        except (anthropic.APIError, TypeError) as exc:
            logger.warning("Model provider health check failed: %s", exc)
            return False
        return True
