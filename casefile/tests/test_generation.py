import base64
import json
import threading

import httpx
import pytest

from casefile.core.errors import GenerationBusy, GenerationError
from casefile.core.generation import GenerationSlots, HttpGenerationClient, create_generation_client
from casefile.core.llm import Config


def make_client(handler) -> HttpGenerationClient:
    return HttpGenerationClient(base_url="http://generator.test/api", timeout=5, transport=httpx.MockTransport(handler))


# =============================================================================
# HTTP BACKEND
# =============================================================================

def test_chat_and_report_routes():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"text": "نص مولد"})

    client = make_client(handler)
    assert client.send("prompt one") == "نص مولد"
    assert client.send("prompt two", kind="report") == "نص مولد"
    assert seen == [
        ("POST", "/api/chat", {"prompt": "prompt one"}),
        ("POST", "/api/report", {"prompt": "prompt two"}),
    ]


def test_summarize_sends_base64_document():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={"text": "ملخص"})

    assert make_client(handler).summarize("لخص", b"%PDF-1.4", "application/pdf") == "ملخص"
    assert captured["mime_type"] == "application/pdf"
    assert base64.b64decode(captured["data"]) == b"%PDF-1.4"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"text": ""}),
        httpx.Response(200, json=["text"]),
    ],
)
def test_failures_become_generation_errors(response):
    client = make_client(lambda request: response)
    with pytest.raises(GenerationError):
        client.send("prompt")


def test_network_error_becomes_generation_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GenerationError) as exc_info:
        make_client(handler).send("prompt")
    assert "يرجى المحاولة مرة أخرى" in exc_info.value.user_message


@pytest.mark.parametrize(
    "response, healthy",
    [
        (httpx.Response(200, json={"status": "ok"}), True),
        (httpx.Response(200, json=True), True),
        (httpx.Response(200, json={"status": "degraded"}), False),
        (httpx.Response(503, json={"status": "ok"}), False),
    ],
)
def test_health(response, healthy):
    assert make_client(lambda request: response).health() is healthy


def test_create_generation_client_rejects_unknown_backend():
    config = Config.load("/nonexistent/config.yaml")
    config.generation_backend = "carrier-pigeon"
    with pytest.raises(ValueError):
        create_generation_client(config)

    config.generation_backend = "http"
    assert isinstance(create_generation_client(config), HttpGenerationClient)


# =============================================================================
# IN-FLIGHT GUARD
# =============================================================================

def test_second_request_for_same_record_is_rejected():
    slots = GenerationSlots()
    with slots.hold("student-1"):
        assert slots.is_busy("student-1")
        with pytest.raises(GenerationBusy):
            with slots.hold("student-1"):
                pass
        with slots.hold("student-2"):
            assert slots.is_busy("student-2")
    assert not slots.is_busy("student-1")


def test_slot_is_released_after_failure():
    slots = GenerationSlots()
    with pytest.raises(GenerationError):
        with slots.hold("student-1"):
            raise GenerationError("boom")
    assert not slots.is_busy("student-1")


def test_slot_guard_across_threads():
    slots = GenerationSlots()
    entered = threading.Event()
    release = threading.Event()

    def worker():
        with slots.hold("student-1"):
            entered.set()
            release.wait(5)

    thread = threading.Thread(target=worker)
    thread.start()
    assert entered.wait(5)
    with pytest.raises(GenerationBusy):
        with slots.hold("student-1"):
            pass
    release.set()
    thread.join(5)
    assert not slots.is_busy("student-1")
