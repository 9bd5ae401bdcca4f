"""
Case File Assistant App

1. Student list:
   - Cards with photo, name, diagnosis, age and grade
   - Add a new student with default sections

2. Student profile:
   - Smart assistant chat with quick prompts and plan acceptance
   - Plan history, achieved goals, progress reports
   - Session calendar, personal info, diagnosis (with report upload and
     summary), case study and skill assessments
   - Delete the student file after confirmation
"""

from __future__ import annotations

from datetime import date, time
from typing import Dict, Optional

import streamlit as st

from casefile import (
    Attachment,
    CaseAssistant,
    GenerationError,
    MessageRole,
    RecordStore,
    Section,
    Selection,
    StudentRecord,
    ValidationError,
    get_available_models,
    get_config,
    open_editor,
    setup_logging,
)
from casefile.core.editors import SectionEditor
from casefile.core.formatting import (
    format_age,
    format_day,
    format_goal_line,
    format_log_line,
    format_plan_title,
    format_record_card,
    format_upcoming_line,
)
from casefile.core.generation import LLMGenerationClient, create_generation_client
from casefile.core.llm import LLMClient
from casefile.core.prompting import QUICK_PROMPTS, REPORT_RANGE_PRESETS, is_plan
from casefile.core.schema import ASSESSMENT_AREAS, GoalType, MasteryLevel, diagnosis_choices


# -----------------------------------------------------------------------------
# Streamlit page configuration + styles
# -----------------------------------------------------------------------------

st.set_page_config(
    page_title="ملفات الطلاب",
    page_icon="📁",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown(
    """
<style>
.main, .stMarkdown, .stTextInput, .stTextArea, .stSelectbox { direction: rtl; text-align: right; }
.student-card {
    padding: 12px 16px;
    margin: 6px 0;
    border-radius: 8px;
    border: 1px solid #dce3f0;
    background: #f7f9fc;
}
.student-card .meta { color: #666; font-size: 0.9em; }
.report-container {
    background: #f7f9fc;
    border-radius: 6px;
    padding: 16px;
    border: 1px solid #dce3f0;
}
.stTabs [data-baseweb="tab-list"] button div p {
    font-size: 1.05rem;
    font-weight: 600;
}
</style>
""",
    unsafe_allow_html=True,
)


# -----------------------------------------------------------------------------
# Session state helpers
# -----------------------------------------------------------------------------

def _init_session_state() -> None:
    if "store" not in st.session_state:
        setup_logging()
        st.session_state.store = RecordStore()
    if "selection" not in st.session_state:
        st.session_state.selection = Selection(st.session_state.store)
    if "assistant" not in st.session_state:
        st.session_state.assistant = CaseAssistant(st.session_state.store, client=create_generation_client())
    if "editors" not in st.session_state:
        st.session_state.editors = {}
    if "editor_revisions" not in st.session_state:
        st.session_state.editor_revisions = {}
    if "reports" not in st.session_state:
        st.session_state.reports = {}
    if "chat_errors" not in st.session_state:
        st.session_state.chat_errors = {}


def _store() -> RecordStore:
    return st.session_state.store


def _assistant() -> CaseAssistant:
    return st.session_state.assistant


def _editor(record_id: str, section: Section) -> SectionEditor:
    """Editor for one section, re-synced with the store on every rerun."""
    editors: Dict = st.session_state.editors
    key = (record_id, section)
    editor = editors.get(key)
    if editor is None:
        editor = editors[key] = open_editor(_store(), record_id, section)
    elif editor.sync():
        _bump_revision(record_id, section)
    return editor


def _bump_revision(record_id: str, section: Section) -> None:
    revisions = st.session_state.editor_revisions
    revisions[(record_id, section)] = revisions.get((record_id, section), 0) + 1


def _widget_key(record_id: str, section: Section, name: str) -> str:
    # Widgets keep their own state; a new revision rebuilds them from the draft.
    revision = st.session_state.editor_revisions.get((record_id, section), 0)
    return f"{record_id}:{section.value}:{name}:{revision}"


def _forget_record(record_id: str) -> None:
    for key in [k for k in st.session_state.editors if k[0] == record_id]:
        del st.session_state.editors[key]
    st.session_state.reports.pop(record_id, None)
    st.session_state.chat_errors.pop(record_id, None)


def render_save_bar(editor: SectionEditor, record_id: str, section: Section) -> None:
    col_save, col_cancel, _ = st.columns([1, 1, 4])
    with col_save:
        if st.button("حفظ", key=_widget_key(record_id, section, "save"), disabled=not editor.is_dirty, type="primary"):
            editor.save()
            _bump_revision(record_id, section)
            st.rerun()
    with col_cancel:
        if st.button("إلغاء", key=_widget_key(record_id, section, "cancel"), disabled=not editor.is_dirty):
            editor.cancel()
            _bump_revision(record_id, section)
            st.rerun()


def render_text_fields(editor, record_id: str, section: Section, labels: Dict[str, str], multiline: bool = False) -> None:
    for name, label in labels.items():
        current = getattr(editor.draft, name) or ""
        widget = st.text_area if multiline else st.text_input
        value = widget(label, value=current, key=_widget_key(record_id, section, name))
        if value != current:
            editor.set(name, value)


# -----------------------------------------------------------------------------
# List view
# -----------------------------------------------------------------------------

def render_student_list() -> None:
    store = _store()
    col_title, col_add = st.columns([4, 1])
    with col_title:
        st.header("ملفات الطلاب")
    with col_add:
        if st.button("➕ إضافة طالب جديد", type="primary"):
            record = store.create_record()
            st.session_state.selection.select(record.id)
            st.rerun()

    if not store.records:
        st.info("لا يوجد طلاب بعد. ابدأ بإضافة طالب جديد.")
        return

    columns = st.columns(3)
    for index, record in enumerate(store.records):
        card = format_record_card(record)
        with columns[index % 3]:
            if card["photo_url"]:
                st.image(card["photo_url"], width=96)
            st.markdown(
                f"<div class='student-card'><strong>{card['name']}</strong><br/>"
                f"<span class='meta'>{card['diagnosis'] or 'لا يوجد تشخيص'} · "
                f"{card['age']} · {card['grade'] or '-'}</span></div>",
                unsafe_allow_html=True,
            )
            if st.button("عرض الملف", key=f"open:{record.id}"):
                st.session_state.selection.select(record.id)
                st.rerun()


# -----------------------------------------------------------------------------
# Assistant + plans
# -----------------------------------------------------------------------------

def _send_chat(record_id: str, text: str) -> None:
    st.session_state.chat_errors.pop(record_id, None)
    try:
        with st.spinner("المساعد يكتب..."):
            _assistant().send_message(record_id, text)
    except ValidationError as exc:
        st.session_state.chat_errors[record_id] = exc.user_message
    except GenerationError as exc:
        st.session_state.chat_errors[record_id] = exc.user_message


def render_assistant_tab(record: StudentRecord) -> None:
    busy = _assistant().is_busy(record.id)

    for index, message in enumerate(record.chat_history):
        role = "user" if message.role == MessageRole.USER else "assistant"
        with st.chat_message(role):
            st.markdown(message.content)
            if role == "assistant" and is_plan(message.content):
                if st.button("✅ اعتماد الخطة", key=f"accept:{record.id}:{index}"):
                    _assistant().accept_plan(record.id, message.content)
                    st.success("تم اعتماد الخطة وإضافتها إلى سجل الخطط.")
                    st.rerun()

    error = st.session_state.chat_errors.get(record.id)
    if error:
        with st.chat_message("assistant"):
            st.error(error)

    if not record.chat_history:
        st.caption("اقتراحات سريعة:")
        columns = st.columns(len(QUICK_PROMPTS))
        for column, prompt in zip(columns, QUICK_PROMPTS):
            with column:
                if st.button(prompt, key=f"quick:{record.id}:{prompt}", disabled=busy):
                    _send_chat(record.id, prompt)
                    st.rerun()

    text = st.chat_input("اكتب رسالتك للمساعد...", disabled=busy, key=f"chat:{record.id}")
    if text:
        _send_chat(record.id, text)
        st.rerun()


def render_plans_tab(record: StudentRecord) -> None:
    if not record.plan_history:
        st.info("لا توجد خطط معتمدة بعد. اطلب من المساعد اقتراح خطة ثم اعتمدها.")
        return
    for plan in reversed(record.plan_history):
        with st.expander(format_plan_title(plan)):
            st.markdown(plan.content)


# -----------------------------------------------------------------------------
# Goals + reports
# -----------------------------------------------------------------------------

def render_goals_tab(record: StudentRecord) -> None:
    section = Section.ACHIEVED_GOALS
    editor = _editor(record.id, section)

    with st.form(key=_widget_key(record.id, section, "form"), clear_on_submit=True):
        description = st.text_input("وصف الهدف المحقق")
        col_type, col_level = st.columns(2)
        with col_type:
            goal_type = st.selectbox("نوع الهدف", [g.value for g in GoalType])
        with col_level:
            mastery = st.selectbox("مستوى الإتقان", [m.value for m in MasteryLevel])
        if st.form_submit_button("إضافة الهدف"):
            try:
                editor.add_goal(description, goal_type, mastery)
            except ValidationError as exc:
                st.warning(exc.user_message)

    if not editor.draft:
        st.info("لا توجد أهداف محققة مسجلة بعد.")
    for goal in editor.draft:
        col_text, col_delete = st.columns([6, 1])
        with col_text:
            st.markdown(format_goal_line(goal))
        with col_delete:
            if goal.id in editor.pending_ids and st.button("حذف", key=f"goal-del:{goal.id}"):
                editor.delete_goal(goal.id)
                st.rerun()

    render_save_bar(editor, record.id, section)


def render_reports_tab(record: StudentRecord) -> None:
    options = list(REPORT_RANGE_PRESETS) + ["فترة مخصصة"]
    choice = st.radio("الفترة", options, horizontal=True, key=f"range:{record.id}")
    if choice in REPORT_RANGE_PRESETS:
        days = REPORT_RANGE_PRESETS[choice]
        start = end = None
    else:
        days = None
        col_start, col_end = st.columns(2)
        with col_start:
            start = st.date_input("من", value=date.today(), key=f"start:{record.id}")
        with col_end:
            end = st.date_input("إلى", value=date.today(), key=f"end:{record.id}")

    if st.button("📝 توليد التقرير", disabled=_assistant().is_busy(record.id), type="primary"):
        try:
            with st.spinner("جاري توليد التقرير..."):
                if days is not None:
                    report = _assistant().report_for_last_days(record.id, days)
                else:
                    report = _assistant().generate_report(record.id, start, end)
            st.session_state.reports[record.id] = report
        except ValidationError as exc:
            st.warning(exc.user_message)
        except GenerationError as exc:
            st.error(exc.user_message)

    report = st.session_state.reports.get(record.id)
    if report is not None:
        st.markdown(f"<div class='report-container'>\n\n{report.text}\n\n</div>", unsafe_allow_html=True)
        st.download_button(
            "تنزيل التقرير",
            data=report.text.encode("utf-8"),
            file_name=f"progress_report_{record.id}_{format_day(report.end).replace('/', '-')}.md",
            mime="text/markdown",
        )


# -----------------------------------------------------------------------------
# Sessions
# -----------------------------------------------------------------------------

def render_sessions_tab(record: StudentRecord) -> None:
    section = Section.SESSIONS
    editor = _editor(record.id, section)
    col_logs, col_upcoming = st.columns(2)

    with col_logs:
        st.subheader("سجل الجلسات")
        with st.form(key=_widget_key(record.id, section, "log-form"), clear_on_submit=True):
            log_date = st.date_input("تاريخ الجلسة", value=date.today())
            log_time = st.time_input("وقت البدء", value=time(9, 0))
            duration = st.number_input("المدة (دقيقة)", min_value=0, value=45, step=5)
            notes = st.text_area("ملخص الجلسة")
            if st.form_submit_button("إضافة الجلسة"):
                try:
                    editor.add_log(log_date, log_time, notes, int(duration))
                except ValidationError as exc:
                    st.warning(exc.user_message)
        for log in editor.draft.logs:
            with st.expander(format_log_line(log)):
                st.write(log.notes)
                if st.button("حذف", key=f"log-del:{log.id}"):
                    editor.delete_log(log.id)
                    st.rerun()

    with col_upcoming:
        st.subheader("الجلسات القادمة")
        with st.form(key=_widget_key(record.id, section, "upcoming-form"), clear_on_submit=True):
            session_date = st.date_input("التاريخ", value=date.today())
            session_time = st.time_input("الوقت", value=time(9, 0))
            duration = st.number_input("المدة (دقيقة)", min_value=0, value=45, step=5, key="upcoming-duration")
            if st.form_submit_button("إضافة موعد"):
                try:
                    editor.add_upcoming(session_date, session_time, int(duration))
                except ValidationError as exc:
                    st.warning(exc.user_message)
        for session in editor.draft.upcoming:
            col_text, col_delete = st.columns([5, 1])
            with col_text:
                st.write(format_upcoming_line(session))
            with col_delete:
                if st.button("حذف", key=f"upcoming-del:{session.id}"):
                    editor.delete_upcoming(session.id)
                    st.rerun()

    render_save_bar(editor, record.id, section)


# -----------------------------------------------------------------------------
# Profile sections
# -----------------------------------------------------------------------------

PERSONAL_LABELS = {
    "full_name": "الاسم الكامل",
    "student_id": "الرقم الأكاديمي",
    "birth_date": "تاريخ الميلاد (YYYY-MM-DD)",
    "grade": "الصف",
    "parent_contact": "تواصل ولي الأمر",
    "enrollment_date": "تاريخ الالتحاق",
    "photo_url": "رابط الصورة",
}

CASE_STUDY_LABELS = {
    "medical_history": "التاريخ الطبي",
    "developmental_history": "التاريخ النمائي",
    "family_situation": "الوضع الأسري",
    "strengths": "نقاط القوة",
    "challenges": "التحديات",
    "prominent_behaviors": "السلوكيات البارزة",
    "interests_and_motivators": "الاهتمامات والمعززات",
}


def render_personal_tab(record: StudentRecord) -> None:
    section = Section.PERSONAL_INFO
    editor = _editor(record.id, section)
    render_text_fields(editor, record.id, section, PERSONAL_LABELS)
    st.caption(f"العمر: {format_age(editor.draft.birth_date)}")
    render_save_bar(editor, record.id, section)


def render_diagnosis_tab(record: StudentRecord) -> None:
    section = Section.MEDICAL_DIAGNOSIS
    editor = _editor(record.id, section)
    draft = editor.draft

    options = diagnosis_choices(draft.primary_diagnosis)
    primary = st.selectbox(
        "التشخيص الأساسي",
        options,
        index=options.index(draft.primary_diagnosis or ""),
        key=_widget_key(record.id, section, "primary_diagnosis"),
    )
    if primary != draft.primary_diagnosis:
        editor.set("primary_diagnosis", primary)
    render_text_fields(
        editor,
        record.id,
        section,
        {
            "secondary_diagnoses": "تشخيصات ثانوية",
            "diagnosis_date": "تاريخ التشخيص",
            "diagnosing_entity": "جهة التشخيص",
        },
    )

    uploaded = st.file_uploader(
        "تقرير التشخيص (PDF أو صورة)",
        type=["pdf", "png", "jpg", "jpeg"],
        key=_widget_key(record.id, section, "report_file"),
    )
    if uploaded is not None and (editor.draft.report_file is None or editor.draft.report_file.filename != uploaded.name):
        try:
            editor.attach_file(Attachment(uploaded.name, uploaded.type, uploaded.getvalue()))
        except ValidationError as exc:
            st.warning(exc.user_message)

    report_file = editor.draft.report_file
    if report_file is not None:
        col_name, col_remove = st.columns([5, 1])
        with col_name:
            st.write(f"📎 {report_file.filename}")
        with col_remove:
            if st.button("إزالة", key=_widget_key(record.id, section, "remove_file")):
                editor.remove_file()
                # A new uploader key drops the upload so it is not re-attached.
                _bump_revision(record.id, section)
                st.rerun()

    if editor.draft.report_file_summary:
        st.markdown("**ملخص التقرير:**")
        st.markdown(editor.draft.report_file_summary)

    saved_file = record.medical_diagnosis.report_file
    can_summarize = saved_file is not None and saved_file.data is not None and not editor.is_dirty
    if st.button("🔎 تلخيص التقرير", disabled=not can_summarize or _assistant().is_busy(record.id)):
        try:
            with st.spinner("جاري تلخيص التقرير..."):
                _assistant().summarize_attachment(record.id)
            st.rerun()
        except ValidationError as exc:
            st.warning(exc.user_message)
        except GenerationError as exc:
            st.error(exc.user_message)

    render_save_bar(editor, record.id, section)


def render_case_study_tab(record: StudentRecord) -> None:
    section = Section.CASE_STUDY
    editor = _editor(record.id, section)
    render_text_fields(editor, record.id, section, CASE_STUDY_LABELS, multiline=True)
    render_save_bar(editor, record.id, section)


def render_assessments_tab(record: StudentRecord) -> None:
    section = Section.ASSESSMENTS
    editor = _editor(record.id, section)
    st.caption("1 = ضعيف، 5 = ممتاز")
    for area, label in ASSESSMENT_AREAS.items():
        st.markdown(f"**{label}**")
        level = st.slider(label, 1, 5, value=editor.level(area), key=_widget_key(record.id, section, f"{area}:level"), label_visibility="collapsed")
        if level != editor.level(area):
            editor.set_level(area, level)
        notes = editor.draft.area(area).notes
        new_notes = st.text_area("ملاحظات", value=notes, key=_widget_key(record.id, section, f"{area}:notes"))
        if new_notes != notes:
            editor.set_notes(area, new_notes)
    render_save_bar(editor, record.id, section)


# -----------------------------------------------------------------------------
# Profile view
# -----------------------------------------------------------------------------

def render_delete(record: StudentRecord) -> None:
    with st.expander("🗑️ حذف ملف الطالب"):
        st.warning("هل أنت متأكد من رغبتك في حذف ملف هذا الطالب؟ لا يمكن التراجع عن هذا الإجراء.")
        confirmed = st.checkbox("نعم، أريد الحذف", key=f"confirm-delete:{record.id}")
        if st.button("حذف نهائي", key=f"delete:{record.id}", disabled=not confirmed):
            _assistant().delete_record(record.id, confirmed=confirmed)
            _forget_record(record.id)
            st.session_state.selection.clear()
            st.rerun()


def render_profile(record: StudentRecord) -> None:
    if st.button("→ العودة إلى قائمة الطلاب"):
        st.session_state.selection.clear()
        st.rerun()

    col_photo, col_title = st.columns([1, 5])
    with col_photo:
        if record.personal_info.photo_url:
            st.image(record.personal_info.photo_url, width=120)
    with col_title:
        st.header(record.display_name)
        st.caption(
            f"{record.medical_diagnosis.primary_diagnosis or 'لا يوجد تشخيص'} · "
            f"{format_age(record.personal_info.birth_date)}"
        )

    tabs = st.tabs([
        "المساعد الذكي",
        "سجل الخطط",
        "الأهداف المحققة",
        "التقارير",
        "الجلسات",
        "المعلومات الشخصية",
        "التشخيص الطبي",
        "دراسة الحالة",
        "التقييمات",
    ])
    with tabs[0]:
        render_assistant_tab(record)
    with tabs[1]:
        render_plans_tab(record)
    with tabs[2]:
        render_goals_tab(record)
    with tabs[3]:
        render_reports_tab(record)
    with tabs[4]:
        render_sessions_tab(record)
    with tabs[5]:
        render_personal_tab(record)
    with tabs[6]:
        render_diagnosis_tab(record)
    with tabs[7]:
        render_case_study_tab(record)
    with tabs[8]:
        render_assessments_tab(record)

    render_delete(record)


# -----------------------------------------------------------------------------
# Sidebar
# -----------------------------------------------------------------------------

def render_sidebar() -> None:
    config = get_config()
    with st.sidebar:
        st.subheader("الإعدادات")
        if config.generation_backend == "anthropic":
            models = get_available_models()
            names = list(models)
            default_index = next(
                (i for i, name in enumerate(names) if models[name] == config.default_model), 0
            )
            name = st.selectbox("النموذج", names, index=default_index)
            model_id: Optional[str] = models.get(name)
            assistant = _assistant()
            current = getattr(getattr(assistant.client, "client", None), "model", None)
            if model_id and model_id != current:
                assistant.client = LLMGenerationClient(client=LLMClient(model_id))
        else:
            st.caption(f"خدمة التوليد: {config.service_url}")

        if st.button("فحص الاتصال"):
            if _assistant().client.health():
                st.success("الخدمة متاحة.")
            else:
                st.error("تعذر الوصول إلى خدمة التوليد.")
        st.caption(f"عدد الطلاب: {len(_store())}")


# -----------------------------------------------------------------------------
# Main entry point
# -----------------------------------------------------------------------------

def main():
    _init_session_state()
    render_sidebar()

    st.title(f"📁 {get_config().school_name}")

    record = st.session_state.selection.current
    if record is None:
        render_student_list()
    else:
        render_profile(record)


if __name__ == "__main__":
    main()
