from datetime import date

from sqlmodel import Session, select

from conftest import FakeLLM, text_response, tool_response

from app.modules.assistant.extractor import (
    Failed,
    NeedsClarification,
    Structured,
    StructuredExtractor,
)
from app.modules.assistant.models import AIChatLog
from app.modules.assistant.schemas import HistoryMessage
from app.modules.assistant.translation import TranslationService
from app.modules.assistant.usage_log import UsageLogger

PURIM_MESSAGE = "מסיבת פורים ב-15/03/2025 בשעה 17:00 באולם בית הספר"
PURIM_EVENT = {
    "title": "מסיבת פורים",
    "title_ru": "Праздник Пурим",
    "start_datetime": "2025-03-15T17:00:00",
    "location": "אולם בית הספר",
    "location_ru": "Актовый зал школы",
}


def _extractor(db_engine, llm, translator=None, max_rounds=3):
    return StructuredExtractor(
        llm=llm,
        usage_logger=UsageLogger(db_engine),
        translator=translator,
        max_rounds=max_rounds,
        timeout=5.0,
        today=lambda: date(2025, 3, 1),
    )


def _logs(db_engine):
    with Session(db_engine) as session:
        return session.exec(select(AIChatLog).order_by(AIChatLog.id)).all()


def test_tool_call_yields_structured_event(db_engine):
    llm = FakeLLM([tool_response("create_events", {"events": [PURIM_EVENT]})])

    outcome = _extractor(db_engine, llm).extract(PURIM_MESSAGE, session_id="s1")

    assert isinstance(outcome, Structured)
    event = outcome.content.events[0]
    assert event.title == "מסיבת פורים"
    assert event.start_datetime.startswith("2025-03-15T17:00")
    assert event.location == "אולם בית הספר"
    assert outcome.usage["total_tokens"] == 160

    [log] = _logs(db_engine)
    assert log.action == "extract"
    assert log.response_type == "function_call"
    assert log.function_name == "create_events"
    assert log.extracted_type == "event"
    assert log.validation_success is True
    assert log.total_tokens == 160
    assert log.estimated_cost > 0
    assert log.round_number == 1


def test_prompt_carries_today_history_and_tools(db_engine):
    llm = FakeLLM([text_response("באיזו שעה?")])
    history = (
        HistoryMessage(role="user", content="1"),
        HistoryMessage(role="assistant", content="כתוב את פרטי האירוע"),
    )

    _extractor(db_engine, llm).extract("מבחן מחר", history=history, session_id="s1")

    [call] = llm.calls
    assert "2025-03-01" in call["messages"][0]["content"]
    assert [m["role"] for m in call["messages"]] == ["system", "user", "assistant", "user"]
    assert call["messages"][-1]["content"] == "מבחן מחר"
    assert {tool["function"]["name"] for tool in call["tools"]} == {
        "create_events",
        "create_urgent_message",
    }
    assert call["config"].timeout == 5.0


def test_several_events_in_one_call(db_engine):
    second = dict(PURIM_EVENT, title="חזרה גנרלית", title_ru="Генеральная репетиция")
    llm = FakeLLM([tool_response("create_events", {"events": [PURIM_EVENT, second]})])

    outcome = _extractor(db_engine, llm).extract(PURIM_MESSAGE, session_id="s1")

    assert isinstance(outcome, Structured)
    assert [event.title for event in outcome.content.events] == ["מסיבת פורים", "חזרה גנרלית"]


def test_missing_russian_field_is_validation_failure(db_engine):
    event = {key: value for key, value in PURIM_EVENT.items() if key != "location_ru"}
    llm = FakeLLM([tool_response("create_events", {"events": [event]})])

    outcome = _extractor(db_engine, llm).extract(PURIM_MESSAGE, session_id="s1")

    assert isinstance(outcome, Failed)
    assert outcome.kind == "input"
    assert outcome.validation_errors == ("אירוע 1: חסר תרגום רוסי (location)",)
    [log] = _logs(db_engine)
    assert log.level == "info"
    assert log.validation_success is False
    assert "location" in log.validation_errors


def test_translator_backfills_missing_russian_field(db_engine):
    event = {key: value for key, value in PURIM_EVENT.items() if key != "location_ru"}
    llm = FakeLLM([tool_response("create_events", {"events": [event]})])
    translator = TranslationService(FakeLLM([text_response("Актовый зал школы")]))

    outcome = _extractor(db_engine, llm, translator=translator).extract(PURIM_MESSAGE, session_id="s1")

    assert isinstance(outcome, Structured)
    assert outcome.content.events[0].location_ru == "Актовый зал школы"


def test_failed_backfill_is_logged_and_rejected(db_engine):
    event = {key: value for key, value in PURIM_EVENT.items() if key != "title_ru"}
    llm = FakeLLM([tool_response("create_events", {"events": [event]})])
    translator = TranslationService(FakeLLM([TimeoutError("translation timed out")]))

    outcome = _extractor(db_engine, llm, translator=translator).extract(PURIM_MESSAGE, session_id="s1")

    assert isinstance(outcome, Failed)
    assert outcome.kind == "input"
    actions = [(log.action, log.level) for log in _logs(db_engine)]
    assert actions == [("translate", "error"), ("extract", "info")]


def test_urgent_message_requires_end_date(db_engine):
    llm = FakeLLM([
        tool_response(
            "create_urgent_message",
            {"type": "warning", "title_he": "חולצה לבנה מחר", "title_ru": "Завтра белая рубашка"},
        )
    ])

    outcome = _extractor(db_engine, llm).extract("תזכורת חולצה לבנה", session_id="s1")

    assert isinstance(outcome, Failed)
    assert "חסר תאריך סיום" in outcome.validation_errors


def test_urgent_message_structured(db_engine):
    llm = FakeLLM([
        tool_response(
            "create_urgent_message",
            {
                "type": "white_shirt",
                "title_he": "חולצה לבנה מחר",
                "title_ru": "Завтра белая рубашка",
                "end_date": "2025-03-20",
                "icon": "👕",
            },
        )
    ])

    outcome = _extractor(db_engine, llm).extract("תזכורת חולצה לבנה למחר עד 20/03/2025", session_id="s1")

    assert isinstance(outcome, Structured)
    assert outcome.content.content_type == "urgent_message"
    assert outcome.content.urgent_message.end_date == "2025-03-20"
    assert outcome.content.preview()["type"] == "urgent_message"


def test_plain_text_is_clarification(db_engine):
    llm = FakeLLM([text_response("עד איזה תאריך להציג את ההודעה?")])

    outcome = _extractor(db_engine, llm).extract("תזכורת", session_id="s1", round_number=1)

    assert isinstance(outcome, NeedsClarification)
    assert outcome.question == "עד איזה תאריך להציג את ההודעה?"
    [log] = _logs(db_engine)
    assert log.response_type == "text"
    assert log.validation_success is None


def test_plain_text_at_round_cap_is_round_limit(db_engine):
    llm = FakeLLM([text_response("מה התאריך?")])

    outcome = _extractor(db_engine, llm, max_rounds=3).extract("משהו", session_id="s1", round_number=3)

    assert isinstance(outcome, Failed)
    assert outcome.kind == "round_limit"
    [log] = _logs(db_engine)
    assert log.level == "error"


def test_completion_error_is_upstream_failure(db_engine):
    llm = FakeLLM([TimeoutError("Request timed out")])

    outcome = _extractor(db_engine, llm).extract(PURIM_MESSAGE, session_id="s1")

    assert isinstance(outcome, Failed)
    assert outcome.kind == "upstream"
    [log] = _logs(db_engine)
    assert log.level == "error"
    assert log.response_type == "error"
    assert log.error_message == "Request timed out"
    assert "TimeoutError" in log.error_stack
    assert log.total_tokens is None
    assert log.estimated_cost is None


def test_malformed_arguments_are_upstream_failure(db_engine):
    llm = FakeLLM([tool_response("create_events", "{not json")])

    outcome = _extractor(db_engine, llm).extract(PURIM_MESSAGE, session_id="s1")

    assert isinstance(outcome, Failed)
    assert outcome.kind == "upstream"
    assert _logs(db_engine)[0].error_message.startswith("Malformed tool arguments")


def test_empty_response_is_upstream_failure(db_engine):
    llm = FakeLLM([text_response("   ")])

    outcome = _extractor(db_engine, llm).extract(PURIM_MESSAGE, session_id="s1")

    assert isinstance(outcome, Failed)
    assert outcome.kind == "upstream"


def test_understand_returns_summary_and_logs_it(db_engine):
    llm = FakeLLM([text_response("  אירוע: מסיבת פורים ב-15/03  ")])

    summary = _extractor(db_engine, llm).understand(PURIM_MESSAGE, session_id="s1", round_number=1)

    assert summary == "אירוע: מסיבת פורים ב-15/03"
    assert llm.calls[0]["tools"] is None
    [log] = _logs(db_engine)
    assert (log.action, log.response_type, log.total_tokens) == ("understand", "text", 160)


def test_empty_understanding_returns_none(db_engine):
    llm = FakeLLM([text_response("")])

    assert _extractor(db_engine, llm).understand(PURIM_MESSAGE, session_id="s1") is None
    [log] = _logs(db_engine)
    assert (log.action, log.level) == ("understand", "error")


def test_context_is_appended_to_system_prompt(db_engine):
    llm = FakeLLM([tool_response("create_events", {"events": [PURIM_EVENT]})])

    _extractor(db_engine, llm).extract(PURIM_MESSAGE, session_id="s1", context="אירוע אחד בלבד")

    system = llm.calls[0]["messages"][0]["content"]
    assert system.endswith("\nאירוע אחד בלבד")
    assert "2025-03-01" in system
