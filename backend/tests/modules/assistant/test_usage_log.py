from unittest.mock import patch

from sqlmodel import Session, create_engine, select

from app.modules.assistant.models import AIChatLog
from app.modules.assistant.schemas import ChatLogEntry
from app.modules.assistant.usage_log import MAX_STORED_MESSAGE_CHARS, UsageLogger


def test_record_persists_entry_with_cost(db_engine):
    UsageLogger(db_engine).record(
        ChatLogEntry(
            session_id="s1",
            action="extract",
            provider="openai",
            model="gpt-4o-mini",
            prompt_tokens=1_000_000,
            completion_tokens=1_000_000,
            total_tokens=2_000_000,
            validation_success=True,
            metadata={"arguments": {"title": "מסיבה"}},
        )
    )

    with Session(db_engine) as session:
        [row] = session.exec(select(AIChatLog)).all()
    assert row.action == "extract"
    assert row.estimated_cost == 0.75
    assert "מסיבה" in row.log_metadata


def test_cost_absent_without_tokens(db_engine):
    UsageLogger(db_engine).record(ChatLogEntry(session_id="s1", action="validate", validation_success=False))

    with Session(db_engine) as session:
        [row] = session.exec(select(AIChatLog)).all()
    assert row.estimated_cost is None
    assert row.total_tokens is None


def test_long_user_message_is_truncated(db_engine):
    UsageLogger(db_engine).record(
        ChatLogEntry(session_id="s1", action="validate", user_message="א" * (MAX_STORED_MESSAGE_CHARS + 50))
    )

    with Session(db_engine) as session:
        [row] = session.exec(select(AIChatLog)).all()
    assert len(row.user_message) == MAX_STORED_MESSAGE_CHARS
    assert row.user_message.endswith("...")


def test_record_never_raises_on_storage_failure():
    engine = create_engine("sqlite:////nonexistent-directory/logs.db")

    UsageLogger(engine).record(ChatLogEntry(session_id="s1", action="extract"))


def test_record_never_raises_on_unexpected_error(db_engine):
    with patch("app.modules.assistant.usage_log.estimate_cost", side_effect=RuntimeError("boom")):
        UsageLogger(db_engine).record(
            ChatLogEntry(session_id="s1", action="extract", prompt_tokens=10, completion_tokens=5)
        )


def test_list_entries_filters_and_decodes(db_engine):
    logger = UsageLogger(db_engine)
    logger.record(
        ChatLogEntry(
            session_id="s1",
            action="validate",
            validation_success=False,
            validation_errors=["ההודעה ריקה"],
        )
    )
    logger.record(ChatLogEntry(session_id="s2", level="error", action="extract", error_message="timeout"))

    s1_entries = logger.list_entries(session_id="s1")
    errors = logger.list_entries(level="error")

    assert [entry["action"] for entry in s1_entries] == ["validate"]
    assert s1_entries[0]["validation_errors"] == ["ההודעה ריקה"]
    assert [entry["session_id"] for entry in errors] == ["s2"]
    assert len(logger.list_entries()) == 2
