"""Conversation state machine for the admin content assistant.

The orchestrator holds no per-conversation memory. Each call receives the
``ConversationState`` the client sent back and returns the next one inside a
``TurnResponse``:

    type_selection -> collecting_details -> confirming -> committing -> done

Cancel and the clarification round limit end in ``aborted``. Quota is charged only
on ``confirm``, right before the write. The state is client-held, so ``confirm``
re-validates its content and looks up earlier charges in the audit log instead
of trusting anything the client sent.
"""

import json
import logging
import time
import traceback
import uuid

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.modules.assistant.examples import get_all_examples, get_contextual_examples
from app.modules.assistant.exceptions import AdminRequiredError, InvalidPhaseError
from app.modules.assistant.extractor import (
    VALIDATION_ERROR_MESSAGE,
    Failed,
    NeedsClarification,
    Structured,
    StructuredExtractor,
)
from app.modules.assistant.guidance import analyze_failure
from app.modules.assistant.repository import ContentRepository
from app.modules.assistant.schemas import (
    TERMINAL_PHASES,
    ChatLogEntry,
    ConversationState,
    TurnResponse,
    UsageStats,
)
from app.modules.assistant.tools import validate_content
from app.modules.assistant.usage_log import COMMIT_ACTION, QUOTA_CHARGE_ACTION, UsageLogger
from app.modules.assistant.validator import (
    detect_language,
    is_complex_message,
    language_error,
    validate_message,
)

logger = logging.getLogger(__name__)

GREETING_MESSAGE = (
    "שלום! 👋 מה תרצה ליצור?\n\n"
    "1️⃣ אירוע בלוח השנה\n"
    "2️⃣ הודעה דחופה להורים\n\n"
    "אפשר גם פשוט לכתוב את הפרטים ואני אזהה לבד."
)
EVENT_INSTRUCTIONS = (
    "מעולה, ניצור אירוע 📅\n\n"
    "כתוב את פרטי האירוע: שם, תאריך, שעה ומיקום (אופציונלי).\n"
    'לדוגמה: "מסיבת פורים ב-15/03/2025 בשעה 17:00 באולם בית הספר"'
)
URGENT_MESSAGE_INSTRUCTIONS = (
    "מעולה, ניצור הודעה דחופה 📢\n\n"
    "כתוב את תוכן ההודעה ועד מתי להציג אותה.\n"
    'לדוגמה: "תזכורת חולצה לבנה למחר עד 20/03/2025"'
)
CONFIRM_MESSAGE = "✅ זה מה שהבנתי. לאשר ולפרסם?"
QUOTA_MESSAGE = "⏳ הגעת למגבלת השימוש היומית בעוזר. נסה שוב מחר"
COMMIT_ERROR_MESSAGE = "❌ השמירה נכשלה. הפרטים נשמרו, אפשר לנסות לאשר שוב"
DONE_MESSAGE = "🎉 פורסם בהצלחה!"
CANCEL_MESSAGE = "בוטל. אפשר להתחיל שיחה חדשה בכל זמן."

_SELECTIONS = {
    "1": "event",
    "אירוע": "event",
    "2": "urgent_message",
    "הודעה": "urgent_message",
    "דחוף": "urgent_message",
    "הודעה דחופה": "urgent_message",
}


class ConversationOrchestrator:
    def __init__(
        self,
        quota,
        extractor: StructuredExtractor,
        repository: ContentRepository,
        usage_logger: UsageLogger,
        max_message_length: int | None = None,
    ):
        self.quota = quota
        self.extractor = extractor
        self.repository = repository
        self.usage_logger = usage_logger
        self.max_message_length = int(max_message_length or settings.ASSISTANT_MAX_MESSAGE_LENGTH)

    # ── helpers ──

    @staticmethod
    def _require_admin(is_admin: bool) -> None:
        if not is_admin:
            raise AdminRequiredError()

    @staticmethod
    def _require_phase(state: ConversationState, *phases: str) -> None:
        if state.phase in TERMINAL_PHASES or state.phase not in phases:
            raise InvalidPhaseError(
                f"Operation not allowed in phase '{state.phase}'"
            )

    def _log(self, state: ConversationState, action: str, **fields) -> None:
        self.usage_logger.record(ChatLogEntry(session_id=state.session_id, action=action, **fields))

    @staticmethod
    def _usage_fields(usage: UsageStats) -> dict:
        return {
            "usage_count": usage.current_count,
            "daily_limit": usage.daily_limit,
            "rate_limit_reached": usage.limit_reached,
        }

    # ── operations ──

    def start(self, is_admin: bool, session_id: str | None = None) -> TurnResponse:
        self._require_admin(is_admin)
        state = ConversationState(session_id=session_id or uuid.uuid4().hex)
        usage = self.quota.get_usage()
        self._log(state, "initial", **self._usage_fields(usage))
        return TurnResponse(
            success=True,
            state=state,
            message=GREETING_MESSAGE,
            examples=get_contextual_examples("type_selection"),
            usage=usage,
        )

    def handle_message(self, state: ConversationState, message: str, is_admin: bool) -> TurnResponse:
        self._require_admin(is_admin)
        self._require_phase(state, "type_selection", "collecting_details", "confirming")

        if state.phase == "type_selection":
            selection = _SELECTIONS.get((message or "").strip())
            if selection is not None:
                return self._select_type(state, message.strip(), selection)

        return self._extract(state, message or "")

    def confirm(self, state: ConversationState, is_admin: bool) -> TurnResponse:
        self._require_admin(is_admin)
        self._require_phase(state, "confirming")
        if state.content is None:
            raise InvalidPhaseError("Nothing to confirm")

        errors = validate_content(state.content)
        if errors:
            self._log(
                state,
                "validate",
                level="error",
                extracted_type=state.content.content_type,
                validation_success=False,
                validation_errors=errors,
            )
            return TurnResponse(
                success=False,
                state=state,
                error=VALIDATION_ERROR_MESSAGE,
                error_kind="input",
                validation_errors=errors,
            )

        charge = self.usage_logger.last_charge_event(state.session_id)
        if charge == COMMIT_ACTION:
            raise InvalidPhaseError("Conversation already committed")

        usage = None
        if charge != QUOTA_CHARGE_ACTION:
            result = self.quota.increment()
            usage = result.stats
            if not result.success:
                self._log(
                    state,
                    "quota",
                    level="error",
                    extracted_type=state.content.content_type,
                    error_message=result.error or "Daily limit exceeded",
                    **self._usage_fields(usage),
                )
                return TurnResponse(
                    success=False,
                    state=state,
                    error=QUOTA_MESSAGE,
                    error_kind="quota",
                    usage=usage,
                )
            # A failed write is retried against this charge.
            self._log(
                state,
                QUOTA_CHARGE_ACTION,
                extracted_type=state.content.content_type,
                **self._usage_fields(usage),
            )

        committing = state.model_copy(update={"phase": "committing"})
        started = time.perf_counter()
        try:
            record_ids = self.repository.save(state.content)
        except (SQLAlchemyError, ValueError) as exc:
            logger.exception("Commit failed for session %s", state.session_id)
            self._log(
                state,
                COMMIT_ACTION,
                level="error",
                extracted_type=state.content.content_type,
                validation_success=False,
                error_message=str(exc),
                error_stack=traceback.format_exc(),
                duration_ms=int((time.perf_counter() - started) * 1000),
            )
            return TurnResponse(
                success=False,
                state=committing.model_copy(update={"phase": "confirming"}),
                error=COMMIT_ERROR_MESSAGE,
                error_kind="commit",
                needs_confirmation=True,
                preview=state.content.preview(),
                usage=usage,
            )

        self._log(
            state,
            COMMIT_ACTION,
            extracted_type=state.content.content_type,
            validation_success=True,
            duration_ms=int((time.perf_counter() - started) * 1000),
            metadata={"record_ids": record_ids},
            **(self._usage_fields(usage) if usage is not None else {}),
        )
        return TurnResponse(
            success=True,
            state=committing.model_copy(update={"phase": "done"}),
            message=DONE_MESSAGE,
            record_ids=record_ids,
            usage=usage,
        )

    def cancel(self, state: ConversationState, is_admin: bool) -> TurnResponse:
        self._require_admin(is_admin)
        self._require_phase(state, "type_selection", "collecting_details", "confirming")
        self._log(state, "cancel", metadata={"phase": state.phase})
        return TurnResponse(
            success=True,
            state=state.model_copy(update={"phase": "aborted"}),
            message=CANCEL_MESSAGE,
        )

    # ── phases ──

    def _select_type(self, state: ConversationState, message: str, content_type: str) -> TurnResponse:
        instructions = EVENT_INSTRUCTIONS if content_type == "event" else URGENT_MESSAGE_INSTRUCTIONS
        self._log(state, "select_type", user_message=message, extracted_type=content_type)
        return TurnResponse(
            success=True,
            state=state.with_turn(
                message,
                instructions,
                phase="collecting_details",
                content_type=content_type,
            ),
            message=instructions,
            examples=get_all_examples(content_type)[:3],
        )

    def _reject_input(self, state: ConversationState, message: str, error: str, length: int) -> TurnResponse:
        self._log(
            state,
            "validate",
            user_message=message,
            message_length=length,
            validation_success=False,
            validation_errors=[error],
        )
        return TurnResponse(
            success=False,
            state=state,
            error=error,
            error_kind="input",
            validation_errors=[error],
            examples=get_contextual_examples(state.phase, message),
        )

    def _extract(self, state: ConversationState, message: str) -> TurnResponse:
        validation = validate_message(message, self.max_message_length)
        if not validation.valid:
            return self._reject_input(state, message, validation.error, validation.length)

        message = message.strip()
        wrong_language = language_error(detect_language(message))
        if wrong_language:
            return self._reject_input(state, message, wrong_language, validation.length)

        usage = self.quota.get_usage()
        if usage.limit_reached:
            self._log(
                state,
                "quota",
                level="error",
                user_message=message,
                message_length=validation.length,
                error_message="Daily limit reached",
                **self._usage_fields(usage),
            )
            return TurnResponse(
                success=False,
                state=state,
                error=QUOTA_MESSAGE,
                error_kind="quota",
                usage=usage,
            )

        round_number = state.round + 1
        context = None
        if is_complex_message(message):
            context = self.extractor.understand(
                message,
                history=state.history,
                session_id=state.session_id,
                round_number=round_number,
            )
        outcome = self.extractor.extract(
            message,
            history=state.history,
            session_id=state.session_id,
            round_number=round_number,
            context=context,
        )

        if isinstance(outcome, Structured):
            preview = outcome.content.preview()
            summary = f"{CONFIRM_MESSAGE}\n{json.dumps(preview, ensure_ascii=False)}"
            return TurnResponse(
                success=True,
                state=state.with_turn(
                    message,
                    summary,
                    phase="confirming",
                    content_type=outcome.content.content_type,
                    round=0,
                    content=outcome.content,
                ),
                message=CONFIRM_MESSAGE,
                needs_confirmation=True,
                preview=preview,
                usage=usage,
            )

        if isinstance(outcome, NeedsClarification):
            return TurnResponse(
                success=True,
                state=state.with_turn(
                    message,
                    outcome.question,
                    phase="collecting_details",
                    round=round_number,
                    content=None,
                ),
                message=outcome.question,
                usage=usage,
            )

        if isinstance(outcome, Failed):
            return self._failed(state, message, outcome, usage)

        raise TypeError(f"Unexpected extraction outcome: {outcome!r}")

    def _failed(
        self,
        state: ConversationState,
        message: str,
        outcome: Failed,
        usage: UsageStats,
    ) -> TurnResponse:
        guidance = analyze_failure(
            message,
            outcome.kind,
            validation_errors=outcome.validation_errors,
            content_type=state.content_type,
        )
        if outcome.kind == "round_limit":
            next_state = state.with_turn(message, outcome.reason, phase="aborted", round=0)
        elif outcome.kind == "input":
            # A rejected call still ends a clarification streak.
            next_state = state.with_turn(message, guidance.message, round=0)
        else:
            next_state = state

        confirming = next_state.phase == "confirming" and next_state.content is not None
        return TurnResponse(
            success=False,
            state=next_state,
            message=guidance.message,
            error=outcome.reason,
            error_kind=outcome.kind,
            validation_errors=list(outcome.validation_errors),
            suggestions=guidance.suggestions,
            examples=guidance.examples,
            usage=usage,
            needs_confirmation=confirming,
            preview=next_state.content.preview() if confirming else None,
        )
