"""Natural language to structured content, using function calling as the parser.

``StructuredExtractor.extract`` never raises for completion-service trouble.
Every call ends in exactly one of three outcomes and exactly one ``extract``
audit entry:

* ``Structured``: a tool call whose arguments passed validation.
* ``NeedsClarification``: the model answered with a question instead of a call.
* ``Failed``: validation errors (``input``), clarification cap (``round_limit``)
  or anything that went wrong talking to the model (``upstream``).

Long or forwarded messages can first go through ``understand``, a tool-free
summary call logged as ``understand``. Its text is passed back to ``extract`` as
context appended to the system prompt.
"""

import logging
import time
import traceback
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date

from app.core.config import settings
from app.core.llm.base import BaseLLM
from app.core.llm.schemas import GenerateConfig, LLMResponse
from app.modules.assistant.prompts import EXTRACTION_SYSTEM, UNDERSTANDING_SYSTEM
from app.modules.assistant.schemas import ChatLogEntry, ExtractedContent, HistoryMessage
from app.modules.assistant.tools import (
    ASSISTANT_TOOLS,
    TOOL_CONTENT_TYPES,
    apply_translations,
    missing_translations,
    validate_tool_arguments,
)
from app.modules.assistant.translation import TranslationService
from app.modules.assistant.usage_log import UsageLogger

logger = logging.getLogger(__name__)

UPSTREAM_ERROR_MESSAGE = "אירעה שגיאה בעיבוד הבקשה. נסה שוב בעוד רגע"
VALIDATION_ERROR_MESSAGE = "חסרים פרטים או שחלק מהפרטים אינם תקינים"
ROUND_LIMIT_MESSAGE = "לא הצלחתי להבין את הבקשה אחרי כמה ניסיונות. נסה לנסח אותה מחדש עם כל הפרטים"
CONTEXT_HEADER = "Summary of the admin message from a first reading. The message itself wins where they differ:"


@dataclass(frozen=True)
class Structured:
    content: ExtractedContent
    usage: dict = field(default_factory=dict)


@dataclass(frozen=True)
class NeedsClarification:
    question: str
    usage: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Failed:
    kind: str
    reason: str
    validation_errors: tuple[str, ...] = ()
    usage: dict = field(default_factory=dict)


ExtractionOutcome = Structured | NeedsClarification | Failed


class StructuredExtractor:
    def __init__(
        self,
        llm: BaseLLM,
        usage_logger: UsageLogger,
        translator: TranslationService | None = None,
        system_prompt: str = EXTRACTION_SYSTEM,
        understanding_prompt: str = UNDERSTANDING_SYSTEM,
        max_rounds: int | None = None,
        timeout: float | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.llm = llm
        self.usage_logger = usage_logger
        self.translator = translator
        self.system_prompt = system_prompt
        self.understanding_prompt = understanding_prompt
        self.max_rounds = int(max_rounds or settings.ASSISTANT_MAX_ROUNDS)
        self.timeout = timeout if timeout is not None else settings.ASSISTANT_LLM_TIMEOUT_SECONDS
        self._today = today

    def _build_messages(
        self,
        message: str,
        history: Sequence[HistoryMessage],
        system_prompt: str | None = None,
        context: str | None = None,
    ) -> list[dict]:
        system = (system_prompt or self.system_prompt).replace("{today}", self._today().isoformat())
        if context:
            system += f"\n\n{CONTEXT_HEADER}\n{context}"
        messages = [{"role": "system", "content": system}]
        messages.extend({"role": item.role, "content": item.content} for item in history)
        messages.append({"role": "user", "content": message})
        return messages

    def _log(
        self,
        session_id: str,
        message: str,
        round_number: int,
        started: float,
        response: LLMResponse | None = None,
        action: str = "extract",
        **fields,
    ) -> None:
        usage = response.usage if response is not None else {}
        self.usage_logger.record(
            ChatLogEntry(
                session_id=session_id,
                action=action,
                user_message=message,
                message_length=len(message),
                provider=(response.provider if response is not None else None) or self.llm.provider,
                model=(response.model if response is not None else None) or self.llm.model,
                round_number=round_number,
                prompt_tokens=usage.get("prompt_tokens"),
                completion_tokens=usage.get("completion_tokens"),
                total_tokens=usage.get("total_tokens"),
                duration_ms=int((time.perf_counter() - started) * 1000),
                **fields,
            )
        )

    def _backfill(self, session_id: str, function_name: str, args: dict) -> dict:
        if self.translator is None:
            return args

        missing = missing_translations(function_name, args)
        if not missing:
            return args

        logger.info("Backfilling %d missing Russian field(s) for %s", len(missing), function_name)
        translations = self.translator.batch_translate(missing)
        gaps = [path for path in missing if path not in translations]
        if gaps:
            self.usage_logger.record(
                ChatLogEntry(
                    session_id=session_id,
                    level="error",
                    action="translate",
                    function_name=function_name,
                    error_message="Translation failed",
                    metadata={"fields": gaps},
                )
            )
        if not translations:
            return args
        return apply_translations(args, translations)

    def understand(
        self,
        message: str,
        history: Sequence[HistoryMessage] = (),
        session_id: str = "",
        round_number: int = 1,
    ) -> str | None:
        """Summarize a long message without tools; ``None`` when no summary came back.

        The summary only adds context to the extraction call, so failures are
        logged and the caller extracts without it.
        """
        started = time.perf_counter()
        try:
            response = self.llm.generate(
                self._build_messages(message, history, system_prompt=self.understanding_prompt),
                config=GenerateConfig(timeout=self.timeout),
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Understanding call failed for session %s", session_id)
            self._log(
                session_id,
                message,
                round_number,
                started,
                action="understand",
                level="error",
                response_type="error",
                error_message=str(exc) or exc.__class__.__name__,
                error_stack=traceback.format_exc(),
            )
            return None

        summary = (response.text or "").strip()
        if not summary:
            self._log(
                session_id,
                message,
                round_number,
                started,
                response,
                action="understand",
                level="error",
                response_type="error",
                error_message="Empty completion response",
                metadata={"finish_reason": response.finish_reason},
            )
            return None

        self._log(
            session_id,
            message,
            round_number,
            started,
            response,
            action="understand",
            response_type="text",
            metadata={"summary": summary},
        )
        return summary

    def extract(
        self,
        message: str,
        history: Sequence[HistoryMessage] = (),
        session_id: str = "",
        round_number: int = 1,
        context: str | None = None,
    ) -> ExtractionOutcome:
        started = time.perf_counter()
        try:
            response = self.llm.generate(
                self._build_messages(message, history, context=context),
                config=GenerateConfig(timeout=self.timeout, tool_choice="auto"),
                tools=ASSISTANT_TOOLS,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Completion call failed for session %s", session_id)
            self._log(
                session_id,
                message,
                round_number,
                started,
                level="error",
                response_type="error",
                error_message=str(exc) or exc.__class__.__name__,
                error_stack=traceback.format_exc(),
            )
            return Failed(kind="upstream", reason=UPSTREAM_ERROR_MESSAGE)

        usage = dict(response.usage or {})

        if response.tool_calls:
            call = response.tool_calls[0]
            try:
                args = call.parse_arguments()
            except ValueError as exc:
                logger.warning("Malformed arguments for %s: %s", call.name, exc)
                self._log(
                    session_id,
                    message,
                    round_number,
                    started,
                    response,
                    level="error",
                    response_type="error",
                    function_name=call.name,
                    error_message=f"Malformed tool arguments: {exc}",
                    error_stack=traceback.format_exc(),
                    metadata={"arguments": call.arguments},
                )
                return Failed(kind="upstream", reason=UPSTREAM_ERROR_MESSAGE, usage=usage)

            args = self._backfill(session_id, call.name, args)
            content, errors = validate_tool_arguments(call.name, args)
            self._log(
                session_id,
                message,
                round_number,
                started,
                response,
                response_type="function_call",
                function_name=call.name,
                extracted_type=TOOL_CONTENT_TYPES.get(call.name),
                validation_success=not errors,
                validation_errors=errors or None,
                metadata={"arguments": args},
            )
            if errors:
                return Failed(
                    kind="input",
                    reason=VALIDATION_ERROR_MESSAGE,
                    validation_errors=tuple(errors),
                    usage=usage,
                )
            return Structured(content=content, usage=usage)

        question = (response.text or "").strip()
        if not question:
            self._log(
                session_id,
                message,
                round_number,
                started,
                response,
                level="error",
                response_type="error",
                error_message="Empty completion response",
                metadata={"finish_reason": response.finish_reason},
            )
            return Failed(kind="upstream", reason=UPSTREAM_ERROR_MESSAGE, usage=usage)

        if round_number >= self.max_rounds:
            self._log(
                session_id,
                message,
                round_number,
                started,
                response,
                level="error",
                response_type="text",
                error_message=f"Clarification limit reached ({round_number}/{self.max_rounds})",
                metadata={"question": question},
            )
            return Failed(kind="round_limit", reason=ROUND_LIMIT_MESSAGE, usage=usage)

        self._log(
            session_id,
            message,
            round_number,
            started,
            response,
            response_type="text",
            metadata={"question": question},
        )
        return NeedsClarification(question=question, usage=usage)
