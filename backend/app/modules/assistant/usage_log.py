"""Durable audit trail of every assistant attempt (ai_chat_logs)."""

import json
import logging
import time

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.core.database import app_engine
from app.modules.assistant.models import AIChatLog
from app.modules.assistant.schemas import ChatLogEntry
from app.modules.billing.service import estimate_cost

logger = logging.getLogger(__name__)

MAX_STORED_MESSAGE_CHARS = 4000
MAX_STORED_STACK_CHARS = 8000

QUOTA_CHARGE_ACTION = "quota_charge"
COMMIT_ACTION = "commit"


def _truncate(value: str | None, limit: int) -> str | None:
    if value is None or len(value) <= limit:
        return value
    return value[: limit - 3] + "..."


def _decode_json(value: str | None):
    if not value:
        return None
    try:
        return json.loads(value)
    except ValueError:
        return None


class UsageLogger:
    def __init__(self, engine=app_engine):
        self.engine = engine

    @staticmethod
    def _to_row(entry: ChatLogEntry) -> AIChatLog:
        estimated_cost = entry.estimated_cost
        if estimated_cost is None and (entry.prompt_tokens or entry.completion_tokens):
            estimated_cost = estimate_cost(
                entry.provider,
                entry.model,
                entry.prompt_tokens or 0,
                entry.completion_tokens or 0,
            )

        return AIChatLog(
            session_id=entry.session_id,
            level=entry.level,
            action=entry.action,
            user_message=_truncate(entry.user_message, MAX_STORED_MESSAGE_CHARS),
            message_length=entry.message_length,
            provider=entry.provider,
            model=entry.model,
            round_number=entry.round_number,
            prompt_tokens=entry.prompt_tokens,
            completion_tokens=entry.completion_tokens,
            total_tokens=entry.total_tokens,
            estimated_cost=estimated_cost,
            response_type=entry.response_type,
            function_name=entry.function_name,
            extracted_type=entry.extracted_type,
            validation_success=entry.validation_success,
            validation_errors=(
                json.dumps(entry.validation_errors, ensure_ascii=False)
                if entry.validation_errors is not None
                else None
            ),
            usage_count=entry.usage_count,
            daily_limit=entry.daily_limit,
            rate_limit_reached=entry.rate_limit_reached,
            error_message=entry.error_message,
            error_stack=_truncate(entry.error_stack, MAX_STORED_STACK_CHARS),
            duration_ms=entry.duration_ms,
            log_metadata=(
                json.dumps(entry.metadata, ensure_ascii=False, default=str)
                if entry.metadata is not None
                else None
            ),
            created_at=time.time(),
        )

    @staticmethod
    def _to_dict(row: AIChatLog) -> dict:
        return {
            "id": int(row.id) if row.id is not None else 0,
            "session_id": row.session_id,
            "level": row.level,
            "action": row.action,
            "user_message": row.user_message,
            "message_length": row.message_length,
            "provider": row.provider,
            "model": row.model,
            "round_number": row.round_number,
            "prompt_tokens": row.prompt_tokens,
            "completion_tokens": row.completion_tokens,
            "total_tokens": row.total_tokens,
            "estimated_cost": row.estimated_cost,
            "response_type": row.response_type,
            "function_name": row.function_name,
            "extracted_type": row.extracted_type,
            "validation_success": row.validation_success,
            "validation_errors": _decode_json(row.validation_errors),
            "usage_count": row.usage_count,
            "daily_limit": row.daily_limit,
            "rate_limit_reached": row.rate_limit_reached,
            "error_message": row.error_message,
            "duration_ms": row.duration_ms,
            "metadata": _decode_json(row.log_metadata),
            "created_at": float(row.created_at),
        }

    def record(self, entry: ChatLogEntry) -> None:
        """Persist one entry. Never raises: a broken audit write must not abort the turn."""
        log = logger.error if entry.level == "error" else logger.info
        log(
            "[%s] session=%s validation=%s tokens=%s error=%s",
            entry.action.upper(),
            entry.session_id,
            entry.validation_success,
            entry.total_tokens,
            entry.error_message,
        )
        try:
            with Session(self.engine) as session:
                session.add(self._to_row(entry))
                session.commit()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to persist assistant log entry (action=%s)", entry.action)

    def list_entries(
        self,
        session_id: str | None = None,
        level: str | None = None,
        limit: int = 100,
    ) -> list[dict]:
        safe_limit = max(1, min(int(limit), 1000))
        with Session(self.engine) as session:
            query = (
                select(AIChatLog)
                .order_by(AIChatLog.created_at.desc(), AIChatLog.id.desc())
                .limit(safe_limit)
            )
            if session_id:
                query = query.where(AIChatLog.session_id == session_id)
            if level:
                query = query.where(AIChatLog.level == level)
            rows = session.exec(query).all()
        return [self._to_dict(row) for row in rows]

    def last_charge_event(self, session_id: str) -> str | None:
        """Latest quota charge or successful commit recorded for a conversation.

        ``QUOTA_CHARGE_ACTION`` means a charge is waiting for its commit,
        ``COMMIT_ACTION`` means the content was already written. Returns ``None``
        when neither exists or the log cannot be read, so the caller charges again.
        """
        try:
            with Session(self.engine) as session:
                row = session.exec(
                    select(AIChatLog)
                    .where(AIChatLog.session_id == session_id)
                    .where(
                        or_(
                            AIChatLog.action == QUOTA_CHARGE_ACTION,
                            and_(AIChatLog.action == COMMIT_ACTION, AIChatLog.validation_success.is_(True)),
                        )
                    )
                    .order_by(AIChatLog.created_at.desc(), AIChatLog.id.desc())
                ).first()
        except SQLAlchemyError:
            logger.exception("Failed to read charge history for session %s", session_id)
            return None
        return row.action if row is not None else None
