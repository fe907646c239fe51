"""Daily request quota for the assistant.

The counter row for today is the only shared mutable state of the pipeline.
All writes go through one ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING``
statement so concurrent callers (possibly in different processes) each get a
distinct post-increment count.
"""

import logging
import time
from collections.abc import Callable
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.database import app_engine
from app.modules.assistant.exceptions import FailurePolicy
from app.modules.assistant.models import AIUsageCounter
from app.modules.assistant.schemas import IncrementResult, UsageStats

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class UsageQuota:
    def __init__(
        self,
        daily_limit: int,
        engine=app_engine,
        failure_policy: FailurePolicy = FailurePolicy.OPEN,
        today: Callable[[], date] = _utc_today,
    ):
        self.daily_limit = int(daily_limit)
        self.engine = engine
        self.failure_policy = failure_policy
        self._today = today

    def _stats(self, current_count: int) -> UsageStats:
        return UsageStats(
            current_count=current_count,
            daily_limit=self.daily_limit,
            remaining=max(0, self.daily_limit - current_count),
            limit_reached=current_count >= self.daily_limit,
        )

    def _failure_stats(self) -> UsageStats:
        if self.failure_policy == FailurePolicy.OPEN:
            return self._stats(0)
        return UsageStats(
            current_count=0,
            daily_limit=self.daily_limit,
            remaining=0,
            limit_reached=True,
        )

    def get_usage(self) -> UsageStats:
        table = AIUsageCounter.__table__
        try:
            with self.engine.connect() as conn:
                count = conn.execute(
                    select(table.c.request_count).where(table.c.date == self._today())
                ).scalar()
        except SQLAlchemyError as exc:
            logger.warning("Usage lookup failed, policy=%s: %s", self.failure_policy.value, exc)
            return self._failure_stats()
        return self._stats(int(count or 0))

    def _upsert_statement(self):
        dialect = self.engine.dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Atomic usage increment is not supported on '{dialect}'")

        table = AIUsageCounter.__table__
        now = time.time()
        statement = insert(table).values(date=self._today(), request_count=1, last_request_at=now)
        statement = statement.on_conflict_do_update(
            index_elements=[table.c.date],
            set_={
                "request_count": table.c.request_count + 1,
                "last_request_at": now,
            },
        )
        return statement.returning(table.c.request_count)

    def increment(self) -> IncrementResult:
        try:
            with self.engine.begin() as conn:
                count = int(conn.execute(self._upsert_statement()).scalar_one())
        except SQLAlchemyError as exc:
            logger.warning("Usage increment failed, policy=%s: %s", self.failure_policy.value, exc)
            stats = self._failure_stats()
            return IncrementResult(
                success=self.failure_policy == FailurePolicy.OPEN,
                stats=stats,
                error=str(exc),
            )

        # The call that lands exactly on the limit is still allowed.
        limit_exceeded = count > self.daily_limit
        stats = UsageStats(
            current_count=count,
            daily_limit=self.daily_limit,
            remaining=max(0, self.daily_limit - count),
            limit_reached=count >= self.daily_limit,
        )
        if limit_exceeded:
            logger.info("Daily assistant limit exceeded: %d/%d", count, self.daily_limit)
        return IncrementResult(success=not limit_exceeded, stats=stats)


class UnlimitedUsageQuota:
    """Stand-in used where quota enforcement is switched off (local development)."""

    def __init__(self, daily_limit: int):
        self.daily_limit = int(daily_limit)

    def get_usage(self) -> UsageStats:
        return UsageStats(
            current_count=0,
            daily_limit=self.daily_limit,
            remaining=self.daily_limit,
            limit_reached=False,
        )

    def increment(self) -> IncrementResult:
        return IncrementResult(success=True, stats=self.get_usage())


def create_usage_quota(engine=app_engine) -> UsageQuota | UnlimitedUsageQuota:
    if settings.rate_limit_disabled:
        return UnlimitedUsageQuota(settings.ASSISTANT_DAILY_REQUEST_LIMIT)
    policy = FailurePolicy.OPEN if settings.ASSISTANT_QUOTA_FAIL_OPEN else FailurePolicy.CLOSED
    return UsageQuota(
        daily_limit=settings.ASSISTANT_DAILY_REQUEST_LIMIT,
        engine=engine,
        failure_policy=policy,
    )
