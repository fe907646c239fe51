import time
from datetime import datetime, timedelta, timezone

from sqlmodel import Session, select

from app.core.config import settings
from app.core.database import app_engine
from app.modules.assistant.models import AIChatLog

# USD pricing per 1M tokens. Values are estimated and can be overridden in future.
_MODEL_PRICING_PER_1M: dict[str, tuple[float, float]] = {
    "openai:gpt-5": (1.25, 10.0),
    "openai:gpt-5-mini": (0.25, 2.0),
    "openai:gpt-5-nano": (0.05, 0.4),
    "openai:gpt-4.1": (2.0, 8.0),
    "openai:gpt-4.1-mini": (0.4, 1.6),
    "openai:gpt-4.1-nano": (0.1, 0.4),
    "openai:gpt-4o": (5.0, 15.0),
    "openai:gpt-4o-mini": (0.15, 0.6),
    "openai:o3-mini": (1.1, 4.4),
    "openai:o4-mini": (1.0, 4.0),
    "anthropic:claude-sonnet-4-20250514": (3.0, 15.0),
    "anthropic:claude-3-7-sonnet-20250219": (3.0, 15.0),
    "anthropic:claude-3-5-sonnet-20241022": (3.0, 15.0),
    "anthropic:claude-3-5-haiku-20241022": (0.8, 4.0),
    "xai:grok-4": (5.0, 20.0),
    "xai:grok-3": (3.0, 12.0),
}

_MODEL_PREFIX_PRICING_PER_1M: dict[str, tuple[float, float]] = {
    "openai:gpt-5": (1.25, 10.0),
    "openai:gpt-4.1": (2.0, 8.0),
    "openai:gpt-4o": (5.0, 15.0),
    "openai:o4-mini": (1.0, 4.0),
    "anthropic:claude-sonnet": (3.0, 15.0),
    "anthropic:claude-3-5-haiku": (0.8, 4.0),
    "xai:grok-4": (5.0, 20.0),
    "xai:grok-3": (3.0, 12.0),
}

_PROVIDER_DEFAULT_PRICING_PER_1M: dict[str, tuple[float, float]] = {
    "openai": (5.0, 15.0),
    "anthropic": (3.0, 15.0),
    "xai": (3.0, 12.0),
}


def _to_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except Exception:
        return default


def _to_float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except Exception:
        return default


def _normalize_identity(provider: str | None, model: str | None) -> tuple[str, str]:
    p = (provider or settings.CHATBOT_DEFAULT_LLM or "openai").strip().lower()
    m = (model or settings.CHATBOT_DEFAULT_MODEL or "unknown").strip().lower()
    return p, m


def resolve_pricing(provider: str | None, model: str | None) -> tuple[float, float, str]:
    provider, model = _normalize_identity(provider, model)
    key = f"{provider}:{model}"
    if key in _MODEL_PRICING_PER_1M:
        input_rate, output_rate = _MODEL_PRICING_PER_1M[key]
        return input_rate, output_rate, "exact"

    for prefix in sorted(_MODEL_PREFIX_PRICING_PER_1M, key=len, reverse=True):
        if key.startswith(prefix):
            input_rate, output_rate = _MODEL_PREFIX_PRICING_PER_1M[prefix]
            return input_rate, output_rate, "prefix"

    input_rate, output_rate = _PROVIDER_DEFAULT_PRICING_PER_1M.get(provider, (2.0, 8.0))
    return input_rate, output_rate, "provider_default"


def estimate_cost(
    provider: str | None,
    model: str | None,
    prompt_tokens: int,
    completion_tokens: int,
) -> float:
    input_rate, output_rate, _ = resolve_pricing(provider, model)
    input_cost = (_to_int(prompt_tokens) / 1_000_000.0) * input_rate
    output_cost = (_to_int(completion_tokens) / 1_000_000.0) * output_rate
    return round(input_cost + output_cost, 8)


def get_billing_summary(days: int = 30, engine=app_engine) -> dict:
    safe_days = max(1, min(int(days), 365))
    start_at = time.time() - (safe_days * 86400)

    with Session(engine) as session:
        rows = session.exec(
            select(AIChatLog)
            .where(AIChatLog.created_at >= start_at)
            .order_by(AIChatLog.created_at.asc(), AIChatLog.id.asc())
        ).all()

    totals = {
        "entries": 0,
        "completion_calls": 0,
        "errors": 0,
        "validation_failures": 0,
        "commits": 0,
        "prompt_tokens": 0,
        "completion_tokens": 0,
        "total_tokens": 0,
        "estimated_cost_usd": 0.0,
    }

    end_date = datetime.now(timezone.utc).date()
    start_date = end_date - timedelta(days=safe_days - 1)
    daily_map: dict[str, dict] = {}
    cursor_date = start_date
    while cursor_date <= end_date:
        key = cursor_date.isoformat()
        daily_map[key] = {
            "date": key,
            "completion_calls": 0,
            "errors": 0,
            "total_tokens": 0,
            "estimated_cost_usd": 0.0,
        }
        cursor_date += timedelta(days=1)

    by_model: dict[str, dict] = {}

    for row in rows:
        totals["entries"] += 1
        is_error = row.level == "error"
        has_call = row.total_tokens is not None
        if is_error:
            totals["errors"] += 1
        if row.validation_success is False:
            totals["validation_failures"] += 1
        if row.action == "commit" and row.validation_success:
            totals["commits"] += 1

        prompt_tokens = _to_int(row.prompt_tokens)
        completion_tokens = _to_int(row.completion_tokens)
        total_tokens = _to_int(row.total_tokens)
        cost = _to_float(row.estimated_cost)
        if has_call:
            totals["completion_calls"] += 1
            totals["prompt_tokens"] += prompt_tokens
            totals["completion_tokens"] += completion_tokens
            totals["total_tokens"] += total_tokens
            totals["estimated_cost_usd"] += cost

        day_key = datetime.fromtimestamp(row.created_at, tz=timezone.utc).date().isoformat()
        if day_key in daily_map:
            point = daily_map[day_key]
            if is_error:
                point["errors"] += 1
            if has_call:
                point["completion_calls"] += 1
                point["total_tokens"] += total_tokens
                point["estimated_cost_usd"] += cost

        if not has_call:
            continue
        provider, model = _normalize_identity(row.provider, row.model)
        model_key = f"{provider}::{model}"
        if model_key not in by_model:
            by_model[model_key] = {
                "provider": provider,
                "model": model,
                "completion_calls": 0,
                "prompt_tokens": 0,
                "completion_tokens": 0,
                "total_tokens": 0,
                "estimated_cost_usd": 0.0,
                "pricing_source": resolve_pricing(provider, model)[2],
            }
        entry = by_model[model_key]
        entry["completion_calls"] += 1
        entry["prompt_tokens"] += prompt_tokens
        entry["completion_tokens"] += completion_tokens
        entry["total_tokens"] += total_tokens
        entry["estimated_cost_usd"] += cost

    by_model_list = sorted(
        by_model.values(),
        key=lambda item: (item["estimated_cost_usd"], item["total_tokens"]),
        reverse=True,
    )

    return {
        "currency": "USD",
        "range_days": safe_days,
        "generated_at": time.time(),
        "totals": {
            **totals,
            "estimated_cost_usd": _to_float(round(totals["estimated_cost_usd"], 6)),
        },
        "by_model": [
            {**item, "estimated_cost_usd": _to_float(round(item["estimated_cost_usd"], 6))}
            for item in by_model_list
        ],
        "daily": [
            {
                **daily_map[key],
                "estimated_cost_usd": _to_float(round(daily_map[key]["estimated_cost_usd"], 6)),
            }
            for key in sorted(daily_map.keys())
        ],
    }
