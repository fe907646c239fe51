from conftest import ADMIN_HEADERS

from app.modules.assistant.schemas import ChatLogEntry
from app.modules.assistant.usage_log import UsageLogger
from app.modules.billing.service import estimate_cost, get_billing_summary, resolve_pricing


def _seed(engine):
    logger = UsageLogger(engine)
    logger.record(
        ChatLogEntry(
            session_id="s1",
            action="extract",
            provider="openai",
            model="gpt-5-mini",
            prompt_tokens=1000,
            completion_tokens=500,
            total_tokens=1500,
            validation_success=True,
        )
    )
    logger.record(
        ChatLogEntry(
            session_id="s1",
            action="extract",
            provider="openai",
            model="gpt-5-mini",
            prompt_tokens=400,
            completion_tokens=100,
            total_tokens=500,
            validation_success=False,
            validation_errors=["אירוע 1: חסר תאריך"],
        )
    )
    logger.record(ChatLogEntry(session_id="s2", level="error", action="extract", error_message="timeout"))
    logger.record(ChatLogEntry(session_id="s1", action="commit", validation_success=True))


def test_pricing_lookup_order():
    assert resolve_pricing("openai", "gpt-4o-mini") == (0.15, 0.6, "exact")
    assert resolve_pricing("openai", "gpt-5-mini-2025-08-07")[2] == "prefix"
    assert resolve_pricing("anthropic", "claude-sonnet-4-5")[2] == "prefix"
    assert resolve_pricing("xai", "grok-2")[2] == "provider_default"


def test_estimate_cost():
    assert estimate_cost("openai", "gpt-5-mini", 1_000_000, 0) == 0.25
    assert estimate_cost("openai", "gpt-5-mini", 0, 0) == 0.0


def test_summary_aggregates_log_entries(db_engine):
    _seed(db_engine)

    summary = get_billing_summary(days=7, engine=db_engine)

    totals = summary["totals"]
    assert totals["entries"] == 4
    assert totals["completion_calls"] == 2
    assert totals["errors"] == 1
    assert totals["validation_failures"] == 1
    assert totals["commits"] == 1
    assert totals["total_tokens"] == 2000
    assert totals["estimated_cost_usd"] > 0
    assert len(summary["daily"]) == 7
    assert summary["daily"][-1]["completion_calls"] == 2
    [model] = summary["by_model"]
    assert (model["provider"], model["model"]) == ("openai", "gpt-5-mini")
    assert model["completion_calls"] == 2


def test_billing_endpoints_require_admin(client):
    assert client.get("/v1/billing/summary").status_code == 401
    assert client.get("/v1/billing/logs").status_code == 401


def test_billing_endpoints(client, db_engine):
    _seed(db_engine)

    summary = client.get("/v1/billing/summary", params={"days": 3}, headers=ADMIN_HEADERS)
    logs = client.get("/v1/billing/logs", params={"level": "error"}, headers=ADMIN_HEADERS)

    assert summary.status_code == 200
    assert summary.json()["range_days"] == 3
    assert logs.status_code == 200
    assert [item["session_id"] for item in logs.json()] == ["s2"]
