from fastapi import APIRouter, Depends

from app.modules.assistant.dependencies import require_admin
from app.modules.assistant.schemas import ChatLogItem
from app.modules.assistant.usage_log import UsageLogger
from app.modules.billing.schemas import BillingSummary
from app.modules.billing.service import get_billing_summary

router = APIRouter(
    tags=["Billing"],
    prefix="/v1/billing",
    dependencies=[Depends(require_admin)],
)


@router.get("/summary", response_model=BillingSummary)
def get_summary_endpoint(days: int = 30):
    return get_billing_summary(days=days)


@router.get("/logs", response_model=list[ChatLogItem])
def list_logs_endpoint(
    session_id: str | None = None,
    level: str | None = None,
    limit: int = 100,
):
    return UsageLogger().list_entries(session_id=session_id, level=level, limit=limit)
