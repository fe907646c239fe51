import hmac

from fastapi import Depends, Header, HTTPException

from app.core.config import settings
from app.modules.assistant.quota import create_usage_quota
from app.modules.assistant.service import create_orchestrator, create_translation_service


def get_is_admin(x_admin_token: str | None = Header(default=None)) -> bool:
    expected = settings.ADMIN_API_TOKEN or ""
    if not expected or not x_admin_token:
        return False
    return hmac.compare_digest(x_admin_token.encode("utf-8"), expected.encode("utf-8"))


def require_admin(is_admin: bool = Depends(get_is_admin)) -> None:
    if not is_admin:
        raise HTTPException(status_code=401, detail="Admin access required")


def get_orchestrator():
    try:
        return create_orchestrator()
    except ValueError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def get_usage_quota():
    return create_usage_quota()


def get_translation_service():
    try:
        return create_translation_service()
    except ValueError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
