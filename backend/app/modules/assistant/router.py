from fastapi import APIRouter, Depends, HTTPException

from app.modules.assistant.dependencies import (
    get_is_admin,
    get_orchestrator,
    get_translation_service,
    get_usage_quota,
    require_admin,
)
from app.modules.assistant.examples import get_all_examples, get_contextual_examples
from app.modules.assistant.exceptions import AdminRequiredError, AssistantError, InvalidPhaseError
from app.modules.assistant.schemas import (
    Example,
    MessageRequest,
    StateRequest,
    TranslateRequest,
    TranslateResponse,
    TurnResponse,
    UsageStats,
)

router = APIRouter(tags=["Assistant"], prefix="/v1/assistant")

_ERROR_STATUS = {
    AdminRequiredError: 401,
    InvalidPhaseError: 409,
}


def _http_error(exc: AssistantError) -> HTTPException:
    status_code = _ERROR_STATUS.get(type(exc), 400)
    return HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.message})


@router.post("/start", response_model=TurnResponse)
def start_endpoint(
    is_admin: bool = Depends(get_is_admin),
    orchestrator=Depends(get_orchestrator),
):
    try:
        return orchestrator.start(is_admin=is_admin)
    except AssistantError as exc:
        raise _http_error(exc) from exc


@router.post("/message", response_model=TurnResponse)
def message_endpoint(
    request: MessageRequest,
    is_admin: bool = Depends(get_is_admin),
    orchestrator=Depends(get_orchestrator),
):
    try:
        return orchestrator.handle_message(request.state, request.message, is_admin=is_admin)
    except AssistantError as exc:
        raise _http_error(exc) from exc


@router.post("/confirm", response_model=TurnResponse)
def confirm_endpoint(
    request: StateRequest,
    is_admin: bool = Depends(get_is_admin),
    orchestrator=Depends(get_orchestrator),
):
    try:
        return orchestrator.confirm(request.state, is_admin=is_admin)
    except AssistantError as exc:
        raise _http_error(exc) from exc


@router.post("/cancel", response_model=TurnResponse)
def cancel_endpoint(
    request: StateRequest,
    is_admin: bool = Depends(get_is_admin),
    orchestrator=Depends(get_orchestrator),
):
    try:
        return orchestrator.cancel(request.state, is_admin=is_admin)
    except AssistantError as exc:
        raise _http_error(exc) from exc


@router.get("/usage", response_model=UsageStats, dependencies=[Depends(require_admin)])
def usage_endpoint(quota=Depends(get_usage_quota)):
    return quota.get_usage()


@router.get("/examples", response_model=list[Example], dependencies=[Depends(require_admin)])
def examples_endpoint(phase: str = "type_selection", user_input: str | None = None):
    return get_contextual_examples(phase, user_input)


@router.get("/examples/{category}", response_model=list[Example], dependencies=[Depends(require_admin)])
def examples_by_category_endpoint(category: str):
    return get_all_examples(category)


@router.post("/translate", response_model=TranslateResponse, dependencies=[Depends(require_admin)])
def translate_endpoint(request: TranslateRequest, translator=Depends(get_translation_service)):
    translations = translator.batch_translate((entry.key, entry.value) for entry in request.entries)
    missing = [
        entry.key
        for entry in request.entries
        if entry.value.strip() and entry.key not in translations
    ]
    return TranslateResponse(translations=translations, missing=missing)
