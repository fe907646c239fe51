from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.modules.admin.service import (
    list_configs,
    list_llm_options,
    list_prompts,
    reset_prompt,
    update_configs,
    update_prompt,
)
from app.modules.assistant.dependencies import require_admin

router = APIRouter(
    tags=["Admin"],
    prefix="/v1/admin",
    dependencies=[Depends(require_admin)],
)


class UpdateConfigsRequest(BaseModel):
    configs: dict[str, dict[str, str | None]]


class UpdatePromptRequest(BaseModel):
    content: str


@router.get("/configs")
def get_configs():
    return list_configs()


@router.put("/configs")
def put_configs(request: UpdateConfigsRequest):
    try:
        update_configs(request.configs)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"status": "updated"}


@router.get("/llm/options")
def get_llm_options():
    return list_llm_options()


@router.get("/prompts")
def get_prompts():
    return list_prompts()


@router.put("/prompts/{slug}")
def put_prompt(slug: str, request: UpdatePromptRequest):
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="Prompt content must not be empty")
    if not update_prompt(slug, request.content):
        raise HTTPException(status_code=404, detail="Prompt not found")
    return {"status": "updated"}


@router.delete("/prompts/{slug}")
def delete_prompt_override(slug: str):
    if not reset_prompt(slug):
        raise HTTPException(status_code=404, detail="Prompt not found")
    return {"status": "reset"}
