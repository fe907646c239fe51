"""Admin overrides for the assistant's completion groups and system prompts.

Only the ``llm_assistant`` and ``llm_translation`` groups are configurable,
each with a ``provider`` and a ``model``. A stored override wins over the
seeded default; edits apply to the next conversation turn.
"""

import time

from sqlmodel import Session, select

from app.core.database import app_engine
from app.core.llm.service import LLM_MODEL_REGISTRY, LLM_REGISTRY, PROVIDER_ALIASES, clear_llm_cache
from app.modules.admin.models import AssistantLLMSetting, AssistantPromptOverride
from app.modules.admin.seed import DEFAULT_LLM_SETTINGS, DEFAULT_PROMPTS

LLM_GROUPS = tuple(DEFAULT_LLM_SETTINGS)
LLM_FIELDS = ("provider", "model")


def _check_update(group: str, fields: dict[str, str | None]) -> dict[str, str | None]:
    if group not in DEFAULT_LLM_SETTINGS:
        raise ValueError(f"Unknown config group: {group}")

    cleaned: dict[str, str | None] = {}
    for field, value in fields.items():
        if field not in LLM_FIELDS:
            raise ValueError(f"Unknown field for {group}: {field}")
        value = (value or "").strip() or None
        if field == "provider" and value is not None:
            value = PROVIDER_ALIASES.get(value, value)
            if value not in LLM_REGISTRY:
                raise ValueError(f"Unsupported LLM provider for {group}: {value}")
        cleaned[field] = value
    return cleaned


def list_configs(engine=app_engine) -> dict[str, dict[str, str]]:
    grouped = {group: dict(values) for group, values in DEFAULT_LLM_SETTINGS.items()}
    with Session(engine) as session:
        for row in session.exec(select(AssistantLLMSetting)).all():
            if row.config_group not in grouped:
                continue
            if row.provider:
                grouped[row.config_group]["provider"] = row.provider
            if row.model:
                grouped[row.config_group]["model"] = row.model
    return grouped


def update_configs(updates: dict[str, dict[str, str | None]], engine=app_engine) -> None:
    """Store provider/model overrides. An empty value falls back to the default."""
    checked = {group: _check_update(group, fields) for group, fields in updates.items()}

    with Session(engine) as session:
        for group, fields in checked.items():
            row = session.get(AssistantLLMSetting, group) or AssistantLLMSetting(config_group=group)
            for field, value in fields.items():
                setattr(row, field, value)
            row.updated_at = time.time()
            session.add(row)
        session.commit()

    # Cached provider clients were built from the previous values.
    clear_llm_cache()


def resolve_config(group: str, key: str, engine=app_engine) -> str:
    if group not in DEFAULT_LLM_SETTINGS or key not in LLM_FIELDS:
        return ""
    with Session(engine) as session:
        row = session.get(AssistantLLMSetting, group)
        value = getattr(row, key) if row is not None else None
    return value or DEFAULT_LLM_SETTINGS[group][key]


def list_llm_options() -> dict[str, object]:
    providers = list(LLM_REGISTRY)
    return {
        "groups": list(LLM_GROUPS),
        "providers": providers,
        "models": {provider: LLM_MODEL_REGISTRY.get(provider, []) for provider in providers},
    }


def list_prompts(engine=app_engine) -> list[dict[str, str]]:
    with Session(engine) as session:
        overrides = {row.slug: row.content for row in session.exec(select(AssistantPromptOverride)).all()}

    prompts = []
    for slug, prompt in DEFAULT_PROMPTS.items():
        prompts.append(
            {
                "slug": slug,
                "name": prompt["name"],
                "description": prompt["description"],
                "content": overrides.get(slug, prompt["content"]),
                "overridden": slug in overrides,
            }
        )
    return prompts


def update_prompt(slug: str, content: str, engine=app_engine) -> bool:
    if slug not in DEFAULT_PROMPTS:
        return False
    with Session(engine) as session:
        row = session.get(AssistantPromptOverride, slug) or AssistantPromptOverride(slug=slug, content=content)
        row.content = content
        row.updated_at = time.time()
        session.add(row)
        session.commit()
    return True


def reset_prompt(slug: str, engine=app_engine) -> bool:
    """Delete the override so the default prompt becomes active again."""
    if slug not in DEFAULT_PROMPTS:
        return False
    with Session(engine) as session:
        row = session.get(AssistantPromptOverride, slug)
        if row is not None:
            session.delete(row)
            session.commit()
    return True


def resolve_prompt(slug: str, engine=app_engine) -> str:
    with Session(engine) as session:
        row = session.get(AssistantPromptOverride, slug)
        if row is not None and row.content.strip():
            return row.content
    return DEFAULT_PROMPTS.get(slug, {}).get("content", "")
