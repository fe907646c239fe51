from unittest.mock import patch

from conftest import ADMIN_HEADERS

from app.core.llm import create_llm
from app.modules.admin.service import list_prompts, resolve_config, resolve_prompt, update_configs, update_prompt
from app.modules.assistant.prompts import EXTRACTION_SYSTEM


def test_seeded_defaults_resolve(db_engine):
    assert resolve_config("llm_translation", "model") == "gpt-4o-mini"
    assert resolve_config("llm_assistant", "provider") == "openai"
    assert resolve_prompt("assistant_extraction_system") == EXTRACTION_SYSTEM


def test_admin_endpoints_require_token(client):
    assert client.get("/v1/admin/configs").status_code == 401


def test_config_override_round_trip(client):
    response = client.put(
        "/v1/admin/configs",
        json={"configs": {"llm_assistant": {"provider": "anthropic", "model": "claude-3-5-haiku-20241022"}}},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 200
    configs = client.get("/v1/admin/configs", headers=ADMIN_HEADERS).json()
    assert configs["llm_assistant"] == {"provider": "anthropic", "model": "claude-3-5-haiku-20241022"}
    assert resolve_config("llm_assistant", "model") == "claude-3-5-haiku-20241022"


def test_unknown_provider_is_rejected(client):
    response = client.put(
        "/v1/admin/configs",
        json={"configs": {"llm_assistant": {"provider": "google"}}},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 400
    assert resolve_config("llm_assistant", "provider") == "openai"


def test_prompt_override_and_reset(client):
    slug = "assistant_translation_system"

    updated = client.put(f"/v1/admin/prompts/{slug}", json={"content": "Translate to Russian."}, headers=ADMIN_HEADERS)
    assert updated.status_code == 200
    assert resolve_prompt(slug) == "Translate to Russian."

    reset = client.delete(f"/v1/admin/prompts/{slug}", headers=ADMIN_HEADERS)
    assert reset.status_code == 200
    assert resolve_prompt(slug) != "Translate to Russian."

    assert client.delete("/v1/admin/prompts/unknown", headers=ADMIN_HEADERS).status_code == 404


def test_llm_options_list_supported_providers(client):
    options = client.get("/v1/admin/llm/options", headers=ADMIN_HEADERS).json()

    assert options["providers"] == ["openai", "xai", "anthropic"]


def test_only_assistant_groups_are_configurable(client):
    unknown_group = client.put(
        "/v1/admin/configs",
        json={"configs": {"llm_chatbot": {"model": "gpt-4o"}}},
        headers=ADMIN_HEADERS,
    )
    unknown_field = client.put(
        "/v1/admin/configs",
        json={"configs": {"llm_translation": {"api_key": "sk-test"}}},
        headers=ADMIN_HEADERS,
    )

    assert unknown_group.status_code == 400
    assert unknown_field.status_code == 400
    assert set(client.get("/v1/admin/configs", headers=ADMIN_HEADERS).json()) == {"llm_assistant", "llm_translation"}


def test_provider_alias_is_normalized_and_blank_restores_default(db_engine):
    update_configs({"llm_translation": {"provider": "claude", "model": "claude-3-5-haiku-20241022"}}, engine=db_engine)
    assert resolve_config("llm_translation", "provider", engine=db_engine) == "anthropic"

    update_configs({"llm_translation": {"model": ""}}, engine=db_engine)
    assert resolve_config("llm_translation", "model", engine=db_engine) == "gpt-4o-mini"
    assert resolve_config("llm_translation", "provider", engine=db_engine) == "anthropic"


def test_config_override_reaches_llm_factory(db_engine):
    update_configs({"llm_assistant": {"provider": "xai", "model": "grok-3-mini"}}, engine=db_engine)

    with patch("app.core.llm.service.settings.XAI_API_KEY", "xai-test"):
        llm = create_llm(config_group="llm_assistant", use_cache=False)

    assert (llm.provider, llm.model) == ("xai", "grok-3-mini")


def test_prompt_listing_marks_overrides(db_engine):
    update_prompt("assistant_understanding_system", "Summarize briefly.", engine=db_engine)

    prompts = {prompt["slug"]: prompt for prompt in list_prompts(engine=db_engine)}

    assert set(prompts) == {
        "assistant_extraction_system",
        "assistant_understanding_system",
        "assistant_translation_system",
    }
    assert prompts["assistant_understanding_system"]["overridden"] is True
    assert prompts["assistant_understanding_system"]["content"] == "Summarize briefly."
    assert prompts["assistant_extraction_system"]["overridden"] is False
    assert update_prompt("unknown", "text", engine=db_engine) is False
