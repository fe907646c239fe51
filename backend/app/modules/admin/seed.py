"""Default LLM settings and system prompts of the assistant."""

from app.core.config import settings
from app.modules.assistant.prompts import EXTRACTION_SYSTEM, TRANSLATION_SYSTEM, UNDERSTANDING_SYSTEM

# config group -> {provider, model}
DEFAULT_LLM_SETTINGS: dict[str, dict[str, str]] = {
    "llm_assistant": {
        "provider": str(settings.CHATBOT_DEFAULT_LLM),
        "model": str(settings.CHATBOT_DEFAULT_MODEL),
    },
    "llm_translation": {
        "provider": str(settings.CHATBOT_DEFAULT_LLM),
        "model": str(settings.TRANSLATION_DEFAULT_MODEL),
    },
}

DEFAULT_PROMPTS: dict[str, dict[str, str]] = {
    "assistant_extraction_system": {
        "name": "Content Extraction System",
        "description": "Turns an admin's Hebrew message into a create_events or create_urgent_message call. {today} is replaced with the current date.",
        "content": EXTRACTION_SYSTEM,
    },
    "assistant_understanding_system": {
        "name": "Long Message Summary",
        "description": "Summarizes long or forwarded messages before extraction.",
        "content": UNDERSTANDING_SYSTEM,
    },
    "assistant_translation_system": {
        "name": "Hebrew to Russian Translation",
        "description": "Fills the Russian fields of events and urgent messages.",
        "content": TRANSLATION_SYSTEM,
    },
}
