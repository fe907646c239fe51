from app.core.config import settings
from app.core.llm import create_llm
from app.core.llm.base import BaseLLM
from app.modules.admin.service import resolve_prompt
from app.modules.assistant.extractor import StructuredExtractor
from app.modules.assistant.orchestrator import ConversationOrchestrator
from app.modules.assistant.quota import create_usage_quota
from app.modules.assistant.repository import ContentRepository
from app.modules.assistant.translation import TranslationService
from app.modules.assistant.usage_log import UsageLogger

EXTRACTION_PROMPT_SLUG = "assistant_extraction_system"
TRANSLATION_PROMPT_SLUG = "assistant_translation_system"
UNDERSTANDING_PROMPT_SLUG = "assistant_understanding_system"


def create_translation_service(llm: BaseLLM | None = None) -> TranslationService:
    return TranslationService(
        llm=llm or create_llm(config_group="llm_translation"),
        system_prompt=resolve_prompt(TRANSLATION_PROMPT_SLUG),
        timeout=settings.ASSISTANT_LLM_TIMEOUT_SECONDS,
    )


def create_extractor(
    llm: BaseLLM | None = None,
    translator: TranslationService | None = None,
    usage_logger: UsageLogger | None = None,
) -> StructuredExtractor:
    return StructuredExtractor(
        llm=llm or create_llm(config_group="llm_assistant"),
        usage_logger=usage_logger or UsageLogger(),
        translator=translator or create_translation_service(),
        system_prompt=resolve_prompt(EXTRACTION_PROMPT_SLUG),
        understanding_prompt=resolve_prompt(UNDERSTANDING_PROMPT_SLUG),
        max_rounds=settings.ASSISTANT_MAX_ROUNDS,
        timeout=settings.ASSISTANT_LLM_TIMEOUT_SECONDS,
    )


def create_orchestrator(
    llm: BaseLLM | None = None,
    translation_llm: BaseLLM | None = None,
) -> ConversationOrchestrator:
    usage_logger = UsageLogger()
    translator = create_translation_service(translation_llm)
    return ConversationOrchestrator(
        quota=create_usage_quota(),
        extractor=create_extractor(llm=llm, translator=translator, usage_logger=usage_logger),
        repository=ContentRepository(),
        usage_logger=usage_logger,
        max_message_length=settings.ASSISTANT_MAX_MESSAGE_LENGTH,
    )
