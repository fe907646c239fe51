import logging
from collections.abc import Iterable, Mapping

from pydantic import BaseModel

from app.core.config import settings
from app.core.llm.base import BaseLLM
from app.core.llm.schemas import GenerateConfig
from app.modules.assistant.prompts import TRANSLATION_SYSTEM

logger = logging.getLogger(__name__)


class TranslationResult(BaseModel):
    text: str
    error: str | None = None


class TranslationService:
    """Best-effort Hebrew to Russian translation through the completion service."""

    def __init__(
        self,
        llm: BaseLLM,
        system_prompt: str = TRANSLATION_SYSTEM,
        timeout: float | None = None,
    ):
        self.llm = llm
        self.system_prompt = system_prompt
        self.timeout = timeout if timeout is not None else settings.ASSISTANT_LLM_TIMEOUT_SECONDS

    def translate(self, text: str) -> TranslationResult:
        if not text or not text.strip():
            return TranslationResult(text="", error="No text provided")

        messages = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": text},
        ]
        try:
            response = self.llm.generate(
                messages,
                config=GenerateConfig(temperature=0.3, max_tokens=4000, timeout=self.timeout),
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Translation failed: %s", exc)
            return TranslationResult(text="", error="Translation failed")

        translated = (response.text or "").strip()
        if not translated:
            return TranslationResult(text="", error="No translation generated")
        return TranslationResult(text=translated)

    def batch_translate(
        self,
        entries: Mapping[str, str] | Iterable[tuple[str, str]],
    ) -> dict[str, str]:
        """Translate each entry on its own; failed or empty items are left out."""
        items = entries.items() if isinstance(entries, Mapping) else entries
        result: dict[str, str] = {}
        for key, value in items:
            if not value or not value.strip():
                continue
            translation = self.translate(value)
            if translation.text:
                result[key] = translation.text
        return result
