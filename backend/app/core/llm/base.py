from abc import ABC, abstractmethod

from app.core.llm.schemas import GenerateConfig, LLMResponse


class BaseLLM(ABC):
    provider: str = ""
    model: str = ""

    @abstractmethod
    def generate(
        self,
        messages: list[dict],
        config: GenerateConfig | None = None,
        tools: list[dict] | None = None,
    ) -> LLMResponse:
        """Generate a response from the LLM based on the provided messages.

        ``tools`` uses the OpenAI function-calling shape
        (``{"type": "function", "function": {...}}``); providers convert it to
        their own wire format.
        """
        pass
