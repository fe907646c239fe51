from openai import OpenAI

from app.core.llm.base import BaseLLM
from app.core.llm.schemas import GenerateConfig, LLMResponse, ToolCall


class OpenAIProvider(BaseLLM):
    provider = "openai"

    def __init__(self, api_key: str, model: str, base_url: str | None = None):
        self._client = OpenAI(api_key=api_key, base_url=base_url)
        self._model = model
        self.model = model

    def _build_params(
        self,
        messages: list[dict],
        config: GenerateConfig,
        tools: list[dict] | None = None,
    ) -> dict:
        params = {
            "model": self._model,
            "messages": messages,
            "temperature": config.temperature,
            "top_p": config.top_p,
        }
        if config.max_tokens is not None:
            params["max_tokens"] = config.max_tokens
        if config.stop is not None:
            params["stop"] = config.stop
        if config.timeout is not None:
            params["timeout"] = config.timeout
        if tools:
            params["tools"] = tools
            params["tool_choice"] = config.tool_choice
        return params

    @staticmethod
    def _parse_tool_calls(message) -> list[ToolCall]:
        calls: list[ToolCall] = []
        for tool_call in getattr(message, "tool_calls", None) or []:
            function = getattr(tool_call, "function", None)
            if function is None:
                continue
            calls.append(ToolCall(name=function.name, arguments=function.arguments or "{}"))
        return calls

    def generate(
        self,
        messages: list[dict],
        config: GenerateConfig | None = None,
        tools: list[dict] | None = None,
    ) -> LLMResponse:
        config = config or GenerateConfig()

        response = self._client.chat.completions.create(
            **self._build_params(messages, config, tools),
        )
        choice = response.choices[0]
        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        return LLMResponse(
            text=choice.message.content or "",
            usage=usage,
            tool_calls=self._parse_tool_calls(choice.message),
            provider=self.provider,
            model=self._model,
            finish_reason=choice.finish_reason,
        )
