import json

from anthropic import Anthropic

from app.core.llm.base import BaseLLM
from app.core.llm.schemas import GenerateConfig, LLMResponse, ToolCall


class AnthropicProvider(BaseLLM):
    provider = "anthropic"

    def __init__(self, api_key: str, model: str):
        self._client = Anthropic(api_key=api_key)
        self._model = model
        self.model = model

    def _split_messages(self, messages: list[dict]) -> tuple[str | None, list[dict]]:
        system_parts: list[str] = []
        history: list[dict] = []

        for message in messages:
            role = message.get("role")
            content = message.get("content", "")
            if role == "system":
                if content:
                    system_parts.append(str(content))
                continue
            if role == "assistant":
                history.append({"role": "assistant", "content": str(content)})
            else:
                history.append({"role": "user", "content": str(content)})

        system_text = "\n\n".join(system_parts) if system_parts else None
        return system_text, history

    @staticmethod
    def _convert_tools(tools: list[dict]) -> list[dict]:
        converted = []
        for tool in tools:
            function = tool.get("function") or {}
            converted.append(
                {
                    "name": function.get("name", ""),
                    "description": function.get("description", ""),
                    "input_schema": function.get("parameters") or {"type": "object"},
                }
            )
        return converted

    def _build_params(self, config: GenerateConfig, tools: list[dict] | None = None) -> dict:
        params: dict = {
            "temperature": config.temperature,
            "top_p": config.top_p,
            "max_tokens": config.max_tokens or 1024,
        }
        if config.stop is not None:
            params["stop_sequences"] = config.stop
        if config.timeout is not None:
            params["timeout"] = config.timeout
        if tools:
            params["tools"] = self._convert_tools(tools)
            params["tool_choice"] = {"type": config.tool_choice}
        return params

    def generate(
        self,
        messages: list[dict],
        config: GenerateConfig | None = None,
        tools: list[dict] | None = None,
    ) -> LLMResponse:
        config = config or GenerateConfig()
        system_text, history = self._split_messages(messages)

        params = self._build_params(config, tools)
        if system_text:
            params["system"] = system_text
        response = self._client.messages.create(
            model=self._model,
            messages=history,
            **params,
        )

        text_parts = []
        tool_calls = []
        for block in response.content:
            if getattr(block, "type", "") == "tool_use":
                tool_calls.append(
                    ToolCall(name=block.name, arguments=json.dumps(block.input, ensure_ascii=False))
                )
            elif getattr(block, "text", None):
                text_parts.append(block.text)

        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            }

        return LLMResponse(
            text="".join(text_parts),
            usage=usage,
            tool_calls=tool_calls,
            provider=self.provider,
            model=self._model,
            finish_reason=getattr(response, "stop_reason", None),
        )
