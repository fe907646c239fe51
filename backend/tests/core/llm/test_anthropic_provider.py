from types import SimpleNamespace
from unittest.mock import MagicMock

from app.core.llm.providers.anthropic import AnthropicProvider
from app.core.llm.schemas import GenerateConfig
from app.modules.assistant.tools import ASSISTANT_TOOLS


def test_tools_are_converted_to_input_schema():
    provider = AnthropicProvider(api_key="test", model="claude-3-5-haiku-20241022")

    params = provider._build_params(GenerateConfig(timeout=10.0), tools=ASSISTANT_TOOLS)

    assert [tool["name"] for tool in params["tools"]] == ["create_events", "create_urgent_message"]
    assert params["tools"][0]["input_schema"]["required"] == ["events"]
    assert params["tool_choice"] == {"type": "auto"}
    assert params["timeout"] == 10.0


def test_generate_splits_system_and_parses_tool_use():
    provider = AnthropicProvider(api_key="test", model="claude-3-5-haiku-20241022")
    provider._client = MagicMock()
    provider._client.messages.create.return_value = SimpleNamespace(
        content=[
            SimpleNamespace(type="tool_use", name="create_urgent_message", input={"title_he": "חולצה לבנה"}),
        ],
        usage=SimpleNamespace(input_tokens=30, output_tokens=12),
        stop_reason="tool_use",
    )

    response = provider.generate(
        [
            {"role": "system", "content": "rules"},
            {"role": "user", "content": "תזכורת"},
        ],
        tools=ASSISTANT_TOOLS,
    )

    kwargs = provider._client.messages.create.call_args.kwargs
    assert kwargs["system"] == "rules"
    assert kwargs["messages"] == [{"role": "user", "content": "תזכורת"}]
    assert response.tool_calls[0].parse_arguments() == {"title_he": "חולצה לבנה"}
    assert response.usage["total_tokens"] == 42
