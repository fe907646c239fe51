import json

from pydantic import BaseModel, Field


class GenerateConfig(BaseModel):
    temperature: float = 1.0
    max_tokens: int | None = None
    top_p: float = 1.0
    stop: list[str] | None = None
    timeout: float | None = None
    tool_choice: str = "auto"


class ToolCall(BaseModel):
    name: str
    arguments: str = "{}"

    def parse_arguments(self) -> dict:
        """Decode the JSON arguments; raises ValueError when they are malformed."""
        parsed = json.loads(self.arguments or "{}")
        if not isinstance(parsed, dict):
            raise ValueError(f"Tool '{self.name}' arguments must be a JSON object")
        return parsed


class LLMResponse(BaseModel):
    text: str = ""
    usage: dict = Field(default_factory=dict)
    tool_calls: list[ToolCall] = Field(default_factory=list)
    provider: str = ""
    model: str = ""
    finish_reason: str | None = None
