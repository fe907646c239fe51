from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ContentType = Literal["event", "urgent_message"]
Phase = Literal[
    "type_selection",
    "collecting_details",
    "confirming",
    "committing",
    "done",
    "aborted",
]
ErrorKind = Literal["input", "quota", "upstream", "round_limit", "commit"]
UrgentMessageType = Literal["white_shirt", "urgent", "info", "warning"]

TERMINAL_PHASES = {"done", "aborted"}


# ── Quota ──

class UsageStats(BaseModel):
    current_count: int
    daily_limit: int
    remaining: int
    limit_reached: bool


class IncrementResult(BaseModel):
    success: bool
    stats: UsageStats
    error: Optional[str] = None


class MessageValidation(BaseModel):
    valid: bool
    length: int
    max_length: int
    error: Optional[str] = None


# ── Examples ──

class Example(BaseModel):
    text: str
    category: ContentType
    description: Optional[str] = None


# ── Extracted payloads ──

class EventPayload(BaseModel):
    title: str
    title_ru: Optional[str] = None
    start_datetime: str
    end_datetime: Optional[str] = None
    description: Optional[str] = None
    description_ru: Optional[str] = None
    location: Optional[str] = None
    location_ru: Optional[str] = None


class UrgentMessagePayload(BaseModel):
    type: UrgentMessageType = "info"
    title_he: str
    title_ru: str
    description_he: Optional[str] = None
    description_ru: Optional[str] = None
    start_date: Optional[str] = None
    end_date: str
    icon: Optional[str] = None
    color: Optional[str] = None


class ExtractedContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    content_type: ContentType
    events: list[EventPayload] = Field(default_factory=list)
    urgent_message: Optional[UrgentMessagePayload] = None

    def preview(self) -> dict[str, Any]:
        if self.content_type == "event":
            return {
                "type": "event",
                "data": [event.model_dump(exclude_none=True) for event in self.events],
            }
        return {
            "type": "urgent_message",
            "data": self.urgent_message.model_dump(exclude_none=True)
            if self.urgent_message
            else {},
        }


# ── Conversation ──

class HistoryMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class ConversationState(BaseModel):
    """Everything needed to resume a conversation; the client sends it back each turn."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    phase: Phase = "type_selection"
    content_type: Optional[ContentType] = None
    round: int = 0
    history: tuple[HistoryMessage, ...] = ()
    content: Optional[ExtractedContent] = None

    def with_turn(self, user_message: str, assistant_message: str, **updates) -> "ConversationState":
        history = self.history + (
            HistoryMessage(role="user", content=user_message),
            HistoryMessage(role="assistant", content=assistant_message),
        )
        return self.model_copy(update={"history": history, **updates})


class TurnResponse(BaseModel):
    success: bool
    state: ConversationState
    message: str = ""
    needs_confirmation: bool = False
    preview: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    validation_errors: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    examples: list[Example] = Field(default_factory=list)
    usage: Optional[UsageStats] = None
    record_ids: list[int] = Field(default_factory=list)


# ── Audit log ──

class ChatLogEntry(BaseModel):
    session_id: str
    level: Literal["info", "error"] = "info"
    action: str
    user_message: Optional[str] = None
    message_length: Optional[int] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    round_number: Optional[int] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    estimated_cost: Optional[float] = None
    response_type: Optional[Literal["text", "function_call", "error"]] = None
    function_name: Optional[str] = None
    extracted_type: Optional[str] = None
    validation_success: Optional[bool] = None
    validation_errors: Optional[list[str]] = None
    usage_count: Optional[int] = None
    daily_limit: Optional[int] = None
    rate_limit_reached: Optional[bool] = None
    error_message: Optional[str] = None
    error_stack: Optional[str] = None
    duration_ms: Optional[int] = None
    metadata: Optional[dict[str, Any]] = None


class ChatLogItem(BaseModel):
    id: int
    session_id: str
    level: str
    action: str
    user_message: Optional[str] = None
    message_length: Optional[int] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    round_number: Optional[int] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    estimated_cost: Optional[float] = None
    response_type: Optional[str] = None
    function_name: Optional[str] = None
    extracted_type: Optional[str] = None
    validation_success: Optional[bool] = None
    validation_errors: Optional[list[str]] = None
    usage_count: Optional[int] = None
    daily_limit: Optional[int] = None
    rate_limit_reached: Optional[bool] = None
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None
    metadata: Optional[dict[str, Any]] = None
    created_at: float


# ── HTTP ──

class MessageRequest(BaseModel):
    state: ConversationState
    message: str


class StateRequest(BaseModel):
    state: ConversationState


class TranslationEntry(BaseModel):
    key: str
    value: str


class TranslateRequest(BaseModel):
    entries: list[TranslationEntry]


class TranslateResponse(BaseModel):
    translations: dict[str, str]
    missing: list[str] = Field(default_factory=list)
