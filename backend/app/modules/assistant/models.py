import datetime as dt
import time
from typing import Optional

from sqlmodel import Field, SQLModel


class AIUsageCounter(SQLModel, table=True):
    __tablename__ = "ai_usage_counters"

    id: Optional[int] = Field(default=None, primary_key=True)
    date: dt.date = Field(unique=True, index=True)
    request_count: int = 0
    last_request_at: float = Field(default_factory=time.time)


class AIChatLog(SQLModel, table=True):
    __tablename__ = "ai_chat_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: str = Field(index=True)
    level: str = Field(default="info", index=True)
    action: str = Field(index=True)

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
    validation_errors: Optional[str] = None  # JSON-encoded list

    usage_count: Optional[int] = None
    daily_limit: Optional[int] = None
    rate_limit_reached: Optional[bool] = None

    error_message: Optional[str] = None
    error_stack: Optional[str] = None
    duration_ms: Optional[int] = None
    log_metadata: Optional[str] = None  # JSON-encoded free-form context

    created_at: float = Field(default_factory=time.time, index=True)


class Event(SQLModel, table=True):
    __tablename__ = "events"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    title_ru: Optional[str] = None
    description: Optional[str] = None
    description_ru: Optional[str] = None
    start_datetime: str = Field(index=True)
    end_datetime: Optional[str] = None
    location: Optional[str] = None
    location_ru: Optional[str] = None
    event_type: str = "general"
    status: str = "published"
    visibility: str = "public"
    created_by: str = "admin_ai"
    created_at: float = Field(default_factory=time.time)


class UrgentMessage(SQLModel, table=True):
    __tablename__ = "urgent_messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    type: str = "info"
    title_he: str
    title_ru: str
    description_he: Optional[str] = None
    description_ru: Optional[str] = None
    start_date: str
    end_date: str = Field(index=True)
    icon: Optional[str] = None
    color: str = "bg-blue-50"
    is_active: bool = True
    created_by: str = "admin_ai"
    created_at: float = Field(default_factory=time.time)
