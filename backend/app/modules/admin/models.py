import time
from typing import Optional

from sqlmodel import Field, SQLModel


class AssistantLLMSetting(SQLModel, table=True):
    """Provider/model override for one assistant completion group."""

    __tablename__ = "assistant_llm_settings"

    config_group: str = Field(primary_key=True)
    provider: Optional[str] = None
    model: Optional[str] = None
    updated_at: float = Field(default_factory=time.time)


class AssistantPromptOverride(SQLModel, table=True):
    __tablename__ = "assistant_prompt_overrides"

    slug: str = Field(primary_key=True)
    content: str
    updated_at: float = Field(default_factory=time.time)
