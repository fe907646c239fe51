from collections.abc import Callable
from datetime import date

from sqlmodel import Session

from app.core.database import app_engine
from app.modules.assistant.models import Event, UrgentMessage
from app.modules.assistant.schemas import EventPayload, ExtractedContent, UrgentMessagePayload

DEFAULT_URGENT_COLOR = "bg-blue-50"
AI_AUTHOR = "admin_ai"


class ContentRepository:
    """Writes confirmed assistant content to the portal tables."""

    def __init__(self, engine=app_engine, today: Callable[[], date] = date.today):
        self.engine = engine
        self._today = today

    @staticmethod
    def _event_row(payload: EventPayload) -> Event:
        return Event(
            title=payload.title,
            title_ru=payload.title_ru,
            description=payload.description,
            description_ru=payload.description_ru,
            start_datetime=payload.start_datetime,
            end_datetime=payload.end_datetime,
            location=payload.location,
            location_ru=payload.location_ru,
            created_by=AI_AUTHOR,
        )

    def _urgent_message_row(self, payload: UrgentMessagePayload) -> UrgentMessage:
        return UrgentMessage(
            type=payload.type,
            title_he=payload.title_he,
            title_ru=payload.title_ru,
            description_he=payload.description_he,
            description_ru=payload.description_ru,
            start_date=payload.start_date or self._today().isoformat(),
            end_date=payload.end_date,
            icon=payload.icon,
            color=payload.color or DEFAULT_URGENT_COLOR,
            is_active=True,
            created_by=AI_AUTHOR,
        )

    def save(self, content: ExtractedContent) -> list[int]:
        """Insert all records of ``content`` in one transaction and return their ids."""
        if content.content_type == "event":
            rows = [self._event_row(event) for event in content.events]
        elif content.urgent_message is not None:
            rows = [self._urgent_message_row(content.urgent_message)]
        else:
            rows = []
        if not rows:
            raise ValueError("Nothing to save")

        with Session(self.engine) as session:
            session.add_all(rows)
            session.commit()
            for row in rows:
                session.refresh(row)
            return [int(row.id) for row in rows]
