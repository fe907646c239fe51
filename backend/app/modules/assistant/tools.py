"""Function-calling contract between the extractor and the completion service."""

import copy
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError

from app.modules.assistant.schemas import (
    EventPayload,
    ExtractedContent,
    UrgentMessagePayload,
)

CREATE_EVENTS = "create_events"
CREATE_URGENT_MESSAGE = "create_urgent_message"

URGENT_MESSAGE_TYPES = ("white_shirt", "urgent", "info", "warning")

TOOL_CONTENT_TYPES = {
    CREATE_EVENTS: "event",
    CREATE_URGENT_MESSAGE: "urgent_message",
}

# (source-language field, second-language field)
EVENT_TRANSLATION_PAIRS = (
    ("title", "title_ru"),
    ("description", "description_ru"),
    ("location", "location_ru"),
)
URGENT_MESSAGE_TRANSLATION_PAIRS = (
    ("title_he", "title_ru"),
    ("description_he", "description_ru"),
)

ASSISTANT_TOOLS: list[dict] = [
    {
        "type": "function",
        "function": {
            "name": CREATE_EVENTS,
            "description": "יצירת אירוע או מספר אירועים בלוח השנה. תומך באירוע יחיד או רשימה של אירועים.",
            "parameters": {
                "type": "object",
                "properties": {
                    "events": {
                        "type": "array",
                        "description": "רשימת האירועים ליצירה. אם יש רק אירוע אחד, שלח מערך עם אלמנט אחד.",
                        "items": {
                            "type": "object",
                            "properties": {
                                "title": {"type": "string", "description": "שם האירוע בעברית (חובה)"},
                                "title_ru": {"type": "string", "description": "שם האירוע ברוסית (חובה)"},
                                "start_datetime": {
                                    "type": "string",
                                    "description": "תאריך ושעת התחלה בפורמט ISO (YYYY-MM-DDTHH:MM:SS)",
                                },
                                "end_datetime": {
                                    "type": "string",
                                    "description": "תאריך ושעת סיום בפורמט ISO (אופציונלי)",
                                },
                                "description": {"type": "string", "description": "תיאור האירוע בעברית"},
                                "description_ru": {"type": "string", "description": "תיאור האירוע ברוסית"},
                                "location": {"type": "string", "description": "מיקום האירוע בעברית"},
                                "location_ru": {"type": "string", "description": "מיקום האירוע ברוסית"},
                            },
                            "required": ["title", "title_ru", "start_datetime"],
                        },
                    },
                },
                "required": ["events"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": CREATE_URGENT_MESSAGE,
            "description": "יצירת הודעה דחופה להורים (מופיעה בבאנר בדף הבית)",
            "parameters": {
                "type": "object",
                "properties": {
                    "type": {
                        "type": "string",
                        "enum": list(URGENT_MESSAGE_TYPES),
                        "description": "סוג ההודעה: white_shirt (חולצה לבנה), urgent (דחוף), info (מידע), warning (אזהרה)",
                    },
                    "title_he": {"type": "string", "description": "כותרת ההודעה בעברית (חובה)"},
                    "title_ru": {"type": "string", "description": "כותרת ההודעה ברוסית (חובה)"},
                    "description_he": {"type": "string", "description": "תיאור מפורט בעברית"},
                    "description_ru": {"type": "string", "description": "תיאור מפורט ברוסית"},
                    "start_date": {
                        "type": "string",
                        "description": "תאריך התחלת הצגה (YYYY-MM-DD). ברירת מחדל: היום",
                    },
                    "end_date": {
                        "type": "string",
                        "description": "תאריך סיום הצגה (YYYY-MM-DD). חובה!",
                    },
                    "icon": {"type": "string", "description": "אייקון אימוג׳י, למשל 👕 ⚠️ ℹ️ 📢"},
                    "color": {"type": "string", "description": "צבע רקע, למשל bg-yellow-50, bg-red-50"},
                },
                "required": ["title_he", "title_ru", "end_date"],
            },
        },
    },
]


def _filled(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _clean(value: Any) -> str | None:
    if not _filled(value):
        return None
    return value.strip()


def _is_iso_datetime(value: str) -> bool:
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


def _is_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value[:10])
    except ValueError:
        return False
    return len(value) == 10


def missing_translations(function_name: str, args: dict) -> dict[str, str]:
    """Return ``{path: source_text}`` for populated fields whose counterpart is empty."""
    missing: dict[str, str] = {}
    if function_name == CREATE_EVENTS:
        for index, event in enumerate(args.get("events") or []):
            if not isinstance(event, dict):
                continue
            for source, target in EVENT_TRANSLATION_PAIRS:
                if _filled(event.get(source)) and not _filled(event.get(target)):
                    missing[f"events.{index}.{target}"] = event[source].strip()
    elif function_name == CREATE_URGENT_MESSAGE:
        for source, target in URGENT_MESSAGE_TRANSLATION_PAIRS:
            if _filled(args.get(source)) and not _filled(args.get(target)):
                missing[target] = args[source].strip()
    return missing


def apply_translations(args: dict, translations: dict[str, str]) -> dict:
    patched = copy.deepcopy(args)
    for path, value in translations.items():
        parts = path.split(".")
        node: Any = patched
        for part in parts[:-1]:
            node = node[int(part)] if isinstance(node, list) else node[part]
        node[parts[-1]] = value
    return patched


def _validate_events(args: dict) -> tuple[ExtractedContent | None, list[str]]:
    raw_events = args.get("events")
    if not isinstance(raw_events, list) or not raw_events:
        return None, ["לא נמצאו אירועים ליצירה"]

    errors: list[str] = []
    for index, event in enumerate(raw_events, start=1):
        if not isinstance(event, dict):
            errors.append(f"אירוע {index}: מבנה לא תקין")
            continue
        if not _filled(event.get("title")):
            errors.append(f"אירוע {index}: חסר שם")
        start = event.get("start_datetime")
        if not _filled(start):
            errors.append(f"אירוע {index}: חסר תאריך")
        elif not _is_iso_datetime(start.strip()):
            errors.append(f"אירוע {index}: תאריך התחלה לא תקין ({start})")
        end = event.get("end_datetime")
        if _filled(end) and not _is_iso_datetime(end.strip()):
            errors.append(f"אירוע {index}: תאריך סיום לא תקין ({end})")
        for source, target in EVENT_TRANSLATION_PAIRS:
            if _filled(event.get(source)) and not _filled(event.get(target)):
                errors.append(f"אירוע {index}: חסר תרגום רוסי ({source})")

    if errors:
        return None, errors

    events = [
        EventPayload(
            title=event["title"].strip(),
            title_ru=_clean(event.get("title_ru")),
            start_datetime=event["start_datetime"].strip(),
            end_datetime=_clean(event.get("end_datetime")),
            description=_clean(event.get("description")),
            description_ru=_clean(event.get("description_ru")),
            location=_clean(event.get("location")),
            location_ru=_clean(event.get("location_ru")),
        )
        for event in raw_events
    ]
    return ExtractedContent(content_type="event", events=events), []


def _validate_urgent_message(args: dict) -> tuple[ExtractedContent | None, list[str]]:
    errors: list[str] = []
    if not _filled(args.get("title_he")):
        errors.append("חסרה כותרת בעברית")
    end_date = args.get("end_date")
    if not _filled(end_date):
        errors.append("חסר תאריך סיום")
    elif not _is_iso_date(end_date.strip()):
        errors.append(f"תאריך סיום לא תקין ({end_date})")
    start_date = args.get("start_date")
    if _filled(start_date) and not _is_iso_date(start_date.strip()):
        errors.append(f"תאריך התחלה לא תקין ({start_date})")
    message_type = _clean(args.get("type")) or "info"
    if message_type not in URGENT_MESSAGE_TYPES:
        errors.append(f"סוג הודעה לא תקין ({message_type})")
    for source, target in URGENT_MESSAGE_TRANSLATION_PAIRS:
        if _filled(args.get(source)) and not _filled(args.get(target)):
            errors.append("חסר תרגום רוסי" if target == "title_ru" else f"חסר תרגום רוסי ({source})")

    if errors:
        return None, errors

    try:
        payload = UrgentMessagePayload(
            type=message_type,
            title_he=args["title_he"].strip(),
            title_ru=args["title_ru"].strip(),
            description_he=_clean(args.get("description_he")),
            description_ru=_clean(args.get("description_ru")),
            start_date=_clean(start_date),
            end_date=end_date.strip(),
            icon=_clean(args.get("icon")),
            color=_clean(args.get("color")),
        )
    except ValidationError as exc:
        return None, [str(error.get("msg", "")) for error in exc.errors()]
    return ExtractedContent(content_type="urgent_message", urgent_message=payload), []


def validate_tool_arguments(function_name: str, args: dict) -> tuple[ExtractedContent | None, list[str]]:
    """Check a tool call against the content contract.

    Returns the typed content, or ``None`` with field-level (Hebrew) errors.
    A populated source-language field without its second-language counterpart
    is an error, never a partial success.
    """
    if function_name == CREATE_EVENTS:
        return _validate_events(args)
    if function_name == CREATE_URGENT_MESSAGE:
        return _validate_urgent_message(args)
    return None, [f"פונקציה לא מוכרת: {function_name}"]


def validate_content(content: ExtractedContent) -> list[str]:
    """Re-run the tool-argument rules on content that comes back from the client."""
    if content.content_type == "event":
        args = {"events": [event.model_dump() for event in content.events]}
        _, errors = _validate_events(args)
    elif content.urgent_message is not None:
        _, errors = _validate_urgent_message(content.urgent_message.model_dump())
    else:
        errors = ["לא נמצאה הודעה ליצירה"]
    return errors
