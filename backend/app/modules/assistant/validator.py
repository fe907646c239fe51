"""Input checks that run before any quota or completion-service work."""

import re
from typing import Literal

from app.core.config import settings
from app.modules.assistant.schemas import MessageValidation

Language = Literal["hebrew", "english", "russian", "mixed"]

_HEBREW_RE = re.compile(r"[\u0590-\u05FF]")
_LATIN_RE = re.compile(r"[a-zA-Z]")
_CYRILLIC_RE = re.compile(r"[\u0400-\u04FF]")

_HEBREW_MONTHS = (
    "בינואר|בפברואר|במרץ|באפריל|במאי|ביוני|ביולי|באוגוסט|בספטמבר|באוקטובר|בנובמבר|בדצמבר"
)
_DATE_PATTERNS = (
    re.compile(r"\d{1,2}[/.]\d{1,2}"),
    re.compile(rf"\d{{1,2}}\s*({_HEBREW_MONTHS})"),
    re.compile(r"יום\s+(ראשון|שני|שלישי|רביעי|חמישי|שישי)"),
    re.compile(r"מחר|היום|בשבוע הבא"),
)
_TIME_PATTERNS = (
    re.compile(r"\d{1,2}:\d{2}"),
    re.compile(r"\d{1,2}\s*אחה[\"״]צ"),
    re.compile(r"חצי\s+\d{1,2}"),
)
_EVENT_WORDS = (
    "מסיבה",
    "מסיבת",
    "אירוע",
    "מבחן",
    "טיול",
    "פגישה",
    "פגישת",
    "ישיבה",
    "הצגה",
    "חג",
    "יום",
    "חופשת",
)


def validate_message(message: str | None, max_length: int | None = None) -> MessageValidation:
    limit = int(max_length or settings.ASSISTANT_MAX_MESSAGE_LENGTH)
    length = len((message or "").strip())

    if length == 0:
        return MessageValidation(valid=False, length=0, max_length=limit, error="ההודעה ריקה")

    if length > limit:
        return MessageValidation(
            valid=False,
            length=length,
            max_length=limit,
            error=f"ההודעה ארוכה מדי ({length}/{limit} תווים)",
        )

    return MessageValidation(valid=True, length=length, max_length=limit)


def detect_language(text: str) -> Language:
    hebrew = len(_HEBREW_RE.findall(text or ""))
    latin = len(_LATIN_RE.findall(text or ""))
    cyrillic = len(_CYRILLIC_RE.findall(text or ""))
    total = hebrew + latin + cyrillic

    # Too few letters to tell; Hebrew is the portal's primary language.
    if total < 3:
        return "hebrew"

    if hebrew / total > 0.5:
        return "hebrew"
    if latin / total > 0.5:
        return "english"
    if cyrillic / total > 0.5:
        return "russian"
    if hebrew / total > 0.2 and (latin / total > 0.2 or cyrillic / total > 0.2):
        return "mixed"
    return "hebrew"


def language_error(language: Language) -> str | None:
    if language == "english":
        return "I only understand Hebrew 😊\nאני מבין רק עברית"
    if language == "russian":
        return "Я понимаю только иврит 😊\nאני מבין רק עברית"
    return None


def has_date_pattern(text: str) -> bool:
    return any(pattern.search(text or "") for pattern in _DATE_PATTERNS)


def has_time_pattern(text: str) -> bool:
    return any(pattern.search(text or "") for pattern in _TIME_PATTERNS)


def has_event_words(text: str) -> bool:
    return any(word in (text or "") for word in _EVENT_WORDS)


_FORMAL_PHRASES = ("הורים יקרים", "שלום רב", "בברכה", "בכבוד רב")
_DOTTED_DATE_RE = re.compile(r"\d{1,2}\.\d{1,2}\.\d{2,4}")

COMPLEX_MESSAGE_LENGTH = 100


def is_complex_message(text: str | None) -> bool:
    """True for long or forwarded messages that get a summary pass before extraction."""
    text = (text or "").strip()
    if not text:
        return False
    if len(text) > COMPLEX_MESSAGE_LENGTH:
        return True
    # Greetings and sign-offs of a forwarded letter to parents.
    if any(phrase in text for phrase in _FORMAL_PHRASES):
        return True
    if len(text.split("\n")) > 3:
        return True
    if text.count(",") > 2:
        return True
    return bool(_DOTTED_DATE_RE.search(text)) and len(text) > 50
