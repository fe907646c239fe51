"""Static example prompts offered to an admin who is not sure what to type."""

from app.modules.assistant.schemas import Example

EVENT_EXAMPLES: tuple[Example, ...] = (
    Example(
        text="מסיבת פורים ב-15/03/2025 בשעה 17:00 באולם בית הספר",
        category="event",
        description="אירוע עם תאריך, שעה ומיקום",
    ),
    Example(
        text="מבחן מתמטיקה ביום רביעי בשעה 10:00",
        category="event",
        description="אירוע עם יום ושעה",
    ),
    Example(
        text="יום הורים ב-20/04/2025 בשעה 16:00 בכיתה",
        category="event",
        description="אירוע עם תאריך, שעה ומיקום",
    ),
    Example(
        text="טיול שנתי ב-5 ביוני עד סוף היום",
        category="event",
        description="אירוע עם תאריך בפורמט טקסטואלי",
    ),
    Example(
        text="חופשת פסח מ-15/04/2025 עד 25/04/2025",
        category="event",
        description="אירוע עם טווח תאריכים",
    ),
    Example(
        text="פגישת הורים ומורים ב-12/02/2025 בין 16:00 ל-19:00 באולם",
        category="event",
        description="אירוע עם טווח שעות",
    ),
)

URGENT_MESSAGE_EXAMPLES: tuple[Example, ...] = (
    Example(
        text="תזכורת חולצה לבנה למחר עד 20/03/2025",
        category="urgent_message",
        description="הודעה דחופה עם תאריך סיום",
    ),
    Example(
        text="ביטול לימודים מחר בגלל מזג אוויר עד 18/03/2025",
        category="urgent_message",
        description="הודעה דחופה עם סיבה",
    ),
    Example(
        text="חג חנוכה שמח למשך שבוע",
        category="urgent_message",
        description="הודעה עם משך זמן יחסי",
    ),
    Example(
        text="שינוי שעת פיזור היום - 13:00 במקום 14:00 עד סוף השבוע",
        category="urgent_message",
        description="הודעה דחופה עם שינוי",
    ),
    Example(
        text="הודעה חשובה: איסוף ילדים מהכניסה האחורית עד 25/03",
        category="urgent_message",
        description="הודעה עם הנחיה",
    ),
)

_CATALOG: dict[str, tuple[Example, ...]] = {
    "event": EVENT_EXAMPLES,
    "urgent_message": URGENT_MESSAGE_EXAMPLES,
}

# announcement / urgent / reminder / cancellation / change
URGENT_KEYWORDS = ("הודעה", "דחוף", "תזכורת", "ביטול", "שינוי")


def get_all_examples(category: str) -> list[Example]:
    return list(_CATALOG.get(category, ()))


def get_relevant_examples(category: str, count: int = 3) -> list[Example]:
    return get_all_examples(category)[: max(0, count)]


def get_contextual_examples(phase: str, user_input: str | None = None) -> list[Example]:
    if phase == "type_selection":
        return list(EVENT_EXAMPLES[:2]) + list(URGENT_MESSAGE_EXAMPLES[:2])

    if user_input and any(keyword in user_input for keyword in URGENT_KEYWORDS):
        return list(URGENT_MESSAGE_EXAMPLES[:3])

    # Events are by far the more common request.
    return list(EVENT_EXAMPLES[:3])
