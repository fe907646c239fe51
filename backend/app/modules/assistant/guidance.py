"""User-facing hints attached to failed turns."""

from dataclasses import dataclass, field

from app.modules.assistant.examples import get_contextual_examples, get_relevant_examples
from app.modules.assistant.schemas import Example
from app.modules.assistant.validator import has_date_pattern, has_event_words, has_time_pattern


@dataclass
class FailureGuidance:
    message: str
    suggestions: list[str] = field(default_factory=list)
    examples: list[Example] = field(default_factory=list)


def analyze_failure(
    user_input: str,
    error_kind: str,
    validation_errors: list[str] | tuple[str, ...] | None = None,
    content_type: str | None = None,
) -> FailureGuidance:
    if error_kind == "upstream":
        return FailureGuidance(
            message="❌ משהו השתבש בעיבוד הבקשה\n\nנסה שוב בעוד רגע",
            suggestions=["💡 אם הבעיה חוזרת, נסה לנסח את ההודעה בקצרה"],
        )

    if error_kind == "round_limit":
        return FailureGuidance(
            message="❌ לא הצלחתי להבין את הפרטים\n\nנסה לכתוב בפשטות:",
            suggestions=[
                '💡 "[שם האירוע] ב-[תאריך] בשעה [שעה]"',
                "💡 בחר דוגמה למטה או מלא טופס ידני",
            ],
            examples=get_contextual_examples("collecting_details", user_input),
        )

    if validation_errors:
        return FailureGuidance(
            message="❌ בעיה באימות הנתונים:\n\n" + "\n".join(validation_errors),
            suggestions=[
                "💡 ודא שהתאריך בפורמט נכון (DD/MM/YYYY)",
                "💡 ודא ששדות חובה קיימים (שם, תאריך)",
            ],
            examples=get_relevant_examples(content_type or "event", count=2),
        )

    if content_type == "urgent_message":
        return FailureGuidance(
            message="❌ לא הבנתי את ההודעה\n\nעד מתי להציג אותה?",
            suggestions=['💡 הוסף תאריך סיום: "עד 20/03/2025"'],
            examples=get_relevant_examples("urgent_message", count=2),
        )

    has_event = has_event_words(user_input)
    has_date = has_date_pattern(user_input)

    if has_date and not has_event:
        return FailureGuidance(
            message="❌ חסר שם לאירוע\n\nמה שם האירוע?",
            suggestions=['💡 הוסף שם: "מסיבת פורים ב-15/03/2025"'],
            examples=get_relevant_examples("event", count=2),
        )

    if has_event and not has_date:
        suggestions = ['💡 הוסף תאריך: "ב-15/03/2025" או "ביום רביעי"']
        if not has_time_pattern(user_input):
            suggestions.append('💡 שעה אופציונלית: "בשעה 17:00"')
        return FailureGuidance(
            message="❌ חסר תאריך\n\nמתי האירוע?",
            suggestions=suggestions,
            examples=get_relevant_examples("event", count=3),
        )

    return FailureGuidance(
        message="❌ לא הבנתי את הפורמט\n\nנסה לכתוב כך:",
        suggestions=['💡 "[שם האירוע] ב-[תאריך]"'],
        examples=get_contextual_examples("collecting_details", user_input),
    )
