from conftest import FakeLLM, text_response

from app.modules.assistant.translation import TranslationService


def test_translate_returns_text():
    llm = FakeLLM([text_response("  Праздник Пурим  ")])

    result = TranslationService(llm).translate("מסיבת פורים")

    assert result.text == "Праздник Пурим"
    assert result.error is None
    [call] = llm.calls
    assert call["messages"][0]["role"] == "system"
    assert call["messages"][1]["content"] == "מסיבת פורים"
    assert call["config"].temperature == 0.3


def test_translate_empty_input_skips_call():
    llm = FakeLLM()

    result = TranslationService(llm).translate("   ")

    assert result.error == "No text provided"
    assert llm.calls == []


def test_translate_failure_is_reported_not_raised():
    result = TranslationService(FakeLLM([RuntimeError("rate limited")])).translate("שלום")

    assert result.text == ""
    assert result.error == "Translation failed"


def test_translate_empty_reply():
    result = TranslationService(FakeLLM([text_response("")])).translate("שלום")

    assert result.error == "No translation generated"


def test_batch_translate_omits_failed_items():
    llm = FakeLLM([
        text_response("Первый"),
        RuntimeError("upstream down"),
        text_response("Третий"),
    ])

    result = TranslationService(llm).batch_translate(
        {"first": "ראשון", "second": "שני", "third": "שלישי"}
    )

    assert result == {"first": "Первый", "third": "Третий"}
    assert len(llm.calls) == 3


def test_batch_translate_skips_empty_entries():
    llm = FakeLLM([text_response("Описание")])

    result = TranslationService(llm).batch_translate([("title", ""), ("description", "תיאור")])

    assert result == {"description": "Описание"}
    assert len(llm.calls) == 1
