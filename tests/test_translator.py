import pytest

from conftest import FakeResponse, chat_response
from core.errors import TranslationError
from models.translation.translator import Translator, language_display_name

TEXT = "Boil 8 fresh tulsi leaves in two cups of water."
HINDI = "दो कप पानी में 8 ताज़ी तुलसी की पत्तियाँ उबालें।"


@pytest.fixture
def translator(transport):
    return Translator(transport, api_key="test-pplx-key")


def test_english_is_returned_without_a_call(translator, session):
    assert translator.translate(TEXT, "en") is TEXT
    assert session.calls == []


def test_translate_to_hindi(translator, session):
    session.queue(chat_response(HINDI))
    assert translator.translate(TEXT, "hi") == HINDI

    assert session.calls[0]["timeout"] == 30
    body = session.calls[0]["json"]
    assert body["max_tokens"] == 800
    assert body["temperature"] == 0.1
    assert "Hindi (हिंदी)" in body["messages"][1]["content"]
    assert TEXT in body["messages"][1]["content"]


def test_unknown_code_is_used_as_language_name(translator, session):
    session.queue(chat_response("Texte traduit en français pour le remède."))
    translator.translate(TEXT, "fr")
    assert "into fr." in session.calls[0]["json"]["messages"][1]["content"]


def test_transport_failure_raises(translator, session):
    session.queue(FakeResponse(403, text="forbidden"))
    with pytest.raises(TranslationError, match="Failed to translate to ta"):
        translator.translate(TEXT, "ta")


def test_malformed_body_raises(translator, session):
    session.queue(FakeResponse(200, {"error": "no choices here"}))
    with pytest.raises(TranslationError):
        translator.translate(TEXT, "bn")


def test_language_display_name():
    assert language_display_name("mr") == "Marathi (मराठी)"
    assert language_display_name("xx") == "xx"
