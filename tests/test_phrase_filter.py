from __future__ import annotations

import pytest

from livecap.nlp.filters import PhraseFilter
from livecap.nlp.languages import is_supported, language_name, waiting_message


@pytest.mark.parametrize(
    "text",
    ["Thank you", " thank you ", "You", "...", "Thanks for watching!", "Subs by someone", "visit www.example.com", "bbc.co.uk"],
)
def test_denylisted_phrases_match(text: str) -> None:
    assert PhraseFilter().matches(text)


@pytest.mark.parametrize("text", ["Hello world", "Thank you very much for coming", "young people", ""])
def test_regular_speech_passes(text: str) -> None:
    assert not PhraseFilter()(text)


def test_custom_lists() -> None:
    f = PhraseFilter(exact=["okay"], contains=["lorem"])
    assert f.matches("OKAY")
    assert f.matches("lorem ipsum")
    assert not f.matches("thank you")


def test_language_table() -> None:
    assert is_supported("kha")
    assert is_supported("hi")
    assert not is_supported("fr")
    assert not is_supported(None)
    assert language_name("en") == "English"
    with pytest.raises(ValueError):
        language_name("xx")
    assert waiting_message("xx") == waiting_message("en")
