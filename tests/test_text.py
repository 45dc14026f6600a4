import pytest

from sentiment_ews.features.text import (
    normalize_text,
    ordinal_word,
    replace_symbols,
    text_to_tokens,
    tokenize,
)


def test_abbreviations_contractions_and_symbols_are_expanded():
    text = "Dr. Smith can't come & it's 5%"
    assert normalize_text(text) == "doctor smith can not come and it is 5 percent"


def test_suffix_contractions_expand_on_any_word():
    assert normalize_text("We're sure they'll say I'm fine") == "we are sure they will say i am fine"
    assert normalize_text("She didn't go") == "she did not go"


def test_curly_apostrophes_are_treated_as_plain():
    assert normalize_text("It’s great") == "it is great"


def test_with_and_without_abbreviations():
    assert normalize_text("coffee w/o sugar, tea w/ milk") == "coffee without sugar, tea with milk"


@pytest.mark.parametrize("n, expected", [
    (1, "first"),
    (2, "second"),
    (3, "third"),
    (12, "twelfth"),
    (21, "twenty first"),
    (40, "fortieth"),
    (99, "ninety ninth"),
    (100, "one hundredth"),
])
def test_ordinal_words(n, expected):
    assert ordinal_word(n) == expected


def test_ordinal_out_of_range_raises():
    with pytest.raises(ValueError):
        ordinal_word(101)


def test_large_ordinals_keep_digits_and_drop_out_of_tokens():
    assert normalize_text("the 1st and 21st and 101st") == "the first and twenty first and 101st"
    assert text_to_tokens("the 101st day") == ["the", "day"]


def test_hash_before_number_reads_number():
    assert " ".join(replace_symbols("#1 fan #happy").split()) == "number 1 fan happy"


def test_urls_and_mentions_are_stripped():
    assert normalize_text("@bob loved it http://x.co/abc www.example.com") == "loved it"


def test_email_style_at_is_a_symbol():
    assert "at" in text_to_tokens("meet me at5@home")


def test_tokenize_drops_punctuation_digits_and_apostrophes():
    assert tokenize("wow!! 42 o'clock, rock-n-roll") == ["wow", "oclock", "rock", "n", "roll"]


def test_empty_or_non_string_text():
    assert normalize_text("") == ""
    assert normalize_text(None) == ""
    assert text_to_tokens(float("nan")) == []
