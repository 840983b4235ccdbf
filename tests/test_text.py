"""Tests for crema.core.text: transcript normalization."""

from __future__ import annotations

import itertools
from decimal import Decimal

import pytest

from crema.core.text import (
    Normalizer,
    apply_vocab,
    format_number,
    normalize,
    reassemble_split_numbers,
    recognize_numbers,
)


_LEADS = ("twenty", "thirty", "30", "ninety", "five hundred", "two thousand", "zero point")
_TAILS = ("4", "four", "4.5", "4,000", "1,000.25", "point five", "and 6", "hundred")
_ENDINGS = ("", ".", " grams", " seconds of columbian")

_IDEMPOTENCE_CORPUS = [
    f"{lead} {tail}{ending}"
    for lead, tail, ending in itertools.product(_LEADS, _TAILS, _ENDINGS)
] + [
    "those thirty 4 grams of columbian",
    "pulled a short expresso twenty 8 seconds",
    "rate it three stores",
    "background noise",
    "four,000",
    "1,five hundred",
]


class TestApplyVocab:
    def test_case_insensitive_replacement(self) -> None:
        assert apply_vocab("more CREAMER please", {"creamer": "crema"}) == "more crema please"

    def test_whole_words_only(self) -> None:
        assert apply_vocab("background noise", {"ground": "grind"}) == "background noise"

    def test_longest_phrase_wins(self) -> None:
        vocab = {"your gosh if": "Yirgacheffe", "your gosh if a": "Yirgacheffe"}
        assert apply_vocab("your gosh if a bag", vocab) == "Yirgacheffe bag"

    def test_replacement_is_not_rewritten(self) -> None:
        vocab = {"a": "b", "b": "c"}
        assert apply_vocab("a b", vocab) == "b c"

    def test_empty_vocab_no_change(self) -> None:
        assert apply_vocab("hello world", {}) == "hello world"


class TestNumbers:
    @pytest.mark.parametrize(
        ("spoken", "expected"),
        [
            ("eighteen", "18"),
            ("thirty four", "34"),
            ("twenty-eight", "28"),
            ("five point five", "5.5"),
            ("one hundred and twenty", "120"),
            ("two thousand five hundred", "2500"),
            ("18.50", "18.5"),
            ("1,000", "1000"),
            ("twenty 8", "28"),
        ],
    )
    def test_spoken_numbers(self, spoken: str, expected: str) -> None:
        assert normalize(spoken) == expected

    def test_split_tens(self) -> None:
        assert reassemble_split_numbers("dose 30 4 grams") == "dose 34 grams"
        assert reassemble_split_numbers("20 eight seconds") == "28 seconds"

    def test_decimal_is_not_split(self) -> None:
        assert reassemble_split_numbers("grind 30 4.5") == "grind 30 4.5"

    def test_spans(self) -> None:
        spans = recognize_numbers("dose eighteen out 36")
        assert sorted(s.value for s in spans) == [Decimal(18), Decimal(36)]

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(18.0, "18"), (5.5, "5.5"), (Decimal("2.50"), "2.5"), (1000, "1000"), (float("inf"), None)],
    )
    def test_format_number(self, value, expected) -> None:
        assert format_number(value) == expected


class TestNormalize:
    def test_coffee_phrase(self) -> None:
        assert normalize("dose 30 4 grams") == "dose 34 grams"
        assert normalize("those eighteen grams grand five point five") == "dose 18 grams grind 5.5"

    def test_plain_command_unchanged(self) -> None:
        text = "log shot 18 in 36 out 28 seconds rated 3"
        assert normalize(text) == text

    def test_whitespace(self) -> None:
        assert normalize("  dose   18 \n grams ") == "dose 18 grams"

    @pytest.mark.parametrize("raw", ["", "   ", "\n"])
    def test_blank(self, raw: str) -> None:
        assert normalize(raw) == ""

    @pytest.mark.parametrize("raw", _IDEMPOTENCE_CORPUS)
    def test_idempotent(self, raw: str) -> None:
        once = normalize(raw)
        assert normalize(once) == once

    def test_grouped_tail_is_not_a_ones_digit(self) -> None:
        assert normalize("thirty 4,000 grams") == "30 4000 grams"
        assert normalize("30 4,000 grams") == "30 4000 grams"
        assert normalize("twenty 4.5") == "20 4.5"

    def test_everyday_words_are_not_rewritten(self) -> None:
        assert normalize("open a new pack of blue bottle") == "open a new pack of Blue Bottle"
        assert normalize("blue sky") == "blue sky"

    def test_words_glued_to_a_numeral_are_kept(self) -> None:
        assert normalize("four,000") == "four,000"

    def test_user_corrections_extend_builtin(self) -> None:
        normalizer = Normalizer({"la marzocco": "La Marzocco"})
        assert normalizer("expresso on the la marzocco") == "espresso on the La Marzocco"
        assert normalize("la marzocco", {"la marzocco": "La Marzocco"}) == "La Marzocco"
