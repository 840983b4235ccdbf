"""Transcript normalization applied before a command reaches the model.

Speech recognition mishears coffee vocabulary and splits two-digit numbers
("30 4" for "34"). ``normalize`` rewrites those artifacts in a fixed order:

1. whole-word vocabulary corrections,
2. split two-digit numeral reassembly,
3. numeric phrase recognition ("thirty four" -> "34"),
4. whitespace collapse.

The result is a pure function of the input and the correction tables, and
normalizing twice gives the same text as normalizing once.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Final

from crema.core.env import LOGGER

COFFEE_VOCABULARY: Final[dict[str, str]] = {
    # grind
    "grand": "grind",
    "grin": "grind",
    "grined": "grind",
    "grinding": "grind",
    "ground": "grind",
    # dose
    "doze": "dose",
    "those": "dose",
    "doughs": "dose",
    # espresso
    "expresso": "espresso",
    "express oh": "espresso",
    "s presso": "espresso",
    # yield
    "yelled": "yield",
    "yeild": "yield",
    # shot
    "short": "shot",
    "shut": "shot",
    # extraction
    "extra action": "extraction",
    "extra shin": "extraction",
    # portafilter
    "porta filter": "portafilter",
    "port a filter": "portafilter",
    "quarter filter": "portafilter",
    # tamper
    "temper": "tamper",
    "tapper": "tamper",
    "pock": "puck",
    "cream a": "crema",
    "creamer": "crema",
    "pre infusion": "preinfusion",
    "pre-infusion": "preinfusion",
    # rating
    "store": "star",
    "stores": "stars",
    "stare": "star",
    "stares": "stars",
    # origins
    "ethiopia": "Ethiopia",
    "ethiopian": "Ethiopian",
    "columbia": "Colombia",
    "columbian": "Colombian",
    "brazil": "Brazil",
    "brazilian": "Brazilian",
    "guatemala": "Guatemala",
    "guatemalan": "Guatemalan",
    "costa rica": "Costa Rica",
    "costa rican": "Costa Rican",
    "kenya": "Kenya",
    "kenyan": "Kenyan",
    "sumatra": "Sumatra",
    "sumatran": "Sumatran",
    "yirgacheffe": "Yirgacheffe",
    "your gosh if": "Yirgacheffe",
    "your gosh if a": "Yirgacheffe",
    # roasters
    "counter culture": "Counter Culture",
    "blue bottle": "Blue Bottle",
    "stumped town": "Stumptown",
    "stump town": "Stumptown",
    "intelligencia": "Intelligentsia",
    "intelligence ya": "Intelligentsia",
}

_UNITS: Final = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4,
    "five": 5, "six": 6, "seven": 7, "eight": 8, "nine": 9,
}
_TEENS: Final = {
    "ten": 10, "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19,
}
_TENS: Final = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}
_ONES_WORDS: Final = "|".join(w for w in _UNITS if w != "zero")

# "30 4" -> "34", "20 eight" -> "28"
_SPLIT_DIGIT_RE = re.compile(r"(?<![\d.,])\b([2-9])0\s+([1-9])\b(?![.,]\d)")
_SPLIT_WORD_RE = re.compile(
    rf"(?<![\d.,])\b([2-9])0\s+({_ONES_WORDS})\b", re.IGNORECASE
)

_TOKEN_RE = re.compile(r"[A-Za-z]+|\d+")
_LINK_RE = re.compile(r"[\s-]+")
_DIGITS_RE = re.compile(
    r"(?<![\w.,])(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?(?!\w|[.,]\d)"
)
_WHITESPACE_RE = re.compile(r"\s+")
# A separator that continues a written numeral: ".5", ",000".
_GROUP_TAIL_RE = re.compile(r"[.,]\d")
_GROUP_HEAD_RE = re.compile(r"\d[.,]")


def build_vocab_pattern(vocab: Mapping[str, str]) -> re.Pattern[str] | None:
    """Compile *vocab* keys into one whole-word, case-insensitive alternation.

    Longer phrases are tried first so "blue bottle" wins over any shorter
    key sharing its prefix. Words inside a phrase match across any run of
    whitespace.
    """
    if not vocab:
        return None
    alternatives = [
        r"\s+".join(re.escape(word) for word in key.split())
        for key in sorted(vocab, key=len, reverse=True)
        if key.strip()
    ]
    return re.compile(rf"\b(?:{'|'.join(alternatives)})\b", re.IGNORECASE)


def apply_vocab(
    text: str,
    vocab: Mapping[str, str],
    pattern: re.Pattern[str] | None = None,
) -> str:
    """Apply vocabulary corrections to text.

    Each key in *vocab* is matched as a case-insensitive whole word and
    replaced with the corresponding value in a single pass, so replacement
    text is never rewritten again.
    """
    pattern = pattern or build_vocab_pattern(vocab)
    if pattern is None:
        return text
    lookup = {" ".join(k.lower().split()): v for k, v in vocab.items()}

    def _replace(match: re.Match[str]) -> str:
        key = " ".join(match.group(0).lower().split())
        return lookup.get(key, match.group(0))

    return pattern.sub(_replace, text)


def reassemble_split_numbers(text: str) -> str:
    """Join a spoken tens numeral and the ones digit ASR split off it."""
    text = _SPLIT_DIGIT_RE.sub(lambda m: m.group(1) + m.group(2), text)
    return _SPLIT_WORD_RE.sub(
        lambda m: m.group(1) + str(_UNITS[m.group(2).lower()]), text
    )


@dataclass(frozen=True, slots=True)
class NumberSpan:
    """A numeric expression found in a transcript, ``text[start:end]``."""

    start: int
    end: int
    value: Decimal


@dataclass(frozen=True, slots=True)
class _Token:
    text: str
    start: int
    end: int

    @property
    def word(self) -> str:
        return self.text.lower()


class _NumberParser:
    """Greedy parser for spoken English numbers below one million."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = [
            _Token(m.group(0), m.start(), m.end())
            for m in _TOKEN_RE.finditer(text)
        ]
        self.linked = [
            bool(_LINK_RE.fullmatch(text[a.end:b.start]))
            for a, b in zip(self.tokens, self.tokens[1:])
        ]

    def _word(self, i: int) -> str | None:
        if i >= len(self.tokens):
            return None
        return self.tokens[i].word

    def _links(self, i: int) -> bool:
        """True when token *i* is joined to token ``i + 1``."""
        return i < len(self.linked) and self.linked[i]

    def _is_ones_digit(self, i: int) -> bool:
        token = self.tokens[i]
        return (
            len(token.text) == 1
            and token.text in "123456789"
            and not _GROUP_TAIL_RE.match(self.text, token.end)
        )

    def _below_hundred(self, i: int) -> tuple[int, int] | None:
        word = self._word(i)
        if word in _UNITS:
            return _UNITS[word], i + 1
        if word in _TEENS:
            return _TEENS[word], i + 1
        if word in _TENS:
            value = _TENS[word]
            if self._links(i):
                nxt = self._word(i + 1)
                if nxt in _UNITS and _UNITS[nxt] > 0:
                    return value + _UNITS[nxt], i + 2
                if self._is_ones_digit(i + 1):
                    return value + int(self.tokens[i + 1].text), i + 2
            return value, i + 1
        return None

    def _after_scale(self, j: int, parse) -> tuple[int, int] | None:
        """Parse the optional remainder after a scale word ending at ``j - 1``."""
        if not self._links(j - 1):
            return None
        if self._word(j) == "and":
            if not self._links(j):
                return None
            j += 1
        return parse(j)

    def _below_thousand(self, i: int) -> tuple[int, int] | None:
        parsed = self._below_hundred(i)
        if parsed is None:
            return None
        value, j = parsed
        if (
            1 <= value <= 9
            and j == i + 1
            and self._links(i)
            and self._word(j) == "hundred"
        ):
            value *= 100
            j += 1
            rest = self._after_scale(j, self._below_hundred)
            if rest is not None:
                value += rest[0]
                j = rest[1]
        return value, j

    def _number(self, i: int) -> tuple[Decimal, int] | None:
        parsed = self._below_thousand(i)
        if parsed is None:
            return None
        value, j = parsed
        if self._links(j - 1) and self._word(j) == "thousand":
            value *= 1000
            j += 1
            rest = self._after_scale(j, self._below_thousand)
            if rest is not None:
                value += rest[0]
                j = rest[1]

        result = Decimal(value)
        if self._links(j - 1) and self._word(j) == "point":
            digits: list[str] = []
            k = j + 1
            while self._links(k - 1) and self._word(k) in _UNITS:
                digits.append(str(_UNITS[self._word(k)]))
                k += 1
            if digits:
                result = Decimal(f"{value}.{''.join(digits)}")
                j = k
        return result, j

    def spans(self) -> list[NumberSpan]:
        found: list[NumberSpan] = []
        starters = _UNITS.keys() | _TEENS.keys() | _TENS.keys()
        i = 0
        while i < len(self.tokens):
            parsed = self._number(i) if self.tokens[i].word in starters else None
            if parsed is None:
                i += 1
                continue
            value, j = parsed
            start, end = self.tokens[i].start, self.tokens[j - 1].end
            # Words glued to a written numeral ("four,000") are left alone.
            if not (
                _GROUP_TAIL_RE.match(self.text, end)
                or _GROUP_HEAD_RE.fullmatch(self.text, max(0, start - 2), start)
            ):
                found.append(NumberSpan(start, end, value))
            i = j
        return found


def recognize_numbers(text: str) -> list[NumberSpan]:
    """Find every numeric expression in *text*, spoken or written.

    Written numerals are returned too so that "1,000" and "18.50" come back
    in canonical form. Spans never overlap.
    """
    spans = _NumberParser(text).spans()
    for match in _DIGITS_RE.finditer(text):
        if any(s.start < match.end() and match.start() < s.end for s in spans):
            continue
        try:
            value = Decimal(match.group(0).replace(",", ""))
        except InvalidOperation:
            continue
        spans.append(NumberSpan(match.start(), match.end(), value))
    return spans


def format_number(value: Decimal | float | int) -> str | None:
    """Render *value* as a plain numeral ("18", "5.5"), or None if not finite."""
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return f"{number.normalize():f}"


def replace_numbers(text: str) -> str:
    """Rewrite every recognized number as its canonical numeral.

    Replacements are applied from the highest offset down so earlier spans
    keep valid offsets.
    """
    for span in sorted(recognize_numbers(text), key=lambda s: s.start, reverse=True):
        numeral = format_number(span.value)
        if numeral is None:
            continue
        text = text[:span.start] + numeral + text[span.end:]
    return text


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


class Normalizer:
    """Transcript normalizer bound to a vocabulary table.

    *corrections* (from user config) extend the built-in coffee vocabulary
    and are applied after it with the same whole-word rules.
    """

    def __init__(self, corrections: Mapping[str, str] | None = None) -> None:
        self.vocab = dict(COFFEE_VOCABULARY)
        self.corrections = dict(corrections or {})
        self._vocab_pattern = build_vocab_pattern(self.vocab)
        self._corrections_pattern = build_vocab_pattern(self.corrections)

    def __call__(self, raw: str) -> str:
        if not raw or not raw.strip():
            return ""
        text = apply_vocab(raw, self.vocab, self._vocab_pattern)
        if self.corrections:
            text = apply_vocab(text, self.corrections, self._corrections_pattern)
        text = reassemble_split_numbers(text)
        text = replace_numbers(text)
        # Recognition can expose a new "30 4" pair, e.g. from "thirty point zero 4".
        text = reassemble_split_numbers(text)
        text = collapse_whitespace(text)
        LOGGER.debug("Normalized transcript: %r -> %r", raw, text)
        return text


_DEFAULT_NORMALIZER = Normalizer()


def normalize(raw: str, corrections: Mapping[str, str] | None = None) -> str:
    """Normalize a raw speech transcript. Never raises."""
    if corrections:
        return Normalizer(corrections)(raw)
    return _DEFAULT_NORMALIZER(raw)
