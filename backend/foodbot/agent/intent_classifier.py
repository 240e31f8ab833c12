"""
Intent Classifier - Deterministic keyword matching, no I/O.

Architecture:
1. Normalize (lowercase, trim, collapse whitespace)
2. Keyword sets in INTENT_PRIORITY order (first match wins)
3. Heuristics: food_search -> quantity -> address -> unknown

Keywords match the whole message or a whole word/phrase inside it, never a
fragment of a longer word: "hi" must not fire on "chicken", "no" on
"noodles", "hi" on "Highway". The cost is that "menus" or "helpme" fall
through to the heuristics (usually food_search).

Structured interactions (button/list replies) never come through here;
they are decoded by foodbot.agent.selections.
"""
import re
import logging
from functools import lru_cache

from .conversation_state import (
    Intent,
    INTENT_KEYWORDS,
    INTENT_PRIORITY,
    FOOD_TERMS,
    STOPWORDS,
    PAYMENT_CONFIRMATION_PHRASES,
)

logger = logging.getLogger(__name__)


def normalize_text(text: str | None) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    if not text:
        return ""
    return " ".join(text.lower().split())


@lru_cache(maxsize=256)
def _phrase_pattern(phrase: str) -> re.Pattern:
    # Whole-word match so "hi" does not fire on "chicken"
    return re.compile(r"(?<![\w])" + re.escape(phrase) + r"(?![\w])")


def contains_phrase(text: str, phrase: str) -> bool:
    return text == phrase or bool(_phrase_pattern(phrase).search(text))


def matches_any(text: str, phrases) -> bool:
    return any(contains_phrase(text, phrase) for phrase in phrases)


def looks_like_food(text: str) -> bool:
    if matches_any(text, FOOD_TERMS):
        return True
    return len(text) > 2 and text not in STOPWORDS


def parse_quantity(text: str) -> int | None:
    """Strict integer parse: '3' -> 3, '3.5' / 'three' / '' -> None."""
    cleaned = normalize_text(text)
    if not cleaned.isdigit():
        return None
    return int(cleaned)


def is_payment_confirmation(text: str) -> bool:
    return matches_any(normalize_text(text), PAYMENT_CONFIRMATION_PHRASES)


def classify_intent(text: str) -> Intent:
    """
    Map free text to a coarse intent.

    Examples:
        "Hello"            -> GREETING
        "show me the menu" -> MENU (MENU outranks SEARCH)
        "cancel"           -> CANCEL (never NO)
        "jollof rice"      -> FOOD_SEARCH
        "3"                -> QUANTITY
        "ok"               -> YES
    """
    normalized = normalize_text(text)
    if not normalized:
        return Intent.UNKNOWN

    # === LAYER 1: KEYWORD SETS (explicit priority) ===
    for intent in INTENT_PRIORITY:
        if matches_any(normalized, INTENT_KEYWORDS[intent]):
            return intent

    # === LAYER 2: HEURISTICS ===
    if looks_like_food(normalized):
        return Intent.FOOD_SEARCH

    quantity = parse_quantity(normalized)
    if quantity is not None and 1 <= quantity <= 10:
        return Intent.QUANTITY

    if len(normalized) > 15 and " " in normalized:
        return Intent.ADDRESS

    return Intent.UNKNOWN


def strip_search_keyword(text: str) -> str:
    """'search jollof rice' -> 'jollof rice'; leaves other text untouched."""
    normalized = normalize_text(text)
    for phrase in sorted(INTENT_KEYWORDS[Intent.SEARCH], key=len, reverse=True):
        pattern = _phrase_pattern(phrase)
        if pattern.search(normalized):
            stripped = pattern.sub(" ", normalized, count=1)
            stripped = re.sub(r"^\s*(for|the|some)\s+", "", " ".join(stripped.split()))
            return stripped.strip()
    return normalized
