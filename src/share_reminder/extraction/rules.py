# src/share_reminder/extraction/rules.py

"""
Vocabularies and scoring weights for the rule-based extractor.

Everything here is data. The engine only consults these tables, so they can be
tuned (or swapped in tests) without touching the parsing code.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields
from typing import Any

# Leading phrases removed from the title. Longest first so "don't forget to" wins over "don't forget".
POLITE_PREFIXES: tuple[str, ...] = tuple(
    sorted(
        (
            "please",
            "pls",
            "can you",
            "could you",
            "would you",
            "would you mind",
            "will you",
            "don't forget to",
            "don't forget",
            "dont forget to",
            "dont forget",
            "remember to",
            "remind me to",
            "remind me",
            "make sure to",
            "make sure you",
            "note to self",
            "reminder",
            "todo",
            "to do",
        ),
        key=len,
        reverse=True,
    )
)

# Substring match against the lower-cased title.
ACTION_PHRASES: tuple[str, ...] = (
    "pick up",
    "drop off",
    "buy",
    "get",
    "grab",
    "remember",
    "don't forget",
    "call",
    "email",
    "send",
    "pay",
    "book",
    "schedule",
    "order",
    "return",
    "renew",
    "submit",
    "finish",
    "clean",
    "wash",
    "fix",
    "take",
    "bring",
    "water",
    "feed",
    "walk",
)

# Substring match against the lower-cased original text.
REQUEST_PHRASES: tuple[str, ...] = (
    "please",
    "can you",
    "could you",
    "would you",
)

URGENCY_MARKERS: tuple[str, ...] = (
    "urgent",
    "asap",
    "important",
    "immediately",
    "critical",
)

# Ordered: the first category with a matching keyword wins.
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Shopping",
        (
            "grocery",
            "groceries",
            "milk",
            "eggs",
            "bread",
            "butter",
            "cheese",
            "coffee beans",
            "fruit",
            "vegetables",
            "apples",
            "bananas",
            "supermarket",
            "store",
        ),
    ),
    ("Health", ("doctor", "dentist", "pharmacy", "medication", "medicine", "prescription", "gym")),
    ("Work", ("meeting", "presentation", "deadline", "project", "client", "office", "report")),
    ("Finance", ("bill", "bills", "payment", "bank", "insurance", "tax", "taxes", "rent")),
    ("Family", ("kids", "school", "parents", "family", "birthday", "anniversary")),
    ("Household", ("cleaning", "laundry", "dishes", "trash", "garbage", "plumber", "repair")),
    ("Personal", ("haircut", "friend", "hobby", "lunch", "dinner")),
)

# Curated action/domain vocabulary collected as candidate keywords.
KEYWORD_VOCABULARY: tuple[str, ...] = (
    "urgent",
    "important",
    "asap",
    "today",
    "tonight",
    "tomorrow",
    "deadline",
    "remember",
    "don't forget",
    "make sure",
    "pick up",
    "buy",
    "call",
    "pay",
    "book",
    "grocery",
    "groceries",
    "meeting",
    "appointment",
    "doctor",
    "dentist",
    "work",
    "family",
    "bill",
    "birthday",
)

# Whole-message fillers that never make a useful reminder on their own.
GENERIC_PHRASES: frozenset[str] = frozenset(
    {
        "ok",
        "okay",
        "k",
        "yes",
        "no",
        "sure",
        "thanks",
        "thank you",
        "thx",
        "hello",
        "hi",
        "hey",
        "bye",
        "goodbye",
        "see you",
        "talk later",
        "good",
        "great",
        "awesome",
        "nice",
        "cool",
        "sounds good",
        "lol",
    }
)


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    low = (text or "").lower()
    return any(p in low for p in phrases)


def has_action_verb(title: str) -> bool:
    return contains_any(title, ACTION_PHRASES)


def has_request_keywords(original_text: str) -> bool:
    return contains_any(original_text, REQUEST_PHRASES)


def has_urgency_marker(text: str) -> bool:
    low = (text or "").lower()
    return any(re.search(rf"\b{re.escape(m)}\b", low) for m in URGENCY_MARKERS)


def is_generic(text: str) -> bool:
    s = re.sub(r"[^\w\s']", "", (text or "").lower()).strip()
    return len(s) < 3 or s in GENERIC_PHRASES


def word_count(text: str) -> int:
    return len((text or "").split())


@dataclass(frozen=True, slots=True)
class ConfidenceWeights:
    """
    Additive confidence model: base + one increment per present signal, clamped to [0, 1].

    Increments must be non-negative; this is what keeps the score monotonic.
    The increments (and AMBIGUITY_THRESHOLD) reproduce observed behaviour and have not
    been fitted against labelled data.
    """

    base: float = 0.2
    action_verb: float = 0.3
    time_reference: float = 0.3
    request_keyword: float = 0.2

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value < 0.0:
                raise ValueError(f"{f.name} must be >= 0 (got {value})")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ConfidenceWeights:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"unknown confidence weights: {', '.join(sorted(unknown))}")
        return cls(**{k: float(v) for k, v in data.items()})

    def score(self, *, action_verb: bool, time_reference: bool, request_keyword: bool) -> float:
        total = self.base
        if action_verb:
            total += self.action_verb
        if time_reference:
            total += self.time_reference
        if request_keyword:
            total += self.request_keyword
        # Rounded so that 0.2 + 0.3 + 0.3 compares as 0.8.
        return round(max(0.0, min(1.0, total)), 4)


DEFAULT_WEIGHTS = ConfidenceWeights()

# Candidates scoring below this are treated as ambiguous.
AMBIGUITY_THRESHOLD = 0.6
