# tests/test_extraction.py

from __future__ import annotations

from datetime import date, datetime, time

import pytest

from share_reminder.extraction.engine import (
    MAX_TITLE_LENGTH,
    are_similar,
    extract,
    extract_many,
    preprocess,
)
from share_reminder.extraction.models import TaskPriority, TaskSource
from share_reminder.extraction.rules import ConfidenceWeights
from share_reminder.share.envelope import SharedContentEnvelope

# Tuesday
NOW = datetime(2026, 3, 10, 12, 0)


def _env(text: str, **kw) -> SharedContentEnvelope:
    return SharedContentEnvelope(text=text, received_at=NOW, **kw)


def test_dry_cleaning_scenario() -> None:
    c = extract(_env("remember to pick up dry cleaning tomorrow at 5pm"))

    assert c.title == "pick up dry cleaning"
    assert c.date == date(2026, 3, 11)
    assert c.time == time(17, 0)
    assert c.has_action_verb
    assert c.has_time_reference
    assert c.confidence >= 0.8
    assert not c.is_ambiguous
    assert c.source is TaskSource.CHAT


def test_ok_scenario() -> None:
    c = extract(_env("ok"))

    assert c.title == "ok"
    assert c.date is None
    assert c.time is None
    assert c.confidence < 0.6
    assert c.is_ambiguous
    assert c.lacks_context


def test_confidence_is_monotonic_in_signals() -> None:
    texts = [
        "groceries",  # nothing
        "buy groceries",  # + action verb
        "buy groceries tomorrow",  # + time reference
        "please buy groceries tomorrow",  # + request keyword
    ]
    scores = [extract(_env(t)).confidence for t in texts]

    assert scores == sorted(scores)
    assert scores[0] == pytest.approx(0.2)
    assert scores[-1] == pytest.approx(1.0)


def test_signal_in_another_sentence_keeps_title_and_score() -> None:
    texts = [
        "Hi there friend. Call mom",
        "Hi there friend, please. Call mom",  # + request keyword, outside the title sentence
        "Hi there friend, please. See you tomorrow. Call mom",  # + time reference
    ]
    candidates = [extract(_env(t)) for t in texts]
    scores = [c.confidence for c in candidates]

    assert [c.title for c in candidates] == ["Call mom"] * 3
    assert all(c.has_action_verb for c in candidates)
    assert scores == sorted(scores)
    assert scores[1] > scores[0]


@pytest.mark.parametrize(
    "text",
    [
        "ok",
        "buy",
        "buy tomorrow",
        "groceries",
        "please call mom tonight",
        "Can you water the plants on friday?",
        "meeting notes attached",
    ],
)
def test_is_ambiguous_matches_its_definition(text: str) -> None:
    c = extract(_env(text))
    assert c.is_ambiguous == (c.confidence < 0.6 or c.word_count < 2)


def test_single_word_title_is_ambiguous_even_with_high_confidence() -> None:
    c = extract(_env("buy tomorrow"))
    assert c.title == "buy"
    assert c.confidence >= 0.6
    assert c.is_ambiguous


def test_chat_artifacts_are_stripped() -> None:
    assert preprocess("[10:42]   Alice:   buy milk") == "buy milk"


def test_request_message_full_pipeline() -> None:
    c = extract(
        _env(
            "Alice: please buy milk and eggs tomorrow",
            sender_info="Alice",
            conversation_context="family chat",
        )
    )

    assert c.title == "buy milk and eggs"
    assert c.suggested_category == "Shopping"
    assert c.has_request_keywords
    assert c.confidence == pytest.approx(1.0)
    assert c.sender_info == "Alice"
    assert c.conversation_context == "family chat"
    assert c.keywords[:2] == ("buy", "tomorrow")


def test_main_sentence_and_description() -> None:
    c = extract(_env("Hey! Can you pick up the kids from school at 3pm? Thanks so much."))

    assert c.title == "pick up the kids from school"
    assert c.time == time(15, 0)
    assert c.description == "Hey! Thanks so much."
    assert c.suggested_category == "Family"
    assert c.confidence == pytest.approx(1.0)


def test_urgency_marker_raises_priority() -> None:
    c = extract(_env("call the bank asap, it's important"))
    assert c.inferred_priority is TaskPriority.HIGH
    assert c.suggested_category == "Finance"

    calm = extract(_env("call the bank"))
    assert calm.inferred_priority is TaskPriority.MEDIUM


def test_no_signal_title_is_truncated_original() -> None:
    text = " ".join(["lorem"] * 60)
    c = extract(_env(text))

    assert c.confidence == pytest.approx(0.2)
    assert 0 < len(c.title) <= MAX_TITLE_LENGTH
    assert text.startswith(c.title)


def test_no_category_when_nothing_matches() -> None:
    assert extract(_env("lorem ipsum")).suggested_category is None


def test_keywords_keep_first_appearance_order_without_duplicates() -> None:
    c = extract(_env("buy bread, buy milk. urgent: buy it tomorrow"))
    assert c.keywords == ("buy", "urgent", "tomorrow")


def test_extract_is_deterministic_and_candidates_compare_by_text_and_title() -> None:
    env = _env("remember to pick up dry cleaning tomorrow at 5pm")
    a = extract(env)
    b = extract(env)

    assert a == b
    assert hash(a) == hash(b)
    assert a.with_changes(confidence=0.1) == a
    assert a.with_changes(title="collect suits") != a


def test_custom_weights() -> None:
    weights = ConfidenceWeights.from_mapping({"base": 0.0, "action_verb": 0.5})
    c = extract(_env("buy milk"), weights=weights)
    assert c.confidence == pytest.approx(0.5)


def test_weights_reject_negative_and_unknown_values() -> None:
    with pytest.raises(ValueError):
        ConfidenceWeights(action_verb=-0.1)
    with pytest.raises(ValueError):
        ConfidenceWeights.from_mapping({"magic": 1.0})


def test_extract_never_raises_on_odd_input() -> None:
    for text in ("", "   ", "???", "13/45/2026 at 99", "[] :"):
        c = extract(_env(text))
        assert 0.0 <= c.confidence <= 1.0


def test_are_similar() -> None:
    assert are_similar("buy milk", "Buy milk")
    assert not are_similar("buy milk", "call the dentist")


def test_extract_many_splits_dedupes_and_sorts() -> None:
    text = "1. buy milk\n2. call the dentist tomorrow\n- buy milk\nthanks"
    out = extract_many(_env(text))

    assert [c.title for c in out] == ["call the dentist", "buy milk"]
    assert out[0].confidence >= out[1].confidence


def test_extract_many_single_segment_equals_extract() -> None:
    env = _env("remember to pick up dry cleaning tomorrow at 5pm")
    assert extract_many(env) == [extract(env)]
