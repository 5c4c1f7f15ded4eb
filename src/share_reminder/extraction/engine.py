# src/share_reminder/extraction/engine.py

"""
Rule-based extraction engine: shared message -> confidence-scored candidate task.

extract() is a pure function of (envelope, now, weights): no I/O, no shared state,
safe to call from any thread, and it never raises. When nothing in the text looks like
a task it still returns a candidate, just a low-confidence one titled with the text.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime

from ..share.envelope import SharedContentEnvelope
from . import rules
from .dates import parse_date_time, strip_date_time
from .models import ExtractedCandidate, TaskPriority, TaskSource
from .rules import DEFAULT_WEIGHTS, ConfidenceWeights

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 120

# Word overlap above which two titles are considered the same task.
_SIMILARITY_THRESHOLD = 0.7

_SPEAKER_PREFIX_RE = re.compile(r"^[A-Z][\w .'-]{0,30}:\s+")
_BRACKETED_RE = re.compile(r"\[[^\]]*\]")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_SEGMENT_SPLIT_RE = re.compile(r"\s*(?:\n+|;)\s*")
_BULLET_RE = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")
_TRAILING_JUNK_RE = re.compile(r"(?:[\s,;:.!?\-]|\b(?:at|on|by|and|for)\b)+$", re.IGNORECASE)
_LEADING_JUNK_RE = re.compile(r"^[\s,;:\-]+")

_KEYWORD_RE = re.compile(
    r"\b(?:"
    + "|".join(re.escape(k) for k in sorted(rules.KEYWORD_VOCABULARY, key=len, reverse=True))
    + r")\b",
    re.IGNORECASE,
)

_POLITE_PREFIX_RE = re.compile(
    r"^(?:" + "|".join(re.escape(p) for p in rules.POLITE_PREFIXES) + r")\b[\s,:]*",
    re.IGNORECASE,
)


def preprocess(text: str) -> str:
    """Collapse whitespace and drop chat artifacts ("Alice: " speaker prefix, [12:01] stamps)."""
    s = _BRACKETED_RE.sub(" ", text or "")
    s = re.sub(r"[ \t]+", " ", s).strip()
    s = _SPEAKER_PREFIX_RE.sub("", s, count=1)
    return s.strip()


def _truncate(text: str, limit: int = MAX_TITLE_LENGTH) -> str:
    s = " ".join((text or "").split())
    if len(s) <= limit:
        return s
    cut = s[:limit].rsplit(" ", 1)[0]
    return cut or s[:limit]


def strip_polite_prefixes(text: str) -> str:
    out = (text or "").strip()
    # Phrases stack: "please don't forget to ..."
    while True:
        stripped = _POLITE_PREFIX_RE.sub("", out, count=1).strip()
        if stripped == out:
            return out
        out = stripped


def clean_title(text: str) -> str:
    """
    Title = text minus leading request phrases, date/time phrases and trailing punctuation.

    Falls back to the trimmed input when nothing is left.
    """
    fallback = _truncate(text)
    s = strip_polite_prefixes(text)
    s = strip_date_time(s)
    s = _LEADING_JUNK_RE.sub("", s)
    s = _TRAILING_JUNK_RE.sub("", s)
    s = _truncate(s)
    return s or fallback


def suggest_category(*texts: str) -> str | None:
    """First table entry with a keyword present (as a whole word) in any of texts."""
    lowered = [t.lower() for t in texts if t]
    for category, keywords in rules.CATEGORY_KEYWORDS:
        for kw in keywords:
            pattern = rf"\b{re.escape(kw)}\b"
            if any(re.search(pattern, t) for t in lowered):
                return category
    return None


def collect_keywords(text: str) -> tuple[str, ...]:
    """Vocabulary hits in order of first appearance, without duplicates."""
    seen: list[str] = []
    for m in _KEYWORD_RE.finditer(text or ""):
        kw = m.group(0).lower()
        if kw not in seen:
            seen.append(kw)
    return tuple(seen)


def infer_priority(text: str) -> TaskPriority:
    return TaskPriority.HIGH if rules.has_urgency_marker(text) else TaskPriority.MEDIUM


def _split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


def _pick_main_sentence(sentences: list[str]) -> int:
    """
    Index of the sentence that carries the task.

    First sentence whose cleaned title has an action verb, then the first one opening with a
    request phrase, then the first non-generic one. Request keywords and time references
    never steer this choice.
    """
    candidates = [i for i, s in enumerate(sentences) if not rules.is_generic(s)]
    for i in candidates:
        if rules.has_action_verb(clean_title(sentences[i])):
            return i
    for i in candidates:
        if _POLITE_PREFIX_RE.match(sentences[i]):
            return i
    return candidates[0] if candidates else 0


def extract(
    envelope: SharedContentEnvelope,
    *,
    now: datetime | None = None,
    weights: ConfidenceWeights = DEFAULT_WEIGHTS,
    source: TaskSource = TaskSource.CHAT,
) -> ExtractedCandidate:
    """
    Turn one shared message into a candidate task.

    `now` anchors relative dates ("tomorrow"); it defaults to the envelope's receipt time
    so re-running extraction on the same envelope yields the same candidate.
    """
    ref = now or envelope.received_at
    original = envelope.text or ""
    text = preprocess(original) or original.strip()

    sentences = _split_sentences(text) or [text]
    main_idx = _pick_main_sentence(sentences)
    main = sentences[main_idx]
    rest = [s for i, s in enumerate(sentences) if i != main_idx]

    title = clean_title(main) or _truncate(original.strip())
    description = " ".join(rest).strip() or None

    found_date, found_time = parse_date_time(text, now=ref)

    candidate = ExtractedCandidate(
        original_text=original,
        title=title,
        confidence=0.0,
        source=source,
        received_at=envelope.received_at,
        description=description,
        date=found_date,
        time=found_time,
        suggested_category=suggest_category(title, text),
        conversation_context=envelope.conversation_context,
        sender_info=envelope.sender_info,
        keywords=collect_keywords(text),
        inferred_priority=infer_priority(text),
    )

    confidence = weights.score(
        action_verb=candidate.has_action_verb,
        time_reference=candidate.has_time_reference,
        request_keyword=candidate.has_request_keywords,
    )
    candidate = candidate.with_changes(confidence=confidence)

    logger.debug(
        "Extracted title=%r confidence=%.2f date=%s time=%s category=%s",
        candidate.title,
        candidate.confidence,
        candidate.date,
        candidate.time,
        candidate.suggested_category,
    )
    return candidate


def are_similar(title_a: str, title_b: str) -> bool:
    words_a = title_a.lower().split()
    words_b = title_b.lower().split()
    if not words_a or not words_b:
        return title_a.strip().lower() == title_b.strip().lower()
    common = sum(1 for w in words_a if w in words_b)
    avg = (len(words_a) + len(words_b)) / 2
    return common / avg > _SIMILARITY_THRESHOLD


def split_segments(text: str) -> list[str]:
    """Split a list-like message into its lines, bullets and ;-separated items."""
    out: list[str] = []
    for raw in _SEGMENT_SPLIT_RE.split(text or ""):
        seg = _BULLET_RE.sub("", raw).strip()
        if seg:
            out.append(seg)
    return out


def extract_many(
    envelope: SharedContentEnvelope,
    *,
    now: datetime | None = None,
    weights: ConfidenceWeights = DEFAULT_WEIGHTS,
    source: TaskSource = TaskSource.CHAT,
) -> list[ExtractedCandidate]:
    """
    Extract one candidate per task-like segment of a multi-line message.

    Near-duplicate titles are dropped (first wins) and the result is ordered by
    confidence, highest first. Never empty.
    """
    segments = [s for s in split_segments(preprocess(envelope.text)) if not rules.is_generic(s)]
    if len(segments) <= 1:
        return [extract(envelope, now=now, weights=weights, source=source)]

    unique: list[ExtractedCandidate] = []
    for seg in segments:
        part = SharedContentEnvelope(
            text=seg,
            received_at=envelope.received_at,
            app_name=envelope.app_name,
            sender_info=envelope.sender_info,
            conversation_context=envelope.conversation_context,
        )
        cand = extract(part, now=now, weights=weights, source=source)
        if any(are_similar(u.title, cand.title) for u in unique):
            continue
        unique.append(cand)

    if not unique:
        return [extract(envelope, now=now, weights=weights, source=source)]

    unique.sort(key=lambda c: c.confidence, reverse=True)
    return unique
