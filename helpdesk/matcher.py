"""Free-text and numeric matching of user queries against known questions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .config import config

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .models import Question

logger = config.get_logger(__name__)

MIN_TOKEN_LENGTH = 2
PARTIAL_MATCH_MIN_LENGTH = 4
LENIENT_MIN_WORD_LENGTH = 3

STOP_WORDS = frozenset({
    # articles and determiners
    "a", "an", "the", "this", "that", "these", "those", "some", "any",
    # pronouns
    "i", "me", "my", "mine", "we", "us", "our", "you", "your", "he", "she",
    "it", "its", "they", "them", "their",
    # auxiliaries and negations
    "is", "am", "are", "was", "were", "be", "been", "do", "does", "did",
    "have", "has", "had", "can", "can't", "cant", "cannot", "won't", "wont",
    "doesn't", "doesnt", "isn't", "isnt", "don't", "dont", "not",
    # prepositions and conjunctions
    "and", "or", "but", "to", "of", "in", "on", "at", "for", "with", "from",
    "about", "when", "what", "why", "how", "help", "please",
    # generic nouns
    "problem", "problems", "issue", "issues", "trouble", "error", "computer",
    "pc", "laptop", "device",
})  # fmt: skip

_PUNCTUATION = ".,!?;:\"'()[]{}<>"
_DIGITS = re.compile(r"\d+", re.ASCII)
_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz"
)


@dataclass(frozen=True)
class PatternOverride:
    """A hand-authored pattern that pins a query to one question id."""

    name: str
    pattern: re.Pattern[str]
    question_id: int


DEFAULT_PATTERN_OVERRIDES: tuple[PatternOverride, ...] = (
    PatternOverride(
        "network",
        re.compile(
            r"\b(internet|wi-?fi|network|online|offline|router|modem|"
            r"connect(ion|ed|ing)?)\b"
        ),
        question_id=3,
    ),
    PatternOverride(
        "boot",
        re.compile(
            r"\b(boot(s|ing)?|start(s|ing)?\s*up|won'?t\s+(start|turn\s+on)|"
            r"power(s|ing)?\s+on)\b"
        ),
        question_id=1,
    ),
    PatternOverride(
        "display",
        re.compile(r"\b(screen|display|monitor|black|blank)\b"),
        question_id=4,
    ),
    PatternOverride(
        "performance",
        re.compile(r"\b(slow|lag(s|gy|ging)?|freez(e|es|ing)|sluggish|performance)\b"),
        question_id=2,
    ),
)


def normalize(text: str) -> str:
    """Lowercase ASCII letters only and trim surrounding whitespace.

    Returns:
        Normalized text.
    """
    return text.strip().translate(_ASCII_LOWER)


def tokenize(query: str) -> list[str]:
    """Split a normalized query into meaningful tokens.

    Returns:
        Tokens with stop words and one-character tokens removed.
    """
    tokens = []
    for raw in normalize(query).split():
        token = raw.strip(_PUNCTUATION)
        if len(token) < MIN_TOKEN_LENGTH or token in STOP_WORDS:
            continue
        tokens.append(token)
    return tokens


def parse_position(query: str) -> int | None:
    """Interpret a query made only of ASCII digits as a 1-based position.

    Returns:
        The position, or None if the query is not numeric.
    """
    text = query.strip()
    if _DIGITS.fullmatch(text):
        return int(text)
    return None


def _fields(question: Question) -> list[str]:
    return [
        *(normalize(keyword) for keyword in question.keywords),
        normalize(question.title),
        normalize(question.description),
    ]


def _field_words(fields: Iterable[str]) -> set[str]:
    words = set()
    for field in fields:
        for raw in field.split():
            word = raw.strip(_PUNCTUATION)
            if len(word) >= PARTIAL_MATCH_MIN_LENGTH:
                words.add(word)
    return words


class QueryMatcher:
    """Filters the question list down to candidates for a user query.

    Matching is deterministic and purely lexical. A question is a candidate
    when the whole query appears in one of its fields, when a filtered token
    appears in (or partially overlaps with) a field word, or when a pattern
    override bound to its id matches. If nothing matches, a lenient pass
    accepts any question containing a query word longer than two characters.
    Candidates keep the order of the input list.
    """

    def __init__(
        self,
        pattern_overrides: Sequence[PatternOverride] | None = None,
        *,
        lenient_fallback: bool = True,
    ) -> None:
        """Initialize the matcher.

        Args:
            pattern_overrides: Pattern table pinning queries to question ids.
                Defaults to the built-in network/boot/display/performance table.
            lenient_fallback: Whether to run the lenient second pass.
        """
        self.pattern_overrides = tuple(
            DEFAULT_PATTERN_OVERRIDES if pattern_overrides is None else pattern_overrides
        )
        self.lenient_fallback = lenient_fallback

    def match(self, query: str, questions: Sequence[Question]) -> list[Question]:
        """Return the questions that match a query.

        A query of digits only selects the question at that 1-based position
        and skips text matching.

        Returns:
            Matching questions in input order; empty if nothing matches.
        """
        position = parse_position(query)
        if position is not None:
            if 1 <= position <= len(questions):
                return [questions[position - 1]]
            logger.info("Question number %d is out of range", position)
            return []

        text = normalize(query)
        tokens = tokenize(text)
        if not tokens:
            return []

        pinned_ids = {
            override.question_id
            for override in self.pattern_overrides
            if override.pattern.search(text)
        }

        candidates = [
            question
            for question in questions
            if self._matches(text, tokens, question) or question.id in pinned_ids
        ]

        if not candidates and self.lenient_fallback:
            candidates = self.lenient_match(text, questions)
            if candidates:
                logger.info(
                    "Lenient pass matched %d question(s) for %r", len(candidates), query
                )

        logger.info("Query %r matched %d question(s)", query, len(candidates))
        return candidates

    @staticmethod
    def _matches(text: str, tokens: list[str], question: Question) -> bool:
        fields = _fields(question)
        if any(text in field for field in fields):
            return True

        if any(token in field for token in tokens for field in fields):
            return True

        words = _field_words(fields)
        return any(
            word in token or token in word
            for token in tokens
            if len(token) >= PARTIAL_MATCH_MIN_LENGTH
            for word in words
        )

    @staticmethod
    def lenient_match(query: str, questions: Sequence[Question]) -> list[Question]:
        """Accept questions containing any query word longer than two characters.

        Returns:
            Matching questions in input order.
        """
        words = [
            word
            for word in normalize(query).split()
            if len(word) >= LENIENT_MIN_WORD_LENGTH
        ]
        if not words:
            return []
        return [
            question
            for question in questions
            if any(word in field for word in words for field in _fields(question))
        ]
