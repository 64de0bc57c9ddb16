"""
Fuzzy entity resolution for the assistant.

Maps free text onto users, projects and tasks:
- Names are scored by an ordered table of ScoringRules (first matching
  tier wins per candidate), with an admin bonus on the exact tier only.
- Task titles are scored by word overlap after stop-word removal.

Ties keep input order (stable sort): the first candidate seen wins.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

from config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NameFields:
    """Normalised (lowercased, trimmed) name parts of a candidate."""
    primary: str
    composite: str
    secondary: str


@dataclass(frozen=True)
class ScoringRule:
    """One tier of the name scoring table."""
    name: str
    predicate: Callable[[str, NameFields], bool]
    score: int
    adjustment: Callable[[Any], int] = lambda candidate: 0


@dataclass
class ScoredCandidate:
    candidate: Any
    score: float
    rule: str


def _normalize(value: Optional[str]) -> str:
    return " ".join((value or "").lower().split())


def admin_bonus(candidate: Any) -> int:
    """+10 for users holding the admin role."""
    roles = getattr(candidate, "roles", None) or []
    return 10 if "admin" in roles else 0


NAME_RULES: Tuple[ScoringRule, ...] = (
    ScoringRule("exact_primary", lambda q, f: f.primary == q, 100, admin_bonus),
    ScoringRule("exact_full", lambda q, f: f.composite == q, 90),
    ScoringRule("primary_prefix", lambda q, f: f.primary.startswith(q), 80),
    ScoringRule("full_prefix", lambda q, f: f.composite.startswith(q), 70),
    ScoringRule("primary_contains", lambda q, f: q in f.primary, 60),
    ScoringRule("full_contains", lambda q, f: q in f.composite, 50),
    ScoringRule("secondary_contains", lambda q, f: bool(f.secondary) and q in f.secondary, 40),
)


def user_fields(user: Any) -> NameFields:
    first = _normalize(getattr(user, "first_name", None))
    last = _normalize(getattr(user, "last_name", None))
    return NameFields(primary=first, composite=f"{first} {last}".strip(), secondary=last)


def title_fields(entity: Any) -> NameFields:
    title = _normalize(getattr(entity, "title", None))
    return NameFields(primary=title, composite=title, secondary="")


class NameScorer:
    """Evaluates the scoring table once per candidate."""

    def __init__(
        self,
        rules: Sequence[ScoringRule] = NAME_RULES,
        fields: Callable[[Any], NameFields] = user_fields,
    ):
        self.rules = tuple(rules)
        self.fields = fields

    def score(self, query: str, candidate: Any) -> Optional[ScoredCandidate]:
        q = _normalize(query)
        if not q:
            return None
        parts = self.fields(candidate)
        for rule in self.rules:
            if rule.predicate(q, parts):
                return ScoredCandidate(candidate, rule.score + rule.adjustment(candidate), rule.name)
        return None

    def rank(self, query: str, candidates: Sequence[Any]) -> List[ScoredCandidate]:
        scored = [s for s in (self.score(query, c) for c in candidates) if s is not None]
        # sorted() is stable, so equal scores keep input order
        return sorted(scored, key=lambda s: -s.score)


STOP_WORDS = frozenset({
    "the", "a", "an", "to", "for", "of", "on", "in", "and", "or", "with",
    "task", "please", "my", "this", "that", "is", "at", "by", "from",
})

_WORD = re.compile(r"[a-z0-9]+")


def significant_words(text: Optional[str]) -> List[str]:
    return [w for w in _WORD.findall((text or "").lower()) if w not in STOP_WORDS]


class TaskTitleScorer:
    """
    Word-overlap score between a query and a task title.

    Each significant query word earns 1.0 for an exact word match or 0.7
    for a substring match in either direction; the score is the sum over
    the number of query words.
    """

    EXACT = 1.0
    PARTIAL = 0.7

    def score(self, query: str, title: str) -> float:
        query_words = significant_words(query)
        title_words = significant_words(title)
        if not query_words or not title_words:
            return 0.0

        total = 0.0
        for word in query_words:
            if word in title_words:
                total += self.EXACT
            elif any(word in other or other in word for other in title_words):
                total += self.PARTIAL
        return total / len(query_words)


@dataclass
class TaskMatch:
    """Outcome of matching a title against tasks."""
    query: str
    candidates: List[ScoredCandidate] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.candidates)

    @property
    def ambiguous(self) -> bool:
        return len(self.candidates) > 1

    @property
    def best(self) -> Optional[ScoredCandidate]:
        return self.candidates[0] if self.candidates else None


class FuzzyEntityResolver:
    """Resolves free-text references to users, projects and tasks."""

    def __init__(
        self,
        name_scorer: Optional[NameScorer] = None,
        title_scorer: Optional[TaskTitleScorer] = None,
        threshold: Optional[float] = None,
        band: Optional[float] = None,
    ):
        self.name_scorer = name_scorer or NameScorer()
        self.titled_scorer = NameScorer(fields=title_fields)
        self.title_scorer = title_scorer or TaskTitleScorer()
        self.threshold = settings.task_match_threshold if threshold is None else threshold
        self.band = settings.task_match_band if band is None else band

    def match_user(self, query: str, users: Sequence[Any]) -> Optional[Any]:
        """Highest scoring user, or None."""
        ranked = self.name_scorer.rank(query, users)
        if not ranked:
            logger.debug(f"No user matches '{query}'")
            return None
        best = ranked[0]
        logger.debug(f"User '{query}' -> {best.candidate.id} ({best.rule}, {best.score})")
        return best.candidate

    def match_titled(self, query: str, candidates: Sequence[Any]) -> Optional[Any]:
        """Best project, status or priority by title, or None."""
        ranked = self.titled_scorer.rank(query, candidates)
        return ranked[0].candidate if ranked else None

    def match_project(self, query: str, projects: Sequence[Any]) -> Optional[Any]:
        return self.match_titled(query, projects)

    def rank_tasks(
        self, query: str, tasks: Sequence[Any], threshold: Optional[float] = None
    ) -> List[ScoredCandidate]:
        """Tasks scoring at least the threshold, best first, ties in input order."""
        minimum = self.threshold if threshold is None else threshold
        scored = []
        for task in tasks:
            value = self.title_scorer.score(query, task.title)
            if value >= minimum:
                scored.append(ScoredCandidate(task, value, "word_overlap"))
        return sorted(scored, key=lambda s: -s.score)

    def match_task(
        self, query: str, tasks: Sequence[Any], threshold: Optional[float] = None
    ) -> TaskMatch:
        """
        Accepted task candidates. More than one candidate means the top
        scores are within the closeness band and the caller must disambiguate.
        """
        ranked = self.rank_tasks(query, tasks, threshold)
        if not ranked:
            return TaskMatch(query=query)
        top = ranked[0].score
        close = [s for s in ranked if top - s.score <= self.band + 1e-9]
        return TaskMatch(query=query, candidates=close)

    def match(self, query: str, tasks: Sequence[Any]) -> Any:
        """Single task, list of near-equal tasks, or None."""
        result = self.match_task(query, tasks)
        if not result.found:
            return None
        if result.ambiguous:
            return [s.candidate for s in result.candidates]
        return result.best.candidate
