"""
Filter & Search
===============

Conjunctive predicates over the reconciled history:

    text     substring of title or document id (case-insensitive)
    score    transparency score inside [min_score, max_score]
    tags     any-of match against category, region and flags

Filtering never reorders: output keeps the reconciled order.
"""

from dataclasses import dataclass, field, replace
from typing import FrozenSet, Iterable, List, Optional, Sequence

from .errors import RecordValidationError
from .tags import matchable_tags, selectable_tags
from .types import AuditRecord, MAX_SCORE, MIN_SCORE


@dataclass(frozen=True)
class HistoryQuery:
    """Filter state shared by the list view and the concept graph."""
    text: str = ""
    min_score: float = MIN_SCORE
    max_score: float = MAX_SCORE
    tags: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def build(
        cls,
        text: Optional[str] = None,
        min_score: Optional[float] = None,
        max_score: Optional[float] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> 'HistoryQuery':
        """Build from optional inputs, falling back to defaults for None."""
        return cls(
            text=(text or "").strip(),
            min_score=MIN_SCORE if min_score is None else float(min_score),
            max_score=MAX_SCORE if max_score is None else float(max_score),
            tags=frozenset(t for t in (tags or ()) if t),
        )

    @property
    def is_empty_range(self) -> bool:
        return self.min_score > self.max_score

    def with_tags(self, *tags: str) -> 'HistoryQuery':
        return replace(self, tags=frozenset(tags))

    def matches(self, record: AuditRecord) -> bool:
        if self.text:
            needle = self.text.lower()
            if needle not in record.title.lower() and needle not in record.document_id.lower():
                return False

        try:
            score = record.score
        except RecordValidationError:
            return False
        if not (self.min_score <= score <= self.max_score):
            return False

        if self.tags and not (self.tags & matchable_tags(record)):
            return False

        return True


def apply_query(records: Sequence[AuditRecord], query: HistoryQuery) -> List[AuditRecord]:
    """Matching subset, in input order. An inverted score range gives []."""
    if query.is_empty_range:
        return []
    return [r for r in records if query.matches(r)]


def distinct_tags(records: Iterable[AuditRecord]) -> List[str]:
    """Selectable tag universe: sorted non-noise categories and regions."""
    universe = set()
    for record in records:
        universe.update(selectable_tags(record))
    return sorted(universe)
