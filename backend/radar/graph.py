"""
Concept Graph
=============

Tag co-occurrence network derived from the reconciled history.

    nodes  distinct tags, with document count and mean transparency
    edges  unordered tag pairs sharing a document, weighted by how many

Each record contributes its de-duplicated tag set once, so a record
cannot reinforce an edge with itself.
"""

from collections import defaultdict
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .errors import RecordValidationError
from .filters import HistoryQuery
from .tags import record_tags
from .types import AuditRecord


@dataclass(frozen=True)
class TagNode:
    name: str
    occurrence_count: int
    average_transparency: float

    @property
    def band(self) -> str:
        return transparency_band(self.average_transparency)


@dataclass(frozen=True)
class TagEdge:
    source: str     # lexically smaller tag
    target: str
    co_occurrence_count: int


@dataclass(frozen=True)
class ConceptGraph:
    nodes: Tuple[TagNode, ...] = ()
    edges: Tuple[TagEdge, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node(self, name: str) -> Optional[TagNode]:
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def index(self) -> Dict[str, int]:
        return {node.name: i for i, node in enumerate(self.nodes)}

    def select(self, name: str) -> HistoryQuery:
        """Selecting a node is the same as filtering the list by that tag."""
        return HistoryQuery().with_tags(name)


@dataclass(frozen=True)
class Highlight:
    """Nodes and edges that stay lit for a graph search; the rest is dimmed."""
    nodes: FrozenSet[str]
    edges: Tuple[TagEdge, ...]


def transparency_band(score: float) -> str:
    """Colour band used by the graph view."""
    if score <= 33:
        return "critical"
    if score <= 66:
        return "warning"
    return "transparent"


def _score(record: AuditRecord) -> Optional[float]:
    try:
        return record.score
    except RecordValidationError:
        return None


def build_concept_graph(records: Iterable[AuditRecord]) -> ConceptGraph:
    """
    Build the tag graph. Records with no usable tags add nothing; an
    empty corpus gives an empty graph.

    Nodes are ordered by occurrence count (desc) then name; edges by
    their (source, target) pair.
    """
    counts: Dict[str, int] = defaultdict(int)
    score_sums: Dict[str, float] = defaultdict(float)
    pairs: Dict[Tuple[str, str], int] = defaultdict(int)

    for record in records:
        score = _score(record)
        if score is None:
            continue
        tags = record_tags(record)
        for tag in tags:
            counts[tag] += 1
            score_sums[tag] += score
        for a, b in combinations(sorted(tags), 2):
            pairs[(a, b)] += 1

    nodes = tuple(
        TagNode(name=tag, occurrence_count=count, average_transparency=score_sums[tag] / count)
        for tag, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    )
    edges = tuple(
        TagEdge(source=a, target=b, co_occurrence_count=weight)
        for (a, b), weight in sorted(pairs.items())
    )
    return ConceptGraph(nodes=nodes, edges=edges)


def tag_counts(records: Iterable[AuditRecord]) -> List[Tuple[str, int]]:
    """Tag cloud: (tag, document count), most frequent first."""
    counts: Dict[str, int] = defaultdict(int)
    for record in records:
        for tag in record_tags(record):
            counts[tag] += 1
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def highlight(graph: ConceptGraph, search: str) -> Highlight:
    """
    Case-insensitive substring search over node names.

    An empty search lights everything. An edge stays lit only when both
    ends match.
    """
    needle = (search or "").strip().lower()
    if not needle:
        return Highlight(nodes=frozenset(n.name for n in graph.nodes), edges=graph.edges)

    lit = frozenset(n.name for n in graph.nodes if needle in n.name.lower())
    edges = tuple(e for e in graph.edges if e.source in lit and e.target in lit)
    return Highlight(nodes=lit, edges=edges)
