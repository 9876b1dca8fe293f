"""
Audit History Kernel
====================

Pure, I/O-free core of the gazette audit dashboard: merges audit records
from three storage tiers into one ordered history, and derives the views
used for exploration.

ARCHITECTURE:
    tiers (remote, snapshot, local) → merge_tiers → reconciled history
        → HistoryQuery / apply_query → paginate        (list view)
        → build_concept_graph → ForceLayout            (network view)

PUBLIC API:
- AuditRecord, FindingsView, StorageTier: Core data types
- merge_tiers: Precedence merge (remote > bundled snapshot > local cache)
- HistoryQuery, apply_query, distinct_tags: Filtering
- paginate, PageWindow, BrowseState: Windowing
- build_concept_graph, ConceptGraph, ForceLayout: Tag network
- export_*, parse_import: Exchange codecs
"""

from .errors import (
    RadarError,
    RecordValidationError,
    TierUnavailableError,
    CorruptCacheError,
    LocalCommitError,
    DocumentFetchError,
    AnalysisError,
    CredentialError,
    AnalysisUnavailableError,
    MalformedAnalysisError,
)

from .types import (
    AuditRecord,
    FindingsView,
    StorageTier,
    TIER_PRECEDENCE,
    normalize_findings,
    validate_record,
    sort_history,
)

from .reconcile import (
    merge_tiers,
    backfill_candidates,
    extend_local,
    prepend_record,
)

from .tags import is_valid_tag, record_tags

from .filters import HistoryQuery, apply_query, distinct_tags

from .pagination import PageWindow, BrowseState, paginate, total_pages

from .graph import (
    TagNode,
    TagEdge,
    ConceptGraph,
    Highlight,
    build_concept_graph,
    tag_counts,
    highlight,
    transparency_band,
)

from .layout import (
    LayoutParams,
    LayoutState,
    ForceLayout,
    initial_state,
    step,
    sphere_positions,
)

from .exchange import (
    ImportDraft,
    ImportSummary,
    export_summaries,
    export_index,
    export_full,
    parse_import,
)

__all__ = [
    'RadarError', 'RecordValidationError', 'TierUnavailableError', 'CorruptCacheError',
    'LocalCommitError',
    'DocumentFetchError', 'AnalysisError', 'CredentialError', 'AnalysisUnavailableError',
    'MalformedAnalysisError',
    'AuditRecord', 'FindingsView', 'StorageTier', 'TIER_PRECEDENCE',
    'normalize_findings', 'validate_record', 'sort_history',
    'merge_tiers', 'backfill_candidates', 'extend_local', 'prepend_record',
    'is_valid_tag', 'record_tags',
    'HistoryQuery', 'apply_query', 'distinct_tags',
    'PageWindow', 'BrowseState', 'paginate', 'total_pages',
    'TagNode', 'TagEdge', 'ConceptGraph', 'Highlight', 'build_concept_graph',
    'tag_counts', 'highlight', 'transparency_band',
    'LayoutParams', 'LayoutState', 'ForceLayout', 'initial_state', 'step', 'sphere_positions',
    'ImportDraft', 'ImportSummary', 'export_summaries', 'export_index', 'export_full',
    'parse_import',
]
