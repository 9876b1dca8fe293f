"""
Tag extraction rules shared by filtering and the concept graph.

A tag is a short category, region or flag string. Strings that look like
sentences or titles are noise and never become tags.
"""

from typing import List, Optional

from .types import AuditRecord, FindingsView
from .errors import RecordValidationError

MIN_TAG_LENGTH = 2
MAX_TAG_LENGTH = 50
MAX_TAG_WORDS = 5


def is_valid_tag(tag: Optional[str], title: Optional[str] = None) -> bool:
    """True if `tag` can stand as a category on a record titled `title`."""
    if not tag:
        return False
    if title is not None and tag == title:
        return False
    if len(tag) < MIN_TAG_LENGTH or len(tag) > MAX_TAG_LENGTH:
        return False
    if len(tag.split()) > MAX_TAG_WORDS:
        return False
    return True


def _view(record: AuditRecord) -> Optional[FindingsView]:
    try:
        return record.view
    except RecordValidationError:
        return None


def record_tags(record: AuditRecord) -> List[str]:
    """
    Distinct non-noise tags of one record.

    Order: flags as listed, then category, then region. Duplicates are
    dropped so a record counts at most once per tag.
    """
    view = _view(record)
    if view is None:
        return []

    tags: List[str] = []
    for candidate in (*view.flags, view.category, view.region):
        if is_valid_tag(candidate, record.title) and candidate not in tags:
            tags.append(candidate)
    return tags


def matchable_tags(record: AuditRecord) -> set:
    """Raw {category, region} ∪ flags used by the tag filter (no noise rule)."""
    view = _view(record)
    if view is None:
        return set()
    tags = set(view.flags)
    if view.category:
        tags.add(view.category)
    if view.region:
        tags.add(view.region)
    return tags


def selectable_tags(record: AuditRecord) -> List[str]:
    """Category and region only, noise removed. Flags are not selectable."""
    view = _view(record)
    if view is None:
        return []
    return [
        t for t in (view.category, view.region)
        if is_valid_tag(t, record.title)
    ]
