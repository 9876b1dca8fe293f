"""
Error taxonomy for the audit history kernel.

Tier-level failures are recovered inside the store; validation and
analysis failures propagate to the caller for display.
"""
from typing import Optional


class RadarError(Exception):
    """Base class for all audit history errors."""


class RecordValidationError(RadarError):
    """An audit record was rejected at ingestion time."""

    def __init__(self, message: str, document_id: Optional[str] = None):
        super().__init__(message)
        self.document_id = document_id


class TierUnavailableError(RadarError):
    """A storage tier could not be read (unreachable, empty or corrupt)."""

    def __init__(self, tier: str, reason: str):
        super().__init__(f"{tier} tier unavailable: {reason}")
        self.tier = tier
        self.reason = reason


class CorruptCacheError(TierUnavailableError):
    """The local cache was read but its contents are unusable. Safe to rebuild."""


class LocalCommitError(RadarError):
    """The local cache rejected a write; the record was not stored."""


class DocumentFetchError(RadarError):
    """The gazette source did not return a usable document."""


class AnalysisError(RadarError):
    """
    Failure reported by the analysis collaborator.

    `category` is a stable key the API layer maps to a user message:
    credential, unavailable or malformed.
    """
    category = "analysis"


class CredentialError(AnalysisError):
    """Missing or rejected API credential. User must fix the key."""
    category = "credential"


class AnalysisUnavailableError(AnalysisError):
    """Transport, timeout, rate limit or server failure. User may retry."""
    category = "unavailable"


class MalformedAnalysisError(AnalysisError):
    """The model answered, but not with a usable audit payload."""
    category = "malformed"
