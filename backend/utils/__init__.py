"""
Utility functions
"""
from .datetime_utils import now_ms, epoch_ms_to_datetime, datetime_to_epoch_ms, parse_timestamp
from .url_utils import document_xml_url, official_document_url, summary_url

__all__ = [
    'now_ms', 'epoch_ms_to_datetime', 'datetime_to_epoch_ms', 'parse_timestamp',
    'document_xml_url', 'official_document_url', 'summary_url',
]
