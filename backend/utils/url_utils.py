"""
Gazette URL helpers

Builds the official URLs for documents and daily summaries.
"""
from urllib.parse import quote


DEFAULT_GAZETTE_BASE = "https://www.boe.es"


def _base(base_url: str) -> str:
    return (base_url or DEFAULT_GAZETTE_BASE).rstrip('/')


def document_xml_url(document_id: str, base_url: str = DEFAULT_GAZETTE_BASE) -> str:
    """Raw XML of one gazette document."""
    return f"{_base(base_url)}/diario_boe/xml.php?id={quote(document_id)}"


def official_document_url(document_id: str, base_url: str = DEFAULT_GAZETTE_BASE) -> str:
    """Human-readable page for one gazette document."""
    return f"{_base(base_url)}/buscar/doc.php?id={quote(document_id)}"


def official_url_template(base_url: str = DEFAULT_GAZETTE_BASE) -> str:
    """`str.format` template with a {document_id} slot, used by index export."""
    return f"{_base(base_url)}/buscar/doc.php?id={{document_id}}"


def summary_url(date_stamp: str, base_url: str = DEFAULT_GAZETTE_BASE) -> str:
    """Daily summary from the open data API (date as YYYYMMDD)."""
    return f"{_base(base_url)}/datosabiertos/api/boe/sumario/{date_stamp}"


def legacy_summary_url(base_url: str = DEFAULT_GAZETTE_BASE) -> str:
    """Latest summary from the legacy XML endpoint."""
    return f"{_base(base_url)}/diario_boe/xml.php"
