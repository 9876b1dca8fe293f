"""
Gazette Client - retrieval of official gazette (BOE) documents

Two jobs:
- fetch_document(): raw XML and title of one document by id
- fetch_latest(): items published in the latest daily summary

Uses httpx for transport and BeautifulSoup (lxml XML parser) for parsing.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional

import httpx
from bs4 import BeautifulSoup

from radar.errors import DocumentFetchError
from utils.datetime_utils import gazette_date
from utils.url_utils import (
    DEFAULT_GAZETTE_BASE,
    document_xml_url,
    legacy_summary_url,
    summary_url,
)

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "application/xml, text/xml, */*",
    "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
}

SIMULATED_PREFIX = "[SIMULATED]"


@dataclass(frozen=True)
class GazetteDocument:
    document_id: str
    title: str
    raw_text: str
    synthetic: bool = False


@dataclass(frozen=True)
class GazetteItem:
    """One entry of a daily summary."""
    document_id: str
    title: str
    department: Optional[str] = None
    section: Optional[str] = None
    already_audited: bool = False

    @property
    def is_legislative(self) -> bool:
        # Section I (general provisions) ids
        return self.document_id.startswith('BOE-A-')


# Known documents served when no summary can be reached
FALLBACK_SOURCES: List[GazetteItem] = [
    GazetteItem("BOE-A-2024-4161", "Ley de Presupuestos Generales del Estado para el ejercicio 2024", section="Economía"),
    GazetteItem("BOE-A-2024-5012", "Reforma urgente del Mercado de Trabajo y fomento de la contratación indefinida", section="Social"),
    GazetteItem("BOE-A-2024-6123", "Regulación de Vivienda Pública y medidas contra el desahucio", section="Vivienda"),
    GazetteItem("BOE-A-2024-7788", "Subvenciones directas a la Innovación Digital en PYMES", section="Tecnología"),
    GazetteItem("BOE-A-2024-8901", "Modificación de la Ley de Montes y gestión forestal sostenible", section="Medio Ambiente"),
    GazetteItem("BOE-A-2024-9122", "Protocolo de actuación contra la sequía en la cuenca del Ebro", section="Recursos Naturales"),
    GazetteItem("BOE-A-2024-1055", "Plan de fomento de la Inteligencia Artificial en la Administración Pública", section="Innovación"),
    GazetteItem("BOE-A-2024-1122", "Ayudas extraordinarias al sector del transporte por carretera", section="Transportes"),
    GazetteItem("BOE-A-2024-2233", "Regulación del teletrabajo en las Fuerzas y Cuerpos de Seguridad", section="Interior"),
    GazetteItem("BOE-A-2024-3344", "Convenio colectivo del sector de la industria cinematográfica", section="Cultura"),
]


def synthetic_document(document_id: str) -> GazetteDocument:
    """
    Placeholder used when the real document cannot be fetched.

    The title carries SIMULATED_PREFIX so it is never mistaken for a real
    gazette record.
    """
    text = (
        f"<documento><metadatos><identificador>{document_id}</identificador>"
        f"<titulo>{SIMULATED_PREFIX} {document_id}</titulo></metadatos>"
        "<texto><p>CONTENIDO SIMULADO: el documento original no pudo descargarse. "
        "Este texto es un marcador de posición y no procede del boletín oficial.</p></texto>"
        "</documento>"
    )
    return GazetteDocument(
        document_id=document_id,
        title=f"{SIMULATED_PREFIX} {document_id}",
        raw_text=text,
        synthetic=True,
    )


def _text(tag) -> str:
    return tag.get_text(strip=True) if tag is not None else ""


def parse_summary(xml_text: str) -> List[GazetteItem]:
    """
    Parse summary XML into items.

    Handles both the open data API shape (<item><identificador>) and the
    legacy shape (<item id="...">). Items without id or title are skipped.
    """
    soup = BeautifulSoup(xml_text, 'xml')
    items = []
    seen = set()

    for node in soup.find_all('item'):
        document_id = _text(node.find('identificador')) or (node.get('id') or '').strip()
        title = _text(node.find('titulo'))
        if not document_id or not title or document_id in seen:
            continue
        seen.add(document_id)

        department = node.find_parent('departamento')
        section = node.find_parent('seccion')
        items.append(GazetteItem(
            document_id=document_id,
            title=title,
            department=department.get('nombre') if department is not None else None,
            section=section.get('nombre') if section is not None else None,
        ))

    return items


class GazetteClient:
    """
    Async client for the official gazette.

    Pass an `httpx.AsyncClient` to share a connection pool (or a mock
    transport in tests); otherwise one is created per call.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_GAZETTE_BASE,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.http_client = http_client
        self.now = now

    async def _get(self, url: str) -> httpx.Response:
        if self.http_client is not None:
            return await self.http_client.get(url, headers=REQUEST_HEADERS)
        async with httpx.AsyncClient(follow_redirects=True, timeout=self.timeout) as client:
            return await client.get(url, headers=REQUEST_HEADERS)

    async def fetch_document(self, document_id: str) -> GazetteDocument:
        """
        Fetch the raw XML of one document.

        Raises:
            DocumentFetchError: transport failure, non-200 status or empty body
        """
        url = document_xml_url(document_id, self.base_url)
        try:
            response = await self._get(url)
        except httpx.HTTPError as e:
            raise DocumentFetchError(f"Failed to fetch {document_id}: {e}") from e

        if response.status_code != 200:
            raise DocumentFetchError(f"Failed to fetch {document_id}: HTTP {response.status_code}")
        raw_text = response.text
        if not raw_text.strip():
            raise DocumentFetchError(f"Empty document body for {document_id}")

        soup = BeautifulSoup(raw_text, 'xml')
        if soup.find('error') is not None and soup.find('texto') is None:
            raise DocumentFetchError(f"Gazette reported an error for {document_id}")
        title = _text(soup.find('titulo')) or document_id

        logger.info(f"📄 Fetched {document_id} ({len(raw_text)} chars)")
        return GazetteDocument(document_id=document_id, title=title, raw_text=raw_text)

    def summary_urls(self, date: Optional[str] = None) -> List[str]:
        """Candidate summary URLs, in the order they are tried."""
        if date:
            return [summary_url(date, self.base_url)]
        today = self.now()
        return [
            summary_url(gazette_date(today), self.base_url),
            summary_url(gazette_date(today - timedelta(days=1)), self.base_url),
            legacy_summary_url(self.base_url),
        ]

    async def fetch_latest(self, date: Optional[str] = None, fallback: bool = True) -> List[GazetteItem]:
        """
        Items of the latest available daily summary.

        Args:
            date: YYYYMMDD; when None, today, then yesterday, then the legacy endpoint
            fallback: serve FALLBACK_SOURCES when every URL fails or is empty

        Returns:
            Items of the first summary that yields any
        """
        for url in self.summary_urls(date):
            logger.info(f"🔍 Trying summary: {url}")
            try:
                response = await self._get(url)
            except httpx.HTTPError as e:
                logger.warning(f"Summary fetch failed for {url}: {e}")
                continue
            if response.status_code != 200:
                logger.debug(f"Summary {url} returned HTTP {response.status_code}")
                continue

            items = parse_summary(response.text)
            if items:
                logger.info(f"✅ Found {len(items)} items in {url}")
                return items

        if not fallback:
            return []
        logger.warning("⚠️  No summary available, serving fallback sources")
        return list(FALLBACK_SOURCES)


def mark_audited(items: Iterable[GazetteItem], contains: Callable[[str], bool]) -> List[GazetteItem]:
    """Set `already_audited` using a membership check (HistoryReconciler.contains)."""
    return [replace(item, already_audited=contains(item.document_id)) for item in items]
