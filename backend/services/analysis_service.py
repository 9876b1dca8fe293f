"""
Audit Analyzer - LLM transparency audit of one gazette document

Sends the document text to the chat completions API in JSON mode and
returns the findings payload (gazette audit schema):

    nivel_transparencia   0-100
    analisis_critico      critical analysis
    resumen_ciudadano     plain-language summary
    resumen_tweet         short social summary
    banderas_rojas        red flags
    vencedores_vencidos   {ganadores, perdedores}
    comunidad_autonoma    region
    tipologia             category

Failures are raised as typed AnalysisErrors; nothing is retried here.
"""
import json
import logging
from typing import Any, Dict, Optional

import openai
from openai import AsyncOpenAI

from radar.errors import (
    AnalysisUnavailableError,
    CredentialError,
    MalformedAnalysisError,
    RecordValidationError,
)
from radar.types import FindingsView, normalize_findings

logger = logging.getLogger(__name__)


SYSTEM_INSTRUCTION = """
Eres un Agente de Inteligencia Cívica de Élite. Tu misión es desmantelar la opacidad del lenguaje legislativo español.
Analiza el BOE buscando:
- 'Gastos Fantasma': Partidas presupuestarias sin destino claro.
- 'Incongruencia Ideológica': Comparar el texto con promesas electorales previas o lógica de transparencia.
- 'Impacto de Género y Clase': Quiénes son los ganadores y perdedores socioeconómicos.

Tu respuesta debe ser un objeto JSON válido con estos campos:
- nivel_transparencia: número de 0 a 100
- analisis_critico: texto
- resumen_ciudadano: texto
- resumen_tweet: máximo 250 caracteres, con emojis y hashtags (#BOE #Opacidad #Transparencia)
- banderas_red_flags: lista de textos
- vencedores_vencidos: {"ganadores": [...], "perdedores": [...]}
- comunidad_autonoma: texto ("Estatal" si aplica a todo el país)
- tipologia: categoría temática corta (por ejemplo "Economía", "Vivienda")
"""

LANGUAGE_INSTRUCTIONS = {
    'es': "La respuesta DEBE estar íntegramente en ESPAÑOL.",
    'en': "The response MUST be entirely in ENGLISH.",
}


class AuditAnalyzer:
    """
    Analysis collaborator backed by an OpenAI-compatible chat model.

    The client is created on first use so the app can start without a key;
    the first audit then fails with CredentialError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        client: Optional[AsyncOpenAI] = None,
        max_chars: int = 30000,
    ):
        self.api_key = api_key
        self.model = model
        self.max_chars = max_chars
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise CredentialError("No analysis API key configured")
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    def build_prompt(self, text: str, language: str) -> str:
        lang_instruction = LANGUAGE_INSTRUCTIONS.get(language, LANGUAGE_INSTRUCTIONS['es'])
        return (
            "AUDITA ESTA LEY DEL BOE (XML):\n\n"
            f"{text[:self.max_chars]}\n\n"
            f"{lang_instruction}\n"
            "Proporciona un JSON con los campos especificados."
        )

    async def analyze(self, text: str, language: str = 'es') -> Dict[str, Any]:
        """
        Audit one document.

        Returns:
            Normalized findings payload (flags under `banderas_rojas`)

        Raises:
            CredentialError: missing or rejected API key
            AnalysisUnavailableError: transport, timeout, rate limit, server error
            MalformedAnalysisError: response is not a usable audit payload
        """
        client = self.client

        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_INSTRUCTION},
                    {"role": "user", "content": self.build_prompt(text, language)},
                ],
                response_format={"type": "json_object"},
                temperature=0.2,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise CredentialError(f"Analysis API rejected the credential: {e}") from e
        except openai.APIConnectionError as e:
            # Includes APITimeoutError
            raise AnalysisUnavailableError(f"Analysis API unreachable: {e}") from e
        except openai.APIStatusError as e:
            raise AnalysisUnavailableError(f"Analysis API error ({e.status_code}): {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise MalformedAnalysisError("Empty response from analysis model")

        try:
            raw = json.loads(content.strip())
        except ValueError as e:
            logger.warning(f"Failed to parse JSON from analysis response: {content[:200]}")
            raise MalformedAnalysisError("Invalid response format from analysis model") from e
        if not isinstance(raw, dict):
            raise MalformedAnalysisError("Analysis response is not a JSON object")

        findings = normalize_findings(raw)
        try:
            FindingsView.from_payload(findings)
        except RecordValidationError as e:
            raise MalformedAnalysisError(f"Analysis response failed validation: {e}") from e

        logger.info(f"🤖 Analysis complete: transparency={findings.get('nivel_transparencia')}")
        return findings
