"""
Shared router dependencies and error mapping.
"""
from fastapi import HTTPException, Request

from radar.errors import (
    AnalysisError,
    AnalysisUnavailableError,
    CredentialError,
    MalformedAnalysisError,
    RecordValidationError,
)
from services.container import AuditServices


ANALYSIS_STATUS = {
    CredentialError: 401,
    AnalysisUnavailableError: 503,
    MalformedAnalysisError: 502,
}

ANALYSIS_MESSAGES = {
    'credential': "The analysis API key is missing or was rejected. Check your key and try again.",
    'unavailable': "The analysis service is unavailable right now. Try again later.",
    'malformed': "The analysis service returned an unusable response.",
}


def get_services(request: Request) -> AuditServices:
    """Services built at startup (see main.lifespan)."""
    return request.app.state.services


def analysis_http_error(error: AnalysisError) -> HTTPException:
    status = ANALYSIS_STATUS.get(type(error), 502)
    return HTTPException(
        status_code=status,
        detail={
            'category': error.category,
            'message': ANALYSIS_MESSAGES.get(error.category, str(error)),
            'reason': str(error),
        },
    )


def validation_http_error(error: RecordValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={'document_id': error.document_id, 'message': str(error)},
    )
