# pyright: reportMissingTypeStubs=false
"""
Physician matching endpoint.

Failures never escape as exceptions: invalid input answers 400 and any
upstream problem answers 500, both with an empty ``physicians`` list so the
client can render its "no matches" state.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from auth.dependencies import UserContext, get_current_user
from services.matching_service import MatchingError, PhysicianMatchRequest, matching_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _error_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "physicians": []})


def _describe_validation_error(e: ValidationError) -> str:
    first = e.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"Invalid {field}: {first.get('msg', 'invalid value')}"


@router.post("/match-physicians", summary="Match physicians to a patient's needs")
async def match_physicians(
    request: Request,
    current_user: UserContext = Depends(get_current_user)
) -> JSONResponse:
    """
    Forward the patient's criteria to the model gateway.

    The body is validated before any upstream call is made.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error_response(status.HTTP_400_BAD_REQUEST, "Request body must be valid JSON")

    if not isinstance(body, dict):
        return _error_response(status.HTTP_400_BAD_REQUEST, "Request body must be a JSON object")

    try:
        match_request = PhysicianMatchRequest.model_validate(body)
    except ValidationError as e:
        return _error_response(status.HTTP_400_BAD_REQUEST, _describe_validation_error(e))

    try:
        physicians = await matching_service.match(match_request)
    except MatchingError as e:
        logger.error(f"Physician matching failed for user {current_user.user_id}: {e}")
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
    except Exception as e:
        logger.exception(f"Unexpected error in physician matching: {e}")
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unknown error")

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"physicians": [p.model_dump(by_alias=True) for p in physicians]},
    )
