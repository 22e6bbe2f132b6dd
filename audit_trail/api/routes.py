"""
API routes for the Audit Trail endpoint.

A single path is verb-dispatched, mirroring the hosted script endpoint the
dashboard page was written against. The request body of a POST is parsed
without checking its content type, so a browser can post ``text/plain``
JSON and skip the CORS preflight.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..errors import ValidationError
from ..gateway import EntryGateway, GatewayResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Audit Trail"])

ENDPOINT_PATH = "/exec"


# --- Dependencies ---


def get_gateway(request: Request) -> EntryGateway:
    """Get the entry gateway from app state."""
    return request.app.state.gateway


def _reject_constant(token: str) -> None:
    # NaN and Infinity cannot be rendered back into a JSON response
    raise ValueError(f"Unsupported JSON constant: {token}")


# --- Routes ---


@router.get(ENDPOINT_PATH)
async def exec_get(
    request: Request,
    gateway: EntryGateway = Depends(get_gateway),
) -> JSONResponse:
    """
    Read entries.

    Only ``?action=read`` is routed; any other action yields an error
    envelope.
    """
    envelope = await gateway.handle_get(request.query_params)
    return JSONResponse(envelope)


@router.post(ENDPOINT_PATH)
async def exec_post(
    request: Request,
    gateway: EntryGateway = Depends(get_gateway),
) -> JSONResponse:
    """
    Create or delete an entry.

    Create body: ``{timestamp, assetCode, description, action, user,
    location, notes, value}``.
    Delete body: ``{action: "delete", rowNumber}``.
    """
    raw = await request.body()
    try:
        body = json.loads(raw, parse_constant=_reject_constant) if raw.strip() else {}
    except ValueError as e:
        logger.warning(f"Rejected request body that is not JSON: {e}")
        error = ValidationError(f"Invalid JSON body: {e}")
        return JSONResponse(GatewayResult(error=error).to_envelope())

    envelope = await gateway.handle_post(body)
    return JSONResponse(envelope)
