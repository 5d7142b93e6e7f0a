"""Launch-data verification and re-signing route."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from resigner.core.resigner import CredentialResigner
from resigner.exceptions import MisconfiguredServerError, VerificationError

router = APIRouter(prefix="/api/verify", tags=["Verify"])

_audit_logger = logging.getLogger("resigner.audit")


class VerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    init_data: str = Field(alias="initData", max_length=65536)


class VerifyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    init_data: str = Field(serialization_alias="initData")


def get_resigner(request: Request) -> CredentialResigner:
    resigner: CredentialResigner | None = getattr(request.app.state, "resigner", None)
    if resigner is None:
        raise MisconfiguredServerError()
    return resigner


@router.post("", response_model=VerifyResponse, response_model_by_alias=True)
@router.post("/", response_model=VerifyResponse, response_model_by_alias=True, include_in_schema=False)
async def verify_init_data(req: VerifyRequest, request: Request):
    """Verify upstream launch data and return it re-signed for the downstream client."""
    resigner = get_resigner(request)
    try:
        reissued = resigner.reissue(req.init_data)
    except VerificationError as exc:
        _audit_logger.warning(
            "Re-sign rejected (%s): %s %s from %s",
            exc.error_type,
            request.method,
            request.url.path,
            request.client.host if request.client else "unknown",
            extra={
                "event_category": "audit",
                "action": "resign_rejected",
                "reason": exc.error_type,
                "path": request.url.path,
            },
        )
        raise
    return VerifyResponse(init_data=reissued)
