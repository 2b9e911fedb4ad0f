from typing import Literal, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, Field

from src.core.dependencies.governance import get_current_principal, get_request_governor
from src.core.exceptions import ValidationError, assert_authenticated
from src.core.governance import RequestGovernor
from src.core.logging import logger
from src.domain.security.audit import AuditAction
from src.domain.validation.validators import SafeString
from src.utils.security import generate_secure_token, has_sql_injection_patterns

router = APIRouter()


class ReportRequest(BaseModel):
    title: SafeString = Field(max_length=200)
    description: Optional[SafeString] = Field(default=None, max_length=2000)
    format: Literal["csv", "pdf"] = "csv"


class ReportResponse(BaseModel):
    report_id: str
    title: str
    format: str
    requested_by: str


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def generate_report(
    payload: ReportRequest,
    request: Request,
    response: Response,
    principal: Optional[str] = Depends(get_current_principal),
    governor: RequestGovernor = Depends(get_request_governor),
):
    """
    Queue a report export for the authenticated caller.

    Governed by the ``report`` rate limit policy and audited as
    ``export.generate``.
    """

    def _generate() -> ReportResponse:
        assert_authenticated(principal)
        if not payload.title:
            raise ValidationError(errors={"title": ["Title must not be empty"]})
        if has_sql_injection_patterns(payload.title):
            logger.warning("report_title_suspicious", actor_id=principal, title=payload.title)
        return ReportResponse(
            report_id=generate_secure_token(16),
            title=payload.title,
            format=payload.format,
            requested_by=principal,
        )

    return await governor.handle(
        AuditAction.EXPORT_GENERATE,
        _generate,
        request=request,
        policy_name="report",
        actor_id=principal,
        resource_type="report",
        metadata={"format": payload.format},
        response=response,
    )
