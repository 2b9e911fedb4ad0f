from typing import Optional

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile, status
from pydantic import BaseModel

from src.core.dependencies.governance import get_current_principal, get_request_governor
from src.core.exceptions import ValidationError
from src.core.governance import RequestGovernor
from src.domain.security.audit import AuditAction
from src.utils.security import (
    FILE_UPLOAD_DEFAULTS,
    FileMetadata,
    generate_secure_token,
    validate_file_upload,
)

router = APIRouter()


class UploadResponse(BaseModel):
    file_id: str
    name: str
    type: str
    size: int


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    request: Request,
    response: Response,
    file: UploadFile = File(...),
    principal: Optional[str] = Depends(get_current_principal),
    governor: RequestGovernor = Depends(get_request_governor),
):
    """
    Accept an image or PDF upload.

    Governed by the ``api`` rate limit policy and audited as
    ``resource.create``. Files failing the size, type or extension checks
    are rejected with ``400 VALIDATION_ERROR`` and an ``errors.file`` entry.
    """

    async def _accept() -> UploadResponse:
        content = await file.read()
        metadata = FileMetadata(
            name=file.filename or "",
            type=file.content_type or "",
            size=len(content),
        )
        result = validate_file_upload(metadata, FILE_UPLOAD_DEFAULTS)
        if not result.valid:
            raise ValidationError(errors={"file": [result.error]})
        return UploadResponse(
            file_id=generate_secure_token(16),
            name=metadata.name,
            type=metadata.type,
            size=metadata.size,
        )

    return await governor.handle(
        AuditAction.RESOURCE_CREATE,
        _accept,
        request=request,
        policy_name="api",
        actor_id=principal,
        resource_type="file",
        metadata={"filename": file.filename},
        response=response,
    )
