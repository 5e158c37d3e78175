"""Helper methods for the API."""

from fastapi import Depends, HTTPException, Request, UploadFile

from quickstage.config import Settings, get_settings
from quickstage.connections import CONNECTIONS, object_store, s3_enabled
from quickstage.errors import UpstreamError, ValidationError
from quickstage.objectstorage.store import ObjectStore

MB = 1024 * 1024


def get_store(settings: Settings = Depends(get_settings)) -> ObjectStore:
    """The object store, backed by the s3 client started in the app lifespan"""
    if not s3_enabled(settings) or CONNECTIONS.s3_client is None:
        raise UpstreamError("Object storage is not configured or not started")
    return object_store(settings)


def enforce_max_upload_size(request: Request, file: UploadFile, max_mb: int) -> None:
    """Refuse uploads larger than max_mb, checking Content-Length first and the received file second"""
    max_bytes = max_mb * MB
    cl = request.headers.get("content-length")
    if cl and cl.isdigit() and int(cl) > max_bytes:
        raise ValidationError(f"Upload too large. Maximum size is {max_mb} MB", status_code=413)

    size = file.size
    if size is None:
        file.file.seek(0, 2)
        size = file.file.tell()
        file.file.seek(0)
    if size > max_bytes:
        raise ValidationError(f"Upload too large. Maximum size is {max_mb} MB", status_code=413)


def not_found(detail: str = "Not found") -> HTTPException:
    return HTTPException(status_code=404, detail=detail)
