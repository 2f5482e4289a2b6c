"""Serve stored media objects."""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from telxtab.core import storage

router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("/{bucket}/{path:path}")
async def get_object(bucket: str, path: str) -> FileResponse:
    """Public read access to any object in a known bucket."""
    try:
        target = storage.read(bucket, path)
    except storage.ObjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except storage.StorageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return FileResponse(target)
