import mimetypes

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from intavia.core.errors import AuthError
from intavia.core.service_dependency import get_blob_store
from intavia.services.storage_service import LocalBlobStore

router = APIRouter(prefix="/storage", tags=["Storage"])


@router.get("/{bucket}/{path:path}")
def download_blob(
    bucket: str,
    path: str,
    token: str = Query(...),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    """Serve a stored file to the holder of a signed URL."""
    if not blob_store.verify_signed_token(bucket, path, token):
        raise AuthError("Invalid or expired link")
    data = blob_store.download(bucket, path)
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)
