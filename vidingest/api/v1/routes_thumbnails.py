from __future__ import annotations

from fastapi import APIRouter, File, Response, UploadFile

from vidingest.api import deps
from vidingest.ingest.errors import IngestError

from . import schemas
from .routes_videos import as_uploaded_media


router = APIRouter(prefix="/thumbnails", tags=["thumbnails"])


@router.get("/{video_id}", response_class=Response, responses={200: {"content": {"image/png": {}, "image/jpeg": {}}}})
async def get_thumbnail(video_id: str, service: deps.IngestServiceDependency) -> Response:
    try:
        entry = await service.get_thumbnail(video_id)
    except IngestError as exc:
        raise deps.to_http_error(exc) from exc
    return Response(content=entry.data, media_type=entry.media_type, headers={"Cache-Control": "no-store"})


@router.post("/{video_id}", response_model=schemas.VideoResponse)
async def upload_thumbnail(
    video_id: str,
    service: deps.IngestServiceDependency,
    user_id: deps.CurrentUser,
    thumbnail: UploadFile | None = File(default=None),
) -> schemas.VideoResponse:
    try:
        record = await service.ingest_thumbnail(video_id, user_id, as_uploaded_media(thumbnail))
    except IngestError as exc:
        raise deps.to_http_error(exc) from exc
    finally:
        if thumbnail is not None:
            await thumbnail.close()
    return schemas.VideoResponse.model_validate(record)


__all__ = ["router"]
