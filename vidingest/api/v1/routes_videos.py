from __future__ import annotations

from fastapi import APIRouter, File, UploadFile, status

from vidingest.api import deps
from vidingest.ingest.errors import IngestError
from vidingest.services.ingest_service import UploadedMedia

from . import schemas


router = APIRouter(prefix="/videos", tags=["videos"])


def as_uploaded_media(upload: UploadFile | None) -> UploadedMedia | None:
    if upload is None:
        return None
    return UploadedMedia(
        stream=upload.file,
        content_type=upload.content_type,
        size=upload.size,
        filename=upload.filename,
    )


@router.post("", response_model=schemas.VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: schemas.VideoCreateRequest,
    records: deps.RecordStoreDependency,
    user_id: deps.CurrentUser,
) -> schemas.VideoResponse:
    record = await records.create_record(user_id=user_id, title=payload.title, description=payload.description)
    return schemas.VideoResponse.model_validate(record)


@router.get("/{video_id}", response_model=schemas.VideoResponse)
async def get_video(
    video_id: str,
    service: deps.IngestServiceDependency,
    user_id: deps.CurrentUser,
) -> schemas.VideoResponse:
    try:
        record = await service.get_video(video_id, user_id)
    except IngestError as exc:
        raise deps.to_http_error(exc) from exc
    return schemas.VideoResponse.model_validate(record)


@router.post(
    "/{video_id}/upload",
    response_model=schemas.VideoResponse,
    responses={
        400: {"model": schemas.ErrorResponse},
        403: {"model": schemas.ErrorResponse},
        404: {"model": schemas.ErrorResponse},
        422: {"model": schemas.ErrorResponse},
        502: {"model": schemas.ErrorResponse},
    },
)
async def upload_video(
    video_id: str,
    service: deps.IngestServiceDependency,
    user_id: deps.CurrentUser,
    video: UploadFile | None = File(default=None),
) -> schemas.VideoResponse:
    """Probe, remux and store an MP4 for ``video_id``; respond with a signed playback URL."""
    try:
        record = await service.ingest_video(video_id, user_id, as_uploaded_media(video))
    except IngestError as exc:
        raise deps.to_http_error(exc) from exc
    finally:
        if video is not None:
            await video.close()
    return schemas.VideoResponse.model_validate(record)


__all__ = ["router", "as_uploaded_media"]
