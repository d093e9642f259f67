import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, status

from tubely.core.config import Settings, get_settings
from tubely.core.errors import NotFound
from tubely.core.security import get_bearer_token, validate_jwt
from tubely.database.schemas.video import VideoCreate, VideoRecord
from tubely.database.videos import VideoRepository, get_video_repository
from tubely.services.video_ingest import ingest_video, validate_video_id
from tubely.utils.storage import ObjectStore, get_object_store, sign_video

router = APIRouter()


@router.post("/videos", status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: VideoCreate,
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    videos: VideoRepository = Depends(get_video_repository),
):
    user_id = validate_jwt(get_bearer_token(authorization), settings.JWT_SECRET)

    record = VideoRecord(
        id=str(uuid.uuid4()),
        user_id=user_id,
        title=payload.title,
        description=payload.description,
    )
    await videos.create(record)
    return record.model_dump(mode="json")


@router.get("/videos")
async def list_videos(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    videos: VideoRepository = Depends(get_video_repository),
    store: ObjectStore = Depends(get_object_store),
):
    user_id = validate_jwt(get_bearer_token(authorization), settings.JWT_SECRET)

    records = await videos.list_for_user(user_id)
    return [
        sign_video(store, record, settings.PRESIGN_TTL_SECONDS).model_dump(mode="json")
        for record in records
    ]


@router.get("/videos/{video_id}")
async def get_video(
    video_id: str,
    settings: Settings = Depends(get_settings),
    videos: VideoRepository = Depends(get_video_repository),
    store: ObjectStore = Depends(get_object_store),
):
    validate_video_id(video_id)

    record = await videos.get(video_id)
    if record is None:
        raise NotFound("Couldn't find video")
    return sign_video(store, record, settings.PRESIGN_TTL_SECONDS).model_dump(mode="json")


@router.post("/video_upload/{video_id}")
async def upload_video(
    video_id: str,
    request: Request,
    settings: Settings = Depends(get_settings),
    videos: VideoRepository = Depends(get_video_repository),
    store: ObjectStore = Depends(get_object_store),
):
    content_length = request.headers.get("content-length")
    declared_length = int(content_length) if content_length and content_length.isdigit() else None

    record = await ingest_video(
        video_id,
        request.headers.get("authorization"),
        request.form,
        settings=settings,
        videos=videos,
        store=store,
        declared_length=declared_length,
    )
    return record.model_dump(mode="json")
