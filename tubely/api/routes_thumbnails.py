from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import Response

from tubely.api.dependencies import get_thumbnail_store
from tubely.core.config import Settings, get_settings
from tubely.database.videos import VideoRepository, get_video_repository
from tubely.services.thumbnails import load_thumbnail, upload_thumbnail
from tubely.utils.assets import ThumbnailStore

router = APIRouter()


@router.post("/thumbnail_upload/{video_id}")
async def post_thumbnail(
    video_id: str,
    request: Request,
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    videos: VideoRepository = Depends(get_video_repository),
    thumbnails: ThumbnailStore = Depends(get_thumbnail_store),
):
    record = await upload_thumbnail(
        video_id,
        authorization,
        request.form,
        settings=settings,
        videos=videos,
        thumbnails=thumbnails,
    )
    return record.model_dump(mode="json")


@router.get("/thumbnails/{video_id}")
async def get_thumbnail(
    video_id: str,
    videos: VideoRepository = Depends(get_video_repository),
    thumbnails: ThumbnailStore = Depends(get_thumbnail_store),
):
    data, media_type = await load_thumbnail(video_id, videos=videos, thumbnails=thumbnails)
    return Response(
        content=data,
        media_type=media_type,
        headers={"Cache-Control": "no-store"},
    )
