"""
Thumbnail upload/serve path. Images live on local disk under the asset root;
the video record only keeps the public URL.
"""

import logging
import os
from typing import Awaitable, Callable, Mapping, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from tubely.core.config import Settings
from tubely.core.errors import BadUpload, Forbidden, NotFound, StorageFailed
from tubely.core.security import get_bearer_token, validate_jwt
from tubely.database.schemas.video import VideoRecord
from tubely.database.videos import VideoRepository
from tubely.services.video_ingest import media_type_of, upload_size, validate_video_id
from tubely.utils.assets import ThumbnailStore

logger = logging.getLogger(__name__)

MAX_THUMBNAIL_SIZE = 10 << 20  # 10 MiB
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png")
THUMBNAIL_FORM_FIELD = "thumbnail"


def asset_url(settings: Settings, filename: str) -> str:
    return f"{settings.PUBLIC_BASE_URL}/assets/{filename}"


async def upload_thumbnail(
    video_id: str,
    authorization: Optional[str],
    load_form: Callable[[], Awaitable[Mapping]],
    *,
    settings: Settings,
    videos: VideoRepository,
    thumbnails: ThumbnailStore,
) -> VideoRecord:
    validate_video_id(video_id)
    user_id = validate_jwt(get_bearer_token(authorization), settings.JWT_SECRET)

    video = await videos.get(video_id)
    if video is None:
        raise NotFound("Couldn't find video")
    if video.user_id != user_id:
        raise Forbidden("Not authorized to update this video")

    upload = (await load_form()).get(THUMBNAIL_FORM_FIELD)
    if not isinstance(upload, UploadFile):
        raise BadUpload("Thumbnail file missing")
    if upload_size(upload) > MAX_THUMBNAIL_SIZE:
        raise BadUpload("File is too large")

    media_type = media_type_of(upload)
    if not media_type:
        raise BadUpload("Missing Content-Type for thumbnail")
    if media_type not in ALLOWED_IMAGE_TYPES:
        raise BadUpload("File format not accepted")

    logger.info("Uploading thumbnail for video %s by user %s", video_id, user_id)
    data = await upload.read()
    try:
        filename = await run_in_threadpool(thumbnails.save, data, media_type)
    except OSError as e:
        logger.exception("Failed to store thumbnail for video %s", video_id)
        raise StorageFailed(f"Failed to store thumbnail: {e}") from e

    return await videos.set_thumbnail_url(video_id, asset_url(settings, filename))


async def load_thumbnail(
    video_id: str,
    *,
    videos: VideoRepository,
    thumbnails: ThumbnailStore,
) -> Tuple[bytes, str]:
    validate_video_id(video_id)

    video = await videos.get(video_id)
    if video is None:
        raise NotFound("Couldn't find video")
    if not video.thumbnail_url:
        raise NotFound("Thumbnail not found")

    found = thumbnails.load(os.path.basename(video.thumbnail_url))
    if found is None:
        raise NotFound("Thumbnail not found")
    return found
