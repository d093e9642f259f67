"""
Video ingestion pipeline.

validate -> authenticate -> authorize -> persist temp copy -> ffprobe ->
ffmpeg faststart remux -> S3 upload -> record update. Every temp file created
along the way is removed before the request returns, whichever stage fails.
"""

import logging
import os
import re
import shutil
from contextlib import ExitStack
from typing import Awaitable, Callable, Mapping, Optional

from fastapi.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from tubely.core.config import Settings
from tubely.core.errors import BadUpload, Forbidden, InvalidIdentifier, NotFound, StorageFailed
from tubely.core.security import get_bearer_token, validate_jwt
from tubely.database.schemas.video import VideoRecord
from tubely.database.videos import VideoRepository
from tubely.utils.media import processed_path_for, probe_aspect_ratio, remux_faststart
from tubely.utils.storage import VIDEO_CONTENT_TYPE, ObjectStore, video_object_key
from tubely.utils.temp_files import temp_artifact, tracked_path

logger = logging.getLogger(__name__)

UUID_REGEX = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

MAX_UPLOAD_SIZE = 1 << 30  # 1 GiB
# multipart boundaries and part headers on top of the file itself
MULTIPART_SLACK = 1 << 20
VIDEO_FORM_FIELD = "video"


def is_valid_uuid(value: str) -> bool:
    return isinstance(value, str) and UUID_REGEX.match(value) is not None


def validate_video_id(video_id: Optional[str]) -> str:
    if not video_id:
        raise InvalidIdentifier("Missing videoId parameter")
    if not is_valid_uuid(video_id):
        raise InvalidIdentifier("Invalid videoId: must be a valid UUID")
    return video_id


def upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def media_type_of(upload: UploadFile) -> str:
    return (upload.content_type or "").split(";")[0].strip().lower()


def check_video_upload(form: Mapping) -> UploadFile:
    """
    Picks the ``video`` part out of the form and rejects it if it is missing,
    too large or not an MP4. Nothing is written to disk here.
    """
    upload = form.get(VIDEO_FORM_FIELD)
    if not isinstance(upload, UploadFile):
        raise BadUpload("Video file missing")

    if upload_size(upload) > MAX_UPLOAD_SIZE:
        raise BadUpload("File exceeds size limit (1GB)")

    if media_type_of(upload) != VIDEO_CONTENT_TYPE:
        raise BadUpload("Invalid file type, only MP4 is allowed")

    return upload


def write_upload(upload: UploadFile, destination: str) -> None:
    upload.file.seek(0)
    with open(destination, "wb") as buffer:
        shutil.copyfileobj(upload.file, buffer)


async def ingest_video(
    video_id: str,
    authorization: Optional[str],
    load_form: Callable[[], Awaitable[Mapping]],
    *,
    settings: Settings,
    videos: VideoRepository,
    store: ObjectStore,
    declared_length: Optional[int],
    prober: Callable[[str, str], object] = probe_aspect_ratio,
    remuxer: Callable[[str, str], str] = remux_faststart,
) -> VideoRecord:
    """
    Runs one upload through the pipeline and returns the updated record.

    Args:
        video_id: id from the request path
        authorization: raw ``Authorization`` header
        load_form: reads the multipart body; only awaited once the caller
            is known to own the video
        declared_length: request ``Content-Length``. Bodies without one
            (chunked) and obviously oversized bodies are refused before
            the form is parsed
        prober / remuxer: blocking media tools, run in the threadpool

    Raises:
        TubelyError: one subclass per failed stage, see ``tubely.core.errors``
    """
    validate_video_id(video_id)

    token = get_bearer_token(authorization)
    user_id = validate_jwt(token, settings.JWT_SECRET)

    video = await videos.get(video_id)
    if video is None:
        raise NotFound("Couldn't find video")
    if video.user_id != user_id:
        raise Forbidden("User is not video owner")

    if declared_length is None:
        raise BadUpload("Content-Length header required")
    if declared_length > MAX_UPLOAD_SIZE + MULTIPART_SLACK:
        raise BadUpload("File exceeds size limit (1GB)")

    upload = check_video_upload(await load_form())
    logger.info("Ingesting video %s for user %s", video_id, user_id)

    with ExitStack() as cleanup:
        try:
            raw_path = cleanup.enter_context(temp_artifact(settings.TEMP_DIR, video_id))
            await run_in_threadpool(write_upload, upload, raw_path)
        except OSError as e:
            logger.exception("Failed to stage upload for video %s", video_id)
            raise StorageFailed(f"Failed to stage upload: {e}") from e

        aspect = await run_in_threadpool(prober, raw_path, settings.FFPROBE_BIN)
        logger.info("Video %s aspect class: %s", video_id, aspect.value)

        # registered before ffmpeg starts so a half-written output is removed too
        expected_output = processed_path_for(raw_path)
        cleanup.enter_context(tracked_path(expected_output))
        processed_path = await run_in_threadpool(remuxer, raw_path, settings.FFMPEG_BIN)
        if processed_path != expected_output:
            cleanup.enter_context(tracked_path(processed_path))

        key = video_object_key(aspect, video_id)
        await run_in_threadpool(store.upload_file, processed_path, key, VIDEO_CONTENT_TYPE)

        # The object is already in the bucket; a failure here leaves it orphaned.
        updated = await videos.set_video_url(video_id, key)

    logger.info("Video %s stored at %s", video_id, key)
    return updated
