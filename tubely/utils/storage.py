import logging
from functools import lru_cache
from typing import Optional

import boto3
from boto3.exceptions import Boto3Error
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from tubely.core.config import Settings, get_settings
from tubely.core.errors import StorageFailed
from tubely.database.schemas.video import VideoRecord
from tubely.utils.media import AspectClass

logger = logging.getLogger(__name__)

VIDEO_CONTENT_TYPE = "video/mp4"


def video_object_key(aspect: AspectClass, video_id: str) -> str:
    aspect_name = aspect.value if isinstance(aspect, AspectClass) else str(aspect)
    return f"{aspect_name}/{video_id}.mp4"


class ObjectStore:
    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    def upload_file(self, local_path: str, key: str, content_type: str = VIDEO_CONTENT_TYPE) -> None:
        """
        Single managed transfer of ``local_path`` to ``key``; not retried here.

        Raises:
            StorageFailed: missing bucket, credentials or any S3 error
        """
        if not self.bucket:
            raise StorageFailed("AWS_S3_BUCKET is not set")
        try:
            self.client.upload_file(
                Filename=local_path,
                Bucket=self.bucket,
                Key=key,
                ExtraArgs={"ContentType": content_type},
            )
        except (BotoCoreError, ClientError, Boto3Error) as e:
            logger.error("S3 upload of %s failed: %s", key, e)
            raise StorageFailed(f"Failed to upload video to storage: {e}") from e
        logger.info("Uploaded %s to s3://%s/%s", local_path, self.bucket, key)

    def presign(self, key: str, expires_in: int) -> str:
        return self.client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )


def make_s3_client(settings: Settings):
    return boto3.client(
        "s3",
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region_name=settings.AWS_REGION,
        config=Config(signature_version="s3v4"),
    )


@lru_cache
def get_object_store() -> ObjectStore:
    settings = get_settings()
    return ObjectStore(make_s3_client(settings), settings.AWS_S3_BUCKET)


def sign_video(store: ObjectStore, record: VideoRecord, expires_in: int) -> VideoRecord:
    """
    Returns a copy of ``record`` whose ``video_url`` is a presigned URL.

    Records that were never ingested come back unchanged.
    """
    key: Optional[str] = record.video_url
    if not key:
        return record
    return record.model_copy(update={"video_url": store.presign(key, expires_in)})
