"""
Video record store backed by the ``videos`` MongoDB collection.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import Request
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from tubely.core.errors import RecordUpdateFailed
from tubely.database.schemas.video import VideoRecord

logger = logging.getLogger(__name__)


class VideoRepository:
    def __init__(self, collection):
        self.collection = collection

    async def create(self, record: VideoRecord) -> VideoRecord:
        await self.collection.insert_one(record.to_document())
        logger.info("Created video %s for user %s", record.id, record.user_id)
        return record

    async def get(self, video_id: str) -> Optional[VideoRecord]:
        doc = await self.collection.find_one({"_id": video_id})
        if doc is None:
            return None
        return VideoRecord.model_validate(doc)

    async def list_for_user(self, user_id: str) -> List[VideoRecord]:
        cursor = self.collection.find({"user_id": user_id}).sort("created_at", -1)
        return [VideoRecord.model_validate(doc) async for doc in cursor]

    async def set_video_url(self, video_id: str, key: str) -> VideoRecord:
        """Assigns the object key and leaves every other field as stored."""
        return await self._set_fields(video_id, {"video_url": key})

    async def set_thumbnail_url(self, video_id: str, url: str) -> VideoRecord:
        return await self._set_fields(video_id, {"thumbnail_url": url})

    async def _set_fields(self, video_id: str, changes: dict) -> VideoRecord:
        """
        Raises:
            RecordUpdateFailed: the document no longer exists or the driver failed
        """
        changes = dict(changes, updated_at=datetime.utcnow())
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": video_id},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.exception("Failed to update video %s", video_id)
            raise RecordUpdateFailed(f"Failed to update video record: {e}") from e

        if doc is None:
            logger.warning("No video found for id=%s", video_id)
            raise RecordUpdateFailed(f"Video {video_id} disappeared before update")
        return VideoRecord.model_validate(doc)


def get_video_repository(request: Request) -> VideoRepository:
    mongodb = request.app.state.mongodb
    if not mongodb.connected:
        raise RuntimeError("MongoDB not initialized")
    return VideoRepository(mongodb.db["videos"])
