from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

class VideoRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    user_id: str

    title: str = ""
    description: str = ""

    thumbnail_url: Optional[str] = None
    # Object key ("landscape/<id>.mp4") once ingested. Swapped for a presigned
    # URL only in read responses, never stored as a URL.
    video_url: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class VideoCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
