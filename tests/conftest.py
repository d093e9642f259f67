import io
import os
from datetime import datetime

import pytest
from starlette.datastructures import Headers, UploadFile

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("AWS_S3_BUCKET", "tubely-test-bucket")
os.environ.setdefault("AWS_REGION", "us-east-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from tubely.core.config import Settings  # noqa: E402
from tubely.core.errors import RecordUpdateFailed, StorageFailed  # noqa: E402
from tubely.core.security import make_jwt  # noqa: E402
from tubely.database.schemas.video import VideoRecord  # noqa: E402

OWNER_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"
OTHER_USER_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"
VIDEO_ID = "550e8400-e29b-41d4-a716-446655440000"


class InMemoryVideoRepository:
    def __init__(self, records=(), fail_updates=False):
        self.records = {r.id: r.model_copy() for r in records}
        self.fail_updates = fail_updates
        self.updates = []

    async def create(self, record):
        self.records[record.id] = record.model_copy()
        return record

    async def get(self, video_id):
        record = self.records.get(video_id)
        return record.model_copy() if record else None

    async def list_for_user(self, user_id):
        return [r.model_copy() for r in self.records.values() if r.user_id == user_id]

    async def set_video_url(self, video_id, key):
        return self._set_fields(video_id, video_url=key)

    async def set_thumbnail_url(self, video_id, url):
        return self._set_fields(video_id, thumbnail_url=url)

    def _set_fields(self, video_id, **changes):
        if self.fail_updates:
            raise RecordUpdateFailed("Failed to update video record: connection reset")
        if video_id not in self.records:
            raise RecordUpdateFailed(f"Video {video_id} disappeared before update")
        stored = self.records[video_id].model_copy(update=dict(changes, updated_at=datetime.utcnow()))
        self.records[video_id] = stored
        self.updates.append(changes)
        return stored.model_copy()


class RecordingObjectStore:
    """Keeps uploads in memory; snapshots file contents at upload time."""

    def __init__(self, fail=False):
        self.fail = fail
        self.uploads = {}
        self.bucket = "tubely-test-bucket"

    def upload_file(self, local_path, key, content_type="video/mp4"):
        if self.fail:
            raise StorageFailed("Failed to upload video to storage: AccessDenied")
        with open(local_path, "rb") as f:
            self.uploads[key] = (f.read(), content_type)

    def presign(self, key, expires_in):
        return f"https://{self.bucket}.s3.us-east-2.amazonaws.com/{key}?X-Amz-Expires={expires_in}&X-Amz-Signature=abc"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    s = Settings()
    s.JWT_SECRET = "test-secret"
    s.TEMP_DIR = str(tmp_path / "tmp")
    s.ASSETS_ROOT = str(tmp_path / "assets")
    s.PUBLIC_BASE_URL = "http://localhost:8091"
    s.PRESIGN_TTL_SECONDS = 300
    return s


@pytest.fixture
def owner_token(settings):
    return f"Bearer {make_jwt(OWNER_ID, settings.JWT_SECRET)}"


@pytest.fixture
def other_token(settings):
    return f"Bearer {make_jwt(OTHER_USER_ID, settings.JWT_SECRET)}"


@pytest.fixture
def video_record():
    return VideoRecord(id=VIDEO_ID, user_id=OWNER_ID, title="Boots", description="demo")


@pytest.fixture
def videos(video_record):
    return InMemoryVideoRepository([video_record])


@pytest.fixture
def store():
    return RecordingObjectStore()


def make_upload(data=b"\x00\x00\x00\x18ftypmp42", content_type="video/mp4", size=None, filename="clip.mp4"):
    return UploadFile(
        file=io.BytesIO(data),
        size=len(data) if size is None else size,
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def form_loader(form):
    async def load():
        return form
    return load
