import os
import threading

import pytest
from fastapi.testclient import TestClient

from conftest import VIDEO_ID, make_upload
from main import app
from tubely.api.dependencies import get_thumbnail_store
from tubely.core.config import get_settings
from tubely.database.videos import get_video_repository
from tubely.services.thumbnails import MAX_THUMBNAIL_SIZE, upload_thumbnail
from tubely.utils.assets import ThumbnailStore, media_type_to_ext

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def thumbnails(settings):
    return ThumbnailStore(settings.ASSETS_ROOT)


@pytest.fixture
def client(settings, videos, thumbnails):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_video_repository] = lambda: videos
    app.dependency_overrides[get_thumbnail_store] = lambda: thumbnails
    yield TestClient(app)
    app.dependency_overrides.clear()


def post_thumbnail(client, token, data=PNG_BYTES, content_type="image/png", video_id=VIDEO_ID):
    headers = {"Authorization": token} if token else {}
    return client.post(
        f"/api/thumbnail_upload/{video_id}",
        files={"thumbnail": ("thumb", data, content_type)},
        headers=headers,
    )


@pytest.mark.parametrize(
    "media_type,ext",
    [("image/png", ".png"), ("image/jpeg", ".jpeg"), ("video/mp4", ".mp4"), ("garbage", ".bin"), ("a/b/c", ".bin")],
)
def test_media_type_to_ext(media_type, ext):
    assert media_type_to_ext(media_type) == ext


def test_store_rejects_path_escape(thumbnails):
    with pytest.raises(ValueError):
        thumbnails.path_for("../secrets.txt")
    assert thumbnails.load("../secrets.txt") is None


def test_upload_and_serve_png(client, owner_token, videos, settings):
    response = post_thumbnail(client, owner_token)

    assert response.status_code == 200
    url = response.json()["thumbnail_url"]
    assert url.startswith("http://localhost:8091/assets/")
    assert url.endswith(".png")
    assert videos.records[VIDEO_ID].thumbnail_url == url
    assert os.path.exists(os.path.join(settings.ASSETS_ROOT, os.path.basename(url)))

    served = client.get(f"/api/thumbnails/{VIDEO_ID}")
    assert served.status_code == 200
    assert served.content == PNG_BYTES
    assert served.headers["content-type"] == "image/png"
    assert served.headers["cache-control"] == "no-store"


def test_upload_jpeg(client, owner_token):
    response = post_thumbnail(client, owner_token, data=b"\xff\xd8\xff\xe0", content_type="image/jpeg")
    assert response.status_code == 200
    assert response.json()["thumbnail_url"].endswith(".jpeg")

    served = client.get(f"/api/thumbnails/{VIDEO_ID}")
    assert served.headers["content-type"] == "image/jpeg"


def test_filenames_are_random(client, owner_token):
    first = post_thumbnail(client, owner_token).json()["thumbnail_url"]
    second = post_thumbnail(client, owner_token).json()["thumbnail_url"]
    assert first != second


@pytest.mark.parametrize("content_type", ["image/gif", "application/pdf", "video/mp4"])
def test_rejects_other_formats(client, owner_token, content_type):
    response = post_thumbnail(client, owner_token, content_type=content_type)
    assert response.status_code == 400
    assert response.json()["error"] == "File format not accepted"


def test_rejects_large_thumbnail(client, owner_token):
    response = post_thumbnail(client, owner_token, data=b"\x00" * (MAX_THUMBNAIL_SIZE + 1))
    assert response.status_code == 400
    assert response.json()["error"] == "File is too large"


def test_non_owner_writes_nothing(client, other_token, settings):
    response = post_thumbnail(client, other_token)
    assert response.status_code == 403
    assert not os.path.exists(settings.ASSETS_ROOT) or os.listdir(settings.ASSETS_ROOT) == []


def test_upload_requires_auth(client):
    assert post_thumbnail(client, None).status_code == 401


def test_get_missing_thumbnail(client):
    assert client.get(f"/api/thumbnails/{VIDEO_ID}").status_code == 404
    assert client.get("/api/thumbnails/6ba7b810-9dad-11d1-80b4-00c04fd430c8").status_code == 404


def test_get_thumbnail_file_removed(client, owner_token, settings):
    url = post_thumbnail(client, owner_token).json()["thumbnail_url"]
    os.remove(os.path.join(settings.ASSETS_ROOT, os.path.basename(url)))
    assert client.get(f"/api/thumbnails/{VIDEO_ID}").status_code == 404


@pytest.mark.anyio
async def test_thumbnail_written_off_the_event_loop(settings, videos, owner_token):
    loop_thread = threading.current_thread()
    writers = []

    class RecordingStore(ThumbnailStore):
        def save(self, data, media_type):
            writers.append(threading.current_thread())
            return super().save(data, media_type)

    async def load_form():
        return {"thumbnail": make_upload(PNG_BYTES, content_type="image/png", filename="t.png")}

    record = await upload_thumbnail(
        VIDEO_ID, owner_token, load_form,
        settings=settings, videos=videos, thumbnails=RecordingStore(settings.ASSETS_ROOT),
    )

    assert record.thumbnail_url.endswith(".png")
    assert len(writers) == 1
    assert writers[0] is not loop_thread


def test_unwritable_asset_root_returns_json_error(settings, videos, owner_token, tmp_path):
    blocker = tmp_path / "assets-file"
    blocker.write_bytes(b"")
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_video_repository] = lambda: videos
    app.dependency_overrides[get_thumbnail_store] = lambda: ThumbnailStore(str(blocker / "nested"))
    try:
        response = post_thumbnail(TestClient(app), owner_token)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"].startswith("Failed to store thumbnail")
    assert videos.records[VIDEO_ID].thumbnail_url is None
