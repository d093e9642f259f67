from fastapi import Request

from tubely.utils.assets import ThumbnailStore


def get_thumbnail_store(request: Request) -> ThumbnailStore:
    return request.app.state.thumbnail_store
