import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from tubely.api.routes_thumbnails import router as thumbnails_router
from tubely.api.routes_videos import router as videos_router
from tubely.core.config import settings
from tubely.core.database import MongoDB
from tubely.core.errors import TubelyError, tubely_error_handler
from tubely.utils.assets import ThumbnailStore

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Tubely")
app.state.thumbnail_store = ThumbnailStore(settings.ASSETS_ROOT)
app.state.mongodb = MongoDB(settings.MONGO_URI, settings.MONGO_DB)

@app.on_event("startup")
async def startup_event():
    app.state.thumbnail_store.ensure_root()
    app.state.mongodb.connect()

@app.on_event("shutdown")
async def shutdown_event():
    app.state.mongodb.close()

app.add_exception_handler(TubelyError, tubely_error_handler)

app.include_router(videos_router, prefix="/api", tags=["videos"])
app.include_router(thumbnails_router, prefix="/api", tags=["thumbnails"])
app.mount("/assets", StaticFiles(directory=settings.ASSETS_ROOT, check_dir=False), name="assets")

# Allow CORS (for frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Replace with your frontend URL in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"message": "Tubely API is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT)
