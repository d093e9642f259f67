import os
import tempfile
from functools import lru_cache
from pathlib import Path
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent  # go up to project root

load_dotenv(BASE_DIR / ".env.development")
load_dotenv(BASE_DIR / ".env")


class Settings:
    def __init__(self):
        self.MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
        self.MONGO_DB: str = os.getenv("MONGO_DB", "tubely")

        self.AWS_S3_BUCKET: str = os.getenv("AWS_S3_BUCKET", "")
        self.AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")
        self.AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
        self.AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")

        self.JWT_SECRET: str = os.getenv("JWT_SECRET", "")
        self.PORT: int = int(os.getenv("PORT", "8091"))
        self.PUBLIC_BASE_URL: str = os.getenv(
            "PUBLIC_BASE_URL", f"http://localhost:{self.PORT}"
        ).rstrip("/")

        self.ASSETS_ROOT: str = os.getenv("ASSETS_ROOT", str(BASE_DIR / "assets"))
        self.TEMP_DIR: str = os.getenv("TEMP_DIR", tempfile.gettempdir())

        # presigned video URLs, in seconds
        self.PRESIGN_TTL_SECONDS: int = int(os.getenv("PRESIGN_TTL_SECONDS", "300"))

        self.FFPROBE_BIN: str = os.getenv("FFPROBE_BIN", "ffprobe")
        self.FFMPEG_BIN: str = os.getenv("FFMPEG_BIN", "ffmpeg")

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
