import json
import logging
import os
import subprocess
from enum import Enum

from tubely.core.errors import AnalysisFailed, TranscodeFailed

logger = logging.getLogger(__name__)

LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16
RATIO_TOLERANCE = 0.02

PROCESSED_SUFFIX = ".processed.mp4"


class AspectClass(str, Enum):
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


def classify_aspect_ratio(width: int, height: int) -> AspectClass:
    # Zero-sized streams show up in broken uploads; don't divide.
    if width == 0 or height == 0:
        return AspectClass.OTHER

    ratio = width / height
    if abs(ratio - LANDSCAPE_RATIO) < RATIO_TOLERANCE:
        return AspectClass.LANDSCAPE
    if abs(ratio - PORTRAIT_RATIO) < RATIO_TOLERANCE:
        return AspectClass.PORTRAIT
    return AspectClass.OTHER


def probe_aspect_ratio(video_path: str, ffprobe_bin: str = "ffprobe") -> AspectClass:
    """
    Reads the first video stream's geometry with ffprobe and classifies it.

    Args:
        video_path (str): Local path to the uploaded video
        ffprobe_bin (str): ffprobe executable

    Returns:
        AspectClass: landscape (16:9), portrait (9:16) or other

    Raises:
        AnalysisFailed: ffprobe failed, printed garbage, or found no video stream
    """

    # -v error           → only print errors on stderr
    # -select_streams    → first video stream only
    # -show_entries      → just width/height
    # -of json           → machine-readable output
    command = [
        ffprobe_bin,
        "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", "stream=width,height",
        "-of", "json",
        video_path,
    ]

    try:
        result = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=True,
        )
    except FileNotFoundError as e:
        raise AnalysisFailed(f"ffprobe not available: {e}") from e
    except subprocess.CalledProcessError as e:
        error_msg = e.stderr.decode(errors="replace").strip()
        logger.error("ffprobe failed on %s: %s", video_path, error_msg)
        raise AnalysisFailed(f"ffprobe error: {error_msg}") from e

    try:
        data = json.loads(result.stdout)
    except ValueError as e:
        raise AnalysisFailed(f"Invalid JSON from ffprobe: {e}") from e

    streams = data.get("streams") if isinstance(data, dict) else None
    stream = streams[0] if streams else None
    if not isinstance(stream, dict) or stream.get("width") is None or stream.get("height") is None:
        raise AnalysisFailed("No video stream found or missing width/height")

    try:
        width, height = int(stream["width"]), int(stream["height"])
    except (TypeError, ValueError) as e:
        raise AnalysisFailed(f"Unreadable stream geometry: {stream}") from e

    aspect = classify_aspect_ratio(width, height)
    logger.info("Video size %sx%s classified as %s", width, height, aspect.value)
    return aspect


def processed_path_for(video_path: str) -> str:
    """/tmp/abc.mp4 -> /tmp/abc.processed.mp4"""
    base, _ = os.path.splitext(video_path)
    return f"{base}{PROCESSED_SUFFIX}"


def remux_faststart(video_path: str, ffmpeg_bin: str = "ffmpeg") -> str:
    """
    Rewrites the container so the moov atom sits at the front of the file.

    Streams are copied, not re-encoded, and the input metadata is carried
    over. The input file is left in place.

    Returns:
        str: Path of the remuxed file

    Raises:
        TranscodeFailed: ffmpeg exited nonzero or could not be started
    """
    output_path = processed_path_for(video_path)

    # -y                 → overwrite a stale output from an earlier crash
    # -map_metadata 0    → keep the input's metadata
    # -c copy            → no re-encode
    # -movflags faststart → moov atom up front for progressive playback
    command = [
        ffmpeg_bin,
        "-y",
        "-i", video_path,
        "-map_metadata", "0",
        "-c", "copy",
        "-movflags", "faststart",
        "-f", "mp4",
        output_path,
    ]

    try:
        subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=True,
        )
    except FileNotFoundError as e:
        raise TranscodeFailed(f"ffmpeg not available: {e}") from e
    except subprocess.CalledProcessError as e:
        output = (e.stderr or b"").decode(errors="replace").strip()
        if not output:
            output = (e.stdout or b"").decode(errors="replace").strip()
        logger.error("ffmpeg faststart failed on %s: %s", video_path, output)
        raise TranscodeFailed(f"ffmpeg error: {output}") from e

    if not os.path.exists(output_path):
        raise TranscodeFailed("Remux finished but output file not found")

    return output_path
