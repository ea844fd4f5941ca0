import base64
import binascii
import logging
import re
import time
from pathlib import Path

from fastapi import HTTPException
from starlette.concurrency import run_in_threadpool

from core import config

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def decode_data_url(data_url: str):
    """Split a ``data:<mime>;base64,<payload>`` string into (mime, bytes)."""
    match = DATA_URL_PATTERN.match(data_url.strip())
    if not match:
        raise HTTPException(status_code=400, detail="Please upload an image file")
    try:
        content = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Invalid file encoding")
    return match.group("mime").lower(), content


def _write(path: Path, content: bytes):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


async def upload_image(data_url: str, folder: str, name: str) -> str:
    mime, content = decode_data_url(data_url)
    if not mime.startswith("image/"):
        raise HTTPException(status_code=400, detail="Please upload an image file")
    if mime not in IMAGE_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Supported formats: JPEG, PNG, WebP")
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="Image size must be less than 5MB")

    relative = f"{folder.strip('/')}/{name}_{int(time.time() * 1000)}.{IMAGE_EXTENSIONS[mime]}"
    await run_in_threadpool(_write, Path(config.UPLOAD_DIR) / relative, content)
    logger.info("Stored %s (%d bytes)", relative, len(content))
    return f"{config.FILES_BASE_URL.rstrip('/')}/{relative}"
