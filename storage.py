"""Image files kept on disk under UPLOAD_DIR and served at /uploads."""
import os
import time
import uuid
from typing import Optional

import structlog
from fastapi import UploadFile

logger = structlog.get_logger(__name__)

UPLOAD_ROOT = os.getenv("UPLOAD_DIR", "uploads")
URL_PREFIX = "/uploads"


def _folder(kind: str) -> str:
    path = os.path.join(UPLOAD_ROOT, kind)
    os.makedirs(path, exist_ok=True)
    return path


def save_upload(upload: UploadFile, kind: str) -> str:
    """Write an uploaded file and return its public path."""
    ext = os.path.splitext(upload.filename or "")[1].lower()
    filename = f"image-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"
    with open(os.path.join(_folder(kind), filename), "wb") as out:
        while True:
            chunk = upload.file.read(1024 * 1024)
            if not chunk:
                break
            out.write(chunk)
    return f"{URL_PREFIX}/{kind}/{filename}"


def image_path_to_file(image_path: str) -> Optional[str]:
    if not image_path or not image_path.startswith(URL_PREFIX + "/"):
        return None
    relative = image_path[len(URL_PREFIX) + 1:]
    # refuse anything that would escape the upload root
    root = os.path.abspath(UPLOAD_ROOT)
    full = os.path.abspath(os.path.join(root, relative))
    if not full.startswith(root + os.sep):
        return None
    return full


def remove_image(image_path: Optional[str]) -> bool:
    """Best-effort delete. Failures are logged, never raised."""
    full = image_path_to_file(image_path) if image_path else None
    if not full:
        return False
    try:
        os.remove(full)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("image_cleanup_failed", image=image_path, error=str(e))
        return False
