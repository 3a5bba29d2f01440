from __future__ import annotations

import logging
import os
import time

from flask import current_app
from werkzeug.utils import secure_filename

from nominal_roll_api.common.errors import ImageTooLarge, NotFound, ValidationFailed

log = logging.getLogger(__name__)

_ALLOWED_EXTS = {".png", ".jpg", ".jpeg"}
_PUBLIC_DIR = "public"


def _size_of(file) -> int:
    stream = file.stream
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def validate_image(file):
    """Reject oversize or non-image uploads before anything is written anywhere."""
    if file is None or not getattr(file, "filename", None):
        raise ValidationFailed("No image file supplied")
    ext = os.path.splitext(file.filename)[1].lower()
    if ext not in _ALLOWED_EXTS:
        raise ValidationFailed("Only PNG or JPG images are accepted")
    limit = current_app.config["MAX_PROFILE_IMAGE_BYTES"]
    if _size_of(file) > limit:
        raise ImageTooLarge(f"Image file size should not exceed {limit // (1024 * 1024)}MB.")


def upload_profile_image(file, staff_id: str) -> str:
    """Store the image under ``public/<staff_id>-<ts>.<ext>`` (overwriting) and return its public URL."""
    validate_image(file)
    ext = os.path.splitext(file.filename)[1].lower()
    name = secure_filename(f"{staff_id}-{int(time.time() * 1000)}{ext}")

    root = current_app.config["PROFILE_IMAGE_ROOT"]
    folder = os.path.join(root, _PUBLIC_DIR)
    os.makedirs(folder, exist_ok=True)
    path = os.path.join(folder, name)
    file.stream.seek(0)
    file.save(path)
    log.info("profile image stored staff_id=%s path=%s", staff_id, path)
    return public_url(f"{_PUBLIC_DIR}/{name}")


def public_url(relpath: str) -> str:
    base = current_app.config["PROFILE_IMAGE_BASE_URL"].rstrip("/")
    return f"{base}/{relpath}"


def resolve(relpath: str) -> tuple[str, str]:
    """(directory, filename) for serving a stored image; NotFound if it does not exist."""
    root = current_app.config["PROFILE_IMAGE_ROOT"]
    folder, _, name = relpath.rpartition("/")
    if folder != _PUBLIC_DIR or secure_filename(name) != name:
        raise NotFound("Image not found")
    directory = os.path.join(root, folder)
    if not os.path.isfile(os.path.join(directory, name)):
        raise NotFound("Image not found")
    return directory, name
