import io
import time
import uuid
import logging
from contextlib import contextmanager

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from . import config
from .errors import UnsupportedType, InputRequired, UnreadableImage, CameraError
from .models import ImageUnit

logger = logging.getLogger(__name__)


def from_upload(data, mime_type, filename=None):
    """
    Turn an uploaded file into an ImageUnit.

    Only JPEG and PNG bytes that actually decode are accepted; anything else
    is rejected before it can reach the analysis service.
    """
    mime = (mime_type or "").lower()
    if mime not in config.ACCEPTED_MIME_TYPES:
        logger.info("Rejected upload %s with type %r", filename, mime_type)
        raise UnsupportedType(config.MESSAGES['unsupported_type'], mime_type=mime_type)
    if not data:
        raise InputRequired(config.MESSAGES['image_required'])

    unit = ImageUnit(payload=bytes(data), mime_type=mime, filename=filename)
    try:
        open_image(unit)
    except UnreadableImage:
        logger.info("Rejected upload %s: not a decodable image", filename)
        raise
    return unit


def from_capture(frame, timestamp_ms=None):
    """
    Turn a live camera frame (BGR numpy array) into a JPEG ImageUnit.

    The live preview is shown mirrored, so the still is flipped horizontally
    to match what the user saw when pressing capture.
    """
    if frame is None or not isinstance(frame, np.ndarray) or frame.size == 0:
        raise InputRequired(config.MESSAGES['image_required'])

    mirrored = cv2.flip(frame, 1)
    ok, encoded = cv2.imencode('.jpg', mirrored, [cv2.IMWRITE_JPEG_QUALITY, config.CAMERA_CONFIG['jpeg_quality']])
    if not ok:
        raise CameraError("Failed to encode the captured frame.")

    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return ImageUnit(payload=encoded.tobytes(), mime_type="image/jpeg", filename=f"capture-{timestamp_ms}.jpg")


def open_image(unit):
    """Decode an ImageUnit into an RGB PIL image with EXIF orientation applied."""
    try:
        img = Image.open(io.BytesIO(unit.payload))
        img = ImageOps.exif_transpose(img)
        return img.convert("RGB")
    except (UnidentifiedImageError, OSError, SyntaxError, EOFError) as e:
        raise UnreadableImage(config.MESSAGES['unreadable_image']) from e


class PreviewRegistry:
    """
    Transient display handles for images currently on screen.

    A handle stays valid until it is released; whoever acquires one is
    responsible for releasing it when the image is replaced or dropped.
    """

    url_prefix = "/api/previews"

    def __init__(self):
        self._units = {}

    def acquire(self, unit):
        handle = uuid.uuid4().hex
        self._units[handle] = unit
        return handle

    def get(self, handle):
        return self._units[handle]

    def release(self, handle):
        if handle is not None:
            self._units.pop(handle, None)

    def release_all(self):
        self._units.clear()

    def url_for(self, handle):
        return f"{self.url_prefix}/{handle}"

    @contextmanager
    def scoped(self, unit):
        handle = self.acquire(unit)
        try:
            yield handle
        finally:
            self.release(handle)

    def __contains__(self, handle):
        return handle in self._units

    def __len__(self):
        return len(self._units)
