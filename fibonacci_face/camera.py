"""Local camera capture built on OpenCV's VideoCapture."""
import os
import sys
import logging

import cv2

from . import config
from .errors import CameraError, CameraUnavailable

logger = logging.getLogger(__name__)


def _unavailable(reason):
    return CameraUnavailable(reason, config.CAMERA_MESSAGES[reason])


def _diagnose_open_failure(index):
    """Best guess at why the device could not be opened."""
    if not sys.platform.startswith("linux"):
        return 'NOT_FOUND'
    device = f"/dev/video{index}"
    if not os.path.exists(device):
        return 'NOT_FOUND'
    if not os.access(device, os.R_OK | os.W_OK):
        return 'PERMISSION_DENIED'
    return 'DEVICE_BUSY'


class Camera:
    """
    Holds the capture device for as long as the capture view is open.

    `open()` acquires the device and `close()` releases it; `close()` never
    fails and may be called any number of times.
    """

    def __init__(self, index=None, width=None, height=None, strict_resolution=False, capture_factory=None):
        self.index = config.CAMERA_INDEX if index is None else index
        self.width = width or config.CAMERA_CONFIG['width']
        self.height = height or config.CAMERA_CONFIG['height']
        self.strict_resolution = strict_resolution
        self._factory = capture_factory or cv2.VideoCapture
        self._capture = None

    @property
    def is_open(self):
        return self._capture is not None

    def open(self):
        if self.is_open:
            return self
        try:
            capture = self._factory(self.index)
        except cv2.error as e:
            logger.warning("Error accessing camera %s: %s", self.index, e)
            raise _unavailable('UNKNOWN') from e

        if not capture.isOpened():
            capture.release()
            reason = _diagnose_open_failure(self.index)
            logger.warning("Camera %s could not be opened (%s)", self.index, reason)
            raise _unavailable(reason)

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        actual = (int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)), int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)))
        if self.strict_resolution and actual != (self.width, self.height):
            capture.release()
            logger.warning("Camera %s offers %sx%s, wanted %sx%s", self.index, *actual, self.width, self.height)
            raise _unavailable('OVERCONSTRAINED')

        ok, _ = capture.read()
        if not ok:
            capture.release()
            raise _unavailable('DEVICE_BUSY')

        self._capture = capture
        logger.info("Camera %s opened at %sx%s", self.index, *actual)
        return self

    def read_frame(self):
        """Return the current BGR frame from the open device."""
        if not self.is_open:
            raise CameraError("The camera is not open.")
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise _unavailable('DEVICE_BUSY')
        return frame

    def close(self):
        capture, self._capture = self._capture, None
        if capture is None:
            return
        try:
            capture.release()
        except cv2.error as e:
            logger.warning("Ignoring error while releasing camera %s: %s", self.index, e)
        logger.info("Camera %s closed", self.index)

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
