"""Shared test fixtures."""

import io
import copy
import asyncio

import cv2
import numpy as np
import pytest
from PIL import Image

from fibonacci_face.camera import Camera
from fibonacci_face.controller import AnalysisController
from fibonacci_face.exporter import ReportExporter
from fibonacci_face.models import AnalysisResult


SAMPLE_RESULT = {
    "overallScore": 82,
    "feedback": "Your facial thirds are well balanced and close to the golden ratio.",
    "featureScores": [
        {"feature": "Facial Symmetry", "score": 88},
        {"feature": "Eye Spacing", "score": 79},
        {"feature": "Nose to Lip Ratio", "score": 74},
        {"feature": "Forehead Height to Face Width", "score": 85},
    ],
    "detailedScores": [
        {"ratioName": "Face Length / Face Width", "value": "1.63", "deviation": 1},
        {"ratioName": "Mouth Width / Nose Width", "value": "1.49", "deviation": 8},
        {"ratioName": "Eye Width / Eye Spacing", "value": "1.25", "deviation": 23},
    ],
    "overlayLines": [
        {"x1": 0.1, "y1": 0.2, "x2": 0.9, "y2": 0.8, "label": "1.62"},
        {"x1": 0.3, "y1": 0.5, "x2": 0.7, "y2": 0.5},
    ],
}

REJECTED_RESULT = {
    "overallScore": 0,
    "feedback": "",
    "featureScores": [],
    "detailedScores": [],
    "overlayLines": [],
    "error": "MULTIPLE_FACES",
}


def sample_result(**overrides):
    data = copy.deepcopy(SAMPLE_RESULT)
    data.update(overrides)
    return data


def image_bytes(fmt="JPEG", size=(400, 300), color=(200, 150, 120)):
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


def run(coro):
    return asyncio.run(coro)


class FakeAnalysisClient:
    """Stands in for AnalysisClient; returns queued replies in order."""

    def __init__(self, *replies):
        self.replies = list(replies) or [SAMPLE_RESULT]
        self.calls = []

    async def analyze(self, image):
        self.calls.append(image)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return AnalysisResult.model_validate(reply)


class FakeCapture:
    """Minimal cv2.VideoCapture double."""

    def __init__(self, index=0, opened=True, readable=True, size=(1280, 720)):
        self.index = index
        self.opened = opened
        self.readable = readable
        self.size = size
        self.released = False
        self.props = {}

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def get(self, prop):
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            return float(self.size[0])
        if prop == cv2.CAP_PROP_FRAME_HEIGHT:
            return float(self.size[1])
        return 0.0

    def read(self):
        if not self.readable:
            return False, None
        frame = np.zeros((self.size[1], self.size[0], 3), dtype=np.uint8)
        frame[:, : self.size[0] // 2] = (255, 0, 0)
        return True, frame

    def release(self):
        self.released = True


@pytest.fixture
def fake_capture_factory():
    created = []

    def factory(index):
        capture = FakeCapture(index)
        created.append(capture)
        return capture

    factory.created = created
    return factory


@pytest.fixture
def fake_client():
    return FakeAnalysisClient()


@pytest.fixture
def controller(fake_client, fake_capture_factory):
    ctrl = AnalysisController(
        client=fake_client,
        camera=Camera(capture_factory=fake_capture_factory),
        exporter=ReportExporter(settle_delay=0),
    )
    yield ctrl
    ctrl.close()
