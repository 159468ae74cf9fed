"""Tests for API endpoints (the AI service is faked)."""

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_controller
from api.main import app, status_for
from fibonacci_face import config
from fibonacci_face.camera import Camera
from fibonacci_face.controller import AnalysisController
from fibonacci_face.errors import (
    CameraError, CameraUnavailable, ConfigurationError, ExportFailed, ExportUnavailable,
    InputRequired, InvalidTransition, ResponseParseError, TransportError, UnreadableImage,
    UnsupportedType,
)
from fibonacci_face.exporter import ReportExporter
from conftest import REJECTED_RESULT, FakeCapture, image_bytes


@pytest.fixture
def client(controller):
    app.dependency_overrides[get_controller] = lambda: controller
    yield TestClient(app)
    app.dependency_overrides.clear()


def upload(client, fmt="JPEG", mime="image/jpeg", name="face.jpg"):
    return client.post("/api/images", files={"file": (name, image_bytes(fmt), mime)})


def analyzed(client):
    upload(client)
    response = client.post("/api/analyze")
    assert response.json()["state"] == "result"
    return response


def test_health(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_initial_session(client):
    data = client.get("/api/session").json()
    assert data["state"] == "idle"
    assert data["image"] is None
    assert data["result"] is None
    assert data["share_label"] == "Share"


def test_upload_and_preview(client):
    response = upload(client)
    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "idle"
    assert data["image"]["filename"] == "face.jpg"
    assert data["image"]["mime_type"] == "image/jpeg"

    preview = client.get(data["image"]["preview_url"])
    assert preview.status_code == 200
    assert preview.headers["content-type"] == "image/jpeg"
    assert preview.content == image_bytes()


def test_unknown_preview(client):
    assert client.get("/api/previews/nope").status_code == 404


def test_upload_unsupported_type(client):
    response = client.post("/api/images", files={"file": ("face.gif", b"GIF89a", "image/gif")})

    assert response.status_code == 400
    assert response.json()["detail"] == config.MESSAGES['unsupported_type']
    assert client.get("/api/session").json()["state"] == "error"


def test_upload_that_is_not_an_image(client):
    response = client.post("/api/images", files={"file": ("face.jpg", b"not an image at all", "image/jpeg")})

    assert response.status_code == 400
    assert response.json()["detail"] == config.MESSAGES['unreadable_image']
    assert client.get("/api/session").json()["state"] == "error"


def test_remove_image(client):
    upload(client)
    data = client.delete("/api/images").json()
    assert data["image"] is None


def test_analyze_without_image(client):
    response = client.post("/api/analyze")

    assert response.status_code == 400
    assert response.json()["detail"] == "Please upload an image to analyze."
    assert client.get("/api/session").json()["inline_error"] == "Please upload an image to analyze."


def test_analyze_returns_result(client):
    data = analyzed(client).json()

    assert data["result"]["overallScore"] == 82
    assert data["result"]["detailedScores"][0]["ratioName"] == "Face Length / Face Width"
    assert "error" not in data["result"]
    assert data["details_visible"] is False


def test_analyze_rejection_is_an_error_state(client, fake_client):
    fake_client.replies = [REJECTED_RESULT]
    upload(client)

    response = client.post("/api/analyze")

    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "error"
    assert data["error"] == config.MESSAGES['multiple_faces']
    assert data["result"] is None


def test_analyze_without_api_key(monkeypatch):
    monkeypatch.delenv("API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    ctrl = AnalysisController(camera=Camera(capture_factory=FakeCapture), exporter=ReportExporter(settle_delay=0))
    app.dependency_overrides[get_controller] = lambda: ctrl
    try:
        client = TestClient(app)
        upload(client)
        data = client.post("/api/analyze").json()
    finally:
        app.dependency_overrides.clear()
        ctrl.close()

    assert data["state"] == "error"
    assert "API_KEY environment variable not set" in data["error"]


def test_report_view(client):
    analyzed(client)

    data = client.get("/api/report", params={"container_width": 200}).json()

    assert data["overall_score_text"] == "82%"
    assert data["image"]["width"] == 200
    assert data["image"]["height"] == 150
    assert [bar["label"] for bar in data["feature_bars"]] == ["88%", "79%", "74%", "85%"]
    assert [row["band"] for row in data["detail_rows"]] == ["good", "warn", "bad"]


def test_report_before_result_is_a_conflict(client):
    response = client.get("/api/report")
    assert response.status_code == 409


def test_toggle_details(client):
    analyzed(client)
    assert client.post("/api/report/details").json()["details_visible"] is True
    assert client.post("/api/report/details").json()["details_visible"] is False


def test_annotated_image(client):
    analyzed(client)
    response = client.get("/api/report/annotated", params={"width": 200})
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"


def test_pdf_download(client):
    analyzed(client)

    response = client.get("/api/report/pdf")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="Fibonacci-Face-Analysis.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_share_flow(client):
    analyzed(client)

    share = client.get("/api/share").json()
    assert share["title"] == "My Fibonacci Face Analysis"
    assert "82%" in share["text"]
    assert share["clipboard_text"].endswith(share["url"])

    assert client.post("/api/share/outcome", json={"outcome": "copied"}).json()["label"] == "Copied!"
    assert client.post("/api/share/outcome", json={"outcome": "shared"}).json()["label"] == "Share"
    assert client.post("/api/share/outcome", json={"outcome": "faxed"}).status_code == 400


def test_loading_message_when_idle(client):
    assert client.get("/api/loading-message").json() == {"state": "idle", "message": None}


def test_camera_capture(client):
    assert client.post("/api/camera/open").json()["camera_open"] is True

    data = client.post("/api/camera/capture").json()

    assert data["camera_open"] is False
    assert data["image"]["mime_type"] == "image/jpeg"


def test_capture_without_open_camera(client):
    assert client.post("/api/camera/capture").status_code == 409


def test_close_camera(client):
    client.post("/api/camera/open")
    assert client.post("/api/camera/close").json()["camera_open"] is False


def test_reset(client):
    analyzed(client)
    data = client.post("/api/reset").json()
    assert data["state"] == "idle"
    assert data["image"] is None
    assert data["result"] is None


@pytest.mark.parametrize("error, status", [
    (UnsupportedType("x"), 400),
    (UnreadableImage("x"), 400),
    (InputRequired("x"), 400),
    (InvalidTransition("x"), 409),
    (CameraError("x"), 409),
    (CameraUnavailable('NOT_FOUND', "x"), 503),
    (ConfigurationError("x"), 500),
    (TransportError("x"), 502),
    (ResponseParseError("x"), 502),
    (ExportUnavailable("x"), 503),
    (ExportFailed("x"), 500),
])
def test_status_codes(error, status):
    assert status_for(error) == status
