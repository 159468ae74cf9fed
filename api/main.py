import io
import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response, StreamingResponse

load_dotenv()

from fibonacci_face import config
from fibonacci_face.controller import AnalysisController
from fibonacci_face.errors import (
    CameraError, CameraUnavailable, ConfigurationError, ExportFailed, ExportUnavailable,
    FaceAnalyzerError, InputError, InvalidTransition, ServiceValidationError, TransportOrParseError,
)
from fibonacci_face.renderer import ReportView

from .dependencies import close_controller, get_controller
from .schemas import LoadingMessage, SessionView, ShareLabelView, ShareOutcome, ShareView

logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Most specific first; the first matching class decides the status code
STATUS_CODES = [
    (InputError, 400),
    (ServiceValidationError, 400),
    (InvalidTransition, 409),
    (CameraUnavailable, 503),
    (CameraError, 409),
    (ConfigurationError, 500),
    (TransportOrParseError, 502),
    (ExportUnavailable, 503),
    (ExportFailed, 500),
]


def status_for(exc):
    for error_type, status in STATUS_CODES:
        if isinstance(exc, error_type):
            return status
    return 500


@asynccontextmanager
async def lifespan(app):
    logger.info("Fibonacci Face Analyzer starting (model: %s)", config.GEMINI_MODEL)
    yield
    # Releases the camera device and preview handles
    close_controller()
    logger.info("Fibonacci Face Analyzer stopped")


app = FastAPI(
    title="Fibonacci Face Analyzer API",
    description="Upload or capture a face photo and score its proportions against the golden ratio.",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(FaceAnalyzerError)
async def analyzer_error_handler(request: Request, exc: FaceAnalyzerError):
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


@app.get("/", tags=["Health Check"])
def read_root():
    """Basic endpoint to check that the server is up."""
    return {"status": "ok", "message": "Welcome to the Fibonacci Face Analyzer API!"}


@app.get("/api/session", response_model=SessionView, tags=["Session"])
def get_session(controller: AnalysisController = Depends(get_controller)):
    return SessionView.from_controller(controller)


# --- image input ---

@app.post("/api/images", response_model=SessionView, tags=["Image"])
async def upload_image(
    file: UploadFile = File(..., description="Face photo to analyze (JPG, PNG)."),
    controller: AnalysisController = Depends(get_controller),
):
    """Attach an uploaded photo, replacing any previous one."""
    image_bytes = await file.read()
    controller.attach_upload(image_bytes, file.content_type, file.filename)
    return SessionView.from_controller(controller)


@app.delete("/api/images", response_model=SessionView, tags=["Image"])
def remove_image(controller: AnalysisController = Depends(get_controller)):
    controller.remove_image()
    return SessionView.from_controller(controller)


@app.get("/api/previews/{handle}", tags=["Image"])
def get_preview(handle: str, controller: AnalysisController = Depends(get_controller)):
    try:
        unit = controller.previews.get(handle)
    except KeyError:
        raise HTTPException(status_code=404, detail="No preview for this handle.")
    return Response(content=unit.payload, media_type=unit.mime_type)


@app.post("/api/camera/open", response_model=SessionView, tags=["Camera"])
def open_camera(controller: AnalysisController = Depends(get_controller)):
    controller.open_camera()
    return SessionView.from_controller(controller)


@app.post("/api/camera/capture", response_model=SessionView, tags=["Camera"])
def capture_photo(controller: AnalysisController = Depends(get_controller)):
    controller.capture()
    return SessionView.from_controller(controller)


@app.post("/api/camera/close", response_model=SessionView, tags=["Camera"])
def close_camera(controller: AnalysisController = Depends(get_controller)):
    controller.close_camera()
    return SessionView.from_controller(controller)


# --- analysis cycle ---

@app.post("/api/analyze", response_model=SessionView, tags=["Analysis"])
async def analyze(controller: AnalysisController = Depends(get_controller)):
    """
    Run the analysis for the attached photo.

    Service failures and rejected photos are reported through the returned
    session (state "error" with a message), not as an HTTP error.
    """
    await controller.analyze()
    return SessionView.from_controller(controller)


@app.post("/api/reset", response_model=SessionView, tags=["Analysis"])
def reset(controller: AnalysisController = Depends(get_controller)):
    controller.reset()
    return SessionView.from_controller(controller)


@app.get("/api/loading-message", response_model=LoadingMessage, tags=["Analysis"])
def get_loading_message(controller: AnalysisController = Depends(get_controller)):
    return LoadingMessage(state=controller.state.value, message=controller.loading_message())


# --- report ---

@app.get("/api/report", response_model=ReportView, tags=["Report"])
def get_report(
    container_width: Optional[int] = Query(None, gt=0, description="Displayed width of the photo, in pixels."),
    controller: AnalysisController = Depends(get_controller),
):
    return controller.render(container_width)


@app.post("/api/report/details", response_model=SessionView, tags=["Report"])
def toggle_details(controller: AnalysisController = Depends(get_controller)):
    controller.toggle_details()
    return SessionView.from_controller(controller)


@app.get("/api/report/annotated", tags=["Report"])
def get_annotated_image(
    width: Optional[int] = Query(None, gt=0),
    controller: AnalysisController = Depends(get_controller),
):
    """Return the photo with the overlay lines drawn at the requested width."""
    annotated = controller.annotated_image(width)
    buffer = io.BytesIO()
    annotated.save(buffer, format="JPEG", quality=95)
    buffer.seek(0)
    return StreamingResponse(buffer, media_type="image/jpeg")


@app.get("/api/report/pdf", tags=["Report"])
async def download_report(controller: AnalysisController = Depends(get_controller)):
    report = await controller.export_report()
    return StreamingResponse(
        io.BytesIO(report.content),
        media_type=report.media_type,
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
    )


# --- share ---

@app.get("/api/share", response_model=ShareView, tags=["Share"])
def get_share(controller: AnalysisController = Depends(get_controller)):
    payload = controller.share_payload()
    return ShareView(
        title=payload.title, text=payload.text, url=payload.url,
        clipboard_text=payload.clipboard_text, label=controller.share_label.text,
    )


@app.post("/api/share/outcome", response_model=ShareLabelView, tags=["Share"])
def record_share_outcome(body: ShareOutcome, controller: AnalysisController = Depends(get_controller)):
    """Report how the browser delivered the share: "shared", "copied" or "failed"."""
    try:
        label = controller.record_share(body.outcome)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ShareLabelView(label=label)
