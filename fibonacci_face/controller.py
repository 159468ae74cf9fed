"""Application controller: the Idle → Loading → Result/Error state machine."""
import time
import logging

from . import config
from .analysis_client import AnalysisClient
from .camera import Camera
from .errors import (
    CameraError, FaceAnalyzerError, InputError, InputRequired, InvalidTransition, ServiceValidationError,
    UnreadableImage, UnsupportedType,
)
from .exporter import ReportExporter, ReportRegion
from .image_source import PreviewRegistry, from_capture, from_upload, open_image
from .models import AppSnapshot, AppState, ErrorKind
from .renderer import ProgressTracker, build_report_view, loading_message
from .share import ShareLabel, build_share_payload
from .utils.drawing_utils import render_annotated_image

logger = logging.getLogger(__name__)

REJECTION_MESSAGES = {
    ErrorKind.MULTIPLE_FACES: config.MESSAGES['multiple_faces'],
    ErrorKind.LOW_QUALITY: config.MESSAGES['low_quality'],
    ErrorKind.NO_FACE: config.MESSAGES['low_quality'],
}


class AnalysisController:
    """
    Owns the single application state and sequences the components.

    State lives in an immutable AppSnapshot; every action replaces it and
    notifies subscribers, so views only ever read a consistent snapshot.
    """

    def __init__(self, client=None, previews=None, camera=None, exporter=None, clock=time.monotonic):
        self.client = client if client is not None else AnalysisClient()
        self.previews = previews if previews is not None else PreviewRegistry()
        self.camera = camera if camera is not None else Camera()
        self.exporter = exporter if exporter is not None else ReportExporter()
        self.tracker = ProgressTracker()
        self.share_label = ShareLabel(clock)
        self._clock = clock
        self._snapshot = AppSnapshot()
        self._listeners = []
        self._loading_since = None

    # --- state container ---

    @property
    def snapshot(self):
        return self._snapshot

    @property
    def state(self):
        return self._snapshot.state

    def subscribe(self, listener):
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _set(self, snapshot):
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    def _commit(self, **changes):
        return self._set(self._snapshot.model_copy(update=changes))

    def _require(self, *states, action):
        if self._snapshot.state not in states:
            raise InvalidTransition(f"Cannot {action} while {self._snapshot.state.value}.")

    # --- image input ---

    def _replace_image(self, unit, **changes):
        self.previews.release(self._snapshot.preview_handle)
        handle = self.previews.acquire(unit)
        logger.info("Attached %s (%s, %d bytes)", unit.filename, unit.mime_type, unit.size)
        return self._commit(state=AppState.IDLE, image=unit, preview_handle=handle, error=None, inline_error=None, **changes)

    def attach_upload(self, data, mime_type, filename=None):
        self._require(AppState.IDLE, AppState.ERROR, action="attach an image")
        try:
            unit = from_upload(data, mime_type, filename)
        except (UnsupportedType, UnreadableImage) as e:
            self._commit(state=AppState.ERROR, error=str(e))
            raise
        except InputRequired as e:
            self._commit(inline_error=str(e))
            raise
        return self._replace_image(unit)

    def open_camera(self):
        self._require(AppState.IDLE, AppState.ERROR, action="open the camera")
        try:
            self.camera.open()
        except CameraError as e:
            self._commit(camera_open=False, inline_error=str(e))
            raise
        return self._commit(camera_open=True, inline_error=None)

    def capture(self):
        """Take a still from the open camera, attach it, and close the camera."""
        self._require(AppState.IDLE, AppState.ERROR, action="capture a photo")
        if not self.camera.is_open:
            raise CameraError("The camera is not open.")
        try:
            unit = from_capture(self.camera.read_frame())
        finally:
            self.camera.close()
            self._commit(camera_open=False)
        return self._replace_image(unit)

    def close_camera(self):
        self.camera.close()
        return self._commit(camera_open=False)

    def remove_image(self):
        self._require(AppState.IDLE, AppState.ERROR, action="remove the image")
        self.previews.release(self._snapshot.preview_handle)
        return self._commit(image=None, preview_handle=None, inline_error=None)

    # --- analysis cycle ---

    async def analyze(self):
        """
        Run one analysis cycle for the attached image.

        Service failures and photo rejections end in the ERROR state rather
        than raising; the snapshot carries the message to show.
        """
        snapshot = self._snapshot
        if snapshot.state == AppState.LOADING:
            raise InvalidTransition("An analysis is already running.")
        if snapshot.image is None:
            self._commit(inline_error=config.MESSAGES['no_image'])
            raise InputRequired(config.MESSAGES['no_image'])
        self._require(AppState.IDLE, action="start an analysis")

        cycle = snapshot.cycle + 1
        self._commit(state=AppState.LOADING, cycle=cycle, error=None, inline_error=None, result=None)
        self._loading_since = self._clock()

        try:
            result = await self.client.analyze(snapshot.image)
        except FaceAnalyzerError as e:
            logger.warning("Analysis failed: %s", e)
            return self._fail(cycle, str(e))
        except Exception as e:
            logger.exception("Analysis failed")
            return self._fail(cycle, str(e))

        if self._is_stale(cycle):
            return self._snapshot
        if result.is_rejection:
            rejection = ServiceValidationError(result.error, result.error_message or REJECTION_MESSAGES[result.error])
            logger.info("Photo rejected by the service: %s", rejection.kind.value)
            return self._commit(state=AppState.ERROR, error=str(rejection))

        self.tracker.clear()
        return self._commit(state=AppState.RESULT, result=result, details_visible=False)

    def _is_stale(self, cycle):
        if self._snapshot.cycle != cycle:
            logger.info("Discarding response of cycle %s; current cycle is %s", cycle, self._snapshot.cycle)
            return True
        return False

    def _fail(self, cycle, detail):
        if self._is_stale(cycle):
            return self._snapshot
        message = config.MESSAGES['analysis_failed'].format(detail=detail or config.MESSAGES['unknown_failure'])
        return self._commit(state=AppState.ERROR, error=message)

    def reset(self):
        """Back to IDLE with no image and no result; any in-flight response is ignored."""
        self.previews.release(self._snapshot.preview_handle)
        self.camera.close()
        self.tracker.clear()
        self.share_label.reset()
        self._loading_since = None
        return self._set(AppSnapshot(cycle=self._snapshot.cycle + 1))

    def loading_message(self):
        if self._snapshot.state != AppState.LOADING or self._loading_since is None:
            return None
        return loading_message(self._clock() - self._loading_since)

    # --- result view ---

    def toggle_details(self):
        self._require(AppState.RESULT, action="toggle the detail panel")
        return self._commit(details_visible=not self._snapshot.details_visible)

    def render(self, container_width=None):
        self._require(AppState.RESULT, action="render the report")
        snapshot = self._snapshot
        natural_size = open_image(snapshot.image).size if snapshot.image is not None else None
        return build_report_view(snapshot.result, natural_size, container_width, snapshot.details_visible,
                                 self.tracker, snapshot.cycle)

    def annotated_image(self, width=None):
        self._require(AppState.RESULT, action="draw the annotated image")
        snapshot = self._snapshot
        if snapshot.image is None:
            raise InputError(config.MESSAGES['image_required'])
        return render_annotated_image(open_image(snapshot.image), snapshot.result.overlay_lines, width)

    async def export_report(self):
        """Export the current report as a PDF; failures leave the result in place."""
        self._require(AppState.RESULT, action="export the report")
        snapshot = self._snapshot
        # Exporting leaves the on-screen bar animation untouched
        view = build_report_view(snapshot.result, details_visible=snapshot.details_visible,
                                 tracker=ProgressTracker(), cycle=snapshot.cycle)
        region = ReportRegion(view, snapshot.image, snapshot.result.overlay_lines)
        return await self.exporter.export(region)

    def share_payload(self):
        self._require(AppState.RESULT, action="share the result")
        return build_share_payload(self._snapshot.result.overall_score)

    def record_share(self, outcome):
        self.share_label.record(outcome)
        return self.share_label.text

    def close(self):
        self.camera.close()
        self.previews.release_all()
