import os

# --- Environment ---
BASE_URL = os.getenv("BASE_URL", "http://localhost:8000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "info")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
CAMERA_INDEX = int(os.getenv("CAMERA_INDEX", "0"))


def get_api_key():
    """Read the Gemini credential at call time so a late `.env` load is honoured."""
    return os.getenv("API_KEY") or os.getenv("GEMINI_API_KEY") or ""


# --- Image input ---
ACCEPTED_MIME_TYPES = ("image/jpeg", "image/png", "image/jpg")
CAMERA_CONFIG = {'width': 1280, 'height': 720, 'jpeg_quality': 95}

# --- Golden ratio scoring ---
GOLDEN_RATIO = 1.618
MANDATORY_FEATURES = ["Facial Symmetry", "Eye Spacing", "Nose to Lip Ratio", "Forehead Height to Face Width"]
DEVIATION_GOOD_MAX = 5
DEVIATION_WARN_MAX = 15

# --- User-facing messages ---
MESSAGES = {
    'unsupported_type': "Unsupported file type. Please upload a photo in JPG or PNG format.",
    'no_image': "Please upload an image to analyze.",
    'image_required': "An image is required for analysis.",
    'unreadable_image': "Could not process the image file. It may be corrupted.",
    'missing_api_key': "API_KEY environment variable not set",
    'parse_failed': "Could not parse the analysis result from the AI. The response was not valid JSON.",
    'analysis_failed': "Unable to analyze. Please re-upload a clear image. Details: {detail}",
    'unknown_failure': "An unknown error occurred during analysis.",
    'multiple_faces': "Please upload a clear photo with only one visible face.",
    'low_quality': "Face not detected properly. Please upload a clear front or side image.",
    'export_unavailable': "Sorry, there was a problem loading the PDF generation library. Please try refreshing the page.",
    'export_failed': "An error occurred while generating the PDF report. Please try again.",
}

CAMERA_MESSAGES = {
    'PERMISSION_DENIED': "Camera access was denied. Please allow camera permission in your browser's site settings and try again.",
    'NOT_FOUND': "No camera found on this device. Please make sure a camera is connected and enabled.",
    'DEVICE_BUSY': "The camera could not be started. It might be in use by another app, or there could be a hardware error.",
    'OVERCONSTRAINED': "The available camera does not support the required settings.",
    'UNKNOWN': "Could not access the camera. Please check permissions and ensure it's not in use by another application.",
}

LOADING_MESSAGES = [
    "Detecting facial landmarks...",
    "Calculating proportions...",
    "Comparing to the Golden Ratio...",
    "Generating your aesthetic score...",
    "Finalizing your report...",
]
LOADING_MESSAGE_INTERVAL = 2.5

# --- Share ---
SHARE_CONFIG = {
    'title': "My Fibonacci Face Analysis",
    'text': "I scored {score}% on the Golden Ratio with the Fibonacci Face Analyzer! ✨ See how you measure up.",
    'label_default': "Share", 'label_copied': "Copied!", 'label_failed': "Failed!",
    'revert_seconds': 2.0,
}

# --- Report export ---
REPORT_CONFIG = {
    'filename': "Fibonacci-Face-Analysis.pdf",
    'background': "#262626",
    'settle_delay': 0.2,
    'scale': 2,
    'page_width_mm': 210,
    'width': 600,
}

# --- Rendering ---
UI_CONFIG = {
    'colors': {
        'overlay_line': (220, 211, 196, 204),
        'text_on_image': (0, 0, 0, 255), 'text_bg_on_image': (255, 255, 255, 210),
        'bands': {
            'good': (74, 222, 128, 255), 'warn': (250, 204, 21, 255), 'bad': (248, 113, 113, 255),
        },
        'bar_fill': (220, 211, 196, 255), 'bar_track': (64, 64, 64, 255),
        'report_text': (229, 229, 229, 255), 'report_header': (220, 211, 196, 255),
        'report_muted': (163, 163, 163, 255), 'report_divider': (64, 64, 64, 255),
        'report_panel': (23, 23, 23, 255),
    },
    'line_widths': {'overlay': 2, 'divider': 1},
    'geometry': {'dash_length': 4, 'label_corner_radius': 5},
    'progress': {'start_delay': 0.1},
}
