# fibonacci_face/analysis_client.py

import json
import logging

import google.generativeai as genai
from google.api_core.exceptions import GoogleAPIError
from pydantic import ValidationError

from . import config
from .errors import ConfigurationError, FaceAnalyzerError, InputRequired, ResponseParseError, TransportError
from .models import AnalysisResult

logger = logging.getLogger(__name__)

# --- PROMPT & RESPONSE CONTRACT ---

ANALYSIS_PROMPT = f"""You are an expert in facial aesthetics and the golden ratio (phi, approx {config.GOLDEN_RATIO}). Analyze the provided face image.

First, VALIDATE the image:
1.  If more than one face is detected, respond ONLY with a JSON object that sets 'error' to 'MULTIPLE_FACES' and 'errorMessage' to '{config.MESSAGES['multiple_faces']}'. Populate other fields with default empty/zero values.
2.  If the image is blurry, low-quality, or a face cannot be clearly detected, respond ONLY with a JSON object that sets 'error' to 'LOW_QUALITY' and 'errorMessage' to '{config.MESSAGES['low_quality']}'. Populate other fields with default empty/zero values.

If the image is VALID:
1.  Identify key facial landmarks.
2.  Calculate the ratios between these landmarks. Specifically measure for: {', '.join(repr(f) for f in config.MANDATORY_FEATURES)}.
3.  Compare each significant ratio to the golden ratio to determine harmony and balance.
4.  Generate a detailed analysis.
5.  For the 'featureScores' array, provide a score from 0-100 for each of these specific features: {', '.join(repr(f) for f in config.MANDATORY_FEATURES)}. You can include other relevant features as well.
6.  For the 'detailedScores' array, show each measured ratio (e.g., 'Face Width / Height', 'Nose Length / Philtrum-Chin Length', 'Forehead Height / Face Width'), its calculated value, and its percentage deviation from the golden ratio, computed as round(abs(value - {config.GOLDEN_RATIO}) / {config.GOLDEN_RATIO} * 100).
7.  For 'overlayLines', provide normalized coordinates (0.0 to 1.0) for significant golden ratio lines. If it's a side-view photo, return an empty array for overlayLines.
8.  Provide your response strictly in the specified JSON format. Do not include any text, markdown, or code block syntax outside of the JSON object."""

ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "error": {
            "type": "STRING",
            "description": "An error code if validation fails (e.g., 'MULTIPLE_FACES', 'LOW_QUALITY'). Omit if successful.",
        },
        "errorMessage": {
            "type": "STRING",
            "description": "A user-facing error message if validation fails. Omit if successful.",
        },
        "overallScore": {
            "type": "INTEGER",
            "description": "A single overall score from 0 to 100. Provide 0 if validation fails.",
        },
        "feedback": {
            "type": "STRING",
            "description": "A short, natural language summary of the analysis (2-3 sentences). Provide an empty string if validation fails.",
        },
        "featureScores": {
            "type": "ARRAY",
            "description": "An array of scores for specific facial features. Must include "
                           + ", ".join(f"'{f}'" for f in config.MANDATORY_FEATURES)
                           + ". Provide an empty array if validation fails.",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "feature": {"type": "STRING", "description": "Name of the facial feature."},
                    "score": {"type": "INTEGER", "description": "Score for this feature from 0 to 100."},
                },
                "required": ["feature", "score"],
            },
        },
        "detailedScores": {
            "type": "ARRAY",
            "description": "An array of detailed ratio calculations. Should include ratios related to the feature scores. Provide an empty array if validation fails.",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "ratioName": {"type": "STRING", "description": "Name of the specific ratio measured (e.g., 'Face Width / Height', 'Nose Length / Philtrum-Chin Length', 'Forehead Height / Face Width')."},
                    "value": {"type": "STRING", "description": "The calculated ratio value as a string (e.g., '1.62')."},
                    "deviation": {"type": "INTEGER", "description": f"The percentage deviation from the golden ratio ({config.GOLDEN_RATIO})."},
                },
                "required": ["ratioName", "value", "deviation"],
            },
        },
        "overlayLines": {
            "type": "ARRAY",
            "description": "Array of lines for the front-view image. Coordinates are normalized (0.0-1.0). Provide an empty array if validation fails or it's a side-view.",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "x1": {"type": "NUMBER", "description": "Normalized starting x-coordinate (0.0-1.0)."},
                    "y1": {"type": "NUMBER", "description": "Normalized starting y-coordinate (0.0-1.0)."},
                    "x2": {"type": "NUMBER", "description": "Normalized ending x-coordinate (0.0-1.0)."},
                    "y2": {"type": "NUMBER", "description": "Normalized ending y-coordinate (0.0-1.0)."},
                    "label": {"type": "STRING", "description": "Optional label for the line."},
                },
                "required": ["x1", "y1", "x2", "y2"],
            },
        },
    },
    "required": ["overallScore", "feedback", "featureScores", "detailedScores", "overlayLines"],
}

GENERATION_CONFIG = {
    "response_mime_type": "application/json",
    "response_schema": ANALYSIS_SCHEMA,
}

# --- HELPERS ---

def image_part(image):
    """Inline blob for the request; the SDK base64-encodes `data` on the wire."""
    mime_type = "image/jpeg" if image.mime_type == "image/jpg" else image.mime_type
    return {"mime_type": mime_type, "data": image.payload}


def clean_json_string(json_str):
    """Strip a markdown code fence around the JSON body, if the model added one."""
    if "```json" in json_str:
        json_str = json_str.split("```json")[1].split("```")[0]
    elif "```" in json_str:
        json_str = json_str.split("```")[1].split("```")[0]
    return json_str.strip()


def parse_analysis(text):
    """
    Decode the service reply into an AnalysisResult.

    Raises:
        ResponseParseError: the text is not JSON, or the JSON does not have
            the AnalysisResult shape.
    """
    try:
        data = json.loads(clean_json_string(text or ""))
    except json.JSONDecodeError as e:
        logger.error("Failed to parse Gemini response: %r", text)
        raise ResponseParseError(config.MESSAGES['parse_failed'], raw_text=text) from e

    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        logger.error("Gemini response does not match the analysis schema: %s", e)
        raise ResponseParseError(config.MESSAGES['parse_failed'], raw_text=text) from e


# --- CLIENT ---

class AnalysisClient:
    """Sends one photo to Gemini and returns the decoded AnalysisResult."""

    def __init__(self, model_name=None, api_key=None):
        self.model_name = model_name or config.GEMINI_MODEL
        self._api_key = api_key

    @property
    def api_key(self):
        return self._api_key if self._api_key is not None else config.get_api_key()

    async def analyze(self, image):
        """
        Analyze a single ImageUnit. Every call goes to the service; nothing is
        cached, and failures are raised to the caller without retrying.
        """
        api_key = self.api_key
        if not api_key:
            raise ConfigurationError(config.MESSAGES['missing_api_key'])
        if image is None:
            raise InputRequired(config.MESSAGES['image_required'])

        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(self.model_name)
        contents = [ANALYSIS_PROMPT, image_part(image)]

        logger.info("Sending %s (%d bytes, %s) to %s", image.filename or "image", image.size, image.mime_type, self.model_name)
        try:
            response = await model.generate_content_async(contents, generation_config=GENERATION_CONFIG)
        except FaceAnalyzerError:
            raise
        except GoogleAPIError as e:
            logger.error("Gemini request failed: %s", e)
            raise TransportError(str(e)) from e
        except Exception as e:
            # Credential, connection and blocked-prompt errors raised outside the API error family
            logger.error("Gemini request failed (%s): %s", type(e).__name__, e)
            raise TransportError(str(e) or type(e).__name__) from e

        try:
            text = response.text
        except ValueError as e:
            # Raised by the SDK when the reply has no text part (e.g. blocked by safety filters).
            logger.error("Gemini returned no text: %s", e)
            raise ResponseParseError(config.MESSAGES['parse_failed']) from e

        result = parse_analysis(text)
        logger.info("Analysis finished: score=%s error=%s", result.overall_score, result.error)
        return result
