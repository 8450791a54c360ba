"""
Client for the generative-AI backend (Gemini-style REST API).

Every outbound call the generation core makes goes through this module:
structured recipe text, dish images, long-running video jobs, and plain
binary fetches. Functions raise `GenAIBackendError` for transport failures
and error payloads, and return None when the backend answers successfully
but with nothing usable, so callers can tell "rejected" from "empty".
"""
import base64
import binascii
import json
import logging
import re
from typing import Any, Dict, Optional

import httpx

from pantry_chef.app.core.config import get_settings
from pantry_chef.app.schemas.video import OperationStatus

logger = logging.getLogger(__name__)

RECIPE_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING", "description": "The title of the recipe."},
        "cookingTime": {
            "type": "STRING",
            "description": 'The estimated cooking time in minutes, e.g. "30-45 minutes".',
        },
        "ingredients": {
            "type": "STRING",
            "description": "Comma separated list of ingredients with quantities.",
        },
        "instructions": {
            "type": "STRING",
            "description": "Step-by-step instructions, one step per line.",
        },
        "chefCommentary": {
            "type": "STRING",
            "description": "A short, encouraging and impressive sentence from the chef about the dish.",
        },
    },
    "required": ["title", "cookingTime", "ingredients", "instructions", "chefCommentary"],
}

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+/-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


class GenAIBackendError(Exception):
    """Raised when the backend cannot be reached or answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _headers() -> Dict[str, str]:
    settings = get_settings()
    if not settings.gemini_api_key:
        raise GenAIBackendError("GEMINI_API_KEY must be set to call the generative backend")
    return {
        "Content-Type": "application/json",
        "x-goog-api-key": settings.gemini_api_key,
    }


def _api_root() -> str:
    settings = get_settings()
    return f"{settings.genai_base_url.rstrip('/')}/{settings.genai_api_version}"


def _model_url(model_name: str, method: str) -> str:
    return f"{_api_root()}/models/{model_name}:{method}"


def _strip_code_fence(text: str) -> str:
    txt = text.strip()
    if txt.startswith("```"):
        txt = re.sub(r"^```[a-zA-Z0-9_-]*\s*", "", txt, count=1)
        txt = re.sub(r"\s*```$", "", txt, count=1).strip()
    return txt


def _raise_for_error_payload(data: Any, context: str) -> None:
    if isinstance(data, dict) and data.get("error"):
        error_info = data["error"]
        if isinstance(error_info, dict):
            status = error_info.get("status", "unknown_error")
            message = error_info.get("message", "Unknown error")
        else:
            status, message = "unknown_error", str(error_info)
        logger.warning("Backend returned error in %s: status=%s, message=%s", context, status, str(message)[:500])
        raise GenAIBackendError(f"Backend error in {context} ({status}): {message}")


def _candidate_parts(data: Dict[str, Any]) -> list:
    candidates = data.get("candidates") or []
    if not candidates:
        return []
    content = candidates[0].get("content") or {}
    return content.get("parts") or []


def _json_body(resp: httpx.Response, context: str) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as exc:
        raise GenAIBackendError(f"{context} returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise GenAIBackendError(f"{context} returned an unexpected payload")
    return data


async def _post_json(url: str, payload: Dict[str, Any], timeout_seconds: float, context: str) -> Dict[str, Any]:
    timeout = httpx.Timeout(timeout_seconds, read=timeout_seconds, connect=10.0)
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(url, json=payload, headers=_headers())
    except httpx.TimeoutException as exc:
        logger.warning("%s request timed out after %ss", context, timeout_seconds)
        raise GenAIBackendError(f"{context} timed out after {timeout_seconds}s") from exc
    except httpx.HTTPError as exc:
        raise GenAIBackendError(f"{context} failed: {exc}") from exc

    if resp.status_code >= 400:
        logger.warning("%s returned error: status=%s, body=%s", context, resp.status_code, resp.text[:1000])
        raise GenAIBackendError(f"{context} error: {resp.status_code}", status_code=resp.status_code)
    data = _json_body(resp, context)
    _raise_for_error_payload(data, context)
    return data


async def generate_recipe_json(prompt: str) -> Optional[Dict[str, Any]]:
    """Ask the text model for a recipe; returns the decoded JSON object or None if empty."""
    settings = get_settings()
    payload = {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {
            "temperature": 0.9,
            "responseMimeType": "application/json",
            "responseSchema": RECIPE_RESPONSE_SCHEMA,
        },
    }
    data = await _post_json(
        _model_url(settings.text_model_name, "generateContent"),
        payload,
        settings.text_timeout_seconds,
        "recipe text generation",
    )
    texts = [part["text"] for part in _candidate_parts(data) if isinstance(part.get("text"), str)]
    content = "".join(texts).strip()
    logger.debug("text model raw content: %s", content[:2000])
    if not content:
        return None
    try:
        parsed = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError:
        logger.warning("Recipe text was not valid JSON: %s", content[:500])
        return None
    if isinstance(parsed, dict) and "recipe" in parsed and isinstance(parsed["recipe"], dict):
        parsed = parsed["recipe"]
    return parsed if isinstance(parsed, dict) and parsed else None


async def generate_image(prompt: str) -> Optional[str]:
    """Generate one image; returns it as a data URI, or None when no media came back."""
    settings = get_settings()
    payload = {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
    }
    data = await _post_json(
        _model_url(settings.image_model_name, "generateContent"),
        payload,
        settings.image_timeout_seconds,
        "image generation",
    )
    for part in _candidate_parts(data):
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            return f"data:{mime_type};base64,{inline['data']}"
        file_data = part.get("fileData") or part.get("file_data")
        if file_data and file_data.get("fileUri"):
            return file_data["fileUri"]
    return None


async def submit_video_job(prompt: str, image_bytes: bytes, mime_type: str) -> Optional[str]:
    """Start a long-running video job; returns the operation name (job handle) or None."""
    settings = get_settings()
    payload = {
        "instances": [
            {
                "prompt": prompt,
                "image": {
                    "bytesBase64Encoded": base64.b64encode(image_bytes).decode("utf-8"),
                    "mimeType": mime_type,
                },
            }
        ],
        "parameters": {
            "durationSeconds": settings.video_duration_seconds,
            "aspectRatio": settings.video_aspect_ratio,
        },
    }
    data = await _post_json(
        _model_url(settings.video_model_name, "predictLongRunning"),
        payload,
        settings.text_timeout_seconds,
        "video submission",
    )
    name = data.get("name")
    return name if isinstance(name, str) and name else None


def _extract_video_uri(response: Dict[str, Any]) -> Optional[str]:
    video_response = response.get("generateVideoResponse") or response
    samples = video_response.get("generatedSamples") or video_response.get("videos") or []
    for sample in samples:
        if not isinstance(sample, dict):
            continue
        video = sample.get("video") or sample
        uri = video.get("uri") or video.get("gcsUri")
        if uri:
            return uri
    return None


async def check_operation(operation_name: str) -> OperationStatus:
    """Single status check for a long-running operation."""
    settings = get_settings()
    url = f"{_api_root()}/{operation_name.lstrip('/')}"
    timeout = httpx.Timeout(settings.text_timeout_seconds, connect=10.0)
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.get(url, headers=_headers())
    except httpx.HTTPError as exc:
        raise GenAIBackendError(f"operation status check failed: {exc}") from exc
    if resp.status_code >= 400:
        logger.warning("Operation %s status check returned %s: %s", operation_name, resp.status_code, resp.text[:500])
        raise GenAIBackendError(f"operation status error: {resp.status_code}", status_code=resp.status_code)

    data = _json_body(resp, "operation status check")
    error_message = None
    if isinstance(data.get("error"), dict):
        error_message = data["error"].get("message") or "Unknown error"
    done = bool(data.get("done"))
    media_uri = _extract_video_uri(data.get("response") or {}) if done else None
    return OperationStatus(
        name=data.get("name") or operation_name,
        done=done or error_message is not None,
        error_message=error_message,
        media_uri=media_uri,
    )


def _decode_data_uri(uri: str) -> bytes:
    match = _DATA_URI_RE.match(uri)
    if not match:
        raise GenAIBackendError("malformed data URI")
    if match.group("b64"):
        try:
            return base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise GenAIBackendError(f"invalid base64 in data URI: {exc}") from exc
    return match.group("data").encode("utf-8")


async def fetch_binary(uri: str, params: Optional[Dict[str, str]] = None) -> bytes:
    """Fetch raw bytes from a URL; `data:` URIs are decoded locally."""
    if uri.startswith("data:"):
        return _decode_data_uri(uri)

    settings = get_settings()
    timeout = httpx.Timeout(settings.fetch_timeout_seconds, connect=10.0)
    try:
        # params extend the URI's own query, e.g. "?alt=media&key=..."
        url = httpx.URL(uri).copy_merge_params(params or {})
        async with httpx.AsyncClient(follow_redirects=True, timeout=timeout) as client:
            resp = await client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise GenAIBackendError(f"fetch failed: {exc}") from exc
    if resp.status_code >= 400:
        raise GenAIBackendError(f"fetch returned status {resp.status_code}", status_code=resp.status_code)
    return resp.content
