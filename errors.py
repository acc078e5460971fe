"""Shared error codes and user-facing messages."""

from __future__ import annotations

from typing import Optional

AUTH_FAILED = "AUTH_FAILED"
RATE_LIMITED = "RATE_LIMITED"
NETWORK_ERROR = "NETWORK_ERROR"
REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
EMPTY_RESPONSE = "EMPTY_RESPONSE"
PARSE_ERROR = "PARSE_ERROR"
PERMISSION_DENIED = "PERMISSION_DENIED"
CAPTURE_FAILED = "CAPTURE_FAILED"
API_KEY_MISSING = "API_KEY_MISSING"
INPUT_TOO_LONG = "INPUT_TOO_LONG"
NO_INPUT_FIELD = "NO_INPUT_FIELD"
NO_TEXT_TO_CORRECT = "NO_TEXT_TO_CORRECT"
GENERIC_ERROR = "GENERIC_ERROR"

# Raised by the API clients only; surfaced to users as GENERIC_ERROR.
SERVER_ERROR = "SERVER_ERROR"
HTTP_ERROR = "HTTP_ERROR"
UNKNOWN_ERROR = "UNKNOWN_ERROR"

ERROR_MESSAGES = {
    AUTH_FAILED: "Invalid OpenRouter API key. Check Settings > API Key.",
    RATE_LIMITED: "Too many requests. Please wait a moment.",
    NETWORK_ERROR: "Connection failed. Check internet and try again.",
    REQUEST_TIMEOUT: "The request timed out. Please try again.",
    PAYLOAD_TOO_LARGE: "Audio too long. Maximum is 10 minutes.",
    EMPTY_RESPONSE: "Transcription failed. Please speak clearly and try again.",
    PARSE_ERROR: "The service returned a response that could not be read.",
    PERMISSION_DENIED: "Microphone permission required for voice input.",
    CAPTURE_FAILED: "Failed to start audio recording.",
    API_KEY_MISSING: "Please set your OpenRouter API key in Settings.",
    INPUT_TOO_LONG: "Text too long to correct (max 10000 characters).",
    NO_INPUT_FIELD: "No input field available.",
    NO_TEXT_TO_CORRECT: "No text to correct.",
    GENERIC_ERROR: "Something went wrong. Please try again.",
}


class ApiError(Exception):
    """Failure of a chat-completion request, tagged with one error code."""

    def __init__(
        self,
        code: str,
        message: str = "",
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message or code)
        self.code = code
        self.message = message or code
        self.status_code = status_code
        self.body = body

    @classmethod
    def from_status(cls, status_code: int, body: str) -> "ApiError":
        """Map a non-200 HTTP status to the matching failure."""
        if status_code == 401:
            return cls(AUTH_FAILED, "Invalid OpenRouter API key", status_code, body)
        if status_code == 429:
            return cls(RATE_LIMITED, "Rate limit exceeded", status_code, body)
        if status_code == 413:
            return cls(PAYLOAD_TOO_LARGE, "Audio payload too large", status_code, body)
        if status_code in (408, 504):
            return cls(REQUEST_TIMEOUT, "Request timed out", status_code, body)
        if 500 <= status_code <= 599:
            return cls(SERVER_ERROR, f"Server error: {status_code}", status_code, body)
        return cls(HTTP_ERROR, f"HTTP {status_code}: {body}", status_code, body)


def user_message(code: str, detail: str = "") -> str:
    """Message shown for an error code; GENERIC_ERROR prefers the detail."""
    if code == GENERIC_ERROR and detail:
        return detail
    return ERROR_MESSAGES.get(code, detail or ERROR_MESSAGES[GENERIC_ERROR])


_SURFACED_CODES = frozenset(
    {
        AUTH_FAILED,
        RATE_LIMITED,
        NETWORK_ERROR,
        REQUEST_TIMEOUT,
        PAYLOAD_TOO_LARGE,
        EMPTY_RESPONSE,
        PARSE_ERROR,
    }
)


def surfaced_code(exc: ApiError) -> str:
    """User-facing code for a client failure."""
    return exc.code if exc.code in _SURFACED_CODES else GENERIC_ERROR
