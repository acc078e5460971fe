"""Chat-completion clients for the OpenRouter API.

Both clients POST to the same endpoint and differ only in the user message
(multimodal audio + instruction, or plain text) and the system prompt. They
are stateless: every failure is raised as an ``ApiError`` carrying one code
and no retry happens here.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Optional

import requests

from errors import EMPTY_RESPONSE, NETWORK_ERROR, PARSE_ERROR, UNKNOWN_ERROR, ApiError
from prompts import PromptMode, effective_prompt, effective_user_instruction

logger = logging.getLogger(__name__)

ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
MODEL = "google/gemini-3-flash-preview"
HTTP_REFERER = "com.voiceflow.keyboard"
X_TITLE = "VoiceFlow Keyboard"
TEMPERATURE = 0.2
MAX_TOKENS = 4096

AUDIO_FORMATS = ("mp3", "wav")

CORRECTION_SYSTEM_PROMPT = """You are a text editor. Your ONLY job is to fix grammatical and stylistic errors.

CRITICAL RULES:
- Output ONLY the corrected text, nothing else
- NO quotes around the text
- NO comments like "Here is the corrected version"
- Preserve the original meaning completely
- Fix spelling, grammar, punctuation, and style issues
- Maintain the same language as the input
- If the text is already correct, return it unchanged"""


class _ChatCompletionClient:
    timeout_s: float = 60.0

    def __init__(self, api_key: str, endpoint: str = ENDPOINT, model: str = MODEL) -> None:
        self._api_key = api_key
        self._endpoint = endpoint
        self._model = model

    def _complete(self, system_prompt: str, user_content: Any) -> str:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
        }
        try:
            response = requests.post(
                self._endpoint,
                headers=self._headers(),
                data=json.dumps(payload),
                timeout=(self.timeout_s, self.timeout_s),
            )
        except requests.RequestException as exc:
            raise ApiError(NETWORK_ERROR, f"Network error: {exc}") from exc
        except Exception as exc:
            raise ApiError(UNKNOWN_ERROR, f"Unknown error: {exc}") from exc

        logger.debug("OpenRouter responded with HTTP %s", response.status_code)
        if response.status_code != 200:
            raise ApiError.from_status(response.status_code, response.text)
        return _extract_content(response.text)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": HTTP_REFERER,
            "X-Title": X_TITLE,
        }


class TranscriptionClient(_ChatCompletionClient):
    timeout_s = 60.0

    def transcribe(
        self,
        audio_bytes: bytes,
        audio_format: str,
        mode: PromptMode,
        custom_prompt: Optional[str] = None,
    ) -> str:
        """Transcribe ``audio_bytes`` using the instructions for ``mode``."""
        if not audio_bytes:
            raise ValueError("audio_bytes must not be empty")
        if audio_format not in AUDIO_FORMATS:
            raise ValueError(f"unsupported audio format: {audio_format!r}")

        audio_b64 = base64.b64encode(audio_bytes).decode("ascii")
        user_content = [
            {"type": "text", "text": effective_user_instruction(mode, custom_prompt)},
            {
                "type": "input_audio",
                "input_audio": {"data": audio_b64, "format": audio_format},
            },
        ]
        logger.info(
            "Transcribing %d bytes of %s audio in %s mode",
            len(audio_bytes),
            audio_format,
            mode.value,
        )
        return self._complete(effective_prompt(mode, custom_prompt), user_content)


class CorrectionClient(_ChatCompletionClient):
    timeout_s = 30.0

    def correct_text(self, text: str) -> str:
        """Return the grammar- and style-corrected version of ``text``."""
        logger.info("Correcting %d characters of text", len(text))
        return self._complete(CORRECTION_SYSTEM_PROMPT, text)


def _extract_content(body: str) -> str:
    """Pull the trimmed first-choice content out of a 200 response body."""
    try:
        data = json.loads(body)
    except ValueError as exc:
        raise ApiError(PARSE_ERROR, f"Failed to parse response: {exc}", 200, body) from exc
    if not isinstance(data, dict):
        raise ApiError(PARSE_ERROR, "Failed to parse response: not an object", 200, body)

    choices = data.get("choices", [])
    if not isinstance(choices, list):
        raise ApiError(PARSE_ERROR, "Failed to parse response: bad choices", 200, body)
    if not choices:
        raise ApiError(EMPTY_RESPONSE, "Empty transcription response", 200, body)

    first = choices[0]
    if not isinstance(first, dict):
        raise ApiError(PARSE_ERROR, "Failed to parse response: bad choice", 200, body)
    message = first.get("message")
    if message is not None and not isinstance(message, dict):
        raise ApiError(PARSE_ERROR, "Failed to parse response: bad message", 200, body)
    content = (message or {}).get("content")
    if content is not None and not isinstance(content, str):
        raise ApiError(PARSE_ERROR, "Failed to parse response: bad content", 200, body)
    if not content or not content.strip():
        raise ApiError(EMPTY_RESPONSE, "Empty transcription response", 200, body)
    return content.strip()
