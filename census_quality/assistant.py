"""Gemini HTTP client for the census conversation assistant.

Responsibilities:
- Send `generateContent` requests with the chat history and analysis context.
- Extract the reply text from the response payload.
- Map every failure to a fixed user-facing fallback reply.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

import requests

from .config import Settings
from .models import AnalysisResult, ChatTurn

logger = logging.getLogger(__name__)

MISSING_KEY_REPLY = (
    "I'm sorry, I cannot process your request because the API Key is missing. "
    "Please configure the application with a valid Gemini API Key."
)
EMPTY_REPLY = (
    "I processed the data, but I couldn't generate a verbal summary. "
    "Please check the dashboard."
)
SERVICE_ERROR_REPLY = (
    "I encountered an error while communicating with the AI service. Please try again."
)
SUMMARY_REQUEST = (
    "I have uploaded the file. Please analyze it and give me the Executive Summary."
)

SYSTEM_INSTRUCTION = """You are an expert Census Quality Scoring Agent for Group Life Insurance.
Your role is to assist the user (Insurance Operations or Broker) in understanding the quality of their census data.

You have access to a specific analysis report if provided.

TONE: Professional, analytical, helpful, and concise.

WHAT YOU DO:
- Explain the "Risk Score".
- Highlight specific data issues (missing salaries, EOI risks).
- Suggest operational next steps.

WHAT YOU DO NOT DO:
- You do NOT offer to change the data yourself.
- You do NOT make underwriting decisions.

If analysis data is present, refer to specific numbers (e.g., "The 4 missing salaries are lowering your completeness score").
If the user uploads a file, acknowledge it and summarize the findings based on the provided JSON context.
"""


class AssistantServiceError(RuntimeError):
    """Raised when the text-generation service fails or returns malformed output."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code


def build_system_instruction(context: Optional[AnalysisResult]) -> str:
    if context is None:
        return SYSTEM_INSTRUCTION
    return f"{SYSTEM_INSTRUCTION}\n\nCURRENT ANALYSIS CONTEXT: {context.model_dump_json()}"


class GeminiChatClient:
    """Minimal requests-based client for the Gemini `generateContent` endpoint."""

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        base_url: str,
        timeout_seconds: float = 60.0,
    ) -> None:
        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiChatClient":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout_seconds=settings.request_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def build_payload(
        self,
        history: Sequence[ChatTurn],
        user_message: str,
        context: Optional[AnalysisResult] = None,
    ) -> dict[str, Any]:
        contents = [{"role": turn.role, "parts": [{"text": turn.text}]} for turn in history]
        contents.append({"role": "user", "parts": [{"text": user_message}]})
        return {
            "systemInstruction": {"parts": [{"text": build_system_instruction(context)}]},
            "contents": contents,
        }

    def generate(
        self,
        history: Sequence[ChatTurn],
        user_message: str,
        context: Optional[AnalysisResult] = None,
    ) -> str:
        """Return the reply text; an empty string means the service produced no text."""

        if not self.configured:
            raise AssistantServiceError("Missing Gemini API key.", failure_kind="invalid_api_key")

        endpoint = f"{self.base_url}/models/{self.model}:generateContent"
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        try:
            response = requests.post(
                endpoint,
                headers=headers,
                json=self.build_payload(history, user_message, context),
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            body = bytes(response.content)
        except requests.HTTPError as exc:
            status_code = exc.response.status_code if exc.response is not None else 0
            failure_kind = "invalid_api_key" if status_code in (401, 403) else "http_error"
            raise AssistantServiceError(
                f"Gemini request failed (HTTP {status_code}).",
                failure_kind=failure_kind,
                status_code=status_code,
            ) from exc
        except (requests.Timeout, TimeoutError) as exc:
            raise AssistantServiceError("Gemini request timed out.", failure_kind="timeout") from exc
        except requests.RequestException as exc:
            raise AssistantServiceError(
                f"Gemini request transport error: {_redact(str(exc), self.api_key)}",
                failure_kind="transport",
            ) from exc

        return self._extract_text(body)

    @staticmethod
    def _extract_text(body: bytes) -> str:
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise AssistantServiceError(
                "Gemini returned invalid JSON payload.", failure_kind="malformed_response"
            ) from exc

        if not isinstance(payload, dict):
            raise AssistantServiceError(
                "Gemini response is not a JSON object.", failure_kind="malformed_response"
            )
        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return ""
        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return ""
        texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
        return "".join(texts).strip()


def _redact(text: str, api_key: str) -> str:
    if not api_key:
        return text
    return text.replace(api_key, "[redacted-key]")


def generate_chat_response(
    client: GeminiChatClient,
    history: Sequence[ChatTurn],
    user_message: str,
    context: Optional[AnalysisResult] = None,
) -> str:
    """Return one assistant reply, or a fixed fallback string when the service is unavailable."""

    if not client.configured:
        return MISSING_KEY_REPLY
    try:
        text = client.generate(history, user_message, context)
    except AssistantServiceError as exc:
        logger.warning(
            "assistant call failed: kind=%s status=%s detail=%s",
            exc.failure_kind, exc.status_code, exc,
        )
        return SERVICE_ERROR_REPLY
    return text or EMPTY_REPLY
