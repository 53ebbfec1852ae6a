"""
Vision oracle: the external image-understanding service that reads a board
photograph and answers with a raw, untrusted board notation.
"""

from __future__ import annotations

import os
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import httpx
from google import genai
from google.genai import errors, types
from loguru import logger

from .normalizer import OracleReading

DEFAULT_MODEL = "gemini-2.0-flash"

RECOGNITION_PROMPT = """\
You are reading a photograph of a Xiangqi (Chinese chess) board.
Report the position as JSON with a "fen" field and a short "explanation".

The "fen" field holds 10 rows separated by '/', written from RED's back rank
(rank 9) down to BLACK's back rank (rank 0). Each row describes the 9 files
from left to right. Letters: K general, A advisor, E elephant, H horse,
R chariot, C cannon, P soldier; uppercase for RED, lowercase for BLACK.
Digits 1-9 count consecutive empty points. Every row must cover exactly 9 points.
Report only what is visible; do not invent pieces.
"""


class OracleErrorKind(Enum):
    AUTH_FAILURE = "auth_failure"
    TRANSIENT = "transient"
    MALFORMED = "malformed"


class OracleError(Exception):
    """Failure to obtain any answer from the oracle."""

    def __init__(self, kind: OracleErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class OracleClient(Protocol):
    def request_recognition(self, image: bytes, mime_type: str) -> Awaitable[object]:
        """Ask the oracle to read ``image``; resolves to the raw payload."""
        ...


@dataclass(frozen=True)
class OracleConfig:
    api_key: str
    model: str = DEFAULT_MODEL
    temperature: float = 0.1
    prompt: str = RECOGNITION_PROMPT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OracleConfig:
        env = os.environ if environ is None else environ
        key = env.get("GEMINI_API_KEY") or env.get("GOOGLE_API_KEY") or ""
        model = env.get("XIANGQI_VISION_MODEL", "").strip() or DEFAULT_MODEL
        return cls(api_key=key.strip(), model=model)

    def __repr__(self) -> str:
        masked = "set" if self.api_key else "missing"
        return f"OracleConfig(api_key=<{masked}>, model={self.model!r})"


def classify_api_error(e: errors.APIError) -> OracleErrorKind:
    code = e.code or 0
    if code in (401, 403):
        return OracleErrorKind.AUTH_FAILURE
    if code in (408, 429) or code >= 500:
        return OracleErrorKind.TRANSIENT
    return OracleErrorKind.MALFORMED


class GeminiOracleClient:
    """Oracle backed by the Gemini API."""

    def __init__(self, config: OracleConfig) -> None:
        self.config = config
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    async def request_recognition(self, image: bytes, mime_type: str) -> str:
        if not self.config.api_key:
            raise OracleError(OracleErrorKind.AUTH_FAILURE, "no API key configured")

        contents = [
            types.Part.from_bytes(data=image, mime_type=mime_type),
            types.Part.from_text(text=self.config.prompt),
        ]
        config = types.GenerateContentConfig(
            temperature=self.config.temperature,
            response_mime_type="application/json",
            response_schema=OracleReading,
        )
        logger.debug("Oracle request | model={} | bytes={}", self.config.model, len(image))
        try:
            response = await self._get_client().aio.models.generate_content(
                model=self.config.model,
                contents=contents,
                config=config,
            )
        except errors.APIError as e:
            raise OracleError(classify_api_error(e), f"{e.code} {e.status}: {e.message}") from e
        except httpx.TransportError as e:
            raise OracleError(OracleErrorKind.TRANSIENT, f"transport error: {e}") from e

        text = response.text
        if not text:
            raise OracleError(OracleErrorKind.MALFORMED, "empty response")
        logger.debug("Oracle response | chars={}", len(text))
        return text
