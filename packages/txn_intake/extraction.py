"""Receipt / transfer-screenshot extraction via the OpenAI Responses API.

Public API:
    - :func:`parse_extraction`: decode the model's JSON-ish reply into
      :class:`~txn_intake.models.RawFields`.
    - :class:`OpenAIImageExtractor`: callable ``(image_bytes, mime_type) -> str``.

The pipeline treats the extractor as opaque: any exception it raises, and any
reply :func:`parse_extraction` rejects, is a failure of that one image.
"""

from __future__ import annotations

import base64
import json
import random
import re
import time
from collections.abc import Callable
from typing import Any, TypeAlias

from openai import OpenAI
from pydantic import ValidationError

from .config import DEFAULT_MODEL
from .logging_setup import get_logger
from .models import ExtractedFields, RawFields

Extractor: TypeAlias = Callable[[bytes, str], str]

_MAX_ATTEMPTS: int = 3
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

EXTRACTION_INSTRUCTIONS = (
    "You read photos of receipts, invoices and bank-transfer screenshots. "
    "Return only a JSON object, with no markdown, using exactly these keys:\n"
    '  "date": transaction date as YYYY-MM-DD,\n'
    '  "subject": counterparty (sender/recipient name or shop),\n'
    '  "amount": amount as digits only, e.g. "100000",\n'
    '  "currency": "VND" or "USD",\n'
    '  "type": "Income" when money was received, "Expense" when it was paid,\n'
    '  "note": transfer message or receipt details.\n'
    "Use an empty string for any value you cannot read."
)

_logger = get_logger("txn_intake.extraction")


def _strip_fences(text: str) -> str:
    return _FENCE.sub("", text.strip()).strip()


def parse_extraction(text: str) -> RawFields:
    """Parse one extractor reply.

    Markdown code fences are tolerated. Raises ``ValueError`` when the reply
    is not a JSON object or fails validation.
    """

    cleaned = _strip_fences(text or "")
    if not cleaned:
        raise ValueError("extractor returned an empty response")
    try:
        decoded = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError(f"extractor response was not valid JSON: {e.msg}") from e
    if not isinstance(decoded, dict):
        raise ValueError("extractor response must be a JSON object")
    try:
        fields = ExtractedFields.model_validate(decoded)
    except ValidationError as e:
        raise ValueError(f"extractor response failed validation: {e.error_count()} error(s)") from e
    return fields.to_raw_fields()


def _response_text(resp: Any) -> str:
    """Locate the text output of a Responses API result.

    Prefers ``resp.output_text``; falls back to ``resp.output[0].content[0].text``.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content:
                txt_obj = getattr(content[0], "text", None)
                if isinstance(txt_obj, str):
                    text = txt_obj
                else:
                    maybe_val = getattr(txt_obj, "value", None)
                    if isinstance(maybe_val, str):
                        text = maybe_val
        except (AttributeError, IndexError, TypeError):
            text = None
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")
    return text


def _is_retryable(exc: BaseException) -> bool:
    """Only HTTP 429 and 5xx are retried; parse errors are terminal."""

    sc = getattr(exc, "status_code", None)
    return isinstance(sc, int) and (sc == 429 or 500 <= sc < 600)


def _sleep_backoff(attempt_no: int) -> None:
    idx = min(attempt_no - 1, len(_BACKOFF_SCHEDULE_SEC) - 1)
    base = _BACKOFF_SCHEDULE_SEC[idx]
    jitter = base * _JITTER_PCT
    time.sleep(max(0.0, base + random.uniform(-jitter, jitter)))


class OpenAIImageExtractor:
    """Extract transaction fields from one image with a vision-capable model.

    The client is created lazily on first use so constructing the extractor
    has no side effects (no environment reads, no network).
    """

    def __init__(self, *, model: str = DEFAULT_MODEL, client: Any | None = None) -> None:
        self.model = model
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = OpenAI()
        return self._client

    def __call__(self, image_bytes: bytes, mime_type: str) -> str:
        data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        request_input = [
            {
                "role": "user",
                "content": [
                    {"type": "input_text", "text": "Extract the transaction from this image."},
                    {"type": "input_image", "image_url": data_url},
                ],
            }
        ]
        client = self._get_client()
        attempt = 1
        while True:
            t0 = time.perf_counter()
            try:
                resp = client.responses.create(
                    model=self.model,
                    instructions=EXTRACTION_INSTRUCTIONS,
                    input=request_input,
                )
                return _response_text(resp)
            except Exception as e:  # noqa: BLE001
                dt_ms = (time.perf_counter() - t0) * 1000.0
                if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                    _logger.error(
                        "extract:failed_terminal mime=%s bytes=%d latency_ms=%.2f error=%s",
                        mime_type,
                        len(image_bytes),
                        dt_ms,
                        e.__class__.__name__,
                    )
                    raise
                _logger.warning(
                    "extract:retry attempt=%d latency_ms=%.2f error=%s",
                    attempt,
                    dt_ms,
                    e.__class__.__name__,
                )
                _sleep_backoff(attempt)
                attempt += 1


__all__ = [
    "EXTRACTION_INSTRUCTIONS",
    "Extractor",
    "OpenAIImageExtractor",
    "parse_extraction",
]
