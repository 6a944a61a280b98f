"""Test helpers to stub the OpenAI Responses client used by extraction.py.

The stub answers every ``responses.create`` call from a caller-supplied list of
outcomes: a string becomes ``output_text`` and an exception instance is raised.
Calls are recorded so tests can assert on models, prompts and retry counts.
"""

from __future__ import annotations

from typing import Any


class StatusError(Exception):
    """Exception carrying an HTTP ``status_code`` like the OpenAI SDK errors."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class OpenAIStub:
    """Minimal stub matching the ``openai.OpenAI`` shape used for extraction.

    Parameters
    ----------
    outcomes:
        Consumed in order, one per call. The last outcome repeats once the
        list is exhausted.
    """

    def __init__(self, outcomes: list[str | Exception]) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[dict[str, Any]] = []

        class _Responses:
            def __init__(self, outer: OpenAIStub) -> None:
                self._outer = outer

            def create(self, **kwargs):
                self._outer.calls.append(kwargs)
                idx = min(len(self._outer.calls), len(self._outer._outcomes)) - 1
                outcome = self._outer._outcomes[idx]
                if isinstance(outcome, Exception):
                    raise outcome

                class _Resp:
                    output_text: str

                resp = _Resp()
                resp.output_text = outcome
                return resp

        self.responses = _Responses(self)
