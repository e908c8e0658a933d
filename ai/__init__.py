# AI Judge Layer
"""
This module provides the grading collaborator used by the quiz services.

A judge receives the expression, the learner's meaning and the example
contexts of every candidate occurrence, and returns a GradedAnswer with
one verdict per context.
"""
import logging
from typing import Optional, Protocol, Sequence

import requests

from core import ContextVerdict, GradedAnswer, JudgeContext

logger = logging.getLogger(__name__)


class JudgeError(RuntimeError):
    """The grading service could not be reached or returned a bad reply."""


class Judge(Protocol):
    """Protocol for answer judges."""

    def grade(self, expression: str, meaning: str, contexts: Sequence[JudgeContext],
              is_expression_input: bool = True) -> GradedAnswer:
        """Grade one answer against the given contexts."""
        ...

    @property
    def name(self) -> str:
        """Judge name."""
        ...


class DummyJudge:
    """Dummy judge for testing without a grading service.

    An answer is correct when it equals the reference meaning of a context,
    ignoring case and surrounding whitespace.
    """

    def __init__(self, quality: int = 4):
        self.quality = quality

    @property
    def name(self) -> str:
        return "dummy"

    def grade(self, expression: str, meaning: str, contexts: Sequence[JudgeContext],
              is_expression_input: bool = True) -> GradedAnswer:
        answer = meaning.strip().casefold()
        verdicts = tuple(
            ContextVerdict(
                context=context.context,
                correct=bool(answer) and answer == context.reference_meaning.strip().casefold(),
            )
            for context in contexts
        )
        correct = any(verdict.correct for verdict in verdicts)
        return GradedAnswer(
            correct=correct,
            quality=self.quality if correct else 1,
            expression=expression,
            meaning=meaning,
            context_verdicts=verdicts,
        )


def _parse_quality(value, correct: bool) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 5:
        return value
    return 4 if correct else 1


def parse_answer(payload: dict) -> GradedAnswer:
    """Map a grading service reply to a GradedAnswer."""
    if not isinstance(payload, dict):
        raise JudgeError(f"unexpected judge reply: {payload!r}")
    verdicts = []
    for item in payload.get("answers") or []:
        if not isinstance(item, dict):
            raise JudgeError(f"unexpected judge verdict: {item!r}")
        correct = bool(item.get("correct"))
        verdicts.append(ContextVerdict(
            context=str(item.get("context") or ""),
            correct=correct,
            reason=str(item.get("reason") or ""),
            quality=_parse_quality(item.get("quality"), correct) if "quality" in item else 0,
        ))
    correct = bool(payload.get("correct")) or any(verdict.correct for verdict in verdicts)
    return GradedAnswer(
        correct=correct,
        quality=_parse_quality(payload.get("quality"), correct),
        reason=str(payload.get("reason") or ""),
        expression=str(payload.get("expression") or ""),
        meaning=str(payload.get("meaning") or ""),
        context_verdicts=tuple(verdicts),
    )


class HttpJudge:
    """Judge backed by an external grading service.

    Sends a single POST per answer; retries and prompting are the service's
    business.
    """

    def __init__(self, base_url: str, timeout: float = 30, api_key: str = "",
                 session: Optional[requests.Session] = None):
        self.base_url = base_url
        self.timeout = timeout
        self.api_key = api_key
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: dict) -> "HttpJudge":
        cfg = settings.get("judge", {})
        return cls(
            base_url=cfg.get("base_url", ""),
            timeout=cfg.get("timeout", 30),
            api_key=cfg.get("api_key", ""),
        )

    @property
    def name(self) -> str:
        return "http"

    def grade(self, expression: str, meaning: str, contexts: Sequence[JudgeContext],
              is_expression_input: bool = True) -> GradedAnswer:
        """Post one grading request and return the parsed answer.

        Raises:
            JudgeError: on transport errors, non-2xx replies or bad JSON
        """
        data = {
            "expression": expression,
            "meaning": meaning,
            "is_expression_input": is_expression_input,
            "contexts": [
                {
                    "context": context.context,
                    "reference_meaning": context.reference_meaning,
                    "usage": context.usage,
                }
                for context in contexts
            ],
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            resp = self.session.post(self.base_url, json=data, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            raise JudgeError(f"grading request failed: {e}") from e
        except ValueError as e:
            raise JudgeError(f"grading reply is not JSON: {e}") from e

        logger.debug("Judge reply for %r: %s", expression, payload)
        return parse_answer(payload)
