"""
Reply Extraction

Turns the model's free text into an analysis payload. The reply is expected,
not guaranteed, to contain a JSON object, possibly wrapped in commentary.

Three outcomes, each tagged with the confidence code it reports:

    STRUCTURED    the brace span parsed as a JSON object with a numeric confidence
    MALFORMED     a ``{`` was present but the span was unusable    -> 75
    UNSTRUCTURED  no ``{`` anywhere in the reply                   -> 80

The span runs from the first ``{`` to the last ``}`` (greedy). Commentary
containing unrelated braces before or after the object breaks extraction;
this is a known limitation kept for compatibility with existing clients.
"""
from dataclasses import dataclass
from enum import Enum
import json
import math
from typing import Any, Dict, Optional

from mediflow.models import AnalysisResponse, RecommendedAction, Severity, Priority
from mediflow.utils import get_logger

logger = get_logger(__name__)


class ExtractionOutcome(str, Enum):
    """Which extraction path produced the payload."""
    STRUCTURED = "structured"
    MALFORMED = "malformed"
    UNSTRUCTURED = "unstructured"

    @property
    def fallback_confidence(self) -> Optional[int]:
        """Confidence reported by the fallback payload; None when the model's own value is used."""
        return _FALLBACK_CONFIDENCE.get(self)


_FALLBACK_CONFIDENCE = {
    ExtractionOutcome.MALFORMED: 75,
    ExtractionOutcome.UNSTRUCTURED: 80,
}


@dataclass
class ExtractionResult:
    """Payload plus the outcome tag that produced it."""
    outcome: ExtractionOutcome
    payload: Dict[str, Any]
    error: Optional[str] = None

    @property
    def recovered(self) -> bool:
        return self.outcome is not ExtractionOutcome.STRUCTURED


def manual_review_action() -> RecommendedAction:
    return RecommendedAction(
        type="review_needed",
        method="manual_review",
        message="Manual review required",
        priority=Priority.MEDIUM,
        estimated_time="5-10 min",
    )


def fallback_payload(text: str, outcome: ExtractionOutcome) -> Dict[str, Any]:
    """Generic-review response wrapping the raw reply text."""
    return AnalysisResponse(
        analysis=text,
        severity=Severity.ROUTINE,
        confidence=outcome.fallback_confidence,
        actions=[manual_review_action()],
    ).to_payload()


def find_json_span(text: str) -> Optional[str]:
    """First ``{`` through last ``}``; None if there is no such span."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start:end + 1]


def _reject_constant(name: str):
    raise ValueError(f"non-standard JSON constant {name}")


def normalize_structured(parsed: Dict[str, Any]) -> Dict[str, Any]:
    """
    Light normalization of a parsed model object.

    ``actions`` becomes a list (never null) and ``confidence`` is rounded and
    clamped to 0-100, an overflowing literal such as ``1e400`` included.
    Other fields, severity included, pass through untouched.

    Raises:
        ValueError: ``confidence`` is missing or not a number
    """
    result = dict(parsed)

    actions = result.get("actions")
    result["actions"] = actions if isinstance(actions, list) else []

    confidence = result.get("confidence")
    if not isinstance(confidence, (int, float)) or isinstance(confidence, bool):
        raise ValueError(f"confidence is not a number: {confidence!r}")
    if isinstance(confidence, float) and not math.isfinite(confidence):
        result["confidence"] = 100 if confidence > 0 else 0
    else:
        result["confidence"] = max(0, min(100, int(round(confidence))))

    return result


def extract_analysis(text: str) -> ExtractionResult:
    """Classify a model reply and build the matching analysis payload."""
    if "{" not in text:
        return ExtractionResult(
            outcome=ExtractionOutcome.UNSTRUCTURED,
            payload=fallback_payload(text, ExtractionOutcome.UNSTRUCTURED),
        )

    span = find_json_span(text)
    if span is None:
        error = "opening brace without a closing brace"
    else:
        try:
            # A span starting with "{" can only parse to an object
            parsed = json.loads(span, parse_constant=_reject_constant)
            return ExtractionResult(
                outcome=ExtractionOutcome.STRUCTURED,
                payload=normalize_structured(parsed),
            )
        except json.JSONDecodeError as e:
            error = f"invalid JSON: {e}"
        except ValueError as e:
            error = f"unusable JSON: {e}"

    logger.warning(f"JSON parse error in model reply: {error}")
    return ExtractionResult(
        outcome=ExtractionOutcome.MALFORMED,
        payload=fallback_payload(text, ExtractionOutcome.MALFORMED),
        error=error,
    )
