"""
Analysis Gateway

Turns a patient record (or a chat question) into an analysis payload using
the Gemini model. ``handle()`` is the request boundary: it never raises, and
always returns a status code with a payload the dashboard can render.

Status semantics:
    200  best-effort analysis (structured, or a locally recovered fallback)
    400  request body matched neither request shape
    500  total failure (configuration, transport, empty generation, unexpected)
"""
from dataclasses import dataclass
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from mediflow.core.llm import GeminiClient
from mediflow.core.analysis.prompts import build_patient_prompt, build_chat_prompt
from mediflow.core.analysis.extraction import extract_analysis, ExtractionOutcome
from mediflow.models import AnalyzeRequest, AnalysisResponse, PatientRecord, Severity
from mediflow.utils import get_logger, AnalysisGatewayError, InvalidRequestError

logger = get_logger(__name__)

FAILURE_ANALYSIS = "Unable to analyze patient data at this time."


@dataclass
class GatewayResult:
    """HTTP status plus JSON payload produced by the boundary."""
    status_code: int
    payload: Dict[str, Any]
    outcome: Optional[ExtractionOutcome] = None

    @property
    def ok(self) -> bool:
        return self.status_code < 400


def failure_payload(message: str) -> Dict[str, Any]:
    """Terminal fallback returned with a non-success status."""
    payload = AnalysisResponse(
        analysis=FAILURE_ANALYSIS,
        severity=Severity.ROUTINE,
        confidence=0,
        actions=[],
    ).to_payload()
    return {"error": message, **payload}


class AnalysisGateway:
    """
    Stateless per call; one instance can serve concurrent requests.

    The only shared collaborator is the Gemini client, which holds no
    per-request state.
    """

    def __init__(self, client: Optional[GeminiClient] = None):
        self.client = client or GeminiClient()

    async def analyze_patient(self, patient: PatientRecord) -> GatewayResult:
        """Run the structured analysis. Fatal errors propagate to ``handle()``."""
        prompt = build_patient_prompt(patient)
        logger.info(
            f"Analyzing patient {patient.id or '<no id>'}",
            extra={"context": {"labs": len(patient.lab_results)}}
        )

        response = await self.client.generate(prompt)
        result = extract_analysis(response.text)

        logger.info(
            f"Extraction outcome: {result.outcome.value}",
            extra={"context": {"latency_ms": round(response.latency_ms, 1)}}
        )
        return GatewayResult(status_code=200, payload=result.payload, outcome=result.outcome)

    async def chat(self, question: str) -> GatewayResult:
        """Answer a free-form question; the reply text is returned unparsed."""
        logger.info("Answering chat question", extra={"context": {"chars": len(question)}})
        response = await self.client.generate(build_chat_prompt(question))
        payload = AnalysisResponse(
            analysis=response.text,
            severity=Severity.ROUTINE,
            confidence=ExtractionOutcome.UNSTRUCTURED.fallback_confidence,
            actions=[],
        ).to_payload()
        return GatewayResult(status_code=200, payload=payload, outcome=ExtractionOutcome.UNSTRUCTURED)

    async def handle(self, body: Any) -> GatewayResult:
        """Validate a decoded request body, dispatch it, and convert any failure."""
        try:
            request = self.parse_request(body)
            if request.is_chat:
                return await self.chat(request.prompt)
            return await self.analyze_patient(request.patient)
        except AnalysisGatewayError as e:
            level = logging.ERROR if e.status_code >= 500 else logging.WARNING
            logger.log(level, f"Error in analyze-patient request: {e.message}", extra={"context": {"code": e.code}})
            return GatewayResult(status_code=e.status_code, payload=failure_payload(e.message))
        except Exception as e:
            logger.exception("Unexpected error in analyze-patient request")
            return GatewayResult(status_code=500, payload=failure_payload(str(e) or type(e).__name__))

    @staticmethod
    def parse_request(body: Any) -> AnalyzeRequest:
        if not isinstance(body, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        try:
            return AnalyzeRequest.model_validate(body)
        except ValidationError as e:
            errors = [
                {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ]
            raise InvalidRequestError("Invalid analysis request", errors=errors) from e
