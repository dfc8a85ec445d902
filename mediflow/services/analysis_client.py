import logging
from typing import Any, Dict, Optional, Union

import httpx

from mediflow.models import PatientRecord, LabStatus, Severity

logger = logging.getLogger(__name__)

CLIENT_FALLBACK_CONFIDENCE = 50

CHAT_APOLOGY = (
    "I apologize, but I'm having trouble processing your request right now. "
    "Please try again."
)

# Worst status wins
_SEVERITY_RANK = {
    LabStatus.CRITICAL: (2, Severity.CRITICAL),
    LabStatus.WARNING: (1, Severity.WARNING),
    LabStatus.ROUTINE: (0, Severity.ROUTINE),
}


def severity_from_labs(patient: PatientRecord) -> Severity:
    """Derive a display severity from caller-assigned lab statuses."""
    rank, severity = 0, Severity.ROUTINE
    for result in patient.lab_results.values():
        candidate_rank, candidate = _SEVERITY_RANK[result.status]
        if candidate_rank > rank:
            rank, severity = candidate_rank, candidate
    return severity


def local_fallback(patient: PatientRecord) -> Dict[str, Any]:
    """Analysis shown when the gateway cannot be reached at all."""
    flagged = [
        test for test, result in patient.lab_results.items()
        if result.status != LabStatus.ROUTINE
    ]
    if flagged:
        analysis = (
            f"AI analysis unavailable. Lab results flagged for review: {', '.join(flagged)}."
        )
    else:
        analysis = "AI analysis unavailable. All lab results are marked routine."
    return {
        "analysis": analysis,
        "severity": severity_from_labs(patient).value,
        "confidence": CLIENT_FALLBACK_CONFIDENCE,
        "actions": [],
    }


class AnalysisServiceClient:
    """
    Caller for the analysis gateway, as used by the dashboard.

    Any payload the gateway returns is passed through, including its 500
    failure shape. Only when no usable payload arrives does the client
    substitute its own fallback.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0
    ):
        self.base_url = base_url.rstrip("/")
        self.endpoint = f"{self.base_url}/api/v1/analyze-patient"
        self.timeout = timeout
        self._http_client = http_client

    async def _post(self, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """POST to the gateway; None when there is no analysis-shaped JSON reply."""
        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.endpoint, json=body, timeout=self.timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(self.endpoint, json=body, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.error(f"Analysis gateway request failed: {e}")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error(f"Analysis gateway returned non-JSON body (status {response.status_code})")
            return None

        if not isinstance(data, dict) or "analysis" not in data:
            logger.error(f"Analysis gateway returned unexpected payload (status {response.status_code})")
            return None

        if "error" in data:
            logger.warning(f"Analysis gateway reported failure: {data['error']}")
        return data

    async def analyze_patient(self, patient: Union[PatientRecord, Dict[str, Any]]) -> Dict[str, Any]:
        """Request an analysis; falls back locally (confidence 50) on failure."""
        record = patient if isinstance(patient, PatientRecord) else PatientRecord.model_validate(patient)
        body = {"patient": record.model_dump(mode="json", by_alias=True, exclude_none=True)}

        data = await self._post(body)
        if data is None:
            return local_fallback(record)
        return data

    async def ask(self, question: str) -> str:
        """Ask the assistant a question; returns an apology on failure."""
        data = await self._post({
            "prompt": f"User question: {question}. Please provide a helpful medical assistant response.",
            "type": "chat",
        })
        if data is None or "error" in data:
            return CHAT_APOLOGY
        return data.get("analysis") or CHAT_APOLOGY
