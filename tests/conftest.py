"""
Pytest Configuration and Fixtures

Shared fixtures for the analysis gateway tests. The Gemini API is never
contacted: ``GeminiStub`` serves canned replies through httpx.MockTransport.
"""
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mediflow.core.llm import GeminiClient, GeminiConfig
from mediflow.models import PatientRecord


def gemini_body(text: str) -> Dict[str, Any]:
    """Minimal successful generateContent response."""
    return {
        "candidates": [
            {"content": {"parts": [{"text": text}], "role": "model"}, "finishReason": "STOP"}
        ],
        "usageMetadata": {"promptTokenCount": 120, "candidatesTokenCount": 48},
    }


class GeminiStub:
    """Serves one canned Gemini reply and records every request it receives."""

    def __init__(
        self,
        text: Optional[str] = None,
        status_code: int = 200,
        body: Any = None,
        raw: Optional[str] = None,
        exc: Optional[type] = None
    ):
        self.text = text
        self.status_code = status_code
        self.body = body
        self.raw = raw
        self.exc = exc
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc("stubbed transport failure", request=request)
        if self.raw is not None:
            return httpx.Response(self.status_code, text=self.raw)
        if self.body is not None:
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, json=gemini_body(self.text or ""))

    def client(self, api_key: Optional[str] = "test-key") -> GeminiClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(self))
        return GeminiClient(GeminiConfig(api_key=api_key), http_client=http_client)

    @property
    def last_payload(self) -> Dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def gemini_stub():
    """Factory for GeminiStub instances."""
    return GeminiStub


@pytest.fixture
def no_gemini_credential(monkeypatch):
    """Remove every environment source of the Gemini key."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)


@pytest.fixture
def critical_patient_data() -> Dict[str, Any]:
    """Patient with one critical and two warning labs, as the dashboard sends it."""
    return {
        "id": "P001",
        "name": "John Anderson",
        "age": 67,
        "conditions": ["Type 2 Diabetes", "Hypertension"],
        "lastVisit": "2024-09-15",
        "labResults": {
            "glucose": {"value": 180, "normal": "70-100", "status": "critical"},
            "cholesterol": {"value": 240, "normal": "<200", "status": "warning"},
            "bloodPressure": {"value": "150/95", "normal": "<140/90", "status": "warning"},
        },
    }


@pytest.fixture
def routine_patient_data() -> Dict[str, Any]:
    """Patient whose labs are all routine."""
    return {
        "id": "P002",
        "name": "Sarah Chen",
        "age": 45,
        "conditions": ["Asthma"],
        "lastVisit": "2024-09-18",
        "labResults": {
            "peakFlow": {"value": 85, "normal": ">80%", "status": "routine"},
            "inflammation": {"value": 2.1, "normal": "<3.0", "status": "routine"},
        },
    }


@pytest.fixture
def critical_patient(critical_patient_data) -> PatientRecord:
    return PatientRecord.model_validate(critical_patient_data)


@pytest.fixture
def routine_patient(routine_patient_data) -> PatientRecord:
    return PatientRecord.model_validate(routine_patient_data)


@pytest.fixture
def structured_reply() -> str:
    """Model reply with a well-formed object wrapped in commentary."""
    return (
        "Here is my assessment of the patient:\n"
        '{"analysis":"ok","severity":"warning","confidence":60,"actions":[]}\n'
        "Let me know if you need anything else."
    )
