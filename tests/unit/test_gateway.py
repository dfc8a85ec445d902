"""
Unit Tests for the Analysis Gateway

Request boundary behaviour: dispatch, recovery, and failure conversion.
"""
import json
from unittest.mock import AsyncMock

import httpx
import pytest

from mediflow.core.analysis import AnalysisGateway, ExtractionOutcome, failure_payload
from mediflow.core.analysis.gateway import FAILURE_ANALYSIS
from mediflow.core.llm import GeminiResponse
from mediflow.utils import InvalidRequestError


def assert_failure_shape(result):
    assert not result.ok
    assert result.payload["severity"] == "routine"
    assert result.payload["confidence"] == 0
    assert result.payload["actions"] == []
    assert result.payload["analysis"] == FAILURE_ANALYSIS
    assert isinstance(result.payload["error"], str) and result.payload["error"]


class TestPatientAnalysis:
    """Patient path through handle()."""

    async def test_structured_reply(self, gemini_stub, critical_patient_data, structured_reply):
        """A well-formed embedded object is returned unchanged with 200."""
        gateway = AnalysisGateway(gemini_stub(text=structured_reply).client())
        result = await gateway.handle({"patient": critical_patient_data})

        assert result.status_code == 200
        assert result.outcome is ExtractionOutcome.STRUCTURED
        assert result.payload == {
            "analysis": "ok",
            "severity": "warning",
            "confidence": 60,
            "actions": [],
        }

    async def test_prompt_sent_to_model(self, gemini_stub, critical_patient_data, structured_reply):
        """The rendered patient prompt reaches the model."""
        stub = gemini_stub(text=structured_reply)
        await AnalysisGateway(stub.client()).handle({"patient": critical_patient_data})

        sent = stub.last_payload["contents"][0]["parts"][0]["text"]
        assert "glucose: 180 (Normal: 70-100) - Status: critical" in sent

    async def test_unstructured_reply_recovered(self, gemini_stub, routine_patient_data):
        """Plain text replies still succeed, with confidence 80."""
        gateway = AnalysisGateway(gemini_stub(text="All labs look normal.").client())
        result = await gateway.handle({"patient": routine_patient_data})

        assert result.status_code == 200
        assert result.outcome is ExtractionOutcome.UNSTRUCTURED
        assert result.payload["confidence"] == 80
        assert result.payload["actions"][0]["type"] == "review_needed"
        assert "error" not in result.payload

    async def test_malformed_reply_recovered(self, gemini_stub, routine_patient_data):
        """A broken JSON attempt still succeeds, with confidence 75."""
        gateway = AnalysisGateway(gemini_stub(text="{not valid json").client())
        result = await gateway.handle({"patient": routine_patient_data})

        assert result.status_code == 200
        assert result.outcome is ExtractionOutcome.MALFORMED
        assert result.payload["confidence"] == 75
        assert len(result.payload["actions"]) == 1

    @pytest.mark.parametrize("confidence,expected", [
        ("NaN", 75),
        ("Infinity", 75),
        ("-Infinity", 75),
        ("1e400", 100),
        ('"high"', 75),
    ])
    async def test_unusable_confidence_recovered(self, gemini_stub, routine_patient_data,
                                                 confidence, expected):
        """A parseable reply with a bad confidence never becomes a total failure."""
        reply = '{"analysis":"a","severity":"warning","confidence":%s,"actions":[]}' % confidence
        gateway = AnalysisGateway(gemini_stub(text=reply).client())
        result = await gateway.handle({"patient": routine_patient_data})

        assert result.status_code == 200
        assert result.payload["confidence"] == expected
        assert "error" not in result.payload

    async def test_idempotent(self, gemini_stub, critical_patient_data, structured_reply):
        """Same input and deterministic oracle: byte-identical payloads."""
        gateway = AnalysisGateway(gemini_stub(text=structured_reply).client())

        first = await gateway.handle({"patient": critical_patient_data})
        second = await gateway.handle({"patient": critical_patient_data})

        assert json.dumps(first.payload) == json.dumps(second.payload)


class TestChat:
    """Chat path through handle()."""

    async def test_chat_returns_text(self, gemini_stub):
        """The reply text is returned as analysis, with no actions."""
        stub = gemini_stub(text="An HbA1c of 8% indicates {poor} glycaemic control.")
        result = await AnalysisGateway(stub.client()).handle(
            {"prompt": "What does HbA1c 8% mean?", "type": "chat"}
        )

        assert result.status_code == 200
        assert result.payload["analysis"] == "An HbA1c of 8% indicates {poor} glycaemic control."
        assert result.payload["actions"] == []
        assert result.payload["severity"] == "routine"
        assert result.payload["confidence"] == 80

    async def test_chat_prompt_wrapped(self, gemini_stub):
        """The question is wrapped before being sent."""
        stub = gemini_stub(text="Hi")
        await AnalysisGateway(stub.client()).handle({"prompt": "Hello there", "type": "chat"})

        sent = stub.last_payload["contents"][0]["parts"][0]["text"]
        assert sent.endswith("Hello there")
        assert "medical assistant" in sent


class TestFailures:
    """Fatal failures become the error shape; nothing escapes handle()."""

    async def test_missing_credential(self, gemini_stub, critical_patient_data, no_gemini_credential):
        """No key: 500 with confidence 0 and an error message."""
        gateway = AnalysisGateway(gemini_stub(text="unused").client(api_key=None))
        result = await gateway.handle({"patient": critical_patient_data})

        assert result.status_code == 500
        assert_failure_shape(result)
        assert "GEMINI_API_KEY" in result.payload["error"]

    async def test_upstream_status(self, gemini_stub, critical_patient_data):
        """Upstream 503: 500 with the status in the error."""
        gateway = AnalysisGateway(gemini_stub(status_code=503, body={}).client())
        result = await gateway.handle({"patient": critical_patient_data})

        assert result.status_code == 500
        assert_failure_shape(result)
        assert "503" in result.payload["error"]

    async def test_network_error(self, gemini_stub, critical_patient_data):
        """Connection failure: 500."""
        gateway = AnalysisGateway(gemini_stub(exc=httpx.ConnectError).client())
        result = await gateway.handle({"patient": critical_patient_data})

        assert result.status_code == 500
        assert_failure_shape(result)

    async def test_empty_generation(self, gemini_stub, critical_patient_data):
        """No generated text: 500."""
        gateway = AnalysisGateway(gemini_stub(body={"candidates": []}).client())
        result = await gateway.handle({"patient": critical_patient_data})

        assert result.status_code == 500
        assert result.payload["error"] == "No response from Gemini API"

    async def test_unexpected_exception(self, critical_patient_data, caplog):
        """An unexpected error is logged and converted, not raised."""
        client = AsyncMock()
        client.generate.side_effect = RuntimeError("boom")
        gateway = AnalysisGateway(client)

        with caplog.at_level("ERROR", logger="mediflow.core.analysis.gateway"):
            result = await gateway.handle({"patient": critical_patient_data})

        assert result.status_code == 500
        assert result.payload["error"] == "boom"
        assert any(r.exc_info for r in caplog.records)

    async def test_failure_logged(self, gemini_stub, critical_patient_data, no_gemini_credential, caplog):
        """Total failures are logged at ERROR."""
        gateway = AnalysisGateway(gemini_stub(text="x").client(api_key=None))
        with caplog.at_level("ERROR", logger="mediflow.core.analysis.gateway"):
            await gateway.handle({"patient": critical_patient_data})

        assert any(r.levelname == "ERROR" for r in caplog.records)


class TestRequestValidation:
    """Bodies that match neither request shape."""

    @pytest.mark.parametrize("body", [
        None,
        [],
        "patient",
        {},
        {"prompt": "hi"},
        {"type": "chat"},
        {"prompt": "   ", "type": "chat"},
    ])
    async def test_invalid_shapes(self, gemini_stub, body):
        """Invalid bodies produce 400 with the failure shape and no model call."""
        stub = gemini_stub(text="unused")
        result = await AnalysisGateway(stub.client()).handle(body)

        assert result.status_code == 400
        assert_failure_shape(result)
        assert stub.requests == []

    async def test_non_positive_age(self, gemini_stub, critical_patient_data):
        """Age must be a positive integer."""
        critical_patient_data["age"] = 0
        result = await AnalysisGateway(gemini_stub(text="x").client()).handle(
            {"patient": critical_patient_data}
        )
        assert result.status_code == 400

    async def test_unknown_lab_status(self, gemini_stub, critical_patient_data):
        """Lab status outside the three values is rejected."""
        critical_patient_data["labResults"]["glucose"]["status"] = "elevated"
        result = await AnalysisGateway(gemini_stub(text="x").client()).handle(
            {"patient": critical_patient_data}
        )
        assert result.status_code == 400

    def test_parse_request_reports_fields(self):
        """Validation errors name the offending field."""
        with pytest.raises(InvalidRequestError) as exc_info:
            AnalysisGateway.parse_request({"patient": {"name": "X", "age": 40}})

        locations = [err["loc"] for err in exc_info.value.errors]
        assert "patient.lastVisit" in locations


def test_failure_payload_shape():
    """failure_payload carries error plus the renderable fields."""
    payload = failure_payload("GEMINI_API_KEY is not set")
    assert payload == {
        "error": "GEMINI_API_KEY is not set",
        "analysis": FAILURE_ANALYSIS,
        "severity": "routine",
        "confidence": 0,
        "actions": [],
    }


async def test_analyze_patient_direct(critical_patient, structured_reply):
    """analyze_patient can be used without the boundary."""
    client = AsyncMock()
    client.generate.return_value = GeminiResponse(text=structured_reply, model="stub")
    result = await AnalysisGateway(client).analyze_patient(critical_patient)

    assert result.payload["severity"] == "warning"
    client.generate.assert_awaited_once()
