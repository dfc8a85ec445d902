"""
Prompt builders for the analysis gateway.

Both builders are pure: the same input always renders the same prompt.
"""
from mediflow.models import PatientRecord, LabResult


RESPONSE_FORMAT_EXAMPLE = """{
  "analysis": "Clinical analysis text",
  "severity": "critical|warning|routine",
  "confidence": 85,
  "actions": [
    {
      "type": "notify_doctor",
      "method": "slack_api",
      "message": "Alert message",
      "priority": "high",
      "estimated_time": "< 1 min"
    }
  ]
}"""


def format_lab_value(value) -> str:
    """Integral floats render without a trailing ``.0`` (``7.0`` -> ``7``)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_lab_line(test: str, result: LabResult) -> str:
    """Render one lab as ``<test>: <value> (Normal: <range>) - Status: <status>``."""
    return f"{test}: {format_lab_value(result.value)} (Normal: {result.normal}) - Status: {result.status.value}"


def build_patient_prompt(patient: PatientRecord) -> str:
    """Build the structured-analysis prompt for one patient record."""
    lab_lines = "\n".join(
        format_lab_line(test, result) for test, result in patient.lab_results.items()
    )

    return f"""You are a Healthcare Workflow Orchestrator AI analyzing patient data.

Patient: {patient.name}, Age: {patient.age}
Conditions: {", ".join(patient.conditions)}
Last Visit: {patient.last_visit}

Lab Results:
{lab_lines}

Provide a JSON response with:
1. Clinical analysis of the patient's condition
2. Severity level (critical/warning/routine)
3. Confidence score (0-100)
4. Specific automated actions to take

Response format:
{RESPONSE_FORMAT_EXAMPLE}

Focus on patient safety and provide actionable medical workflow recommendations."""


def build_chat_prompt(question: str) -> str:
    """Wrap a free-form question in the medical-assistant instruction."""
    return f"""You are MediFlow AI Assistant, a medical assistant supporting clinicians with patient analysis, medical recommendations, and workflow optimization.

Respond to the following as a helpful medical assistant. Answer in plain text and recommend consulting a healthcare professional where appropriate.

{question.strip()}"""
