"""
Request/response schemas for the analysis gateway.

Field names on the wire follow the dashboard's JSON (camelCase ``lastVisit``,
``labResults``; ``normal`` for a lab's reference range).
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Severity(str, Enum):
    """Overall clinical severity of an analysis."""
    CRITICAL = "critical"
    WARNING = "warning"
    ROUTINE = "routine"


class LabStatus(str, Enum):
    """Caller-assigned status of a single lab result."""
    CRITICAL = "critical"
    WARNING = "warning"
    ROUTINE = "routine"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class LabResult(BaseModel):
    """One lab test result; ``status`` is assigned upstream, never derived here."""
    value: Union[int, float, str]
    normal: str
    status: LabStatus


class PatientRecord(BaseModel):
    """Patient record as sent by the dashboard."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str
    age: int = Field(..., gt=0)
    conditions: List[str] = Field(default_factory=list)
    last_visit: str = Field(..., alias="lastVisit")
    lab_results: Dict[str, LabResult] = Field(default_factory=dict, alias="labResults")


class RecommendedAction(BaseModel):
    """A follow-up action suggested by the analysis."""
    type: str
    method: str
    message: str
    priority: Priority
    estimated_time: str


class AnalysisResponse(BaseModel):
    """Normalized analysis returned to the dashboard."""
    model_config = ConfigDict(use_enum_values=True)

    analysis: str
    severity: Severity
    confidence: int = Field(..., ge=0, le=100)
    actions: List[RecommendedAction] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class AnalyzeRequest(BaseModel):
    """
    Gateway request body.

    Either ``{"patient": {...}}`` or ``{"prompt": "...", "type": "chat"}``.
    """
    patient: Optional[PatientRecord] = None
    prompt: Optional[str] = None
    type: Optional[str] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "AnalyzeRequest":
        if self.is_chat:
            if not self.prompt or not self.prompt.strip():
                raise ValueError("chat requests require a non-empty 'prompt'")
        elif self.patient is None:
            raise ValueError("request must contain 'patient' or a chat 'prompt'")
        return self

    @property
    def is_chat(self) -> bool:
        return self.type == "chat"


class HealthResponse(BaseModel):
    """Service health."""
    status: str
    version: str
    timestamp: str
    uptime_seconds: float
    gemini_configured: bool
