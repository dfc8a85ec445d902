from .analysis import (
    Severity,
    LabStatus,
    Priority,
    LabResult,
    PatientRecord,
    RecommendedAction,
    AnalysisResponse,
    AnalyzeRequest,
    HealthResponse,
)

__all__ = [
    "Severity",
    "LabStatus",
    "Priority",
    "LabResult",
    "PatientRecord",
    "RecommendedAction",
    "AnalysisResponse",
    "AnalyzeRequest",
    "HealthResponse",
]
