"""
Patient Analysis Module

Prompt construction, model-reply extraction, and the request boundary that
converts every failure into a renderable payload.
"""
from .prompts import build_patient_prompt, build_chat_prompt, format_lab_line
from .extraction import ExtractionOutcome, ExtractionResult, extract_analysis
from .gateway import AnalysisGateway, GatewayResult, failure_payload

__all__ = [
    "build_patient_prompt",
    "build_chat_prompt",
    "format_lab_line",
    "ExtractionOutcome",
    "ExtractionResult",
    "extract_analysis",
    "AnalysisGateway",
    "GatewayResult",
    "failure_payload",
]
