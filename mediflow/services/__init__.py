from .analysis_client import AnalysisServiceClient, local_fallback, severity_from_labs

__all__ = ["AnalysisServiceClient", "local_fallback", "severity_from_labs"]
