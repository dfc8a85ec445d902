"""
Custom Exception Hierarchy

Fatal error categories for the analysis gateway. Each carries a stable code
and the HTTP status the boundary reports it with. Recoverable reply-parsing
outcomes are NOT exceptions; see ``mediflow.core.analysis.extraction``.
"""
from typing import Optional, Dict, Any


class AnalysisGatewayError(Exception):
    """Base exception for all gateway errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logs and diagnostics."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class ConfigurationError(AnalysisGatewayError):
    """A required setting (the Gemini credential) is missing."""

    def __init__(
        self,
        message: str,
        setting: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            details={"setting": setting, **(details or {})}
        )
        self.setting = setting


class TransportError(AnalysisGatewayError):
    """Network failure, timeout, or non-success HTTP status from the model API."""

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="TRANSPORT_ERROR",
            details={"upstream_status": upstream_status, **(details or {})}
        )
        self.upstream_status = upstream_status


class EmptyGenerationError(AnalysisGatewayError):
    """The model API answered but produced no usable text."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="EMPTY_GENERATION",
            details=details
        )


class InvalidRequestError(AnalysisGatewayError):
    """Request body is not JSON or matches neither request shape."""

    status_code = 400

    def __init__(
        self,
        message: str,
        errors: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="INVALID_REQUEST",
            details={"errors": errors or [], **(details or {})}
        )
        self.errors = errors or []
