"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging, StructuredFormatter
from .exceptions import (
    AnalysisGatewayError,
    ConfigurationError,
    TransportError,
    EmptyGenerationError,
    InvalidRequestError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "StructuredFormatter",
    "AnalysisGatewayError",
    "ConfigurationError",
    "TransportError",
    "EmptyGenerationError",
    "InvalidRequestError",
]
