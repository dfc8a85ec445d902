"""
LLM Module

Gemini REST client used by the analysis gateway. The model is treated as an
untrusted text oracle: callers must validate everything it returns.
"""
from .gemini_client import GeminiClient, GeminiConfig, GeminiResponse, GeminiModel

__all__ = [
    "GeminiClient",
    "GeminiConfig",
    "GeminiResponse",
    "GeminiModel",
]
