"""
Public surface of the Groq (OpenAI-compatible) integration.
"""

from .http_client import GroqHttpClient

__all__ = ["GroqHttpClient"]
