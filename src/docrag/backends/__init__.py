"""
Model backends — embeddings and grounded chat behind one interface.

Public surface
--------------
- :class:`BackendClient` — abstract contract every adapter implements.
- :class:`OllamaBackend`, :class:`OpenAIBackend`, :class:`GeminiBackend`.
- :func:`create_backend` / :class:`BackendRegistry` — tag → adapter.
"""

from docrag.backends.base import BackendClient
from docrag.backends.factory import BackendKind, BackendRegistry, create_backend
from docrag.backends.gemini_client import GeminiBackend
from docrag.backends.ollama_client import OllamaBackend
from docrag.backends.openai_client import OpenAIBackend

__all__ = [
    "BackendClient",
    "BackendKind",
    "BackendRegistry",
    "GeminiBackend",
    "OllamaBackend",
    "OpenAIBackend",
    "create_backend",
]
