"""Core utilities shared by the SDK and the dispatch layer.

This package is framework-agnostic. It must NEVER import from ``bot/`` or ``sdk/``.
"""

from core.logger import TelepulseLogger

__all__ = [
    "TelepulseLogger",
]
