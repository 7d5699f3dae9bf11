from __future__ import annotations

from .session import ClassicSession, result_text

__all__ = [
    "ClassicSession",
    "result_text",
]
