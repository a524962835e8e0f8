"""
Copydesk Client SDK
===================

Async client for the Copydesk generation API.

Quick Start:
    from client import AsyncCopydeskClient
    from models import TranslateRequest

    async with AsyncCopydeskClient("http://localhost:8000") as client:
        html = await client.translate(
            TranslateRequest(content_html="<p>Ahoj</p>", source_language="sk", target_language="en")
        )

    # Drive an editor session against the remote backend
    from editor import EditorSession

    session = EditorSession(markup, generation=client)
"""

from typing import Dict, Optional


class CopydeskClientError(Exception):
    """Exception raised for Copydesk client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[Dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}


from .async_client import AsyncCopydeskClient  # noqa: E402

__all__ = [
    "AsyncCopydeskClient",
    "CopydeskClientError",
]

__version__ = "1.0.0"
