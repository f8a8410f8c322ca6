"""
Top‑level package for the Countdown API.

The server lives in ``countdown_api.app`` and a small HTTP client for
the same REST surface lives in ``countdown_api.client``.  Import the
ASGI application as ``countdown_api.app.main:app``.
"""

__all__ = []
