"""
Application package initializer.

The project is organised into a few small pieces: ``core`` holds
configuration, logging, exceptions and the atomic file helpers;
``schemas`` defines the counter record and request payloads;
``services`` owns the counter store; and ``api`` exposes the store over
HTTP.
"""

from .main import app  # noqa: F401
