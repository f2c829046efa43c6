"""
Application package initializer.

The project is organised into logical pieces: ``core`` holds
configuration, persistence, security and error types, ``schemas``
holds the pydantic payloads shared by every endpoint, ``services``
holds the business logic and ``api/v1/endpoints`` exposes one router
per domain (auth, services, bookings, payments, notifications, audit).
"""

from .main import app  # noqa: F401
