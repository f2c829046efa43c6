"""
Pydantic schema definitions for API payloads.

Each domain (accounts, service listings, bookings, payments,
notifications) defines its own models for request and response bodies.
These models are the single definition of each entity's shape on the
wire; persistence rows are converted into them by the services.
"""
