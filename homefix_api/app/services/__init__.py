"""
Service layer abstraction.

Each service encapsulates business logic for a domain and raises the
errors defined in ``core.exceptions``.  Endpoints stay thin: they
resolve the principal, call one service method and return its result.
"""
