"""
Top‑level package for the HomeFix marketplace API.

This file makes ``homefix_api`` a Python package so that modules within
``app`` can be imported using fully qualified names like
``homefix_api.app.main``.

The package provides no public exports; all functionality lives in
submodules under ``app``.
"""

__all__ = []
