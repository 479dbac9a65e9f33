"""Shared helpers for couchify."""

from __future__ import annotations

from .redact import redact, redact_url

__all__ = ["redact", "redact_url"]
