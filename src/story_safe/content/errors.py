"""Errors raised by the content resilience layer."""

from __future__ import annotations


class ContentError(Exception):
    """Base error for content-layer operations."""


class FixtureError(ContentError):
    """Raised when a bundled fixture record is missing or malformed."""
