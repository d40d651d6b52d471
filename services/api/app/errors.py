from __future__ import annotations


class NotFoundError(LookupError):
    """Referenced row does not exist (404)."""


class ConflictError(ValueError):
    """Row already exists or the write collides with current state (409)."""


class InvalidRequestError(ValueError):
    """Well-formed request the domain rules reject (400)."""
