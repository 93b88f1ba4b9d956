# Overview: Error taxonomy raised by services and translated to JSON by routes.

from __future__ import annotations


class HayLedgerError(Exception):
    """Base for business errors. Never retried: they are permanent for the given input."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class Unauthorized(HayLedgerError):
    """No resolved identity or no organization context."""

    status_code = 401


class Forbidden(HayLedgerError):
    """Identity resolved but the permission check denied the action."""

    status_code = 403


class NotFound(HayLedgerError):
    """Missing row, or a row owned by another org (indistinguishable on purpose)."""

    status_code = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")


class ValidationFailed(HayLedgerError):
    status_code = 400


class InvalidStateTransition(HayLedgerError):
    status_code = 409


class InsufficientStock(HayLedgerError):
    status_code = 409

    def __init__(self, available: float, requested: float):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock. Available: {available:g} bales, Requested: {requested:g} bales"
        )

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "available": self.available,
            "requested": self.requested,
        }
