"""Exception hierarchy shared by the game engine, ingestion and API layers."""

from __future__ import annotations


class TypeRankError(Exception):
    """Base class for all service-level failures."""


class ConfigError(TypeRankError):
    """Raised at startup when the ledger configuration cannot be loaded."""


class InvalidStateError(TypeRankError):
    """Raised when an operation is not allowed in the current session state."""


class ValidationError(TypeRankError):
    """Raised when a submission is rejected before any state is mutated."""


class AuthorizationError(TypeRankError):
    """Raised when a signature is requested for something not earned."""


class SigningUnavailableError(TypeRankError):
    """Raised when no signing key is configured."""


class LedgerError(TypeRankError):
    """Base exception raised for ledger gateway failures."""


class LedgerDisabledError(LedgerError):
    """Raised when ledger operations are attempted while the integration is off."""


class TransientUpstreamError(LedgerError):
    """The ledger gateway is unreachable, rate-limiting or failing.

    Safe to retry later; never leaves partially stored state behind.
    """


class MalformedRecordError(TypeRankError):
    """A referenced session record is missing, incomplete or invalid.

    Retrying cannot fix it, so the event is dropped.
    """

    def __init__(self, message: str, *, player: str | None = None, session_id: int | None = None):
        super().__init__(message)
        self.player = player
        self.session_id = session_id
