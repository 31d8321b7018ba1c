# pump_buyback/core/exceptions.py

from typing import Any, Optional


class PumpBuybackError(Exception):
    """Base class for custom exceptions in this application."""
    pass


class ConfigurationError(PumpBuybackError):
    """Missing or invalid required settings. Fatal at startup."""
    pass


class DerivationError(PumpBuybackError):
    """No valid bump seed produced an off-curve program address."""
    pass


class MalformedAccountError(PumpBuybackError):
    """Account data is too short or otherwise undecodable for the expected layout."""
    pass


class CurveAbsentError(PumpBuybackError):
    """The bonding curve account does not exist (token migrated or never existed)."""

    def __init__(self, curve_address: Any):
        super().__init__(f"Bonding curve account {curve_address} not found")
        self.curve_address = curve_address


class PricingError(PumpBuybackError):
    """A quote could not be computed from the given curve state."""
    pass


class EncodingError(PumpBuybackError):
    """An instruction argument cannot be encoded into its wire field."""
    pass


class SubmissionError(PumpBuybackError):
    """For errors while building, sending or confirming a transaction.

    ``payload`` keeps the raw rejection (RPC error object, relay response text,
    on-chain error) for diagnostics.
    """

    def __init__(self, message: str, payload: Optional[Any] = None, signature: Optional[str] = None):
        super().__init__(message)
        self.payload = payload
        self.signature = signature

    def __str__(self) -> str:
        base = super().__str__()
        if self.payload is not None:
            return f"{base} (payload: {self.payload})"
        return base


class RelayError(SubmissionError):
    """The trade-relay HTTP API refused to build a transaction."""

    def __init__(self, message: str, payload: Optional[Any] = None, status_code: Optional[int] = None):
        super().__init__(message, payload=payload)
        self.status_code = status_code
