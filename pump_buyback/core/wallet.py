# pump_buyback/core/wallet.py

import json

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from pump_buyback.core.exceptions import ConfigurationError
from pump_buyback.utils.logger import get_logger

logger = get_logger(__name__)

SECRET_KEY_LENGTH = 64


def _parse_secret_key(private_key: str) -> bytes:
    text = private_key.strip()
    if text.startswith("["):
        try:
            values = json.loads(text)
            return bytes(values)
        except (ValueError, TypeError) as e:
            raise ConfigurationError("Invalid private key: JSON array must hold 64 byte values") from e
    try:
        return base58.b58decode(text)
    except ValueError as e:
        raise ConfigurationError("Invalid private key format. Must be base58 encoded or JSON array.") from e


class Wallet:
    """ Represents the user's wallet with keypair for signing. """

    def __init__(self, keypair: Keypair):
        self.keypair = keypair
        self.pubkey: Pubkey = keypair.pubkey()

    @classmethod
    def from_private_key(cls, private_key: str) -> "Wallet":
        """Accepts a base58 secret key or a JSON array of 64 integers."""
        secret = _parse_secret_key(private_key)
        if len(secret) != SECRET_KEY_LENGTH:
            raise ConfigurationError(f"Private key must decode to {SECRET_KEY_LENGTH} bytes, got {len(secret)}")
        try:
            keypair = Keypair.from_bytes(secret)
        except ValueError as e:
            raise ConfigurationError("Failed to create Keypair from private key") from e
        wallet = cls(keypair)
        logger.info(f"Wallet initialized for pubkey: {wallet.pubkey}")
        return wallet

    @property
    def address(self) -> str:
        return str(self.pubkey)
