"""Shared test fixtures."""

import struct
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from pump_buyback.config import BotConfig
from pump_buyback.core.curve import BondingCurveState
from pump_buyback.core.pubkeys import PumpAddresses
from pump_buyback.core.wallet import Wallet

CURVE_DISCRIMINATOR = bytes.fromhex("17b7f83760d8ac60")
TEST_MINT = Pubkey.from_string("So11111111111111111111111111111111111111112")


def encode_curve(
        virtual_token_reserves: int = 1_073_000_000_000_000,
        virtual_sol_reserves: int = 30_000_000_000,
        real_token_reserves: int = 793_100_000_000_000,
        real_sol_reserves: int = 0,
        token_total_supply: int = 1_000_000_000_000_000,
        complete: int = 0,
        trailing: bytes = b"",
) -> bytes:
    """Raw bonding curve account bytes in the on-chain layout."""
    return (
        CURVE_DISCRIMINATOR
        + struct.pack(
            "<QQQQQ",
            virtual_token_reserves,
            virtual_sol_reserves,
            real_token_reserves,
            real_sol_reserves,
            token_total_supply,
        )
        + bytes([complete])
        + trailing
    )


@pytest.fixture
def addresses() -> PumpAddresses:
    return PumpAddresses.mainnet()


@pytest.fixture
def mint() -> Pubkey:
    return TEST_MINT


@pytest.fixture
def wallet() -> Wallet:
    return Wallet(Keypair())


@pytest.fixture
def active_state() -> BondingCurveState:
    return BondingCurveState(
        virtual_token_reserves=1_073_000_000_000_000,
        virtual_sol_reserves=30_000_000_000,
        real_token_reserves=793_100_000_000_000,
        real_sol_reserves=0,
        token_total_supply=1_000_000_000_000_000,
        complete=False,
    )


@pytest.fixture
def bot_config(addresses: PumpAddresses, mint: Pubkey) -> BotConfig:
    return BotConfig(
        rpc_endpoint="http://localhost:8899",
        private_key="unused",
        token_mint=mint,
        addresses=addresses,
    )


@pytest.fixture
def mock_client() -> MagicMock:
    """SolanaClient stand-in with every RPC method as an AsyncMock."""
    client = MagicMock()
    client.get_account = AsyncMock(return_value=None)
    client.get_account_data = AsyncMock(return_value=None)
    client.get_balance_lamports = AsyncMock(return_value=1_000_000_000)
    client.get_minimum_balance_for_rent_exemption = AsyncMock(return_value=890_880)
    client.get_latest_blockhash = AsyncMock()
    client.send_raw_transaction = AsyncMock()
    client.confirm_transaction = AsyncMock(return_value=None)
    client.close = AsyncMock(return_value=None)
    return client


@pytest.fixture
def curve_bytes():
    return encode_curve
