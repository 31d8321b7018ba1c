"""Tests for the direct and relay build strategies."""

import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException
from solana.exceptions import SolanaRpcException

from pump_buyback.core.exceptions import PricingError
from pump_buyback.core.instruction_builder import BUY_DISCRIMINATOR, COLLECT_CREATOR_FEE_DISCRIMINATOR
from pump_buyback.core.pubkeys import SolanaProgramAddresses
from pump_buyback.trading.relay import UNKNOWN_CLAIMABLE
from pump_buyback.trading.strategies import DirectBuildStrategy, RelayBuildStrategy


@pytest.fixture
def direct(mock_client, addresses, mint) -> DirectBuildStrategy:
    return DirectBuildStrategy(mock_client, addresses, mint, slippage_bps=500)


class TestDirectBuildStrategy:

    @pytest.mark.asyncio
    async def test_buy_is_create_ata_then_buy(self, direct, wallet, active_state):
        prepared = await direct.prepare_buy(wallet, 1_000_000_000, active_state)

        assert [ix.program_id for ix in prepared.instructions] == [
            SolanaProgramAddresses.ASSOCIATED_TOKEN_ACCOUNT_PROGRAM_ID,
            direct.addresses.program_id,
        ]
        buy_data = bytes(prepared.instructions[1].data)
        assert buy_data[:8] == BUY_DISCRIMINATOR
        assert int.from_bytes(buy_data[16:24], "little") == prepared.quote.min_tokens_out == 32_882_258_064_515
        assert prepared.serialized is None

    @pytest.mark.asyncio
    async def test_priority_fee_adds_compute_budget(self, mock_client, addresses, mint, wallet, active_state):
        strategy = DirectBuildStrategy(
            mock_client, addresses, mint, slippage_bps=500,
            priority_fee_micro_lamports=50_000, compute_unit_limit=200_000,
        )

        prepared = await strategy.prepare_buy(wallet, 1_000_000_000, active_state)

        assert len(prepared.instructions) == 4
        assert prepared.instructions[0].program_id == SolanaProgramAddresses.COMPUTE_BUDGET_PROGRAM_ID
        assert prepared.instructions[1].program_id == SolanaProgramAddresses.COMPUTE_BUDGET_PROGRAM_ID

    @pytest.mark.asyncio
    async def test_zero_token_quote_refused(self, direct, wallet, active_state):
        with pytest.raises(PricingError):
            await direct.prepare_buy(wallet, 0, active_state)

    @pytest.mark.asyncio
    async def test_claim_instruction(self, direct, wallet):
        prepared = await direct.prepare_claim(wallet)

        assert len(prepared.instructions) == 1
        assert bytes(prepared.instructions[0].data) == COLLECT_CREATOR_FEE_DISCRIMINATOR

    def test_quote_logs_spot_price(self, direct, active_state, caplog):
        with caplog.at_level(logging.INFO, logger="pump_buyback.trading.strategies"):
            result = direct.quote(1_000_000_000, active_state)

        assert result.tokens_out == 34_612_903_225_806
        assert f"Spot price: {active_state.calculate_price():.10f}" in caplog.text

    @pytest.mark.asyncio
    async def test_estimate_is_vault_balance_above_rent(self, direct, mock_client, wallet):
        mock_client.get_account.return_value = SimpleNamespace(lamports=5_000_000, data=b"")

        assert await direct.estimate_claimable_lamports(wallet) == 5_000_000 - 890_880
        mock_client.get_account.assert_awaited_once_with(direct.addresses.creator_vault(wallet.pubkey))

    @pytest.mark.asyncio
    async def test_estimate_missing_vault_is_zero(self, direct, mock_client, wallet):
        mock_client.get_account.return_value = None
        assert await direct.estimate_claimable_lamports(wallet) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        SolanaRpcException(httpx.ConnectError("node down"), AsyncClient.get_account_info, None, "getAccountInfo"),
        RPCException("node down"),
    ])
    async def test_estimate_rpc_failure_is_unknown(self, direct, mock_client, wallet, error):
        mock_client.get_account.side_effect = error
        assert await direct.estimate_claimable_lamports(wallet) == UNKNOWN_CLAIMABLE


class TestRelayBuildStrategy:

    @pytest.fixture
    def relay(self) -> MagicMock:
        relay = MagicMock()
        relay.build_claim_transaction = AsyncMock(return_value=b"\x01claim")
        relay.build_buy_transaction = AsyncMock(return_value=b"\x01buy")
        relay.get_claimable_lamports = AsyncMock(return_value=UNKNOWN_CLAIMABLE)
        return relay

    @pytest.mark.asyncio
    async def test_claim_passes_through_none(self, relay, mint, wallet):
        relay.build_claim_transaction.return_value = None
        strategy = RelayBuildStrategy(relay, mint, slippage_bps=500, priority_fee_sol=0.0001)

        assert await strategy.prepare_claim(wallet) is None
        relay.build_claim_transaction.assert_awaited_once_with(wallet.address, 0.0001)

    @pytest.mark.asyncio
    async def test_buy_uses_relay_bytes(self, relay, mint, wallet, active_state):
        strategy = RelayBuildStrategy(relay, mint, slippage_bps=500, priority_fee_sol=0.05)

        prepared = await strategy.prepare_buy(wallet, 50_000_000, active_state)

        assert prepared.serialized == b"\x01buy"
        assert prepared.instructions == []
        relay.build_buy_transaction.assert_awaited_once_with(
            public_key=wallet.address,
            mint=str(mint),
            amount_sol=0.05,
            slippage_bps=500,
            priority_fee=0.05,
        )

    @pytest.mark.asyncio
    async def test_estimate_delegates(self, relay, mint, wallet):
        strategy = RelayBuildStrategy(relay, mint, slippage_bps=500, priority_fee_sol=0.0001)
        assert await strategy.estimate_claimable_lamports(wallet) == UNKNOWN_CLAIMABLE
