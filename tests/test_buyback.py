"""Tests for one claim -> settle -> buy cycle. All collaborators are mocked."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from pump_buyback.core.curve import TokenLifecycle
from pump_buyback.trading.base import BuyStatus, ClaimResult, TradeResult
from pump_buyback.trading.buyback import BuybackOrchestrator, get_wallet_lock


@pytest.fixture
def curve_manager(active_state) -> MagicMock:
    manager = MagicMock()
    manager.get_lifecycle = AsyncMock(return_value=(TokenLifecycle.ACTIVE, active_state))
    return manager


@pytest.fixture
def fee_claimer() -> MagicMock:
    claimer = MagicMock()
    claimer.get_claimable_lamports = AsyncMock(return_value=50_000_000)
    claimer.claim_fees = AsyncMock(return_value=ClaimResult(signature="claim-sig", amount_lamports=50_000_000))
    return claimer


@pytest.fixture
def buyer(mint) -> MagicMock:
    buyer = MagicMock()
    buyer.mint = mint
    buyer.execute = AsyncMock(return_value=TradeResult(status=BuyStatus.SUCCESS, signature="buy-sig"))
    return buyer


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def orchestrator(mock_client, wallet, curve_manager, fee_claimer, buyer, sleep) -> BuybackOrchestrator:
    return BuybackOrchestrator(
        client=mock_client,
        wallet=wallet,
        curve_manager=curve_manager,
        fee_claimer=fee_claimer,
        buyer=buyer,
        min_buyback_sol=0.01,
        settle_delay_seconds=2.0,
        sleep=sleep,
    )


class TestRunCycle:

    @pytest.mark.asyncio
    async def test_claim_then_buy(self, orchestrator, buyer, sleep):
        result = await orchestrator.run_cycle()

        assert result.claimed_sol == pytest.approx(0.05)
        assert result.claim_tx == "claim-sig"
        assert result.buyback_tx == "buy-sig"
        assert result.error is None
        buyer.execute.assert_awaited_once_with(50_000_000)
        sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_nothing_claimed(self, orchestrator, fee_claimer, buyer):
        fee_claimer.claim_fees.return_value = None

        result = await orchestrator.run_cycle()

        assert result.claimed_sol == 0
        assert result.buyback_tx is None
        buyer.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_estimate_skips_claim(self, orchestrator, fee_claimer):
        fee_claimer.get_claimable_lamports.return_value = 0

        result = await orchestrator.run_cycle()

        assert result.claimed_sol == 0
        fee_claimer.claim_fees.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_estimate_still_claims(self, orchestrator, fee_claimer):
        fee_claimer.get_claimable_lamports.return_value = -1

        result = await orchestrator.run_cycle()

        fee_claimer.claim_fees.assert_awaited_once()
        assert result.buyback_tx == "buy-sig"

    @pytest.mark.asyncio
    async def test_below_threshold_keeps_claim_without_buy(self, orchestrator, fee_claimer, buyer):
        fee_claimer.claim_fees.return_value = ClaimResult(signature="claim-sig", amount_lamports=5_000_000)

        result = await orchestrator.run_cycle()

        assert result.claimed_sol == pytest.approx(0.005)
        assert result.claim_tx == "claim-sig"
        assert result.buyback_tx is None
        assert result.error is None
        buyer.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_graduated_token_does_nothing(self, orchestrator, curve_manager, fee_claimer, buyer):
        curve_manager.get_lifecycle.return_value = (TokenLifecycle.MIGRATED, None)

        result = await orchestrator.run_cycle()

        assert result.graduated
        fee_claimer.claim_fees.assert_not_awaited()
        buyer.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_buy_keeps_claimed_amount(self, orchestrator, buyer):
        buyer.execute.return_value = TradeResult(status=BuyStatus.FAILED, error="slippage exceeded")

        result = await orchestrator.run_cycle()

        assert result.claimed_sol == pytest.approx(0.05)
        assert result.buyback_tx is None
        assert result.error == "slippage exceeded"

    @pytest.mark.asyncio
    async def test_exception_becomes_result(self, orchestrator, buyer):
        buyer.execute.side_effect = RuntimeError("boom")

        result = await orchestrator.run_cycle()

        assert result.error == "boom"
        assert result.claimed_sol == pytest.approx(0.05)
        assert result.buyback_tx is None

    @pytest.mark.asyncio
    async def test_claim_exception_becomes_result(self, orchestrator, fee_claimer):
        fee_claimer.claim_fees.side_effect = RuntimeError("claim rejected")

        result = await orchestrator.run_cycle()

        assert result.claimed_sol == 0
        assert result.error == "claim rejected"

    @pytest.mark.asyncio
    async def test_overlapping_cycle_is_skipped(self, orchestrator, wallet, fee_claimer):
        async with get_wallet_lock(wallet.address):
            result = await orchestrator.run_cycle()

        assert result.skipped
        fee_claimer.get_claimable_lamports.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lock_released_after_cycle(self, orchestrator, wallet):
        await orchestrator.run_cycle()
        assert not get_wallet_lock(wallet.address).locked()
