# pump_buyback/trading/fee_claimer.py
from typing import Optional

from pump_buyback.core.client import SolanaClient
from pump_buyback.core.transactions import TransactionSubmitter
from pump_buyback.core.wallet import Wallet
from pump_buyback.trading.base import ClaimResult, lamports_to_sol
from pump_buyback.trading.strategies import QuoteAndBuild
from pump_buyback.utils.logger import get_logger

logger = get_logger(__name__)


class FeeClaimer:
    """Claims accumulated creator fees and measures what arrived in the wallet."""

    def __init__(
            self,
            client: SolanaClient,
            wallet: Wallet,
            strategy: QuoteAndBuild,
            submitter: TransactionSubmitter,
    ):
        self.client = client
        self.wallet = wallet
        self.strategy = strategy
        self.submitter = submitter

    async def get_claimable_lamports(self) -> int:
        """-1 means unknown, not zero."""
        claimable = await self.strategy.estimate_claimable_lamports(self.wallet)
        if claimable >= 0:
            logger.debug(f"Claimable fees estimate: {lamports_to_sol(claimable):.6f} SOL")
        return claimable

    async def claim_fees(self) -> Optional[ClaimResult]:
        """
        Claims all creator fees for the wallet. Returns None when there is
        nothing to claim.

        The claimed amount is the wallet balance delta across the claim
        transaction, so nothing else may spend from or pay into this wallet
        while it runs; the orchestrator holds the wallet lock for that.
        """
        logger.info(f"Attempting to claim creator fees via {self.strategy.name} strategy...")
        prepared = await self.strategy.prepare_claim(self.wallet)
        if prepared is None:
            return None

        balance_before = await self.client.get_balance_lamports(self.wallet.pubkey)
        sent = await prepared.send(self.submitter, self.wallet.keypair)
        balance_after = await self.client.get_balance_lamports(self.wallet.pubkey)

        delta = balance_after - balance_before
        if delta < 0:
            logger.warning(f"Balance dropped by {-delta} lamports across the claim; treating claimed amount as 0")
        claimed = max(0, delta)
        logger.info(f"Fees claimed successfully! Amount: ~{lamports_to_sol(claimed):.6f} SOL")
        return ClaimResult(signature=sent.signature, amount_lamports=claimed)
