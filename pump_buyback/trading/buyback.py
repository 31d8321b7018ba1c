# pump_buyback/trading/buyback.py
import asyncio
from typing import Awaitable, Callable, Dict

from pump_buyback.core.client import SolanaClient
from pump_buyback.core.curve import BondingCurveManager, TokenLifecycle
from pump_buyback.core.wallet import Wallet
from pump_buyback.trading.base import CycleResult, lamports_to_sol, sol_to_lamports
from pump_buyback.trading.buyer import TokenBuyer
from pump_buyback.trading.fee_claimer import FeeClaimer
from pump_buyback.utils.logger import get_logger, log_separator

logger = get_logger(__name__)

# One lock per wallet address: the claim amount is a balance delta, so two
# cycles spending from the same key must never overlap.
_WALLET_LOCKS: Dict[str, asyncio.Lock] = {}


def get_wallet_lock(wallet_address: str) -> asyncio.Lock:
    lock = _WALLET_LOCKS.get(wallet_address)
    if lock is None:
        lock = asyncio.Lock()
        _WALLET_LOCKS[wallet_address] = lock
    return lock


class BuybackOrchestrator:
    """Runs one claim -> settle -> buy cycle. All per-cycle errors stop here."""

    def __init__(
            self,
            client: SolanaClient,
            wallet: Wallet,
            curve_manager: BondingCurveManager,
            fee_claimer: FeeClaimer,
            buyer: TokenBuyer,
            min_buyback_sol: float,
            settle_delay_seconds: float = 2.0,
            sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.wallet = wallet
        self.curve_manager = curve_manager
        self.fee_claimer = fee_claimer
        self.buyer = buyer
        self.min_buyback_sol = min_buyback_sol
        self.min_buyback_lamports = sol_to_lamports(min_buyback_sol)
        self.settle_delay_seconds = settle_delay_seconds
        self._sleep = sleep

    async def run_cycle(self) -> CycleResult:
        lock = get_wallet_lock(self.wallet.address)
        if lock.locked():
            logger.warning(f"A buyback cycle for {self.wallet.address} is still running; skipping this one")
            return CycleResult(skipped=True)
        async with lock:
            return await self._run_cycle_locked()

    async def _run_cycle_locked(self) -> CycleResult:
        log_separator(logger)
        logger.info("Starting automatic buyback cycle...")
        result = CycleResult()
        try:
            balance = await self.client.get_balance_lamports(self.wallet.pubkey)
            logger.info(f"Wallet balance: {lamports_to_sol(balance):.6f} SOL")

            lifecycle, _ = await self.curve_manager.get_lifecycle(self.buyer.mint)
            if lifecycle is TokenLifecycle.MIGRATED:
                logger.warning("Token has graduated off the bonding curve; no claim or buy attempted")
                result.graduated = True
                return result

            claimable = await self.fee_claimer.get_claimable_lamports()
            if claimable > 0:
                logger.info(f"Claimable fees: {lamports_to_sol(claimable):.6f} SOL")
            elif claimable == 0:
                logger.info("No claimable fees reported; nothing to do this cycle")
                return result
            else:
                logger.info("Claimable fees: checking via claim attempt...")

            claim = await self.fee_claimer.claim_fees()
            if claim is None:
                logger.info("No fees claimed in this cycle")
                return result

            result.claimed_sol = claim.amount_sol
            result.claim_tx = claim.signature
            logger.info(f"Claimed {claim.amount_sol:.6f} SOL in fees")

            await self._sleep(self.settle_delay_seconds)

            if claim.amount_lamports < self.min_buyback_lamports:
                logger.info(
                    f"Claimed amount ({claim.amount_sol:.6f} SOL) is below minimum buyback threshold "
                    f"({self.min_buyback_sol} SOL)"
                )
                logger.info("Fees claimed but no buyback executed. Will accumulate for next cycle.")
                return result

            logger.info(f"Executing buyback with {claim.amount_sol:.6f} SOL...")
            trade = await self.buyer.execute(claim.amount_lamports)
            if trade.success:
                result.buyback_tx = trade.signature
                logger.info("Buyback cycle completed successfully!")
            elif trade.graduated:
                result.graduated = True
                logger.warning("Token graduated between claim and buy; claimed SOL stays in the wallet")
            else:
                result.error = trade.error
                logger.warning("Buyback transaction failed, but fees were claimed")
        except Exception as e:
            logger.error(f"Error in buyback cycle: {e}", exc_info=True)
            result.error = str(e)
            result.buyback_tx = None
        finally:
            log_separator(logger)
        return result
