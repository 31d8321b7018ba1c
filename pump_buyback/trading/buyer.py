# pump_buyback/trading/buyer.py
import httpx
from solders.pubkey import Pubkey
from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException

from pump_buyback.core.client import SolanaClient
from pump_buyback.core.curve import BondingCurveManager, TokenLifecycle
from pump_buyback.core.exceptions import PumpBuybackError
from pump_buyback.core.transactions import TransactionSubmitter
from pump_buyback.core.wallet import Wallet
from pump_buyback.trading.base import BuyStatus, TradeResult, lamports_to_sol, sol_to_lamports
from pump_buyback.trading.strategies import QuoteAndBuild
from pump_buyback.utils.logger import get_logger

logger = get_logger(__name__)

# Kept back from manual buys to pay transaction fees.
FEE_RESERVE_LAMPORTS = 10_000_000  # 0.01 SOL

BUY_ERRORS = (PumpBuybackError, RPCException, SolanaRpcException, httpx.HTTPError)


class TokenBuyer:
    def __init__(
            self,
            client: SolanaClient,
            wallet: Wallet,
            curve_manager: BondingCurveManager,
            strategy: QuoteAndBuild,
            submitter: TransactionSubmitter,
            mint: Pubkey,
    ):
        self.client = client
        self.wallet = wallet
        self.curve_manager = curve_manager
        self.strategy = strategy
        self.submitter = submitter
        self.mint = mint

    async def execute(self, sol_in_lamports: int) -> TradeResult:
        """
        Buys the token with ``sol_in_lamports``. A migrated token short-circuits
        with GRADUATED before any instruction is built.
        """
        logger.info(f"Buying tokens with {lamports_to_sol(sol_in_lamports):.6f} SOL via {self.strategy.name} strategy...")
        try:
            lifecycle, state = await self.curve_manager.get_lifecycle(self.mint)
            if lifecycle is TokenLifecycle.MIGRATED:
                logger.warning(f"Token {self.mint} has graduated; skipping buy")
                return TradeResult(status=BuyStatus.GRADUATED, sol_in_lamports=sol_in_lamports)

            prepared = await self.strategy.prepare_buy(self.wallet, sol_in_lamports, state)
            sent = await prepared.send(self.submitter, self.wallet.keypair)
        except BUY_ERRORS as e:
            logger.error(f"BUY_FAIL: {e}", exc_info=True)
            return TradeResult(status=BuyStatus.FAILED, sol_in_lamports=sol_in_lamports, error=str(e))

        logger.info("Tokens purchased successfully!")
        return TradeResult(
            status=BuyStatus.SUCCESS,
            signature=sent.signature,
            sol_in_lamports=sol_in_lamports,
            quote=prepared.quote,
        )

    async def execute_with_amount(self, sol_amount: float) -> TradeResult:
        """Manual buyback: refuses unless the balance covers the amount plus the fee reserve."""
        sol_in_lamports = sol_to_lamports(sol_amount)
        logger.info(f"Manual buyback triggered with {sol_amount:.6f} SOL")
        balance = await self.client.get_balance_lamports(self.wallet.pubkey)
        needed = sol_in_lamports + FEE_RESERVE_LAMPORTS
        if balance < needed:
            error = (
                f"Insufficient balance. Have {lamports_to_sol(balance):.6f} SOL, "
                f"need {lamports_to_sol(needed):.6f} SOL"
            )
            logger.error(error)
            return TradeResult(status=BuyStatus.FAILED, sol_in_lamports=sol_in_lamports, error=error)
        return await self.execute(sol_in_lamports)
