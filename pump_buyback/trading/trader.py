# pump_buyback/trading/trader.py

import asyncio
from typing import Optional

from pump_buyback.config import STRATEGY_DIRECT, BotConfig
from pump_buyback.core.client import SolanaClient
from pump_buyback.core.curve import BondingCurveManager
from pump_buyback.core.exceptions import ConfigurationError
from pump_buyback.core.transactions import TransactionSubmitter
from pump_buyback.core.wallet import Wallet
from pump_buyback.trading.base import BotStats, CycleResult, TradeResult, lamports_to_sol
from pump_buyback.trading.buyback import BuybackOrchestrator
from pump_buyback.trading.buyer import TokenBuyer
from pump_buyback.trading.fee_claimer import FeeClaimer
from pump_buyback.trading.relay import PumpPortalClient
from pump_buyback.trading.strategies import DirectBuildStrategy, QuoteAndBuild, RelayBuildStrategy
from pump_buyback.utils.audit_logger import AuditLogger
from pump_buyback.utils.logger import get_logger, log_separator

logger = get_logger(__name__)


def create_strategy(config: BotConfig, client: SolanaClient, relay: Optional[PumpPortalClient]) -> QuoteAndBuild:
    if config.buy_strategy == STRATEGY_DIRECT:
        return DirectBuildStrategy(
            client=client,
            addresses=config.addresses,
            mint=config.token_mint,
            slippage_bps=config.slippage_bps,
            priority_fee_micro_lamports=config.priority_fee_micro_lamports if config.use_priority_fee else 0,
            compute_unit_limit=config.compute_unit_limit,
        )
    if relay is None:
        raise ConfigurationError("relay strategy needs a PumpPortalClient")
    return RelayBuildStrategy(
        relay=relay,
        mint=config.token_mint,
        slippage_bps=config.slippage_bps,
        priority_fee_sol=config.relay_priority_fee_sol,
    )


class BuybackTrader:
    """Wires the services together and runs buyback cycles on a fixed interval."""

    def __init__(
            self,
            client: SolanaClient,
            wallet: Wallet,
            config: BotConfig,
            relay: Optional[PumpPortalClient] = None,
            strategy: Optional[QuoteAndBuild] = None,
            audit_logger: Optional[AuditLogger] = None,
    ):
        self.client = client
        self.wallet = wallet
        self.config = config
        logger.info(f"Initializing BuybackTrader for wallet {self.wallet.pubkey}")

        if relay is None and strategy is None and config.buy_strategy != STRATEGY_DIRECT:
            relay = PumpPortalClient(config.pumpportal_api_url, config.fee_api_url)
        self.relay = relay
        self.strategy = strategy or create_strategy(config, client, relay)

        self.curve_manager = BondingCurveManager(self.client, config.addresses)
        self.submitter = TransactionSubmitter(self.client, confirm_timeout_seconds=config.confirm_timeout_seconds)
        self.audit_logger = audit_logger or AuditLogger()

        self.fee_claimer = FeeClaimer(
            client=self.client,
            wallet=self.wallet,
            strategy=self.strategy,
            submitter=self.submitter,
        )
        self.buyer = TokenBuyer(
            client=self.client,
            wallet=self.wallet,
            curve_manager=self.curve_manager,
            strategy=self.strategy,
            submitter=self.submitter,
            mint=config.token_mint,
        )
        self.orchestrator = BuybackOrchestrator(
            client=self.client,
            wallet=self.wallet,
            curve_manager=self.curve_manager,
            fee_claimer=self.fee_claimer,
            buyer=self.buyer,
            min_buyback_sol=config.min_buyback_amount,
            settle_delay_seconds=config.settle_delay_seconds,
        )

        self.stats = BotStats()
        self._shutdown_event = asyncio.Event()
        logger.info(f"BuybackTrader initialized ({self.strategy.name} strategy).")

    def log_configuration(self) -> None:
        log_separator(logger)
        logger.info("Configuration:")
        logger.info(f"  Token Mint: {self.config.token_mint}")
        logger.info(f"  Min Buyback Amount: {self.config.min_buyback_amount} SOL")
        logger.info(f"  Check Interval: {self.config.check_interval_minutes} minutes")
        logger.info(f"  Slippage: {self.config.slippage_bps / 100}%")
        logger.info(f"  Priority Fees: {'Enabled' if self.config.use_priority_fee else 'Disabled'}")
        logger.info(f"  Strategy: {self.strategy.name}")
        log_separator(logger)

    async def warn_if_graduated(self) -> bool:
        """Startup check only; each cycle re-checks before claiming."""
        graduated = await self.curve_manager.has_graduated(self.config.token_mint)
        if graduated:
            logger.warning("Token has graduated off the pump.fun bonding curve!")
            logger.warning("This bot only supports tokens on the pump.fun bonding curve.")
        return graduated

    def _update_stats(self, result: CycleResult) -> None:
        self.stats.total_claimed += result.claimed_sol
        if result.buyback_tx:
            self.stats.total_buybacks += 1
            self.stats.successful_buybacks += 1
        elif result.claimed_sol >= self.config.min_buyback_amount and not result.graduated:
            # enough was claimed to attempt a buy, and it did not land
            self.stats.total_buybacks += 1
            self.stats.failed_buybacks += 1
        elif result.error and not result.claimed_sol:
            self.stats.failed_buybacks += 1

    async def run_once(self) -> CycleResult:
        result = await self.orchestrator.run_cycle()
        if result.skipped:
            event = "CYCLE_SKIPPED"
        else:
            event = "CYCLE_ERROR" if result.error else "CYCLE_COMPLETE"
            self._update_stats(result)
        self.audit_logger.log_cycle_event(event, str(self.config.token_mint), result)
        return result

    async def manual_buyback(self, sol_amount: float) -> TradeResult:
        result = await self.buyer.execute_with_amount(sol_amount)
        event = "MANUAL_BUY_SUCCESS" if result.success else "MANUAL_BUY_FAIL"
        self.audit_logger.log_trade_event(event, str(self.config.token_mint), result)
        return result

    def display_stats(self) -> None:
        logger.info("=== Bot Statistics ===")
        logger.info(f"Uptime: {self.stats.uptime_minutes} minutes")
        logger.info(f"Total SOL claimed: {self.stats.total_claimed:.6f} SOL")
        logger.info(f"Total buyback attempts: {self.stats.total_buybacks}")
        logger.info(f"Successful buybacks: {self.stats.successful_buybacks}")
        logger.info(f"Failed buybacks: {self.stats.failed_buybacks}")

    def request_shutdown(self) -> None:
        if not self._shutdown_event.is_set():
            logger.info("Shutdown requested.")
            self._shutdown_event.set()

    async def start(self, run_once: bool = False) -> None:
        balance = await self.client.get_balance_lamports(self.wallet.pubkey)
        logger.info(f"Wallet connected with {lamports_to_sol(balance):.6f} SOL")
        self.log_configuration()
        await self.warn_if_graduated()

        logger.info("Running initial buyback cycle...")
        await self.run_once()
        if run_once:
            return

        interval_seconds = self.config.check_interval_minutes * 60
        logger.info(f"Scheduling buyback cycles every {self.config.check_interval_minutes} minutes")
        logger.info("Bot is now running! Press Ctrl+C to stop.")
        while not self._shutdown_event.is_set():
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                await self.run_once()

    async def stop(self) -> None:
        log_separator(logger)
        logger.info("Shutting down...")
        self.display_stats()
        if self.relay is not None:
            await self.relay.close()
        await self.client.close()
        logger.info("BuybackTrader stopped.")
