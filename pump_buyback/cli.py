# pump_buyback/cli.py

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from pump_buyback.config import STRATEGIES, load_config
from pump_buyback.core.client import SolanaClient
from pump_buyback.core.exceptions import ConfigurationError
from pump_buyback.core.wallet import Wallet
from pump_buyback.trading.trader import BuybackTrader
from pump_buyback.utils.audit_logger import AuditLogger
from pump_buyback.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pump.fun creator fee buyback bot")
    parser.add_argument("--env-file", help="Path to a .env file (defaults to ./.env)")
    parser.add_argument("--once", action="store_true", help="Run a single buyback cycle and exit")
    parser.add_argument("--buy", type=float, metavar="SOL", help="Manual buyback with this much SOL, then exit")
    parser.add_argument("--strategy", choices=STRATEGIES, help="Override BUY_STRATEGY")
    parser.add_argument("--audit-file", help="Also append audit JSON lines to this file")
    parser.add_argument("--log-file", help="Also write logs to this file")
    return parser


def _install_signal_handlers(trader: BuybackTrader) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, trader.request_shutdown)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            logger.debug(f"Signal handler for {sig.name} not supported on this platform")


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(log_file=args.log_file)

    logger.info("Initializing Pump.fun Buyback Bot...")
    try:
        cfg = load_config(env_file=args.env_file, overrides={"BUY_STRATEGY": args.strategy})
        wallet = Wallet.from_private_key(cfg.private_key)
    except ConfigurationError as e:
        logger.critical(f"Failed to load configuration: {e}")
        return 1
    setup_logging(debug=cfg.debug)
    if args.strategy:
        logger.info(f"CLI Override: BUY_STRATEGY = {args.strategy}")

    client = SolanaClient(cfg.rpc_endpoint)
    audit_logger = AuditLogger(log_to_file=bool(args.audit_file), filepath=args.audit_file or "buyback_audit.log")
    trader = BuybackTrader(client, wallet, cfg, audit_logger=audit_logger)

    exit_code = 0
    try:
        if args.buy is not None:
            result = await trader.manual_buyback(args.buy)
            exit_code = 0 if result.success else 1
        else:
            _install_signal_handlers(trader)
            await trader.start(run_once=args.once)
    except asyncio.CancelledError:
        logger.info("Buyback bot cancelled.")
    except Exception as e:
        logger.critical(f"FATAL: Unhandled error: {e}", exc_info=True)
        exit_code = 1
    finally:
        await trader.stop()
    return exit_code


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
