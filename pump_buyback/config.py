# pump_buyback/config.py

import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from dotenv import load_dotenv
from solders.pubkey import Pubkey

from pump_buyback.core.exceptions import ConfigurationError
from pump_buyback.core.pricing import validate_slippage_bps
from pump_buyback.core.pubkeys import PumpAddresses
from pump_buyback.utils.logger import get_logger

logger = get_logger(__name__)

STRATEGY_RELAY = "relay"
STRATEGY_DIRECT = "direct"
STRATEGIES = (STRATEGY_RELAY, STRATEGY_DIRECT)

DEFAULT_PUMPPORTAL_API_URL = "https://pumpportal.fun/api/trade-local"
DEFAULT_FEE_API_URL = "https://frontend-api.pump.fun"

REQUIRED_VARS = ("SOLANA_NODE_RPC_ENDPOINT", "SOLANA_PRIVATE_KEY", "TOKEN_MINT_ADDRESS")


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"not a boolean: {raw!r}")


# name -> (default, parser)
OPTIONAL_SETTINGS: Dict[str, Any] = {
    "MIN_BUYBACK_AMOUNT": (0.01, float),
    "CHECK_INTERVAL_MINUTES": (5, int),
    "SLIPPAGE_BPS": (500, int),
    "USE_PRIORITY_FEE": (False, _parse_bool),
    "PRIORITY_FEE_MICRO_LAMPORTS": (50_000, int),
    "COMPUTE_UNIT_LIMIT": (200_000, int),
    "BUY_STRATEGY": (STRATEGY_RELAY, str),
    "CONFIRM_TIMEOUT_SECONDS": (60.0, float),
    "SETTLE_DELAY_SECONDS": (2.0, float),
    "PUMPPORTAL_API_URL": (DEFAULT_PUMPPORTAL_API_URL, str),
    "FEE_API_URL": (DEFAULT_FEE_API_URL, str),
    "DEBUG": (False, _parse_bool),
}


@dataclass(frozen=True)
class BotConfig:
    rpc_endpoint: str
    private_key: str
    token_mint: Pubkey
    addresses: PumpAddresses
    min_buyback_amount: float = 0.01
    check_interval_minutes: int = 5
    slippage_bps: int = 500
    use_priority_fee: bool = False
    priority_fee_micro_lamports: int = 50_000
    compute_unit_limit: int = 200_000
    buy_strategy: str = STRATEGY_RELAY
    confirm_timeout_seconds: float = 60.0
    settle_delay_seconds: float = 2.0
    pumpportal_api_url: str = DEFAULT_PUMPPORTAL_API_URL
    fee_api_url: str = DEFAULT_FEE_API_URL
    debug: bool = False

    @property
    def relay_priority_fee_sol(self) -> float:
        """Priority fee in the unit the trade relay expects."""
        if self.use_priority_fee:
            return self.priority_fee_micro_lamports / 1_000_000
        return 0.0001

    def validate(self) -> "BotConfig":
        try:
            validate_slippage_bps(self.slippage_bps)
        except ConfigurationError as e:
            raise ConfigurationError(f"SLIPPAGE_BPS: {e}") from e
        if self.min_buyback_amount <= 0:
            raise ConfigurationError("MIN_BUYBACK_AMOUNT must be positive")
        if self.check_interval_minutes <= 0:
            raise ConfigurationError("CHECK_INTERVAL_MINUTES must be positive")
        if self.confirm_timeout_seconds <= 0:
            raise ConfigurationError("CONFIRM_TIMEOUT_SECONDS must be positive")
        if self.settle_delay_seconds < 0:
            raise ConfigurationError("SETTLE_DELAY_SECONDS must not be negative")
        if self.priority_fee_micro_lamports < 0 or self.compute_unit_limit < 0:
            raise ConfigurationError("Priority fee settings must not be negative")
        if self.buy_strategy not in STRATEGIES:
            raise ConfigurationError(f"BUY_STRATEGY must be one of {STRATEGIES}, got {self.buy_strategy!r}")
        return self


def _parse_pubkey(name: str, raw: str) -> Pubkey:
    try:
        return Pubkey.from_string(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"Invalid {name} - must be a valid Solana public key") from e


def load_config(
        env_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        overrides: Optional[Dict[str, Any]] = None,
) -> BotConfig:
    """Load and validate the bot configuration from the environment (and .env)."""
    if environ is None:
        load_dotenv(dotenv_path=env_file)
        environ = os.environ

    values: Dict[str, Any] = {}
    for var in REQUIRED_VARS:
        val = environ.get(var)
        if not val:
            raise ConfigurationError(f"Missing required environment variable: {var}")
        values[var] = val

    for var, (default, parser) in OPTIONAL_SETTINGS.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            values[var] = default
            continue
        try:
            values[var] = parser(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {var}: {raw!r}") from e

    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})

    addresses = PumpAddresses.mainnet()
    program_id_raw = environ.get("PUMP_FUN_PROGRAM_ID")
    if program_id_raw:
        addresses = addresses.with_program_id(_parse_pubkey("PUMP_FUN_PROGRAM_ID", program_id_raw))

    config = BotConfig(
        rpc_endpoint=values["SOLANA_NODE_RPC_ENDPOINT"],
        private_key=values["SOLANA_PRIVATE_KEY"],
        token_mint=_parse_pubkey("TOKEN_MINT_ADDRESS", values["TOKEN_MINT_ADDRESS"]),
        addresses=addresses,
        min_buyback_amount=values["MIN_BUYBACK_AMOUNT"],
        check_interval_minutes=values["CHECK_INTERVAL_MINUTES"],
        slippage_bps=values["SLIPPAGE_BPS"],
        use_priority_fee=values["USE_PRIORITY_FEE"],
        priority_fee_micro_lamports=values["PRIORITY_FEE_MICRO_LAMPORTS"],
        compute_unit_limit=values["COMPUTE_UNIT_LIMIT"],
        buy_strategy=values["BUY_STRATEGY"].strip().lower(),
        confirm_timeout_seconds=values["CONFIRM_TIMEOUT_SECONDS"],
        settle_delay_seconds=values["SETTLE_DELAY_SECONDS"],
        pumpportal_api_url=values["PUMPPORTAL_API_URL"],
        fee_api_url=values["FEE_API_URL"].rstrip("/"),
        debug=values["DEBUG"],
    ).validate()

    logger.info("Configuration loaded successfully.")
    return config
