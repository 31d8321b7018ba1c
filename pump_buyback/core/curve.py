# pump_buyback/core/curve.py

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from construct import Bytes, ConstructError, Int8ul, Int64ul, Struct
from solders.pubkey import Pubkey

from pump_buyback.core.exceptions import CurveAbsentError, MalformedAccountError
from pump_buyback.core.pubkeys import PumpAddresses
from pump_buyback.utils.logger import get_logger

logger = get_logger(__name__)

# --- Standard constants ---
LAMPORTS_PER_SOL = 1_000_000_000
DEFAULT_TOKEN_DECIMALS = 6

# --- Bonding Curve Layout ---
# 8-byte account discriminator, five u64 fields, one flag byte. Anything after
# the flag (padding, creator key) is not needed here and is ignored.
BONDING_CURVE_LAYOUT = Struct(
    "discriminator" / Bytes(8),
    "virtual_token_reserves" / Int64ul,
    "virtual_sol_reserves" / Int64ul,
    "real_token_reserves" / Int64ul,
    "real_sol_reserves" / Int64ul,
    "token_total_supply" / Int64ul,
    "complete_raw" / Int8ul,
)
BONDING_CURVE_MIN_SIZE = BONDING_CURVE_LAYOUT.sizeof()  # 49


class TokenLifecycle(Enum):
    ACTIVE = "ACTIVE"  # curve account present, complete == False
    MIGRATED = "MIGRATED"  # curve account absent or complete == True; terminal


@dataclass(frozen=True)
class BondingCurveState:
    virtual_token_reserves: int
    virtual_sol_reserves: int
    real_token_reserves: int
    real_sol_reserves: int
    token_total_supply: int
    complete: bool

    @property
    def lifecycle(self) -> TokenLifecycle:
        return TokenLifecycle.MIGRATED if self.complete else TokenLifecycle.ACTIVE

    def calculate_price(self, decimals: int = DEFAULT_TOKEN_DECIMALS) -> float:
        """Calculates the current instantaneous price in SOL per UI token. Display only."""
        if self.virtual_token_reserves == 0 or self.virtual_sol_reserves == 0:
            return 0.0
        price_lamports_per_token_lamport = self.virtual_sol_reserves / self.virtual_token_reserves
        return (price_lamports_per_token_lamport / LAMPORTS_PER_SOL) * (10 ** decimals)


def decode_bonding_curve_account(raw_data: bytes) -> BondingCurveState:
    """Decodes raw bonding curve account bytes. Raises MalformedAccountError if too short."""
    if raw_data is None or len(raw_data) < BONDING_CURVE_MIN_SIZE:
        size = 0 if raw_data is None else len(raw_data)
        raise MalformedAccountError(
            f"Bonding curve account data is {size} bytes, expected at least {BONDING_CURVE_MIN_SIZE}"
        )
    try:
        parsed = BONDING_CURVE_LAYOUT.parse(bytes(raw_data[:BONDING_CURVE_MIN_SIZE]))
    except ConstructError as e:
        raise MalformedAccountError(f"Could not decode bonding curve account: {e}") from e

    return BondingCurveState(
        virtual_token_reserves=parsed.virtual_token_reserves,
        virtual_sol_reserves=parsed.virtual_sol_reserves,
        real_token_reserves=parsed.real_token_reserves,
        real_sol_reserves=parsed.real_sol_reserves,
        token_total_supply=parsed.token_total_supply,
        complete=parsed.complete_raw == 1,
    )


class BondingCurveManager:
    """Reads curve accounts fresh from the chain. Nothing is cached between calls."""

    def __init__(self, client, addresses: PumpAddresses):
        self.client = client  # Expects SolanaClient (our wrapper)
        self.addresses = addresses

    async def get_curve_state(self, curve_address: Pubkey) -> BondingCurveState:
        raw_data = await self.client.get_account_data(curve_address)
        if raw_data is None:
            raise CurveAbsentError(curve_address)
        state = decode_bonding_curve_account(raw_data)
        logger.debug(f"Curve state for {curve_address}: {state}")
        return state

    async def get_state_for_mint(self, mint: Pubkey) -> BondingCurveState:
        return await self.get_curve_state(self.addresses.bonding_curve(mint))

    async def get_lifecycle(self, mint: Pubkey) -> Tuple[TokenLifecycle, Optional[BondingCurveState]]:
        """
        Classifies the token relative to this program.

        A missing curve account counts as migrated; malformed data and RPC
        failures propagate.
        """
        try:
            state = await self.get_state_for_mint(mint)
        except CurveAbsentError:
            logger.warning("Bonding curve account not found - token may have graduated")
            return TokenLifecycle.MIGRATED, None
        return state.lifecycle, state

    async def has_graduated(self, mint: Pubkey) -> bool:
        lifecycle, _ = await self.get_lifecycle(mint)
        return lifecycle is TokenLifecycle.MIGRATED
