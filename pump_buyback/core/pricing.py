# pump_buyback/core/pricing.py

from dataclasses import dataclass

from pump_buyback.core.curve import BondingCurveState
from pump_buyback.core.exceptions import ConfigurationError, PricingError

BPS_DENOMINATOR = 10_000
U64_MAX = 2 ** 64 - 1


@dataclass(frozen=True)
class QuoteResult:
    tokens_out: int
    min_tokens_out: int


def validate_slippage_bps(slippage_bps: int) -> int:
    if not isinstance(slippage_bps, int) or isinstance(slippage_bps, bool):
        raise ConfigurationError(f"slippage_bps must be an integer, got {slippage_bps!r}")
    if not 0 <= slippage_bps < BPS_DENOMINATOR:
        raise ConfigurationError(f"slippage_bps must be in [0, {BPS_DENOMINATOR}), got {slippage_bps}")
    return slippage_bps


def tokens_out_for_sol(sol_in_lamports: int, state: BondingCurveState) -> int:
    """
    Constant-product output for a buy, fees ignored:
    floor(sol_in * virtual_token_reserves / (virtual_sol_reserves + sol_in)).
    Python ints are unbounded so the u64 * u64 product cannot overflow.
    """
    denominator = state.virtual_sol_reserves + sol_in_lamports
    if denominator == 0:
        raise PricingError("virtual_sol_reserves + sol_in is zero")
    return (sol_in_lamports * state.virtual_token_reserves) // denominator


def apply_slippage(amount: int, slippage_bps: int) -> int:
    return (amount * (BPS_DENOMINATOR - slippage_bps)) // BPS_DENOMINATOR


def quote(sol_in_lamports: int, state: BondingCurveState, slippage_bps: int) -> QuoteResult:
    validate_slippage_bps(slippage_bps)
    if sol_in_lamports < 0 or sol_in_lamports > U64_MAX:
        raise PricingError(f"sol_in_lamports out of u64 range: {sol_in_lamports}")

    tokens_out = tokens_out_for_sol(sol_in_lamports, state)
    return QuoteResult(tokens_out=tokens_out, min_tokens_out=apply_slippage(tokens_out, slippage_bps))
