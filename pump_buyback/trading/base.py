# pump_buyback/trading/base.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pump_buyback.core.curve import LAMPORTS_PER_SOL
from pump_buyback.core.pricing import QuoteResult


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL


def sol_to_lamports(sol: float) -> int:
    return int(round(sol * LAMPORTS_PER_SOL))


class BuyStatus(Enum):
    SUCCESS = "SUCCESS"
    GRADUATED = "GRADUATED"  # token migrated off the curve; nothing was built or sent
    FAILED = "FAILED"


@dataclass
class ClaimResult:
    signature: str
    # derived from the wallet balance delta around the claim, not reported by the claim call
    amount_lamports: int

    @property
    def amount_sol(self) -> float:
        return lamports_to_sol(self.amount_lamports)


@dataclass
class TradeResult:
    status: BuyStatus
    signature: Optional[str] = None
    sol_in_lamports: int = 0
    quote: Optional[QuoteResult] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is BuyStatus.SUCCESS

    @property
    def graduated(self) -> bool:
        return self.status is BuyStatus.GRADUATED


@dataclass
class CycleResult:
    claimed_sol: float = 0.0
    buyback_tx: Optional[str] = None
    claim_tx: Optional[str] = None
    graduated: bool = False
    skipped: bool = False  # another cycle already held the wallet lock
    error: Optional[str] = None


@dataclass
class BotStats:
    total_claimed: float = 0.0
    total_buybacks: int = 0
    successful_buybacks: int = 0
    failed_buybacks: int = 0
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def uptime_minutes(self) -> int:
        return int((datetime.now(timezone.utc) - self.start_time).total_seconds() // 60)
