# pump_buyback/trading/strategies.py
"""
Two interchangeable ways of producing the claim and buy transactions:
build the instructions locally, or have the trade relay build them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException

from pump_buyback.core.client import SolanaClient
from pump_buyback.core.curve import BondingCurveState
from pump_buyback.core.exceptions import PricingError
from pump_buyback.core.instruction_builder import InstructionBuilder
from pump_buyback.core.pricing import QuoteResult, quote
from pump_buyback.core.pubkeys import PumpAddresses
from pump_buyback.core.transactions import TransactionSendResult, TransactionSubmitter
from pump_buyback.core.wallet import Wallet
from pump_buyback.trading.base import lamports_to_sol
from pump_buyback.trading.relay import UNKNOWN_CLAIMABLE, PumpPortalClient
from pump_buyback.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PreparedTransaction:
    """Either local instructions or relay-built unsigned bytes, never both."""
    label: str
    instructions: List[Instruction] = field(default_factory=list)
    serialized: Optional[bytes] = None
    quote: Optional[QuoteResult] = None

    async def send(self, submitter: TransactionSubmitter, signer: Keypair) -> TransactionSendResult:
        if self.serialized is not None:
            return await submitter.submit_serialized(self.serialized, signer, label=self.label)
        return await submitter.submit(self.instructions, signer, label=self.label)


class QuoteAndBuild(ABC):
    """Produces claim and buy transactions for one token."""

    name: str = "base"

    def __init__(self, mint: Pubkey, slippage_bps: int):
        self.mint = mint
        self.slippage_bps = slippage_bps

    @abstractmethod
    async def estimate_claimable_lamports(self, wallet: Wallet) -> int:
        """Best-effort claimable fee estimate; -1 when unknown."""
        ...

    @abstractmethod
    async def prepare_claim(self, wallet: Wallet) -> Optional[PreparedTransaction]:
        """Claim transaction, or None if there is nothing to claim."""
        ...

    @abstractmethod
    async def prepare_buy(
            self, wallet: Wallet, sol_in_lamports: int, state: BondingCurveState
    ) -> PreparedTransaction:
        ...

    def quote(self, sol_in_lamports: int, state: BondingCurveState) -> QuoteResult:
        result = quote(sol_in_lamports, state, self.slippage_bps)
        logger.info(
            f"Spot price: {state.calculate_price():.10f} SOL/token, "
            f"Buy estimate: SOL_in={sol_in_lamports}, Est.Tokens={result.tokens_out}, "
            f"MinTokensOut (Slip {self.slippage_bps}BPS)={result.min_tokens_out}"
        )
        return result


class DirectBuildStrategy(QuoteAndBuild):
    name = "direct"

    def __init__(
            self,
            client: SolanaClient,
            addresses: PumpAddresses,
            mint: Pubkey,
            slippage_bps: int,
            priority_fee_micro_lamports: int = 0,
            compute_unit_limit: int = 0,
    ):
        super().__init__(mint, slippage_bps)
        self.client = client
        self.addresses = addresses
        self.builder = InstructionBuilder(addresses)
        self.priority_fee_micro_lamports = priority_fee_micro_lamports
        self.compute_unit_limit = compute_unit_limit

    def _compute_budget(self) -> List[Instruction]:
        instructions: List[Instruction] = []
        if self.priority_fee_micro_lamports:
            if self.compute_unit_limit:
                instructions.append(InstructionBuilder.set_compute_unit_limit(self.compute_unit_limit))
            instructions.append(InstructionBuilder.set_compute_unit_price(self.priority_fee_micro_lamports))
        return instructions

    async def estimate_claimable_lamports(self, wallet: Wallet) -> int:
        vault = self.addresses.creator_vault(wallet.pubkey)
        try:
            account = await self.client.get_account(vault)
            if account is None:
                return 0
            rent_exempt = await self.client.get_minimum_balance_for_rent_exemption(len(account.data))
        except (RPCException, SolanaRpcException) as e:
            logger.debug(f"Creator vault lookup failed ({e}), will attempt claim")
            return UNKNOWN_CLAIMABLE
        return max(0, account.lamports - rent_exempt)

    async def prepare_claim(self, wallet: Wallet) -> Optional[PreparedTransaction]:
        instructions = self._compute_budget()
        instructions.append(self.builder.build_claim_fees_instruction(wallet.pubkey, self.mint))
        return PreparedTransaction(label="Claim", instructions=instructions)

    async def prepare_buy(
            self, wallet: Wallet, sol_in_lamports: int, state: BondingCurveState
    ) -> PreparedTransaction:
        buy_quote = self.quote(sol_in_lamports, state)
        if buy_quote.min_tokens_out <= 0:
            raise PricingError(f"Quote for {sol_in_lamports} lamports yields no tokens")

        instructions = self._compute_budget()
        instructions.append(InstructionBuilder.get_create_ata_idempotent_instruction(
            wallet.pubkey, wallet.pubkey, self.mint
        ))
        instructions.append(self.builder.build_buy_instruction(
            buyer=wallet.pubkey,
            mint=self.mint,
            sol_amount_in_lamports=sol_in_lamports,
            min_tokens_out=buy_quote.min_tokens_out,
        ))
        return PreparedTransaction(label="Buy", instructions=instructions, quote=buy_quote)


class RelayBuildStrategy(QuoteAndBuild):
    name = "relay"

    def __init__(
            self,
            relay: PumpPortalClient,
            mint: Pubkey,
            slippage_bps: int,
            priority_fee_sol: float,
    ):
        super().__init__(mint, slippage_bps)
        self.relay = relay
        self.priority_fee_sol = priority_fee_sol

    async def estimate_claimable_lamports(self, wallet: Wallet) -> int:
        return await self.relay.get_claimable_lamports(wallet.address)

    async def prepare_claim(self, wallet: Wallet) -> Optional[PreparedTransaction]:
        logger.info("Requesting creator fee claim transaction from PumpPortal...")
        raw_tx = await self.relay.build_claim_transaction(wallet.address, self.priority_fee_sol)
        if raw_tx is None:
            return None
        return PreparedTransaction(label="Claim", serialized=raw_tx)

    async def prepare_buy(
            self, wallet: Wallet, sol_in_lamports: int, state: BondingCurveState
    ) -> PreparedTransaction:
        # The relay applies slippage itself; the local quote is for the log only.
        buy_quote = self.quote(sol_in_lamports, state)
        raw_tx = await self.relay.build_buy_transaction(
            public_key=wallet.address,
            mint=str(self.mint),
            amount_sol=lamports_to_sol(sol_in_lamports),
            slippage_bps=self.slippage_bps,
            priority_fee=self.priority_fee_sol,
        )
        return PreparedTransaction(label="Buy", serialized=raw_tx, quote=buy_quote)
