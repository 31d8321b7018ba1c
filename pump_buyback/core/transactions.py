# pump_buyback/core/transactions.py

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from solders.hash import Hash as Blockhash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message, MessageV0
from solders.transaction import Transaction, VersionedTransaction

from .client import SolanaClient, DEFAULT_CONFIRM_TIMEOUT_SECONDS
from .exceptions import SubmissionError
from ..utils.logger import get_logger, log_tx

logger = get_logger(__name__)


class TxFormat(Enum):
    VERSIONED = "versioned"
    LEGACY = "legacy"
    FAILED = "failed"


@dataclass
class EncodingAttempt:
    """Outcome of turning instructions (or relay bytes) into a signed wire transaction."""
    tx_format: TxFormat
    raw: Optional[bytes] = None
    # reason each rejected format failed, in attempt order
    rejections: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.tx_format is not TxFormat.FAILED


@dataclass
class TransactionSendResult:
    signature: str
    tx_format: TxFormat


def _reason(fmt: TxFormat, error: Exception) -> str:
    return f"{fmt.value}: {type(error).__name__}: {error}"


def encode_instructions(
        instructions: Sequence[Instruction],
        signer: Keypair,
        recent_blockhash: Blockhash,
) -> EncodingAttempt:
    """Compiles and signs a v0 transaction, or a legacy one if v0 compilation/signing fails."""
    rejections: List[str] = []
    try:
        message = MessageV0.try_compile(
            payer=signer.pubkey(),
            instructions=list(instructions),
            address_lookup_table_accounts=[],
            recent_blockhash=recent_blockhash,
        )
        tx = VersionedTransaction(message, [signer])
        return EncodingAttempt(TxFormat.VERSIONED, raw=bytes(tx), rejections=rejections)
    except Exception as e:
        rejections.append(_reason(TxFormat.VERSIONED, e))
        logger.warning(f"Versioned encoding rejected, trying legacy: {e}")

    try:
        legacy_message = Message.new_with_blockhash(list(instructions), signer.pubkey(), recent_blockhash)
        legacy_tx = Transaction([signer], legacy_message, recent_blockhash)
        return EncodingAttempt(TxFormat.LEGACY, raw=bytes(legacy_tx), rejections=rejections)
    except Exception as e:
        rejections.append(_reason(TxFormat.LEGACY, e))

    return EncodingAttempt(TxFormat.FAILED, rejections=rejections)


def sign_serialized(raw_tx: bytes, signer: Keypair) -> EncodingAttempt:
    """
    Signs an unsigned wire transaction built elsewhere (e.g. by the trade relay).

    The versioned parser also accepts legacy wire bytes, so the parsed message
    type decides the format: a legacy message is re-read and signed as a
    legacy Transaction.
    """
    rejections: List[str] = []
    try:
        unsigned = VersionedTransaction.from_bytes(raw_tx)
        if not isinstance(unsigned.message, Message):
            tx = VersionedTransaction(unsigned.message, [signer])
            return EncodingAttempt(TxFormat.VERSIONED, raw=bytes(tx), rejections=rejections)
        logger.debug("Serialized transaction carries a legacy message")
    except Exception as e:
        rejections.append(_reason(TxFormat.VERSIONED, e))
        logger.warning(f"Could not sign as versioned transaction, trying legacy: {e}")

    try:
        legacy_tx = Transaction.from_bytes(raw_tx)
        legacy_tx.sign([signer], legacy_tx.message.recent_blockhash)
        return EncodingAttempt(TxFormat.LEGACY, raw=bytes(legacy_tx), rejections=rejections)
    except Exception as e:
        rejections.append(_reason(TxFormat.LEGACY, e))

    return EncodingAttempt(TxFormat.FAILED, rejections=rejections)


class TransactionSubmitter:
    """
    Signs, sends and confirms transactions. One attempt per call; any failure
    raises SubmissionError and is left to the next scheduled cycle.
    """

    def __init__(
            self,
            client: SolanaClient,
            confirm_timeout_seconds: float = DEFAULT_CONFIRM_TIMEOUT_SECONDS,
            skip_preflight: bool = False,
    ):
        self.client = client
        self.confirm_timeout_seconds = confirm_timeout_seconds
        self.skip_preflight = skip_preflight

    async def submit(
            self,
            instructions: Sequence[Instruction],
            signer: Keypair,
            label: str = "Transaction",
    ) -> TransactionSendResult:
        # Blockhash is fetched right before signing to keep the staleness window short.
        recent_blockhash = await self.client.get_latest_blockhash()
        attempt = encode_instructions(instructions, signer, recent_blockhash)
        return await self._transmit(attempt, label)

    async def submit_serialized(
            self,
            raw_tx: bytes,
            signer: Keypair,
            label: str = "Transaction",
    ) -> TransactionSendResult:
        attempt = sign_serialized(raw_tx, signer)
        return await self._transmit(attempt, label)

    async def _transmit(self, attempt: EncodingAttempt, label: str) -> TransactionSendResult:
        if not attempt.ok:
            logger.error(f"{label}: no transaction format could be built: {attempt.rejections}")
            raise SubmissionError(f"{label}: transaction encoding failed", payload=attempt.rejections)

        logger.debug(f"{label}: sending {attempt.tx_format.value} transaction ({len(attempt.raw)} bytes)")
        signature = await self.client.send_raw_transaction(attempt.raw, skip_preflight=self.skip_preflight)
        await self.client.confirm_transaction(signature, timeout_seconds=self.confirm_timeout_seconds)

        signature_str = str(signature)
        log_tx(logger, f"{label} confirmed", signature_str)
        return TransactionSendResult(signature=signature_str, tx_format=attempt.tx_format)
