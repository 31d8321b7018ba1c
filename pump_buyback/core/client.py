# pump_buyback/core/client.py

import asyncio
from typing import Optional, Union

from solders.account import Account
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.core import RPCException, UnconfirmedTxError
from solana.rpc.types import TxOpts

from pump_buyback.core.exceptions import SubmissionError
from pump_buyback.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_CONFIRM_TIMEOUT_SECONDS = 60
DEFAULT_CONFIRM_POLL_SECONDS = 1.0


class SolanaClient:
    """
    Async RPC wrapper around solana-py's AsyncClient.

    Reads raise whatever solana-py raises; the orchestrator decides what a
    failed read means for the cycle. Sends and confirmations raise
    SubmissionError carrying the raw rejection.
    """

    def __init__(
        self,
        rpc_endpoint: str,
        commitment: Commitment = Confirmed,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        async_client: Optional[AsyncClient] = None,
    ) -> None:
        self.rpc_endpoint = rpc_endpoint
        self.commitment = commitment
        self.timeout_seconds = timeout_seconds
        self.async_client = async_client or AsyncClient(
            rpc_endpoint, commitment=commitment, timeout=timeout_seconds
        )
        logger.info(f"SolanaClient initialized: {rpc_endpoint} @ {commitment}")

    async def __aenter__(self) -> "SolanaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        try:
            await self.async_client.close()
            logger.info("SolanaClient connection closed.")
        except Exception as e:
            logger.warning(f"Error closing SolanaClient: {e}")

    async def get_account(self, pubkey: Pubkey) -> Optional[Account]:
        resp = await self.async_client.get_account_info(pubkey, commitment=self.commitment, encoding="base64")
        return resp.value

    async def get_account_data(self, pubkey: Pubkey) -> Optional[bytes]:
        """Raw account bytes, or None if the account does not exist."""
        account = await self.get_account(pubkey)
        if account is None:
            return None
        return bytes(account.data)

    async def get_balance_lamports(self, pubkey: Pubkey) -> int:
        resp = await self.async_client.get_balance(pubkey, self.commitment)
        return resp.value

    async def get_minimum_balance_for_rent_exemption(self, data_size: int) -> int:
        resp = await self.async_client.get_minimum_balance_for_rent_exemption(data_size, self.commitment)
        return resp.value

    async def get_latest_blockhash(self) -> Hash:
        resp = await self.async_client.get_latest_blockhash(self.commitment)
        return resp.value.blockhash

    async def send_raw_transaction(self, raw_tx: bytes, skip_preflight: bool = False) -> Signature:
        opts = TxOpts(skip_preflight=skip_preflight, preflight_commitment=self.commitment)
        try:
            resp = await self.async_client.send_raw_transaction(raw_tx, opts=opts)
        except RPCException as err:
            payload = err.args[0] if err.args else err
            logger.error(f"RPC rejected transaction: {payload}")
            raise SubmissionError("RPC rejected transaction", payload=payload) from err
        except SolanaRpcException as err:
            logger.error(f"Transport error sending transaction: {err}")
            raise SubmissionError("Transport error sending transaction", payload=str(err)) from err
        logger.info(f"Tx sent: {resp.value}")
        return resp.value

    async def confirm_transaction(
        self,
        signature: Union[Signature, str],
        timeout_seconds: float = DEFAULT_CONFIRM_TIMEOUT_SECONDS,
        poll_seconds: float = DEFAULT_CONFIRM_POLL_SECONDS,
    ) -> None:
        """
        Waits until the signature reaches the client's commitment level.

        Raises SubmissionError if the wait exceeds ``timeout_seconds`` or the
        transaction landed with an on-chain error.
        """
        sig = signature if isinstance(signature, Signature) else Signature.from_string(signature)
        sig_str = str(sig)
        logger.info(f"Confirming {sig_str} @ {self.commitment} timeout={timeout_seconds}s")
        try:
            resp = await asyncio.wait_for(
                self.async_client.confirm_transaction(sig, self.commitment, sleep_seconds=poll_seconds),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise SubmissionError(
                f"Transaction not confirmed within {timeout_seconds}s", signature=sig_str
            ) from e
        except (RPCException, SolanaRpcException, UnconfirmedTxError) as e:
            raise SubmissionError("Confirmation failed", payload=str(e), signature=sig_str) from e

        status = resp.value[0] if resp.value else None
        if status is None:
            raise SubmissionError("No status returned for transaction", signature=sig_str)
        if status.err is not None:
            raise SubmissionError("Transaction failed on-chain", payload=status.err, signature=sig_str)
        logger.debug(f"{sig_str} confirmed: {status.confirmation_status}")
