"""Tests for transaction encoding with format fallback, and for submission."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message, MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction, VersionedTransaction

from pump_buyback.core.exceptions import SubmissionError
from pump_buyback.core.transactions import (
    TransactionSubmitter,
    TxFormat,
    encode_instructions,
    sign_serialized,
)


@pytest.fixture
def signer() -> Keypair:
    return Keypair()


@pytest.fixture
def instructions(signer):
    return [transfer(TransferParams(from_pubkey=signer.pubkey(), to_pubkey=Pubkey.new_unique(), lamports=1))]


def _failing(name: str) -> MagicMock:
    broken = MagicMock(name=name)
    broken.try_compile.side_effect = ValueError(f"{name} unavailable")
    broken.new_with_blockhash.side_effect = ValueError(f"{name} unavailable")
    return broken


class TestEncodeInstructions:

    def test_versioned_first(self, signer, instructions):
        attempt = encode_instructions(instructions, signer, Hash.default())

        assert attempt.tx_format is TxFormat.VERSIONED
        assert attempt.ok
        assert attempt.rejections == []
        tx = VersionedTransaction.from_bytes(attempt.raw)
        assert tx.message.account_keys[0] == signer.pubkey()

    def test_falls_back_to_legacy(self, signer, instructions):
        with patch("pump_buyback.core.transactions.MessageV0", _failing("MessageV0")):
            attempt = encode_instructions(instructions, signer, Hash.default())

        assert attempt.tx_format is TxFormat.LEGACY
        assert len(attempt.rejections) == 1
        assert attempt.rejections[0].startswith("versioned")
        tx = Transaction.from_bytes(attempt.raw)
        assert tx.message.account_keys[0] == signer.pubkey()

    def test_both_formats_rejected(self, signer, instructions):
        with patch("pump_buyback.core.transactions.MessageV0", _failing("MessageV0")), \
                patch("pump_buyback.core.transactions.Message", _failing("Message")):
            attempt = encode_instructions(instructions, signer, Hash.default())

        assert attempt.tx_format is TxFormat.FAILED
        assert not attempt.ok
        assert attempt.raw is None
        assert len(attempt.rejections) == 2


class TestSignSerialized:

    def test_signs_unsigned_versioned_bytes(self, signer, instructions):
        message = MessageV0.try_compile(signer.pubkey(), instructions, [], Hash.default())
        unsigned = VersionedTransaction.populate(message, [Signature.default()])

        attempt = sign_serialized(bytes(unsigned), signer)

        assert attempt.tx_format is TxFormat.VERSIONED
        signed = VersionedTransaction.from_bytes(attempt.raw)
        assert signed.signatures[0] != Signature.default()

    def test_legacy_bytes_signed_as_legacy(self, signer, instructions):
        message = Message.new_with_blockhash(instructions, signer.pubkey(), Hash.default())
        unsigned = Transaction.new_unsigned(message)

        attempt = sign_serialized(bytes(unsigned), signer)

        assert attempt.tx_format is TxFormat.LEGACY
        assert attempt.rejections == []
        signed = Transaction.from_bytes(attempt.raw)
        assert signed.signatures[0] != Signature.default()
        assert signed.message.account_keys[0] == signer.pubkey()

    def test_garbage_fails_both_formats(self, signer):
        attempt = sign_serialized(b"\x01\x02\x03", signer)

        assert attempt.tx_format is TxFormat.FAILED
        assert len(attempt.rejections) == 2


class TestTransactionSubmitter:

    @pytest.mark.asyncio
    async def test_submit_sends_and_confirms(self, mock_client, signer, instructions):
        mock_client.get_latest_blockhash.return_value = Hash.default()
        mock_client.send_raw_transaction.return_value = Signature.default()
        submitter = TransactionSubmitter(mock_client, confirm_timeout_seconds=5)

        result = await submitter.submit(instructions, signer, label="Buy")

        assert result.signature == str(Signature.default())
        assert result.tx_format is TxFormat.VERSIONED
        mock_client.send_raw_transaction.assert_awaited_once()
        mock_client.confirm_transaction.assert_awaited_once_with(Signature.default(), timeout_seconds=5)

    @pytest.mark.asyncio
    async def test_encoding_failure_is_not_sent(self, mock_client, signer, instructions):
        mock_client.get_latest_blockhash.return_value = Hash.default()
        submitter = TransactionSubmitter(mock_client)

        with patch("pump_buyback.core.transactions.MessageV0", _failing("MessageV0")), \
                patch("pump_buyback.core.transactions.Message", _failing("Message")):
            with pytest.raises(SubmissionError) as exc_info:
                await submitter.submit(instructions, signer, label="Claim")

        assert len(exc_info.value.payload) == 2
        mock_client.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_rejection_skips_confirmation(self, mock_client, signer, instructions):
        mock_client.get_latest_blockhash.return_value = Hash.default()
        mock_client.send_raw_transaction.side_effect = SubmissionError("RPC rejected transaction", payload="blockhash")
        submitter = TransactionSubmitter(mock_client)

        with pytest.raises(SubmissionError):
            await submitter.submit(instructions, signer)

        mock_client.confirm_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_confirmation_failure_propagates(self, mock_client, signer, instructions):
        mock_client.get_latest_blockhash.return_value = Hash.default()
        mock_client.send_raw_transaction.return_value = Signature.default()
        mock_client.confirm_transaction.side_effect = SubmissionError("Transaction failed on-chain")
        submitter = TransactionSubmitter(mock_client)

        with pytest.raises(SubmissionError):
            await submitter.submit(instructions, signer)

    @pytest.mark.asyncio
    async def test_submit_serialized_signs_relay_bytes(self, mock_client, signer, instructions):
        message = MessageV0.try_compile(signer.pubkey(), instructions, [], Hash.default())
        unsigned = VersionedTransaction.populate(message, [Signature.default()])
        mock_client.send_raw_transaction.return_value = Signature.default()
        submitter = TransactionSubmitter(mock_client)

        await submitter.submit_serialized(bytes(unsigned), signer, label="Claim")

        sent_raw = mock_client.send_raw_transaction.await_args.args[0]
        assert VersionedTransaction.from_bytes(sent_raw).signatures[0] != Signature.default()
        mock_client.get_latest_blockhash.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_submit_serialized_reports_legacy_format(self, mock_client, signer, instructions):
        message = Message.new_with_blockhash(instructions, signer.pubkey(), Hash.default())
        mock_client.send_raw_transaction.return_value = Signature.default()
        submitter = TransactionSubmitter(mock_client)

        result = await submitter.submit_serialized(bytes(Transaction.new_unsigned(message)), signer, label="Buy")

        assert result.tx_format is TxFormat.LEGACY
