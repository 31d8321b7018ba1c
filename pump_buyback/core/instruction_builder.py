# pump_buyback/core/instruction_builder.py

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from pump_buyback.core.exceptions import EncodingError
from pump_buyback.core.pubkeys import PumpAddresses, SolanaProgramAddresses, get_associated_token_address

# --- Instruction Discriminators (anchor sighash, fixed by the program IDL) ---
BUY_DISCRIMINATOR = bytes.fromhex("66063d1201daebea")  # global:buy
COLLECT_CREATOR_FEE_DISCRIMINATOR = bytes.fromhex("1416567bc61cdb84")  # global:collect_creator_fee

U64_MAX = 2 ** 64 - 1
U32_MAX = 2 ** 32 - 1


def encode_u64(value: int, field: str) -> bytes:
    if not isinstance(value, int) or isinstance(value, bool):
        raise EncodingError(f"{field} must be an int, got {type(value).__name__}")
    if value < 0 or value > U64_MAX:
        raise EncodingError(f"{field} out of u64 range: {value}")
    return value.to_bytes(8, "little")


class InstructionBuilder:
    """Builds pump.fun instructions for one program deployment. No network access."""

    def __init__(self, addresses: PumpAddresses):
        self.addresses = addresses

    @staticmethod
    def get_create_ata_idempotent_instruction(payer: Pubkey, owner: Pubkey, mint: Pubkey) -> Instruction:
        """
        Generates the CreateIdempotent instruction of the associated token program.
        Succeeds on-chain whether or not the account already exists.
        """
        associated_token_address = get_associated_token_address(owner, mint)
        return Instruction(
            program_id=SolanaProgramAddresses.ASSOCIATED_TOKEN_ACCOUNT_PROGRAM_ID,
            accounts=[
                AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
                AccountMeta(pubkey=associated_token_address, is_signer=False, is_writable=True),
                AccountMeta(pubkey=owner, is_signer=False, is_writable=False),
                AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
                AccountMeta(pubkey=SolanaProgramAddresses.SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
                AccountMeta(pubkey=SolanaProgramAddresses.TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            ],
            data=b'\x01'
        )

    @staticmethod
    def set_compute_unit_limit(units: int) -> Instruction:
        """Creates an instruction to set the compute unit limit for the transaction."""
        if units < 0 or units > U32_MAX:
            raise EncodingError(f"compute unit limit out of u32 range: {units}")
        # 1-byte tag (2 = SetComputeUnitLimit), u32 units
        data = b'\x02' + units.to_bytes(4, 'little')
        return Instruction(
            program_id=SolanaProgramAddresses.COMPUTE_BUDGET_PROGRAM_ID,
            accounts=[],
            data=data
        )

    @staticmethod
    def set_compute_unit_price(micro_lamports: int) -> Instruction:
        """Creates an instruction to set the compute unit price (priority fee) for the transaction."""
        # 1-byte tag (3 = SetComputeUnitPrice), u64 micro-lamports
        data = b'\x03' + encode_u64(micro_lamports, "micro_lamports")
        return Instruction(
            program_id=SolanaProgramAddresses.COMPUTE_BUDGET_PROGRAM_ID,
            accounts=[],
            data=data
        )

    def build_claim_fees_instruction(self, claimer: Pubkey, mint: Pubkey) -> Instruction:
        """Builds the creator fee claim instruction. Discriminator only, no arguments."""
        accounts = [
            AccountMeta(pubkey=claimer, is_signer=True, is_writable=True),  # 0. creator
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),  # 1. mint
            AccountMeta(pubkey=self.addresses.bonding_curve(mint), is_signer=False, is_writable=True),  # 2. bondingCurve
            AccountMeta(pubkey=self.addresses.creator_vault(claimer), is_signer=False, is_writable=True),  # 3. creatorVault
            AccountMeta(pubkey=SolanaProgramAddresses.SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            # 4. systemProgram
        ]
        return Instruction(
            program_id=self.addresses.program_id,
            accounts=accounts,
            data=COLLECT_CREATOR_FEE_DISCRIMINATOR
        )

    @staticmethod
    def encode_buy_data(sol_amount_in_lamports: int, min_tokens_out: int) -> bytes:
        return (
                BUY_DISCRIMINATOR +
                encode_u64(sol_amount_in_lamports, "sol_amount_in_lamports") +
                encode_u64(min_tokens_out, "min_tokens_out")
        )

    def build_buy_instruction(
            self,
            buyer: Pubkey,
            mint: Pubkey,
            sol_amount_in_lamports: int,
            min_tokens_out: int
    ) -> Instruction:
        """Builds the pump.fun 'buy' instruction."""
        instruction_data = self.encode_buy_data(sol_amount_in_lamports, min_tokens_out)
        bonding_curve = self.addresses.bonding_curve(mint)

        accounts = [
            AccountMeta(pubkey=self.addresses.global_state, is_signer=False, is_writable=False),  # 0. global
            AccountMeta(pubkey=self.addresses.fee_recipient, is_signer=False, is_writable=True),  # 1. feeRecipient
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),  # 2. mint
            AccountMeta(pubkey=bonding_curve, is_signer=False, is_writable=True),  # 3. bondingCurve
            AccountMeta(pubkey=self.addresses.bonding_curve_token_account(mint), is_signer=False, is_writable=True),
            # 4. associatedBondingCurve
            AccountMeta(pubkey=get_associated_token_address(buyer, mint), is_signer=False, is_writable=True),
            # 5. associatedUser
            AccountMeta(pubkey=buyer, is_signer=True, is_writable=True),  # 6. user
            AccountMeta(pubkey=SolanaProgramAddresses.SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            # 7. systemProgram
            AccountMeta(pubkey=SolanaProgramAddresses.TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            # 8. tokenProgram
            AccountMeta(pubkey=SolanaProgramAddresses.RENT_SYSVAR_PUBKEY, is_signer=False, is_writable=False),
            # 9. rent
            AccountMeta(pubkey=SolanaProgramAddresses.ASSOCIATED_TOKEN_ACCOUNT_PROGRAM_ID, is_signer=False,
                        is_writable=False),  # 10. associatedTokenProgram
        ]

        return Instruction(
            program_id=self.addresses.program_id,
            accounts=accounts,
            data=instruction_data
        )

