# pump_buyback/core/pubkeys.py

from dataclasses import dataclass, replace
from typing import Sequence, Tuple

from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID_SOLDERS  # Renamed to avoid conflict
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID as ATA_PROGRAM_ID_SPL
from spl.token.constants import TOKEN_PROGRAM_ID as TOKEN_PROGRAM_ID_SPL  # Renamed to avoid conflict
from spl.token.instructions import get_associated_token_address as spl_get_associated_token_address

from .exceptions import DerivationError

MAX_SEEDS = 16
MAX_SEED_LEN = 32

BONDING_CURVE_SEED = b"bonding-curve"
CREATOR_VAULT_SEED = b"creator-vault"


def derive_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """
    Derives a program address and its bump seed.

    The bump is searched from 255 down to 0; the first candidate that
    Pubkey.create_program_address accepts (i.e. off the ed25519 curve) wins,
    which gives the same result as Pubkey.find_program_address. Raises
    DerivationError if the seeds are out of bounds or every bump is rejected.
    """
    if len(seeds) + 1 > MAX_SEEDS:
        raise DerivationError(f"Too many seeds: {len(seeds)} (max {MAX_SEEDS - 1} plus bump)")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise DerivationError(f"Seed of {len(seed)} bytes exceeds {MAX_SEED_LEN}")

    seed_bytes = [bytes(seed) for seed in seeds]
    for bump in range(255, -1, -1):
        try:
            return Pubkey.create_program_address(seed_bytes + [bytes([bump])], program_id), bump
        except ValueError:
            # candidate lies on the curve
            continue

    raise DerivationError(f"No off-curve bump seed found for program {program_id}")


class SolanaProgramAddresses:
    SYSTEM_PROGRAM_ID: Pubkey = SYSTEM_PROGRAM_ID_SOLDERS
    TOKEN_PROGRAM_ID: Pubkey = TOKEN_PROGRAM_ID_SPL
    ASSOCIATED_TOKEN_ACCOUNT_PROGRAM_ID: Pubkey = ATA_PROGRAM_ID_SPL
    RENT_SYSVAR_PUBKEY: Pubkey = Pubkey.from_string(
        "SysvarRent111111111111111111111111111111111"
    )
    COMPUTE_BUDGET_PROGRAM_ID: Pubkey = Pubkey.from_string(
        "ComputeBudget111111111111111111111111111111"
    )


def get_associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    """Calculates the Associated Token Account address for a given owner and mint."""
    return spl_get_associated_token_address(owner, mint, SolanaProgramAddresses.TOKEN_PROGRAM_ID)


MAINNET_PROGRAM_ID = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
MAINNET_GLOBAL_STATE = "4wTV1YmiEkRvAtNtsSGPtUrqRYQMe5SKy2uB4Jjaxnjf"
MAINNET_FEE_RECIPIENT = "CebN5WGQ4jvEPvsVU4EoHEpgzq1VV7AbicfhtW4xC9iM"


@dataclass(frozen=True)
class PumpAddresses:
    """
    Identities of the pump.fun program and its fixed accounts.

    Built once at startup and passed to every component that needs it, so a
    devnet or test deployment only needs a different instance.
    """
    program_id: Pubkey
    global_state: Pubkey
    fee_recipient: Pubkey

    @classmethod
    def mainnet(cls) -> "PumpAddresses":
        return cls(
            program_id=Pubkey.from_string(MAINNET_PROGRAM_ID),
            global_state=Pubkey.from_string(MAINNET_GLOBAL_STATE),
            fee_recipient=Pubkey.from_string(MAINNET_FEE_RECIPIENT),
        )

    def with_program_id(self, program_id: Pubkey) -> "PumpAddresses":
        return replace(self, program_id=program_id)

    def bonding_curve(self, mint: Pubkey) -> Pubkey:
        pda, _ = derive_program_address([BONDING_CURVE_SEED, bytes(mint)], self.program_id)
        return pda

    def bonding_curve_token_account(self, mint: Pubkey) -> Pubkey:
        return get_associated_token_address(self.bonding_curve(mint), mint)

    def creator_vault(self, creator: Pubkey) -> Pubkey:
        pda, _ = derive_program_address([CREATOR_VAULT_SEED, bytes(creator)], self.program_id)
        return pda
