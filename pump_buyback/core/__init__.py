# pump_buyback/core/__init__.py

# Import directly available classes/modules via relative imports
from .client import SolanaClient
from .wallet import Wallet
from .transactions import TransactionSendResult, TransactionSubmitter, TxFormat
from .instruction_builder import InstructionBuilder
from .curve import BondingCurveManager, BondingCurveState, TokenLifecycle
from .pubkeys import PumpAddresses, SolanaProgramAddresses, derive_program_address

__all__ = [
    "SolanaClient",
    "Wallet",
    "TransactionSendResult",
    "TransactionSubmitter",
    "TxFormat",
    "InstructionBuilder",
    "BondingCurveManager",
    "BondingCurveState",
    "TokenLifecycle",
    "PumpAddresses",
    "SolanaProgramAddresses",
    "derive_program_address",
]
