"""Claims pump.fun creator fees and spends them buying back the creator's token."""

__version__ = "0.1.0"
