"""Patient monthly billing ledger with carry-forward settlement."""

__version__ = "0.1.0"
