"""Time-Parse: natural-language time text to Discord timestamp markup."""

__version__ = "1.0.0"
