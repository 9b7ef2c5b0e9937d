"""EtherMillions wallet-session and contract-interaction client."""

__version__ = "1.0.0"
