"""Axelar amplifier verifier rewards: pool overview and participation reconciliation."""

__version__ = "0.1.0"
