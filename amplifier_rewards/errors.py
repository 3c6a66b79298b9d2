"""Error taxonomy shared by the chain readers and the reconciliation engine.

Partial scans and empty sequences are not errors: they are reported on
the scan result (``ScanResult.partial`` / ``StopReason.EMPTY``).
"""

from __future__ import annotations


class RewardsError(Exception):
    """Base class for all reconciliation errors."""


class ConfigurationError(RewardsError):
    """Invalid epoch length, threshold, missing contract address, or bad settings.

    Fatal to the request and never retried.
    """


class RemoteUnavailable(RewardsError):
    """The remote state service could not answer a lookup."""

    def __init__(self, message: str, *, endpoint: str | None = None):
        super().__init__(message)
        self.endpoint = endpoint


__all__ = ["ConfigurationError", "RemoteUnavailable", "RewardsError"]
