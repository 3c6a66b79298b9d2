"""Epoch window mapping.

Epochs are fixed-length, contiguous block windows aligned so that
``height - height % epoch_length`` is the first block of the current
epoch. Older epochs are laid out backwards from there.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from amplifier_rewards.errors import ConfigurationError
from .models import EpochRange


def windows_for(
    epochs: Iterable[int],
    current_height: int,
    epoch_length: int,
    current_epoch: int,
) -> dict[int, EpochRange]:
    """Inclusive block range for each requested epoch, oldest first.

    Raises:
        ConfigurationError: ``epoch_length`` is not positive, or an epoch
            newer than ``current_epoch`` was requested.
    """
    if epoch_length <= 0:
        raise ConfigurationError(f"epoch_length must be positive, got {epoch_length}")

    aligned_start = current_height - (current_height % epoch_length)
    ranges: dict[int, EpochRange] = {}
    for epoch in sorted(set(epochs)):
        if epoch > current_epoch:
            raise ConfigurationError(
                f"epoch {epoch} is in the future (current epoch {current_epoch})"
            )
        start = aligned_start - (current_epoch - epoch) * epoch_length
        ranges[epoch] = EpochRange(start=start, end=start + epoch_length - 1)
    return ranges


def lower_bound(ranges: Mapping[int, EpochRange]) -> int:
    """First block of the oldest window, or 0 when there are none."""
    if not ranges:
        return 0
    return min(r.start for r in ranges.values())


def epoch_for_height(height: int, ranges: Mapping[int, EpochRange]) -> int | None:
    """The epoch whose window contains ``height``; windows are disjoint."""
    for epoch, window in ranges.items():
        if window.contains(height):
            return epoch
    return None


def unpaid_epochs(last_distribution_epoch: int, current_epoch: int) -> list[int]:
    """Epochs after the last settled one, up to and including the current epoch."""
    return list(range(last_distribution_epoch + 1, current_epoch + 1))


def epochs_to_scan(unpaid: list[int], count: int) -> list[int]:
    """The newest ``count`` unpaid epochs."""
    if count <= 0:
        return []
    return unpaid[-count:]


__all__ = [
    "epoch_for_height",
    "epochs_to_scan",
    "lower_bound",
    "unpaid_epochs",
    "windows_for",
]
