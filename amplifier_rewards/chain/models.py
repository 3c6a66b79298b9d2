"""Pydantic models for the CosmWasm query responses we consume.

Amounts on chain are in uaxl and arrive as decimal strings; pydantic's
lax mode coerces them to ints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


UAXL_PER_AXL = 1_000_000


def to_axl(amount_uaxl: int | float) -> float:
    return amount_uaxl / UAXL_PER_AXL


# ---------------------------------------------------------------------------
# Rewards contract
# ---------------------------------------------------------------------------


class RewardsPool(BaseModel):
    """Response of the Rewards contract's ``rewards_pool`` query."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    balance: int = 0
    epoch_duration: int = 0
    rewards_per_epoch: int = 0
    current_epoch_num: int = 0
    last_distribution_epoch: int | None = None
    participation_threshold: tuple[int, int] = (0, 1)

    @model_validator(mode="before")
    @classmethod
    def _lift_params(cls, data: Any) -> Any:
        # Some deployments nest the pool parameters under ``params``.
        if isinstance(data, dict) and isinstance(data.get("params"), dict):
            merged = dict(data["params"])
            merged.update({k: v for k, v in data.items() if k != "params"})
            return merged
        return data

    @property
    def balance_axl(self) -> float:
        return to_axl(self.balance)

    @property
    def rewards_per_epoch_axl(self) -> float:
        return to_axl(self.rewards_per_epoch)

    @property
    def last_settled_epoch(self) -> int:
        return self.last_distribution_epoch or 0


# ---------------------------------------------------------------------------
# Service registry
# ---------------------------------------------------------------------------


class ActiveVerifier(BaseModel):
    """One entry of the ServiceRegistry's ``active_verifiers`` response."""

    model_config = ConfigDict(frozen=True)

    address: str
    bonded_amount: float = 0.0  # AXL

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ActiveVerifier:
        info = payload.get("verifier_info") or {}
        bonding = info.get("bonding_state") or {}
        bonded = bonding.get("Bonded") if isinstance(bonding, dict) else None
        amount = int((bonded or {}).get("amount") or 0)
        return cls(address=info.get("address", ""), bonded_amount=to_axl(amount))


# ---------------------------------------------------------------------------
# Record payloads
# ---------------------------------------------------------------------------


class MultisigSession(BaseModel):
    """Response of the Multisig contract's ``multisig {session_id}`` query.

    ``state`` is either the string ``"pending"`` or
    ``{"completed": {"completed_at": <height>}}``.
    """

    model_config = ConfigDict(extra="ignore")

    state: Any = None
    verifier_set: dict[str, Any] = Field(default_factory=dict)
    signatures: dict[str, Any] = Field(default_factory=dict)

    @field_validator("state")
    @classmethod
    def _check_completed_at(cls, value: Any) -> Any:
        completed = value.get("completed") if isinstance(value, dict) else None
        if isinstance(completed, dict) and completed.get("completed_at") is not None:
            height = completed["completed_at"]
            if isinstance(height, bool) or not str(height).isdigit():
                raise ValueError(f"completed_at is not a block height: {height!r}")
            return {**value, "completed": {**completed, "completed_at": int(height)}}
        return value

    @property
    def completed_at(self) -> int | None:
        if isinstance(self.state, dict):
            completed = self.state.get("completed")
            if isinstance(completed, dict):
                return completed.get("completed_at")
        return None

    @property
    def signers(self) -> list[str]:
        return list((self.verifier_set.get("signers") or {}).keys())


class Poll(BaseModel):
    """The ``poll`` member of a VotingVerifier ``poll {poll_id}`` response."""

    model_config = ConfigDict(extra="ignore")

    expires_at: int = 0
    finished: bool = False
    participation: dict[str, Any] = Field(default_factory=dict)

    @property
    def voters(self) -> list[str]:
        voters = []
        for address, entry in self.participation.items():
            if isinstance(entry, dict):
                if entry.get("voted"):
                    voters.append(address)
            elif entry:
                voters.append(address)
        return voters


__all__ = [
    "ActiveVerifier",
    "MultisigSession",
    "Poll",
    "RewardsPool",
    "UAXL_PER_AXL",
    "to_axl",
]
