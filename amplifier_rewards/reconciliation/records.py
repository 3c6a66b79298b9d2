"""Record kinds: signing sessions and voting polls.

Each kind knows how to ask its contract for record ``n`` and how to
reduce the native response to the abstract ``Record`` the scanner works
on. The engine never looks at native payloads.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import bittensor as bt
from pydantic import ValidationError

from amplifier_rewards.chain.interface import StateReader
from amplifier_rewards.chain.models import MultisigSession, Poll

from amplifier_rewards.errors import ConfigurationError
from .models import Record


@runtime_checkable
class RecordKind(Protocol):
    """Adapter between a contract's native record shape and ``Record``."""

    name: str
    label: str
    default_lookback: int
    progress_every: int

    def record_query(self, record_id: int) -> dict[str, Any]:
        ...

    def exists(self, payload: Any) -> bool:
        """Whether a query response denotes an existing record."""
        ...

    def to_record(self, record_id: int, payload: Any) -> Record | None:
        """The settled record, or None when it is absent or not yet settled."""
        ...

    async def latest_hint(self, reader: StateReader, contract: str) -> int | None:
        """Cheap latest-id lookup, if the contract offers one."""
        ...


class SessionRecordKind:
    """Multisig signing sessions; height = ``completed_at``, participants = signers."""

    name = "signing"
    label = "sessions"
    default_lookback = 5000
    progress_every = 100

    def record_query(self, record_id: int) -> dict[str, Any]:
        return {"multisig": {"session_id": str(record_id)}}

    def exists(self, payload: Any) -> bool:
        return bool(payload)

    def to_record(self, record_id: int, payload: Any) -> Record | None:
        if not isinstance(payload, dict):
            return None
        try:
            session = MultisigSession.model_validate(payload)
        except ValidationError as e:
            bt.logging.debug({"session_record": {"id": record_id, "invalid": str(e)}})
            return None
        completed_at = session.completed_at
        if completed_at is None:
            return None
        return Record(
            id=record_id,
            completion_height=completed_at,
            participants=frozenset(session.signatures),
        )

    async def latest_hint(self, reader: StateReader, contract: str) -> int | None:
        return None


class PollRecordKind:
    """VotingVerifier polls; height = ``expires_at``, participants = voters."""

    name = "voting"
    label = "polls"
    default_lookback = 2000
    progress_every = 50

    def record_query(self, record_id: int) -> dict[str, Any]:
        return {"poll": {"poll_id": str(record_id)}}

    def exists(self, payload: Any) -> bool:
        return isinstance(payload, dict) and bool(payload.get("poll"))

    def to_record(self, record_id: int, payload: Any) -> Record | None:
        if not self.exists(payload):
            return None
        try:
            poll = Poll.model_validate(payload["poll"])
        except ValidationError as e:
            bt.logging.debug({"poll_record": {"id": record_id, "invalid": str(e)}})
            return None
        if not poll.finished:
            return None
        return Record(
            id=record_id,
            completion_height=poll.expires_at,
            participants=frozenset(poll.voters),
        )

    async def latest_hint(self, reader: StateReader, contract: str) -> int | None:
        result = await reader.query_contract(contract, {"poll_id": {}})
        if isinstance(result, bool):
            return None
        if isinstance(result, int):
            return result
        if isinstance(result, str) and result.isdigit():
            return int(result)
        return None


RECORD_KINDS: dict[str, RecordKind] = {
    SessionRecordKind.name: SessionRecordKind(),
    PollRecordKind.name: PollRecordKind(),
}


def get_record_kind(name: str) -> RecordKind:
    try:
        return RECORD_KINDS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown record kind: {name} (expected one of {sorted(RECORD_KINDS)})") from None


__all__ = [
    "PollRecordKind",
    "RECORD_KINDS",
    "RecordKind",
    "SessionRecordKind",
    "get_record_kind",
]
