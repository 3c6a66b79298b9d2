"""Deployment config provider.

Resolves contract addresses and the chain list from the published
deployment JSON (``axelar-chains-config/info/mainnet.json``). The loaded
config is a frozen value passed explicitly to whoever needs it; callers
that want fresher data load a new one.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import bittensor as bt
import httpx
from pydantic import BaseModel, ConfigDict, Field

from amplifier_rewards.errors import ConfigurationError, RemoteUnavailable

MAINNET_CONFIG_URL = (
    "https://raw.githubusercontent.com/axelarnetwork/axelar-contract-deployments/"
    "main/axelar-chains-config/info/mainnet.json"
)

# Keys under a per-chain contract map that are not chains.
METADATA_KEYS = frozenset({
    "codeId",
    "lastUploadedCodeId",
    "storeCodeProposalCodeHash",
    "storeCodeProposalId",
})


class ChainConfig(BaseModel):
    """One amplifier chain and its verifier contracts."""

    model_config = ConfigDict(frozen=True)

    chain_name: str
    chain_id: str
    chain_key: str  # lowercase key used in contract queries
    voting_verifier_address: str | None = None
    multisig_prover_address: str | None = None


def _is_chain_entry(key: str, value: Any) -> bool:
    if key in METADATA_KEYS:
        return False
    return isinstance(value, dict) and "address" in value


class DeploymentConfig(BaseModel):
    """Parsed deployment JSON, reduced to the parts we query."""

    model_config = ConfigDict(frozen=True)

    contracts: dict[str, Any] = Field(default_factory=dict)
    chains: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> DeploymentConfig:
        axelar = payload.get("axelar") or {}
        return cls(
            contracts=axelar.get("contracts") or {},
            chains=payload.get("chains") or {},
        )

    # -- Singleton contracts --

    def _singleton_address(self, name: str) -> str:
        entry = self.contracts.get(name)
        address = entry.get("address") if isinstance(entry, dict) else None
        if not address:
            raise ConfigurationError(f"{name} contract address missing from deployment config")
        return address

    @property
    def rewards_address(self) -> str:
        return self._singleton_address("Rewards")

    @property
    def service_registry_address(self) -> str:
        return self._singleton_address("ServiceRegistry")

    @property
    def global_multisig_address(self) -> str:
        return self._singleton_address("Multisig")

    # -- Per-chain contracts --

    def _chain_address(self, chain_key: str, *names: str) -> str | None:
        for name in names:
            entry = (self.contracts.get(name) or {}).get(chain_key)
            if isinstance(entry, dict) and entry.get("address"):
                return entry["address"]
        return None

    def voting_verifier_address(self, chain_key: str) -> str | None:
        return self._chain_address(chain_key, "VotingVerifier", "XrplVotingVerifier")

    def multisig_prover_address(self, chain_key: str) -> str | None:
        return self._chain_address(chain_key, "MultisigProver", "XrplMultisigProver")

    def record_contract(self, kind: str, chain_key: str) -> str:
        """Contract holding the records of ``kind`` for a chain.

        Signing sessions for every chain live on the global Multisig;
        polls live on the chain's VotingVerifier.
        """
        if kind == "signing":
            return self.global_multisig_address
        if kind == "voting":
            address = self.voting_verifier_address(chain_key)
            if address is None:
                raise ConfigurationError(f"No VotingVerifier contract for chain {chain_key}")
            return address
        raise ConfigurationError(f"Unknown record kind: {kind}")

    def chain_configs(self) -> list[ChainConfig]:
        """Every chain with a VotingVerifier or MultisigProver, sorted by name."""
        voting = self.contracts.get("VotingVerifier") or {}
        provers = self.contracts.get("MultisigProver") or {}

        keys: set[str] = set()
        for source in (voting, provers):
            keys.update(k for k, v in source.items() if _is_chain_entry(k, v))

        chains = []
        for key in keys:
            info = self.chains.get(key) or {}
            chains.append(ChainConfig(
                chain_name=info.get("name") or key,
                chain_id=info.get("axelarId") or info.get("id") or key,
                chain_key=key,
                voting_verifier_address=self.voting_verifier_address(key),
                multisig_prover_address=self.multisig_prover_address(key),
            ))
        return sorted(chains, key=lambda c: c.chain_name.lower())


async def load_deployment_config(
    source: str = MAINNET_CONFIG_URL,
    client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> DeploymentConfig:
    """Load the deployment config from an http(s) URL or a local path."""
    if not source.startswith(("http://", "https://")):
        path = Path(source.removeprefix("file://")).expanduser()
        try:
            payload = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read deployment config {path}: {e}") from e
        bt.logging.info({"deployment_config": {"source": str(path)}})
        return DeploymentConfig.from_payload(payload)

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=timeout)
    try:
        resp = await client.get(source)
        resp.raise_for_status()
        payload = resp.json()
    except httpx.HTTPError as e:
        raise RemoteUnavailable(f"Deployment config fetch failed: {e}") from e
    except ValueError as e:
        raise ConfigurationError(f"Deployment config is not valid JSON: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    bt.logging.info({"deployment_config": {"source": source}})
    return DeploymentConfig.from_payload(payload)


__all__ = [
    "ChainConfig",
    "DeploymentConfig",
    "MAINNET_CONFIG_URL",
    "METADATA_KEYS",
    "load_deployment_config",
]
