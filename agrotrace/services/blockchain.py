"""Blockchain collaborator seen from the supply-chain core.

The chain itself is opaque: a recorder takes a saved batch id plus the contract
arguments built by format_batch_for_chain and reports back a ChainRecordResult.
Nothing here depends on contract semantics.
"""
import logging
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

from agrotrace.core.config import CHAIN_EXPLORER_URL
from agrotrace.models.catalog import Batch

log = logging.getLogger("blockchain")


class ChainRecordResult(BaseModel):
    success: bool
    tx_hash: Optional[str] = None
    batch_id: Optional[str] = None
    explorer_url: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None
    local_only: bool = False


@runtime_checkable
class BlockchainRecorder(Protocol):
    @property
    def is_connected(self) -> bool: ...

    async def record_batch_on_chain(self, batch_id: str, chain_args: Dict[str, Any]) -> ChainRecordResult: ...


class DisconnectedRecorder:
    """Default recorder when no wallet/chain client is configured."""

    @property
    def is_connected(self) -> bool:
        return False

    async def record_batch_on_chain(self, batch_id: str, chain_args: Dict[str, Any]) -> ChainRecordResult:
        return not_connected_result()


def not_connected_result() -> ChainRecordResult:
    return ChainRecordResult(success=False, reason="wallet_not_connected", local_only=True)


def explorer_tx_url(tx_hash: str) -> str:
    return f"{CHAIN_EXPLORER_URL.rstrip('/')}/tx/{tx_hash}"


def format_batch_for_chain(batch: Batch, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Contract arguments for a harvest batch, with the fallbacks recorders expect."""
    user = user or {}
    return {
        "variety": batch.variety or "Unknown",
        "quantity": int(batch.quantity or 0),
        "harvest_date": str(batch.harvest_date) if batch.harvest_date else None,
        "farm_location": user.get("location") or batch.location or "Farm Location",
        "quality_notes": batch.quality_notes or "",
        "certifications": list(batch.certifications or []),
    }
