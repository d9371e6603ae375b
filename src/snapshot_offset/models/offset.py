"""
SnapshotOffset Data Model - Resume point handed from the snapshot to the streaming phase
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from snapshot_offset.models.scn import SCN_KEY, parse_scn

SNAPSHOT_SCN_KEY = "snapshot_scn"
SNAPSHOT_PENDING_TX_KEY = "snapshot_pending_tx"


class TransactionBoundaryMode(str, Enum):
    """How in-flight transactions are discovered at the snapshot boundary"""

    SKIP = "skip"
    VIEW_ONLY = "transaction_view_only"
    VIEW_AND_LOG = "all"


def transaction_id_to_hex(transaction_id: Any) -> str:
    """
    Render a transaction id (XID) as a lowercase hex key

    Args:
        transaction_id: Raw XID bytes, or an already rendered hex string

    Returns:
        Lowercase hex string
    """
    if isinstance(transaction_id, (bytes, bytearray, memoryview)):
        return bytes(transaction_id).hex()
    if isinstance(transaction_id, str):
        return transaction_id.lower()
    raise TypeError(f"Unsupported transaction id type: {type(transaction_id).__name__}")


@dataclass(frozen=True)
class SnapshotOffset:
    """
    Resolved snapshot offset

    Attributes:
        scn: SCN the streaming phase resumes from
        snapshot_scn: SCN the snapshot was taken at (always equal to scn)
        pending_transactions: Hex transaction id -> start SCN of transactions
            in flight at scn
    """

    scn: int
    snapshot_scn: int
    pending_transactions: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate SnapshotOffset and freeze the pending transaction mapping"""
        if not isinstance(self.scn, int) or self.scn < 0:
            raise ValueError("scn must be a non-negative integer")

        if self.snapshot_scn != self.scn:
            raise ValueError("snapshot_scn must equal scn")

        for transaction_id, start_scn in self.pending_transactions.items():
            if start_scn is None or start_scn < 0:
                raise ValueError(f"Invalid start SCN for transaction {transaction_id}")

        object.__setattr__(
            self, "pending_transactions", MappingProxyType(dict(self.pending_transactions))
        )

    @classmethod
    def create(
        cls,
        scn: int,
        pending_transactions: Optional[Mapping[str, int]] = None,
    ) -> "SnapshotOffset":
        """
        Factory method to create a SnapshotOffset at the given SCN

        Args:
            scn: Resolved current SCN
            pending_transactions: In-flight transactions discovered at scn

        Returns:
            SnapshotOffset instance
        """
        return cls(
            scn=scn,
            snapshot_scn=scn,
            pending_transactions=dict(pending_transactions or {}),
        )

    def to_dict(self) -> dict:
        """Convert to the offset document consumed by the streaming phase"""
        return {
            SCN_KEY: str(self.scn),
            SNAPSHOT_SCN_KEY: str(self.snapshot_scn),
            SNAPSHOT_PENDING_TX_KEY: ",".join(
                f"{transaction_id}:{start_scn}"
                for transaction_id, start_scn in self.pending_transactions.items()
            ),
        }

    @classmethod
    def from_dict(cls, document: Mapping[str, Any]) -> "SnapshotOffset":
        """
        Load a SnapshotOffset from an offset document

        Raises:
            ValueError: If the document has no SCN or a malformed pending list
        """
        scn = parse_scn(document.get(SCN_KEY))
        if scn is None:
            raise ValueError("Offset document has no SCN")

        pending: Dict[str, int] = {}
        encoded = document.get(SNAPSHOT_PENDING_TX_KEY) or ""
        for entry in filter(None, encoded.split(",")):
            transaction_id, separator, start_scn = entry.partition(":")
            if not separator or not transaction_id:
                raise ValueError(f"Malformed pending transaction entry: {entry!r}")
            pending.setdefault(transaction_id, parse_scn(start_scn))

        snapshot_scn = parse_scn(document.get(SNAPSHOT_SCN_KEY))
        return cls(
            scn=scn,
            snapshot_scn=scn if snapshot_scn is None else snapshot_scn,
            pending_transactions=pending,
        )
