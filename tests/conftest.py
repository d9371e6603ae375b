"""
Pytest Fixtures and Test Configuration
Provides settings factories and log catalogs for the scripted Oracle connection
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from snapshot_offset.config.settings import SnapshotOffsetSettings
from snapshot_offset.db.connection import Row
from tests.fakes import log_row


@pytest.fixture
def make_settings() -> Callable[..., SnapshotOffsetSettings]:
    """Build settings without reading the environment's Oracle configuration"""

    def factory(
        mode: str = "all",
        captured_tables: Sequence[str] = ("INVENTORY.ORDERS",),
        pdb_name: Optional[str] = None,
        rac_nodes: Sequence[str] = (),
        **log_mining: Any,
    ) -> SnapshotOffsetSettings:
        log_mining_config: Dict[str, Any] = {"transaction_snapshot_boundary_mode": mode}
        log_mining_config.update(log_mining)
        return SnapshotOffsetSettings(
            oracle={"pdb_name": pdb_name, "rac_nodes": list(rac_nodes)},
            log_mining=log_mining_config,
            snapshot={"captured_tables": list(captured_tables)},
        )

    return factory


@pytest.fixture
def redo_logs() -> List[Row]:
    """Single-thread catalog: two archived logs and the current online log"""
    return [
        log_row("/arch/1_10.arc", 10, first_scn=700, next_scn=800),
        log_row("/arch/1_11.arc", 11, first_scn=800, next_scn=900),
        log_row("/redo/redo01.log", 12, online=True, status="CURRENT", first_scn=900),
    ]
