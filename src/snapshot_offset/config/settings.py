"""
Pydantic Settings Models for Snapshot Offset Resolution
"""

from typing import List, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from snapshot_offset.models.offset import TransactionBoundaryMode


class OracleSettings(BaseSettings):
    """Oracle source database configuration"""

    host: str = Field(default="localhost")
    port: int = Field(default=1521, ge=1, le=65535)
    service_name: str = Field(default="ORCLCDB", description="Service to connect to")
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)
    pdb_name: Optional[str] = Field(
        default=None, description="Pluggable database holding the captured tables"
    )
    rac_nodes: List[str] = Field(
        default_factory=list, description="RAC node addresses, empty for single instance"
    )

    model_config = SettingsConfigDict(env_prefix="CDC_ORACLE_")

    @property
    def is_clustered(self) -> bool:
        return bool(self.rac_nodes)


class LogMiningSettings(BaseSettings):
    """LogMiner and snapshot boundary tuning"""

    transaction_snapshot_boundary_mode: TransactionBoundaryMode = Field(
        default=TransactionBoundaryMode.VIEW_AND_LOG,
        description="How in-flight transactions are found at the snapshot SCN",
    )
    archive_log_retention_hours: int = Field(
        default=0, ge=0, description="Only consider archive logs this recent (0 = all)"
    )
    archive_log_only_mode: bool = Field(
        default=False, description="Never read online redo logs"
    )
    archive_destination_name: Optional[str] = Field(default=None)
    stabilization_max_attempts: Optional[int] = Field(
        default=None, ge=1, description="SCN stabilization attempts (None = unbounded)"
    )
    stabilization_pause_ms: int = Field(
        default=0, ge=0, le=60000, description="Pause between stabilization samples"
    )

    model_config = SettingsConfigDict(env_prefix="CDC_LOG_MINING_")


class SnapshotSettings(BaseSettings):
    """Tables covered by the snapshot"""

    captured_tables: List[str] = Field(
        default_factory=list, description="Captured tables as SCHEMA.TABLE"
    )

    model_config = SettingsConfigDict(env_prefix="CDC_SNAPSHOT_")

    @field_validator("captured_tables")
    @classmethod
    def validate_table_names(cls, v: List[str]) -> List[str]:
        """Table names must be qualified with their schema"""
        normalized = []
        for name in v:
            owner, _, table = name.strip().partition(".")
            if not owner or not table:
                raise ValueError(f"Table must be given as SCHEMA.TABLE: {name!r}")
            normalized.append(f"{owner.upper()}.{table.upper()}")
        return normalized

    def table_ids(self) -> List[Tuple[str, str]]:
        return [tuple(name.split(".", 1)) for name in self.captured_tables]


class ObservabilitySettings(BaseSettings):
    """Metrics, logging, and tracing configuration"""

    enable_metrics: bool = Field(default=False)
    metrics_port: int = Field(default=9090, ge=1024, le=65535)
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_format: str = Field(default="json", pattern="^(json|console)$")
    enable_tracing: bool = Field(default=False)

    model_config = SettingsConfigDict(env_prefix="CDC_")


class SnapshotOffsetSettings(BaseSettings):
    """Complete snapshot offset resolution configuration"""

    oracle: OracleSettings = Field(default_factory=OracleSettings)
    log_mining: LogMiningSettings = Field(default_factory=LogMiningSettings)
    snapshot: SnapshotSettings = Field(default_factory=SnapshotSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_prefix="CDC_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )
