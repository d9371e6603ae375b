"""
Oracle Connection
Implements the database read interface with python-oracledb
"""

from typing import Any, List, Mapping, Optional

import oracledb
import structlog

from snapshot_offset.config.settings import OracleSettings
from snapshot_offset.db import sql
from snapshot_offset.db.connection import BaseConnection, DatabaseError, Row

logger = structlog.get_logger(__name__)


class OracleConnection(BaseConnection):
    """
    Oracle session opened with python-oracledb (thin mode)
    """

    def __init__(self, settings: OracleSettings):
        """
        Open an Oracle session

        Args:
            settings: Oracle connection settings

        Raises:
            DatabaseError: If connection fails
        """
        self.settings = settings
        self._conn: Optional[oracledb.Connection] = None

        try:
            self._conn = oracledb.connect(
                user=settings.username,
                password=settings.password,
                dsn=oracledb.makedsn(
                    settings.host, settings.port, service_name=settings.service_name
                ),
            )
            logger.info(
                "Connected to Oracle",
                host=settings.host,
                port=settings.port,
                service_name=settings.service_name,
            )

        except oracledb.Error as e:
            raise DatabaseError(f"Failed to connect to Oracle: {e}") from e

    def _connection(self) -> oracledb.Connection:
        if self._conn is None:
            raise DatabaseError("Not connected to Oracle")
        return self._conn

    def query(self, sql_text: str, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        """
        Run a query and return rows keyed by upper-case column name

        Raises:
            DatabaseError: If the query fails
        """
        try:
            with self._connection().cursor() as cur:
                cur.execute(sql_text, dict(params or {}))
                columns = [column[0].upper() for column in cur.description or []]
                return [dict(zip(columns, values)) for values in cur.fetchall()]

        except oracledb.Error as e:
            raise DatabaseError(str(e)) from e

    def execute_without_committing(self, sql_text: str) -> None:
        try:
            with self._connection().cursor() as cur:
                cur.execute(sql_text)

        except oracledb.Error as e:
            raise DatabaseError(str(e)) from e

    def set_autocommit(self, enabled: bool) -> None:
        self._connection().autocommit = enabled

    def reset_session_to_cdb(self) -> None:
        logger.debug("Resetting session to CDB root")
        self.execute_without_committing(sql.RESET_SESSION_TO_CDB)

    def duplicate(self) -> "OracleConnection":
        return OracleConnection(self.settings)

    def close(self) -> None:
        """Close the Oracle session"""
        if self._conn is not None:
            try:
                self._conn.close()
            except oracledb.Error as e:
                raise DatabaseError(f"Failed to close Oracle connection: {e}") from e
            finally:
                self._conn = None
            logger.info("Disconnected from Oracle")
