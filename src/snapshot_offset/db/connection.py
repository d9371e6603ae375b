"""
Base Connection Interface
Abstract database read interface used during snapshot offset resolution
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

Row = Dict[str, Any]


class DatabaseError(Exception):
    """Base exception for database errors, keeps the vendor message (e.g. ORA-01307)"""

    pass


class BaseConnection(ABC):
    """
    Abstract base class for source database connections

    All connections must implement:
    - query(): Run a query and return rows keyed by upper-case column name
    - execute_without_committing(): Run a command inside the open transaction
    - set_autocommit(): Toggle autocommit
    - reset_session_to_cdb(): Leave a pluggable database for the root container
    - duplicate(): Open an independent session with the same configuration
    - close(): Release the session
    """

    @abstractmethod
    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        """
        Run a query

        Args:
            sql: Query text
            params: Bind parameters

        Returns:
            Rows as dicts keyed by upper-case column name

        Raises:
            DatabaseError: If the query fails
        """
        pass

    @abstractmethod
    def execute_without_committing(self, sql: str) -> None:
        """
        Run a statement or PL/SQL block without committing

        Raises:
            DatabaseError: If execution fails
        """
        pass

    @abstractmethod
    def set_autocommit(self, enabled: bool) -> None:
        pass

    @abstractmethod
    def reset_session_to_cdb(self) -> None:
        """
        Switch the session to the root container (CDB$ROOT)

        Raises:
            DatabaseError: If the switch fails
        """
        pass

    @abstractmethod
    def duplicate(self) -> "BaseConnection":
        """
        Open a new, independent session with this connection's configuration

        Raises:
            DatabaseError: If the session cannot be opened
        """
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def query_one(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Row]:
        """
        Run a query and return its first row

        Returns:
            First row, or None if the query returned nothing
        """
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
