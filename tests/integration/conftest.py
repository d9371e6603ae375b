"""
Oracle testcontainer fixtures for integration tests
Integration tests only run with CDC_ORACLE_INTEGRATION=1 and a Docker daemon available
"""

import os
from typing import Generator

import pytest
from testcontainers.oracle import OracleDbContainer

from snapshot_offset.config.settings import OracleSettings
from snapshot_offset.db.oracle import OracleConnection

ORACLE_IMAGE = "gvenzl/oracle-free:slim"
ORACLE_PASSWORD = "cdc_integration"
ORACLE_SERVICE = "FREEPDB1"


def pytest_collection_modifyitems(config, items):
    if os.environ.get("CDC_ORACLE_INTEGRATION") == "1":
        return
    skip_integration = pytest.mark.skip(reason="set CDC_ORACLE_INTEGRATION=1 to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(scope="session")
def oracle_container() -> Generator[OracleDbContainer, None, None]:
    """
    Start an Oracle Free testcontainer for the test session

    Yields:
        Running OracleDbContainer instance
    """
    container = OracleDbContainer(ORACLE_IMAGE, oracle_password=ORACLE_PASSWORD)
    container.start()
    yield container
    container.stop()


@pytest.fixture(scope="session")
def oracle_settings(oracle_container: OracleDbContainer) -> OracleSettings:
    return OracleSettings(
        host=oracle_container.get_container_host_ip(),
        port=int(oracle_container.get_exposed_port(1521)),
        service_name=ORACLE_SERVICE,
        username="system",
        password=ORACLE_PASSWORD,
    )


@pytest.fixture
def oracle_connection(oracle_settings: OracleSettings) -> Generator[OracleConnection, None, None]:
    """Snapshot connection to the test database"""
    with OracleConnection(oracle_settings) as connection:
        yield connection


@pytest.fixture(scope="session")
def orders_table(oracle_settings: OracleSettings) -> str:
    """Captured table owned by SYSTEM"""
    with OracleConnection(oracle_settings) as connection:
        connection.set_autocommit(True)
        connection.execute_without_committing(
            "BEGIN EXECUTE IMMEDIATE 'DROP TABLE SYSTEM.CDC_ORDERS'; "
            "EXCEPTION WHEN OTHERS THEN NULL; END;"
        )
        connection.execute_without_committing(
            "CREATE TABLE SYSTEM.CDC_ORDERS (ID NUMBER PRIMARY KEY, AMOUNT NUMBER)"
        )
    return "SYSTEM.CDC_ORDERS"
