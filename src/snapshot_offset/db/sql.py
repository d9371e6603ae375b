"""
Oracle SQL used during snapshot offset resolution
"""

from typing import Optional, Sequence, Tuple

CURRENT_SCN_QUERY = "SELECT CURRENT_SCN FROM V$DATABASE"

RESET_SESSION_TO_CDB = "ALTER SESSION SET CONTAINER = CDB$ROOT"

START_MINING_SESSION = (
    "BEGIN sys.dbms_logmnr.start_logmnr("
    "OPTIONS => DBMS_LOGMNR.DICT_FROM_ONLINE_CATALOG + DBMS_LOGMNR.NO_ROWID_IN_STMT);"
    "END;"
)

STOP_MINING_SESSION = "BEGIN SYS.DBMS_LOGMNR.END_LOGMNR(); END;"

# LogMiner operation code for a transaction START record
TRANSACTION_START_OPERATION = 7


def transaction_view_name(clustered: bool) -> str:
    """V$TRANSACTION is instance-local; RAC needs the global view"""
    return "GV$TRANSACTION" if clustered else "V$TRANSACTION"


def same_timestamp_query(first_scn: int, second_scn: int) -> str:
    return (
        "SELECT 1 AS SAME FROM DUAL "
        f"WHERE SCN_TO_TIMESTAMP({int(first_scn)}) = SCN_TO_TIMESTAMP({int(second_scn)})"
    )


def pending_transactions_query(transaction_view: str) -> str:
    """Current SCN joined with every transaction that started before it"""
    return (
        "SELECT d.CURRENT_SCN, t.XID, t.START_SCN "
        "FROM V$DATABASE d "
        f"LEFT OUTER JOIN {transaction_view} t "
        "ON t.START_SCN < d.CURRENT_SCN "
    )


def latest_table_ddl_scn_query(tables: Sequence[Tuple[str, str]]) -> Tuple[str, dict]:
    """
    Map the newest DDL time of the captured tables to an SCN

    Args:
        tables: (owner, table) pairs

    Returns:
        Query text and bind parameters
    """
    clauses = []
    params = {}
    for index, (owner, table) in enumerate(tables):
        clauses.append(f"(OWNER = :owner{index} AND OBJECT_NAME = :table{index})")
        params[f"owner{index}"] = owner
        params[f"table{index}"] = table

    query = (
        "SELECT TIMESTAMP_TO_SCN(MAX(LAST_DDL_TIME)) AS DDL_SCN FROM ALL_OBJECTS "
        f"WHERE OBJECT_TYPE = 'TABLE' AND ({' OR '.join(clauses)})"
    )
    return query, params


def _archive_destination_predicate(destination_name: Optional[str]) -> str:
    if destination_name:
        return (
            "A.DEST_ID IN (SELECT DEST_ID FROM V$ARCHIVE_DEST_STATUS "
            f"WHERE DEST_NAME = '{_quote(destination_name.upper())}')"
        )
    return (
        "A.DEST_ID IN (SELECT DEST_ID FROM V$ARCHIVE_DEST_STATUS "
        "WHERE STATUS = 'VALID' AND TYPE = 'LOCAL' AND ROWNUM = 1)"
    )


def _archive_retention_predicate(retention_hours: int) -> str:
    if retention_hours and retention_hours > 0:
        return f" AND A.FIRST_TIME >= SYSDATE - ({int(retention_hours)}/24)"
    return ""


def oldest_first_change_query(retention_hours: int, destination_name: Optional[str]) -> str:
    """Oldest SCN still present in online or retained archive logs"""
    return (
        "SELECT MIN(FIRST_CHANGE#) AS OLDEST_SCN FROM ("
        "SELECT MIN(FIRST_CHANGE#) AS FIRST_CHANGE# FROM V$LOG "
        "UNION "
        "SELECT MIN(A.FIRST_CHANGE#) AS FIRST_CHANGE# FROM V$ARCHIVED_LOG A "
        f"WHERE {_archive_destination_predicate(destination_name)} AND A.STATUS = 'A'"
        f"{_archive_retention_predicate(retention_hours)})"
    )


def minable_log_files_query(
    since_scn: int,
    retention_hours: int,
    archive_log_only: bool,
    destination_name: Optional[str],
) -> str:
    """
    Online redo logs (unless archive-only) and retained archive logs after since_scn

    Columns: FILE_NAME, FIRST_CHANGE, NEXT_CHANGE, STATUS, TYPE, SEQ, THREAD
    """
    archived = (
        "SELECT A.NAME AS FILE_NAME, A.FIRST_CHANGE# AS FIRST_CHANGE, "
        "A.NEXT_CHANGE# AS NEXT_CHANGE, NULL AS STATUS, 'ARCHIVED' AS TYPE, "
        "A.SEQUENCE# AS SEQ, A.THREAD# AS THREAD "
        "FROM V$ARCHIVED_LOG A "
        "WHERE A.NAME IS NOT NULL AND A.ARCHIVED = 'YES' AND A.STATUS = 'A' "
        f"AND A.NEXT_CHANGE# > {int(since_scn)} "
        f"AND {_archive_destination_predicate(destination_name)}"
        f"{_archive_retention_predicate(retention_hours)}"
    )
    if archive_log_only:
        return archived + " ORDER BY SEQ"

    online = (
        "SELECT MIN(F.MEMBER) AS FILE_NAME, L.FIRST_CHANGE# AS FIRST_CHANGE, "
        "L.NEXT_CHANGE# AS NEXT_CHANGE, L.STATUS AS STATUS, 'ONLINE' AS TYPE, "
        "L.SEQUENCE# AS SEQ, L.THREAD# AS THREAD "
        "FROM V$LOGFILE F, V$LOG L "
        "WHERE F.GROUP# = L.GROUP# "
        f"AND (L.STATUS = 'CURRENT' OR L.NEXT_CHANGE# > {int(since_scn)}) "
        "GROUP BY F.GROUP#, L.FIRST_CHANGE#, L.NEXT_CHANGE#, L.STATUS, L.SEQUENCE#, L.THREAD#"
    )
    return f"{online} UNION {archived} ORDER BY SEQ"


def add_log_file_statement(file_name: str) -> str:
    return (
        "BEGIN sys.dbms_logmnr.add_logfile("
        f"LOGFILENAME => '{_quote(file_name)}', OPTIONS => DBMS_LOGMNR.ADDFILE);END;"
    )


def transaction_starts_query(current_scn: int) -> str:
    """
    Transaction START records of transactions still open at current_scn

    START_SCN uses <= so a transaction whose START record sits exactly at
    current_scn is still captured.
    """
    scn = int(current_scn)
    return (
        "SELECT START_SCN, XID FROM V$LOGMNR_CONTENTS "
        f"WHERE OPERATION_CODE = {TRANSACTION_START_OPERATION} "
        f"AND SCN >= {scn} AND START_SCN <= {scn}"
    )


def _quote(value: str) -> str:
    return value.replace("'", "''")
