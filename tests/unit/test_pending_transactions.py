"""
Unit tests for pending transaction discovery
Tests the transaction view path, the log search path and mining session cleanup
"""

import pytest

from snapshot_offset.cdc.errors import ResolutionError
from snapshot_offset.cdc.transactions import PendingTransactionTracker, mining_session
from snapshot_offset.config.settings import LogMiningSettings
from snapshot_offset.db.connection import DatabaseError
from snapshot_offset.models.log_file import LogFile
from tests.fakes import ScriptedConnection

XID_A1 = bytes.fromhex("a1")
XID_B2 = bytes.fromhex("b2")
XID_C3 = bytes.fromhex("0a001f0012340000")


@pytest.fixture
def tracker():
    return PendingTransactionTracker(LogMiningSettings())


class TestTransactionView:
    """Test view-based discovery"""

    def test_current_scn_and_open_transactions(self, tracker):
        connection = ScriptedConnection(view_samples=[(1000, [(XID_A1, 950), (XID_C3, 990)])])

        current_scn, transactions = tracker.from_view(connection, None)

        assert current_scn == 1000
        assert transactions == {"a1": 950, "0a001f0012340000": 990}

    def test_no_open_transactions(self, tracker):
        """The outer join still yields the current SCN when the view is empty"""
        connection = ScriptedConnection(view_samples=[(1000, [])])

        assert tracker.from_view(connection, None) == (1000, {})

    def test_repeats_while_scn_shares_ddl_timestamp(self, tracker):
        """State from discarded samples does not leak into the result"""
        connection = ScriptedConnection(
            view_samples=[
                (950, [(XID_A1, 940), (XID_B2, 945)]),
                (1000, [(XID_A1, 940)]),
            ],
            timestamp_of=lambda scn: scn // 100,
        )

        current_scn, transactions = tracker.from_view(connection, 900)

        assert current_scn == 1000
        assert transactions == {"a1": 940}
        assert connection.count_queries("LEFT OUTER JOIN") == 2

    def test_view_failure_is_reraised(self, tracker):
        connection = ScriptedConnection(
            errors={"LEFT OUTER JOIN": "ORA-00942: table or view does not exist"}
        )

        with pytest.raises(DatabaseError, match="ORA-00942"):
            tracker.from_view(connection, None)

    def test_single_instance_uses_local_view(self, tracker):
        connection = ScriptedConnection(view_samples=[(1000, [])])

        tracker.from_view(connection, None)

        assert "JOIN V$TRANSACTION t" in connection.queries[-1]

    def test_rac_uses_global_view(self):
        tracker = PendingTransactionTracker(LogMiningSettings(), clustered=True)
        connection = ScriptedConnection(view_samples=[(1000, [])])

        tracker.from_view(connection, None)

        assert "JOIN GV$TRANSACTION t" in connection.queries[-1]

    def test_empty_result_has_no_current_scn(self, tracker):
        connection = ScriptedConnection(view_samples=[])

        assert tracker.from_view(connection, None) == (None, {})


class TestTransactionLogSearch:
    """Test log-based discovery"""

    def test_adds_transactions_found_in_logs(self, tracker, redo_logs):
        connection = ScriptedConnection(
            oldest_scn=700,
            log_files=redo_logs,
            transaction_starts=[(980, XID_B2)],
        )
        pending = {}

        tracker.from_log(connection, 1000, pending)

        assert pending == {"b2": 980}
        assert connection.added_log_files == ["/arch/1_11.arc", "/redo/redo01.log"]

    def test_view_entries_win_over_log_entries(self, tracker, redo_logs):
        """A transaction already known keeps its recorded start SCN"""
        connection = ScriptedConnection(
            oldest_scn=700,
            log_files=redo_logs,
            transaction_starts=[(940, XID_A1), (980, XID_B2)],
        )
        pending = {"a1": 950}

        tracker.from_log(connection, 1000, pending)

        assert pending == {"a1": 950, "b2": 980}

    def test_first_log_entry_wins(self, tracker, redo_logs):
        connection = ScriptedConnection(
            oldest_scn=700,
            log_files=redo_logs,
            transaction_starts=[(980, XID_B2), (970, XID_B2)],
        )
        pending = {}

        tracker.from_log(connection, 1000, pending)

        assert pending == {"b2": 980}

    def test_blank_start_scn_ignored(self, tracker, redo_logs):
        connection = ScriptedConnection(
            oldest_scn=700,
            log_files=redo_logs,
            transaction_starts=[(None, XID_A1), ("", XID_C3), ("990", XID_B2)],
        )
        pending = {}

        tracker.from_log(connection, 1000, pending)

        assert pending == {"b2": 990}

    def test_scan_window_includes_current_scn(self, tracker, redo_logs):
        """START records exactly at the snapshot SCN are still captured"""
        connection = ScriptedConnection(oldest_scn=700, log_files=redo_logs)

        tracker.from_log(connection, 1000, {})

        scan = [q for q in connection.queries if "V$LOGMNR_CONTENTS" in q][0]
        assert "SCN >= 1000" in scan
        assert "START_SCN <= 1000" in scan
        assert "OPERATION_CODE = 7" in scan

    def test_session_stopped_after_search(self, tracker, redo_logs):
        connection = ScriptedConnection(oldest_scn=700, log_files=redo_logs)

        tracker.from_log(connection, 1000, {})

        assert not connection.session_active
        assert "END_LOGMNR" in connection.executed[-1]

    def test_no_log_files_skips_session(self, tracker):
        connection = ScriptedConnection(oldest_scn=None, log_files=[])
        pending = {"a1": 950}

        tracker.from_log(connection, 1000, pending)

        assert pending == {"a1": 950}
        assert connection.executed == []

    def test_scan_failure_wrapped_and_session_stopped(self, tracker, redo_logs):
        connection = ScriptedConnection(
            oldest_scn=700,
            log_files=redo_logs,
            errors={"V$LOGMNR_CONTENTS": "ORA-01291: missing logfile"},
        )

        with pytest.raises(ResolutionError, match="Failed to resolve snapshot offset") as exc_info:
            tracker.from_log(connection, 1000, {})

        assert isinstance(exc_info.value.__cause__, DatabaseError)
        assert "ORA-01291" in str(exc_info.value.__cause__)
        assert not connection.session_active
        assert "END_LOGMNR" in connection.executed[-1]

    def test_stop_failure_after_scan_failure(self, tracker, redo_logs):
        """The teardown error is raised; the scan error stays in the exception context"""
        connection = ScriptedConnection(
            oldest_scn=700,
            log_files=redo_logs,
            errors={
                "V$LOGMNR_CONTENTS": "ORA-01291: missing logfile",
                "END_LOGMNR": "ORA-03113: end-of-file on communication channel",
            },
        )

        with pytest.raises(ResolutionError, match="Failed to stop mining session: ORA-03113") as (
            exc_info
        ):
            tracker.from_log(connection, 1000, {})

        teardown_error = exc_info.value.__cause__
        assert isinstance(teardown_error, DatabaseError)
        assert "ORA-03113" in str(teardown_error)
        assert "ORA-01291" in str(teardown_error.__context__)

    def test_add_log_file_failure_still_stops_session(self, tracker, redo_logs):
        connection = ScriptedConnection(
            oldest_scn=700,
            log_files=redo_logs,
            errors={"add_logfile": "ORA-01284: file cannot be opened"},
        )

        with pytest.raises(ResolutionError):
            tracker.from_log(connection, 1000, {})

        assert "END_LOGMNR" in connection.executed[-1]

    def test_log_catalog_failure_propagates(self, tracker):
        connection = ScriptedConnection(
            errors={"OLDEST_SCN": "ORA-03113: end-of-file on communication channel"}
        )

        with pytest.raises(DatabaseError, match="ORA-03113"):
            tracker.from_log(connection, 1000, {})


class TestMiningSession:
    """Test mining session teardown"""

    def test_already_closed_session_is_not_an_error(self):
        connection = ScriptedConnection(
            errors={"END_LOGMNR": "ORA-01307: no LogMiner session is currently active"}
        )

        with mining_session(connection, []):
            pass

        assert "END_LOGMNR" in connection.executed[-1]

    def test_other_stop_failures_raise(self):
        connection = ScriptedConnection(
            errors={"END_LOGMNR": "ORA-03113: end-of-file on communication channel"}
        )

        with pytest.raises(ResolutionError, match="Failed to stop mining session") as exc_info:
            with mining_session(connection, []):
                pass

        assert isinstance(exc_info.value.__cause__, DatabaseError)

    def test_session_started_after_files_added(self, redo_logs):
        connection = ScriptedConnection()
        log_files = [LogFile.from_row(row) for row in redo_logs]

        with mining_session(connection, log_files):
            assert connection.session_active

        assert [s.split("(")[0] for s in connection.executed] == [
            "BEGIN sys.dbms_logmnr.add_logfile",
            "BEGIN sys.dbms_logmnr.add_logfile",
            "BEGIN sys.dbms_logmnr.add_logfile",
            "BEGIN sys.dbms_logmnr.start_logmnr",
            "BEGIN SYS.DBMS_LOGMNR.END_LOGMNR",
        ]
