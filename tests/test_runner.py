"""Tests for the single-connection pass runner."""

from unittest.mock import Mock, patch

import pytest

from conftest import FakeTransferClient, make_connection
from ftransfer.exceptions import LedgerWriteError
from ftransfer.sync.ledger import DownloadLedger
from ftransfer.sync.runner import SyncRunner


class TestRunOnce:
    def test_successful_pass(self, tmp_path, ledger):
        client = FakeTransferClient({"out": {"a.bin": b"abc"}})
        runner = SyncRunner(tmp_path / "download", ledger)

        with patch("ftransfer.sync.runner.create_client", return_value=client):
            summary = runner.run_once(make_connection())

        assert summary.connected
        assert summary.downloaded == 1
        assert (tmp_path / "download" / "srv1" / "a.bin").read_bytes() == b"abc"
        assert client.closed

    def test_local_folder_created_even_when_connect_fails(self, tmp_path, ledger):
        client = FakeTransferClient({}, fail_connect=True)
        runner = SyncRunner(tmp_path / "download", ledger)

        with patch("ftransfer.sync.runner.create_client", return_value=client):
            summary = runner.run_once(make_connection(name="down"))

        assert not summary.connected
        assert (tmp_path / "download" / "down").is_dir()
        assert client.closed

    def test_root_listing_failure_is_reported(self, tmp_path, ledger):
        client = FakeTransferClient({"out": {}}, fail_list={"/out"})
        runner = SyncRunner(tmp_path, ledger)

        with patch("ftransfer.sync.runner.create_client", return_value=client):
            summary = runner.run_once(make_connection())

        assert summary.connected
        assert summary.listing_errors == 1
        assert client.closed

    def test_ledger_write_error_propagates_and_closes_client(self, tmp_path):
        ledger = Mock(spec=DownloadLedger)
        ledger.exists.return_value = False
        ledger.record.side_effect = LedgerWriteError("disk full")
        client = FakeTransferClient({"out": {"a.bin": b"abc"}})
        runner = SyncRunner(tmp_path, ledger)

        with patch("ftransfer.sync.runner.create_client", return_value=client):
            with pytest.raises(LedgerWriteError):
                runner.run_once(make_connection())

        assert client.closed
        assert client.deleted == []

    def test_stop_event_is_passed_to_engine(self, tmp_path, ledger):
        client = FakeTransferClient({"out": {"a.bin": b"abc"}})
        runner = SyncRunner(tmp_path, ledger)
        runner.stop_event.set()

        with patch("ftransfer.sync.runner.create_client", return_value=client):
            summary = runner.run_once(make_connection())

        assert summary.downloaded == 0


class TestAbort:
    def test_abort_closes_in_flight_clients(self, tmp_path, ledger):
        runner = SyncRunner(tmp_path, ledger)
        seen_open = []

        class AbortingClient(FakeTransferClient):
            def list_directory(self, path):
                seen_open.append(not self.closed)
                runner.abort()
                seen_open.append(not self.closed)
                return []

        client = AbortingClient({"out": {}})
        with patch("ftransfer.sync.runner.create_client", return_value=client):
            runner.run_once(make_connection())

        assert seen_open == [True, False]

    def test_abort_without_passes_is_noop(self, tmp_path, ledger):
        SyncRunner(tmp_path, ledger).abort()
