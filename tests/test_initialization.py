"""
Tests for startup initialization.
"""

from datetime import datetime
from unittest.mock import patch

import pytest
import yaml

from ftransfer.core.initialization import initialize
from ftransfer.core.types import DownloadedFileRecord
from ftransfer.exceptions import InitializationError


def _config(tmp_path, **sections):
    data = {
        "connections": [
            {
                "name": f"srv{i}",
                "host": "127.0.0.1",
                "port": 22,
                "protocol": "sftp",
                "username": "agent",
                "password": "secret",
                "path": "/out",
            }
            for i in range(4)
        ],
        **sections,
    }
    (tmp_path / "config.yaml").write_text(yaml.safe_dump(data))


@pytest.fixture(autouse=True)
def no_probe():
    with patch("ftransfer.core.initialization.probe_connections", side_effect=lambda conns, timeout_s: conns) as probe:
        yield probe


class TestInitialize:
    def test_wires_runtime(self, tmp_path):
        _config(tmp_path)

        runtime = initialize(tmp_path)
        try:
            assert [c.name for c in runtime.connections] == ["srv0", "srv1", "srv2", "srv3"]
            assert list(runtime.groups) == [f"group_{i}" for i in range(1, 6)]
            assert runtime.download_dir == tmp_path / "download"
            assert runtime.download_dir.is_dir()
            assert (tmp_path / "downloads.duckdb").is_file()
            assert runtime.scheduler.runner is runtime.runner
            assert runtime.runner.ledger is runtime.ledger
            assert runtime.retention_days == 7
            assert runtime.shutdown_grace_s == 30.0
        finally:
            runtime.ledger.close()

    def test_groups_override(self, tmp_path):
        _config(tmp_path, ledger={"path": ":memory:"})

        runtime = initialize(tmp_path, groups=2)

        assert [len(g) for g in runtime.groups.values()] == [2, 2]
        runtime.ledger.close()

    def test_probe_runs_by_default(self, tmp_path, no_probe):
        _config(tmp_path, ledger={"path": ":memory:"})

        initialize(tmp_path).ledger.close()
        no_probe.assert_called_once()

        no_probe.reset_mock()
        initialize(tmp_path, probe=False).ledger.close()
        no_probe.assert_not_called()

    def test_clean_recreates_download_folder(self, tmp_path):
        _config(tmp_path, ledger={"path": ":memory:"})
        stale = tmp_path / "download" / "srv0" / "old.csv"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")

        runtime = initialize(tmp_path, clean=True)

        assert runtime.download_dir.is_dir()
        assert not stale.exists()
        runtime.ledger.close()

    def test_download_dir_kept_without_clean(self, tmp_path):
        _config(tmp_path, ledger={"path": ":memory:"})
        kept = tmp_path / "download" / "srv0" / "kept.csv"
        kept.parent.mkdir(parents=True)
        kept.write_text("keep")

        initialize(tmp_path).ledger.close()

        assert kept.exists()

    def test_truncate_clears_ledger(self, tmp_path):
        _config(tmp_path)
        runtime = initialize(tmp_path)
        runtime.ledger.record(DownloadedFileRecord("a.csv", 1, "srv0", datetime(2026, 1, 1)))
        runtime.ledger.close()

        runtime = initialize(tmp_path, truncate=True)

        assert runtime.ledger.count() == 0
        runtime.ledger.close()

    def test_env_from_environment_variable(self, tmp_path, monkeypatch):
        _config(tmp_path, ledger={"path": ":memory:"})
        (tmp_path / "config.prod.yaml").write_text(yaml.safe_dump({"scheduler": {"groups": 1}}))
        monkeypatch.setenv("FTRANSFER_ENV", "prod")

        runtime = initialize(tmp_path)

        assert list(runtime.groups) == ["group_1"]
        runtime.ledger.close()


class TestInitializeErrors:
    def test_missing_config(self, tmp_path):
        with pytest.raises(InitializationError) as exc_info:
            initialize(tmp_path)

        assert exc_info.value.step == "config"

    def test_invalid_groups(self, tmp_path):
        _config(tmp_path)

        with pytest.raises(InitializationError) as exc_info:
            initialize(tmp_path, groups=0)

        assert exc_info.value.step == "config"
        assert "scheduler.groups" in str(exc_info.value)

    def test_unusable_ledger_path(self, tmp_path):
        _config(tmp_path, ledger={"path": "ledger"})
        # A directory cannot be opened as a database file
        (tmp_path / "ledger").mkdir()

        with pytest.raises(InitializationError) as exc_info:
            initialize(tmp_path)

        assert exc_info.value.step == "ledger"
