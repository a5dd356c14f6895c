"""
Tests for configuration loading and connection validation.
"""

import pytest
import yaml

from ftransfer.config.loader import CONNECTION_DEFAULTS, DEFAULTS, Config, _merge_dict, load_config, parse_connections
from ftransfer.config.resolver import resolve_config
from ftransfer.core.types import Protocol
from ftransfer.exceptions import ConfigurationError


def _conn(**overrides):
    item = {
        "name": "srv1",
        "host": "sftp.example.com",
        "port": 22,
        "protocol": "sftp",
        "username": "agent",
        "password": "secret",
        "path": "/out",
    }
    item.update(overrides)
    return item


def _write(path, data):
    path.write_text(yaml.safe_dump(data))


class TestConfig:
    """Tests for Config class."""

    def test_dot_notation(self):
        cfg = Config({"scheduler": {"groups": 3}})
        assert cfg.get("scheduler.groups") == 3
        assert cfg["scheduler.groups"] == 3

    def test_missing_returns_default(self):
        cfg = Config({"a": 1})
        assert cfg.get("a.b.c", "fallback") == "fallback"

    def test_contains(self):
        cfg = Config({"a": {"b": 1}})
        assert "a" in cfg
        assert "a.b" in cfg
        assert "a.c" not in cfg

    def test_getitem_missing_raises(self):
        with pytest.raises(KeyError):
            _ = Config({"a": 1})["missing"]

    def test_validate_rejects_bad_group_count(self):
        for groups in (0, -1, "5", True):
            cfg = Config({"scheduler": {"groups": groups}, "connections": [_conn()]})
            with pytest.raises(ConfigurationError, match="scheduler.groups"):
                cfg.validate()

    def test_validate_requires_connections(self):
        cfg = Config({"scheduler": {"groups": 1}})
        with pytest.raises(ConfigurationError, match="No connections configured"):
            cfg.validate()


class TestMergeDict:
    def test_nested_merge(self):
        base = {"a": {"b": 1, "c": 2}, "d": 3}
        _merge_dict(base, {"a": {"c": 20}, "e": 5})
        assert base == {"a": {"b": 1, "c": 20}, "d": 3, "e": 5}

    def test_lists_are_replaced(self):
        base = {"connections": [1, 2]}
        _merge_dict(base, {"connections": [3]})
        assert base == {"connections": [3]}


class TestResolver:
    def test_env_var_substituted(self, monkeypatch):
        monkeypatch.setenv("SRV1_PASSWORD", "hunter2")
        resolved = resolve_config({"connections": [{"password": "${SRV1_PASSWORD}"}]})
        assert resolved["connections"][0]["password"] == "hunter2"

    def test_unset_var_left_in_place(self, monkeypatch):
        monkeypatch.delenv("FTRANSFER_UNSET_VAR", raising=False)
        assert resolve_config({"a": "${FTRANSFER_UNSET_VAR}"}) == {"a": "${FTRANSFER_UNSET_VAR}"}

    def test_non_strings_untouched(self):
        assert resolve_config({"port": 22, "flag": None}) == {"port": 22, "flag": None}


class TestLoadConfig:
    def test_defaults_applied(self, tmp_path):
        _write(tmp_path / "config.yaml", {"connections": [_conn()]})

        cfg = load_config(tmp_path)

        assert cfg.get("scheduler.groups") == DEFAULTS["scheduler"]["groups"]
        assert cfg.get("ledger.path") == "downloads.duckdb"
        assert cfg.get("service.port") == 8080

    def test_defaults_not_mutated(self, tmp_path):
        _write(tmp_path / "config.yaml", {"scheduler": {"groups": 2}, "connections": [_conn()]})

        load_config(tmp_path)

        assert DEFAULTS["scheduler"]["groups"] == 5

    def test_env_overlay(self, tmp_path):
        _write(tmp_path / "config.yaml", {"scheduler": {"groups": 2}, "connections": [_conn()]})
        _write(tmp_path / "config.prod.yaml", {"scheduler": {"groups": 8}})

        cfg = load_config(tmp_path, env="prod")

        assert cfg.get("scheduler.groups") == 8
        assert cfg.get("scheduler.cycle_interval_s") == 10

    def test_missing_overlay_is_ignored(self, tmp_path):
        _write(tmp_path / "config.yaml", {"connections": [_conn()]})

        assert load_config(tmp_path, env="staging").get("scheduler.groups") == 5

    def test_explicit_config_file(self, tmp_path):
        path = tmp_path / "agent.yaml"
        _write(path, {"download": {"path": "/data/in"}, "connections": [_conn()]})

        cfg = load_config(config_file=path)

        assert cfg.get("download.path") == "/data/in"

    def test_env_var_in_password(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SRV1_PASSWORD", "from-env")
        _write(tmp_path / "config.yaml", {"connections": [_conn(password="${SRV1_PASSWORD}")]})

        assert load_config(tmp_path).connections[0].password == "from-env"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path)

    def test_invalid_yaml_reports_location(self, tmp_path):
        (tmp_path / "config.yaml").write_text("connections:\n  - name: [unclosed\n")

        with pytest.raises(ConfigurationError, match="line"):
            load_config(tmp_path)

    def test_top_level_must_be_mapping(self, tmp_path):
        (tmp_path / "config.yaml").write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(tmp_path)


class TestParseConnections:
    def test_key_mapping(self):
        (conn,) = parse_connections(
            [
                _conn(
                    protocol="ftpoverssh",
                    depth=3,
                    regex=r"\.csv$",
                    delay=1.5,
                    ssh_key_path="keys/srv1",
                    tunnel_ftp_host="ftp.internal",
                    tunnel_ftp_port=2121,
                )
            ]
        )

        assert conn.protocol is Protocol.FTP_OVER_SSH
        assert conn.remote_path == "/out"
        assert conn.max_depth == 3
        assert conn.file_name_regex == r"\.csv$"
        assert conn.poll_delay_s == 1.5
        assert conn.private_key_path == "keys/srv1"
        assert conn.tunnel_ftp_host == "ftp.internal"
        assert conn.tunnel_ftp_port == 2121

    def test_optional_defaults(self):
        (conn,) = parse_connections([_conn()])

        assert conn.max_depth == 1
        assert conn.file_name_regex == ""
        assert conn.poll_delay_s == 0
        assert conn.private_key_path is None
        assert (conn.tunnel_ftp_host, conn.tunnel_ftp_port) == ("127.0.0.1", 21)

    def test_depth_zero_is_accepted(self):
        (conn,) = parse_connections([_conn(depth=0)])

        assert conn.max_depth == 0

    def test_omitted_depth_validates_and_builds_alike(self):
        (conn,) = parse_connections([_conn()])

        assert conn.max_depth == CONNECTION_DEFAULTS["depth"] == 1

    def test_order_preserved(self):
        names = [c.name for c in parse_connections([_conn(name=n) for n in ("b", "a", "c")])]
        assert names == ["b", "a", "c"]

    def test_empty_list_is_allowed(self):
        assert parse_connections([]) == []

    def test_duplicate_names(self):
        with pytest.raises(ConfigurationError, match="duplicate connection name"):
            parse_connections([_conn(), _conn()])

    @pytest.mark.parametrize(
        "override, message",
        [
            ({"port": 0}, "invalid port number"),
            ({"port": 70000}, "invalid port number"),
            ({"port": "22"}, "invalid port number"),
            ({"protocol": "scp"}, "unsupported protocol"),
            ({"host": ""}, "host is missing"),
            ({"path": None}, "path is missing"),
            ({"depth": -1}, "invalid depth"),
            ({"delay": "soon"}, "invalid delay"),
            ({"regex": "(unclosed"}, "invalid regex"),
            ({"tunnel_ftp_port": 0}, "invalid tunnel_ftp_port"),
        ],
    )
    def test_invalid_fields(self, override, message):
        with pytest.raises(ConfigurationError, match=message):
            parse_connections([_conn(**override)])

    def test_errors_are_aggregated(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_connections([_conn(name="a", port=0), _conn(name="b", protocol="scp")])

        message = str(exc_info.value)
        assert "a: invalid port number" in message
        assert "b: unsupported protocol" in message

    def test_entry_must_be_mapping(self):
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            parse_connections(["srv1"])
