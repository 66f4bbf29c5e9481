"""Tests for bridge CLI helpers."""

from unittest.mock import patch

import pytest

from args import parse_args
from cli_bridge import _enforce_local_binding, _is_local_bind_host, load_config_file, run_bridge_server
from constants import ExitCodes


def test_is_local_bind_host_loopback():
    """Loopback hosts should be treated as local."""
    assert _is_local_bind_host("127.0.0.1") is True
    assert _is_local_bind_host("localhost") is True
    assert _is_local_bind_host("::1") is True


def test_is_local_bind_host_external():
    """Non-local hosts should be treated as external."""
    assert _is_local_bind_host("0.0.0.0") is False
    assert _is_local_bind_host("192.168.1.10") is False
    assert _is_local_bind_host("bridge.example") is False
    assert _is_local_bind_host("") is False


def test_enforce_local_binding_rejects_external():
    """External bindings must be explicitly allowed."""
    with pytest.raises(SystemExit) as excinfo:
        _enforce_local_binding("0.0.0.0", False)
    assert excinfo.value.code == ExitCodes.BIND_ERROR.value


def test_enforce_local_binding_allows_with_flag():
    """External bindings are allowed only when flag is set."""
    _enforce_local_binding("0.0.0.0", True)


def test_load_config_bridge_section(tmp_path):
    path = tmp_path / "feedbridge.yml"
    path.write_text("bridge:\n  port: 9000\n  readahead-concurrency: 2\n", encoding="utf-8")
    assert load_config_file(str(path)) == {"port": 9000, "readahead-concurrency": 2}


def test_load_config_top_level_mapping(tmp_path):
    path = tmp_path / "feedbridge.yaml"
    path.write_text("port: 9001\n", encoding="utf-8")
    assert load_config_file(str(path)) == {"port": 9001}


def test_load_config_without_path():
    assert load_config_file(None) == {}


def test_load_config_missing_file(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        load_config_file(str(tmp_path / "absent.yml"))
    assert excinfo.value.code == ExitCodes.CONFIG_ERROR.value


def test_load_config_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yml"
    path.write_text("bridge: [unclosed\n", encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        load_config_file(str(path))
    assert excinfo.value.code == ExitCodes.CONFIG_ERROR.value


def test_run_bridge_server_merges_file_and_flags(tmp_path):
    """CLI flags win over the config file."""
    path = tmp_path / "feedbridge.yml"
    path.write_text("bridge:\n  port: 9000\n  upstream: https://mirror.example/api/v2\n",
                    encoding="utf-8")
    args = parse_args(["-c", str(path), "--port", "9100"])

    with patch("bridge.server.run_bridge_server_sync") as run_sync:
        run_bridge_server(args)

    config = run_sync.call_args[0][0]
    assert config.port == 9100
    assert config.upstream == "https://mirror.example/api/v2"


def test_run_bridge_server_rejects_external_bind():
    args = parse_args(["--host", "0.0.0.0"])
    with patch("bridge.server.run_bridge_server_sync") as run_sync:
        with pytest.raises(SystemExit):
            run_bridge_server(args)
    run_sync.assert_not_called()
