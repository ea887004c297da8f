from pathlib import Path

import pytest

from managers.config_manager import ConfigError, ConfigManager
from models.options import ServiceOptions

EXAMPLE_CONFIG = Path(__file__).resolve().parents[2] / "src" / "config" / "config.yaml"


def load(argv=(), environ=None):
    manager = ConfigManager(environ=environ or {})
    return manager, manager.load(list(argv))


def test_defaults():
    manager, options = load()

    assert options == ServiceOptions()
    assert options.api_port == 8081
    assert options.metrics_port == 8085
    assert options.private_port == 8089
    assert manager.sources == {}


def test_example_config_file_loads():
    _, options = load(["--config", str(EXAMPLE_CONFIG)])

    assert options.api is True
    assert options.read_timeout == 5.0
    assert options.host == "0.0.0.0"


def test_yaml_file(tmp_path):
    path = tmp_path / "options.yaml"
    path.write_text("api-port: 9001\nmetrics: false\nwrite_timeout: 2.5\n")

    manager, options = load(["--config", str(path)])

    assert options.api_port == 9001
    assert options.metrics is False
    assert options.write_timeout == 2.5
    assert manager.sources["api_port"] == f"file:{path}"


def test_empty_yaml_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load(["--config", str(path)])[1] == ServiceOptions()


@pytest.mark.parametrize("content", ["bogus_option: 1\n", "- a\n- b\n", "api_port: [unclosed\n"])
def test_bad_yaml_file(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content)

    with pytest.raises(ConfigError):
        load(["--config", str(path)])


def test_missing_yaml_file(tmp_path):
    with pytest.raises(ConfigError):
        load(["--config", str(tmp_path / "missing.yaml")])


def test_environment():
    manager, options = load(environ={
        "DEBUG": "true",
        "DEV_MODE": "1",
        "ENABLE_GZIP": "false",
        "BSD_API_PORT": "7000",
        "BSD_AUTH_HOST": "http://auth:1",
    })

    assert options.debug is True
    assert options.dev_mode is True
    assert options.enable_gzip is False
    assert options.api_port == 7000
    assert options.auth_host == "http://auth:1"
    assert manager.sources["api_port"] == "env"


def test_empty_environment_values_are_ignored():
    _, options = load(environ={"DEBUG": "", "BSD_API_PORT": ""})
    assert options == ServiceOptions()


def test_precedence_file_env_cli(tmp_path):
    path = tmp_path / "options.yaml"
    path.write_text("api_port: 1000\nmetrics_port: 1001\nprivate_port: 1002\n")

    manager, options = load(
        ["--config", str(path), "--private-port", "3002"],
        environ={"BSD_METRICS_PORT": "2001", "BSD_PRIVATE_PORT": "2002"},
    )

    assert (options.api_port, options.metrics_port, options.private_port) == (1000, 2001, 3002)
    assert manager.sources["api_port"].startswith("file:")
    assert manager.sources["metrics_port"] == "env"
    assert manager.sources["private_port"] == "cli"


def test_boolean_flags():
    _, options = load(["--no-api", "--no-metrics", "--no-enable-gzip", "--auth", "-d", "--dev-mode"])

    assert options.api is False
    assert options.metrics is False
    assert options.enable_gzip is False
    assert options.auth is True
    assert options.debug is True
    assert options.dev_mode is True


def test_cli_overrides_environment_boolean():
    _, options = load(["--api"], environ={"BSD_API": "false"})
    assert options.api is True


@pytest.mark.parametrize("environ", [
    {"DEBUG": "maybe"},
    {"BSD_API_PORT": "eighty"},
    {"BSD_API_PORT": "70000"},
    {"BSD_THROTTLE_LIMIT": "0"},
    {"BSD_READ_TIMEOUT": "0"},
    {"BSD_WRITE_TIMEOUT": "-1"},
])
def test_invalid_values(environ):
    with pytest.raises(ConfigError):
        load(environ=environ)


def test_invalid_cli_usage_exits():
    with pytest.raises(SystemExit) as info:
        load(["--api-port", "not-a-number"])
    assert info.value.code == 2
