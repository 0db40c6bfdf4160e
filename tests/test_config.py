"""Tests for configuration loading and logging setup."""

import logging
from pathlib import Path

import pytest

from sysmon.config import Config, load_config
from sysmon.errors import ConfigError
from sysmon.log_config import setup_logging


@pytest.fixture
def config_file(tmp_path):
    def write(text: str) -> Path:
        path = tmp_path / "sysmon.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    return write


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self):
        """Test no file and no environment yields the defaults."""
        config = load_config(env={})

        assert config == Config()
        assert config.port == 57996
        assert config.sampling_interval == 5.0
        assert config.include_loopback is False

    def test_yaml_file(self, config_file):
        """Test values are read from a YAML file."""
        path = config_file("port: 8080\nsampling_interval: 1.5\nlog_level: debug\n")
        config = load_config(path, env={})

        assert config.port == 8080
        assert config.sampling_interval == 1.5
        assert config.log_level == "DEBUG"

    def test_empty_file(self, config_file):
        """Test an empty YAML file yields the defaults."""
        assert load_config(config_file(""), env={}) == Config()

    def test_env_overrides_file(self, config_file):
        """Test environment variables take precedence over the file."""
        path = config_file("port: 8080\nhost: 127.0.0.1\n")
        config = load_config(path, env={"SYSMON_PORT": "9090", "SYSMON_INCLUDE_LOOPBACK": "yes"})

        assert config.port == 9090
        assert config.host == "127.0.0.1"
        assert config.include_loopback is True

    def test_log_file(self, tmp_path):
        """Test the log file path is read from the environment."""
        config = load_config(env={"SYSMON_LOG_FILE": str(tmp_path / "sysmon.log")})
        assert config.log_file == tmp_path / "sysmon.log"

    @pytest.mark.parametrize(
        "env",
        [
            {"SYSMON_PORT": "http"},
            {"SYSMON_PORT": "70000"},
            {"SYSMON_SAMPLING_INTERVAL": "0"},
            {"SYSMON_SAMPLING_INTERVAL": "-1"},
            {"SYSMON_LOG_LEVEL": "LOUD"},
        ],
    )
    def test_invalid_values(self, env):
        """Test invalid values raise ConfigError."""
        with pytest.raises(ConfigError):
            load_config(env=env)

    def test_unknown_key(self, config_file):
        """Test unknown keys in the file raise ConfigError."""
        with pytest.raises(ConfigError, match="Unknown config keys"):
            load_config(config_file("colour: blue\n"), env={})

    def test_not_a_mapping(self, config_file):
        """Test a file that is not a mapping raises ConfigError."""
        with pytest.raises(ConfigError):
            load_config(config_file("- 1\n- 2\n"), env={})

    def test_invalid_yaml(self, config_file):
        """Test malformed YAML raises ConfigError."""
        with pytest.raises(ConfigError):
            load_config(config_file("port: [1, 2\n"), env={})

    def test_missing_file(self, tmp_path):
        """Test a missing file raises ConfigError."""
        with pytest.raises(ConfigError):
            load_config(tmp_path / "missing.yaml", env={})


@pytest.fixture
def package_logger():
    logger = logging.getLogger("sysmon")
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_only(self, package_logger):
        """Test console-only logging installs one stderr handler."""
        logger = setup_logging(logging.WARNING)

        assert logger is package_logger
        assert len(logger.handlers) == 1
        assert logger.handlers[0].level == logging.WARNING
        assert logger.propagate is False

    def test_repeated_setup_does_not_duplicate(self, package_logger):
        """Test calling setup_logging twice keeps a single handler."""
        setup_logging()
        setup_logging()
        assert len(package_logger.handlers) == 1

    def test_log_file(self, package_logger, tmp_path):
        """Test debug messages reach the log file."""
        log_file = tmp_path / "logs" / "sysmon.log"
        setup_logging(logging.INFO, log_file)

        logging.getLogger("sysmon.monitor").debug("sampled")
        for handler in package_logger.handlers:
            handler.flush()

        assert len(package_logger.handlers) == 2
        assert "sampled" in log_file.read_text(encoding="utf-8")
