"""
Tests for ordeal.config and ordeal.logging modules.
"""

import logging
from pathlib import Path

import pytest
import yaml
from rich.logging import RichHandler

from ordeal.config import CONFIG_FILENAME, DEFAULT_CONFIG, ConfigLoader, OrdealConfig
from ordeal.errors import ConfigError
from ordeal.logging import PROJECT_LOGGER, configure_logging


class TestOrdealConfig:
    """Tests for OrdealConfig model."""

    def test_defaults(self) -> None:
        """Every field has a default."""
        config = OrdealConfig()
        assert config.log_level == "WARNING"
        assert config.run_on_define is False
        assert config.report_format == "console"
        assert config.show_values is True
        assert config.capture_tracebacks is True

    def test_log_level_is_normalized(self) -> None:
        """Log level names are upper-cased."""
        assert OrdealConfig(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self) -> None:
        """Unknown level names fail validation."""
        with pytest.raises(ValueError):
            OrdealConfig(log_level="LOUD")

    def test_default_config_text_matches_defaults(self) -> None:
        """The template written by init loads to the default configuration."""
        assert OrdealConfig.model_validate(yaml.safe_load(DEFAULT_CONFIG)) == OrdealConfig()


class TestConfigLoader:
    """Tests for ConfigLoader."""

    def test_from_dict(self) -> None:
        """A mapping of known fields loads."""
        config = ConfigLoader.from_dict({"run_on_define": True, "report_format": "json"})
        assert config.run_on_define is True
        assert config.report_format == "json"

    def test_from_dict_rejects_unknown_fields(self) -> None:
        """Unknown keys raise ConfigError."""
        with pytest.raises(ConfigError):
            ConfigLoader.from_dict({"colour": True})

    def test_from_dict_rejects_bad_format(self) -> None:
        """Unsupported report formats raise ConfigError."""
        with pytest.raises(ConfigError):
            ConfigLoader.from_dict({"report_format": "xml"})

    def test_from_dict_rejects_non_mapping(self) -> None:
        """Top-level content must be a mapping."""
        with pytest.raises(ConfigError):
            ConfigLoader.from_dict(["a", "b"])  # type: ignore[arg-type]

    def test_from_yaml(self, tmp_path: Path) -> None:
        """A YAML file loads into a configuration."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text("log_level: info\nshow_values: false\n")
        config = ConfigLoader.from_yaml(path)
        assert config.log_level == "INFO"
        assert config.show_values is False

    def test_empty_yaml_gives_defaults(self, tmp_path: Path) -> None:
        """An empty file is the default configuration."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text("")
        assert ConfigLoader.from_yaml(path) == OrdealConfig()

    def test_from_yaml_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            ConfigLoader.from_yaml(tmp_path / "nope.yaml")

    def test_from_yaml_invalid_yaml(self, tmp_path: Path) -> None:
        """Malformed YAML raises ConfigError."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text("log_level: [unclosed\n")
        with pytest.raises(ConfigError):
            ConfigLoader.from_yaml(path)

    def test_discover_searches_parents(self, tmp_path: Path) -> None:
        """discover finds ordeal.yaml in a parent directory."""
        (tmp_path / CONFIG_FILENAME).write_text("run_on_define: true\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert ConfigLoader.discover(nested).run_on_define is True

    def test_discover_without_file_gives_defaults(self, tmp_path: Path) -> None:
        """discover falls back to defaults when nothing is found."""
        config = ConfigLoader.discover(tmp_path)
        assert isinstance(config, OrdealConfig)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_installs_single_rich_handler(self) -> None:
        """Repeated calls replace the previous handler."""
        logger = logging.getLogger(PROJECT_LOGGER)
        try:
            configure_logging("info")
            handler = configure_logging(logging.DEBUG, color=False)
            rich_handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
            assert rich_handlers == [handler]
            assert logger.level == logging.DEBUG
        finally:
            for h in list(logger.handlers):
                if isinstance(h, RichHandler):
                    logger.removeHandler(h)
            logger.setLevel(logging.NOTSET)
