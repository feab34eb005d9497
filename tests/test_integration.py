"""Integration tests"""

import logging

import pytest
from click.testing import CliRunner

from stremio_m3u import __version__
from stremio_m3u.config.settings import Settings
from stremio_m3u.main import cli


class TestSettings:
    """Test configuration loading"""

    def test_defaults(self, temp_dir):
        """Defaults apply when no config file exists"""
        settings = Settings(config_path=str(temp_dir / "missing.yaml"), load_environment=False)

        assert settings.logos.enable_wikimedia is True
        assert settings.logos.cache_ttl_days == 30
        assert settings.logos.batch_size == 3
        assert settings.logos.batch_delay == 1.0
        assert settings.logos.search_timeout == 5.0
        assert settings.logos.download_timeout == 10.0
        assert settings.validate() is True

    def test_yaml_overrides(self, temp_dir):
        """Known keys override defaults, unknown keys are ignored"""
        config_file = temp_dir / "config.yaml"
        config_file.write_text(
            "playlist:\n"
            "  name: My TV\n"
            "logos:\n"
            "  enable_wikimedia: false\n"
            "  unknown_key: 1\n"
            "sources:\n"
            "  enabled_addons:\n"
            "    - https://addon.example\n",
            encoding="utf-8",
        )

        settings = Settings(config_path=str(config_file), load_environment=False)

        assert settings.playlist.name == "My TV"
        assert settings.logos.enable_wikimedia is False
        assert not hasattr(settings.logos, "unknown_key")
        assert settings.sources.enabled_addons == ["https://addon.example/manifest.json"]

    def test_environment_overrides(self, temp_dir, monkeypatch):
        monkeypatch.setenv("STREMIO_ADDON_URL", "https://private.example/tok%253D/manifest.json")
        monkeypatch.setenv("ENABLE_WIKIMEDIA", "false")
        monkeypatch.setenv("LOGO_CACHE_DIR", str(temp_dir / "logos"))
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings(config_path=str(temp_dir / "missing.yaml"))

        assert settings.sources.enabled_addons[-1] == "https://private.example/tok%3D/manifest.json"
        assert settings.logos.enable_wikimedia is False
        assert settings.get_logo_cache_directory() == temp_dir / "logos"
        assert settings.logging.level == "DEBUG"

    def test_validation_errors(self, temp_dir):
        settings = Settings(config_path=str(temp_dir / "missing.yaml"), load_environment=False)
        settings.logos.batch_size = 0
        settings.logging.level = "LOUD"

        assert settings.validate() is False

    def test_save_config_omits_addons(self, temp_dir):
        settings = Settings(config_path=str(temp_dir / "missing.yaml"), load_environment=False)
        settings.sources.enabled_addons = ["https://secret.example/manifest.json"]

        target = settings.save_config(str(temp_dir / "saved.yaml"))

        reloaded = Settings(config_path=str(target), load_environment=False)
        assert reloaded.sources.enabled_addons == []
        assert reloaded.playlist.output_path == settings.playlist.output_path


class TestLogging:
    """Test logger configuration"""

    def test_logger_configuration(self, temp_dir):
        """File logging captures technical messages"""
        from stremio_m3u.utils.logger import get_logger, setup_logging

        log_file = temp_dir / "logs" / "app.log"
        setup_logging(level="DEBUG", log_file=str(log_file), console_output=False)
        logger = get_logger("stremio_m3u.tests")
        logger.debug("technical detail")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "technical detail" in log_file.read_text(encoding="utf-8")
        assert callable(logger.console_info)

        setup_logging(console_output=False)


class TestCli:
    """Test the command-line entry point"""

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    @pytest.mark.parametrize("command", [["generate", "--help"], ["cache", "--help"], ["config", "--help"]])
    def test_help(self, command):
        result = CliRunner().invoke(cli, command)
        assert result.exit_code == 0
