from datetime import datetime

import pytest

from timeclock import main as cli
from timeclock.core.errors import ConfigurationError
from timeclock.core.settings import Settings, settings
from timeclock.data import database


@pytest.fixture
def isolated_settings(monkeypatch, db_path):
    """Restore every field apply_arguments may touch."""
    for name in ("DB_PATH", "RECOGNITION_THRESHOLD", "COOLDOWN_SECONDS",
                 "DETECTION_INTERVAL", "AUTO_RECORD", "CAMERA_ID",
                 "CAMERA_WIDTH", "CAMERA_HEIGHT"):
        monkeypatch.setattr(settings, name, getattr(settings, name))
    monkeypatch.setattr(settings, "DB_PATH", db_path)
    return settings


class TestSettings:

    def test_defaults_are_valid(self):
        Settings().validate()

    @pytest.mark.parametrize("field, value", [
        ("RECOGNITION_THRESHOLD", 0),
        ("COOLDOWN_SECONDS", -1),
        ("DETECTION_INTERVAL", 0),
        ("MIN_FACE_SIZE", -5),
    ])
    def test_invalid_values_rejected(self, field, value):
        config = Settings()
        setattr(config, field, value)
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_model_paths_filled_in(self):
        config = Settings()
        assert config.DETECTION_MODEL.endswith(".tflite")
        assert config.RECOGNITION_MODEL.endswith(".tflite")


class TestArguments:

    def test_no_command_means_run(self):
        assert cli.parse_arguments([]).command == 'run'

    def test_run_overrides(self, isolated_settings):
        args = cli.parse_arguments(
            ['run', '--threshold', '0.5', '--cooldown', '5', '--manual', '-r', '320x240']
        )
        changes = cli.apply_arguments(args)

        assert settings.RECOGNITION_THRESHOLD == 0.5
        assert settings.COOLDOWN_SECONDS == 5.0
        assert settings.AUTO_RECORD is False
        assert (settings.CAMERA_WIDTH, settings.CAMERA_HEIGHT) == (320, 240)
        assert len(changes) == 4

    def test_bad_resolution(self, isolated_settings):
        args = cli.parse_arguments(['run', '--resolution', 'big'])
        with pytest.raises(ConfigurationError):
            cli.apply_arguments(args)

    def test_bad_threshold_exit_code(self, isolated_settings):
        assert cli.main(['run', '--threshold', '-1']) == 2


class TestCommands:

    def test_list_and_remove(self, isolated_settings, registry, random_embedding, capsys):
        identity = registry.add_identity("Maria", random_embedding(), role="cashier")

        assert cli.main(['list']) == 0
        assert "Maria" in capsys.readouterr().out

        assert cli.main(['remove', identity.id]) == 0
        assert cli.main(['remove', identity.id]) == 1
        assert len(registry.refresh()) == 0

    def test_history(self, isolated_settings, registry, random_embedding, db_path, capsys):
        identity = registry.add_identity("Maria", random_embedding())
        database.log_time_record(
            identity.id, database.CHECK_IN, datetime(2024, 3, 1, 8, 0), db_path
        )

        assert cli.main(['history', '--date', '2024-03-01']) == 0
        out = capsys.readouterr().out
        assert "2024-03-01 08:00:00" in out
        assert "IN " in out and "Maria" in out

    def test_db_option(self, isolated_settings, tmp_path, capsys):
        other = str(tmp_path / "other.db")
        assert cli.main(['--db', other, 'list']) == 0
        assert "(empty)" in capsys.readouterr().out
