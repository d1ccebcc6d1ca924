# tests/test_settings.py
import pytest

from lightwatch.errors import ConfigError
from lightwatch.services.settings import Settings


def test_defaults():
    s = Settings.from_sources(env_file=None)
    assert (s.host, s.port) == ("localhost", 5000)
    assert (s.heartbeat_interval, s.heartbeat_timeout, s.sweep_period) == (3.0, 10.0, 2.0)
    assert (s.red_duration, s.green_duration, s.yellow_duration) == (10.0, 10.0, 3.0)
    assert (s.initial_modulus, s.initial_green_residue) == (3, 2)
    assert s.interruptible_waits is False


def test_precedence_env_over_dotenv_over_yaml(tmp_path, monkeypatch):
    cfg = tmp_path / "lightwatch.yaml"
    cfg.write_text("port: 6000\nsweep_period: 1.5\nred_duration: 8\n", encoding="utf-8")
    env = tmp_path / ".env"
    env.write_text("LIGHTWATCH_PORT=6001\nLIGHTWATCH_INTERRUPTIBLE_WAITS=yes\n", encoding="utf-8")
    monkeypatch.setenv("LIGHTWATCH_PORT", "6002")

    s = Settings.from_sources(env_file=str(env), config_file=str(cfg))
    assert s.port == 6002
    assert s.sweep_period == 1.5
    assert s.red_duration == 8.0
    assert s.interruptible_waits is True


def test_invalid_values_raise_config_error(monkeypatch):
    monkeypatch.setenv("LIGHTWATCH_HEARTBEAT_TIMEOUT", "soon")
    with pytest.raises(ConfigError) as ei:
        Settings.from_sources(env_file=None)
    assert ei.value.key == "heartbeat_timeout"


@pytest.mark.parametrize("kw", [{"port": 70000}, {"sweep_period": 0}, {"yellow_duration": -1}, {"initial_modulus": 0}])
def test_range_checks(kw):
    with pytest.raises(ConfigError):
        Settings(**kw)


def test_unknown_yaml_keys_rejected(tmp_path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("colour: blue\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        Settings.from_sources(env_file=None, config_file=str(cfg))


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError):
        Settings.from_sources(env_file=None, config_file=str(tmp_path / "nope.yaml"))


def test_with_overrides_ignores_none():
    s = Settings().with_overrides(port=None, heartbeat_timeout=4.0)
    assert s.port == 5000
    assert s.heartbeat_timeout == 4.0
