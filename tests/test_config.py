import pytest

from epochs_node.config import (
    get_bind_port,
    get_cors_origins,
    get_log_level,
    get_persistence_driver,
    load_config,
)


def test_defaults_without_file(tmp_path, monkeypatch):
    for var in ("EPOCHS_PERSISTENCE_DRIVER", "EPOCHS_LOG_LEVEL", "EPOCHS_PORT"):
        monkeypatch.delenv(var, raising=False)
    cfg = load_config(str(tmp_path))
    assert get_persistence_driver(cfg) == "json"
    assert get_log_level(cfg) == "INFO"
    assert get_bind_port(cfg) == 8000


def test_yaml_merges_over_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("EPOCHS_PERSISTENCE_DRIVER", raising=False)
    (tmp_path / "epochs_config.yaml").write_text(
        "persistence:\n  driver: sqlite\ncors:\n  origins: http://example.org\n",
        encoding="utf-8",
    )
    cfg = load_config(str(tmp_path))
    assert get_persistence_driver(cfg) == "sqlite"
    assert cfg["persistence"]["json_path"] == "epochs_state.json"
    assert get_cors_origins(cfg) == ["http://example.org"]


def test_env_overrides_yaml(tmp_path, monkeypatch):
    (tmp_path / "epochs_config.yaml").write_text("logging:\n  level: debug\n", encoding="utf-8")
    monkeypatch.setenv("EPOCHS_LOG_LEVEL", "warning")
    monkeypatch.setenv("EPOCHS_PORT", "9100")
    cfg = load_config(str(tmp_path))
    assert get_log_level(cfg) == "WARNING"
    assert get_bind_port(cfg) == 9100


def test_bad_env_and_driver_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("EPOCHS_PORT", "not-a-port")
    with pytest.raises(ValueError):
        load_config(str(tmp_path))
    monkeypatch.delenv("EPOCHS_PORT")
    monkeypatch.setenv("EPOCHS_PERSISTENCE_DRIVER", "redis")
    with pytest.raises(ValueError):
        load_config(str(tmp_path))


def test_defaults_are_not_mutated(tmp_path, monkeypatch):
    monkeypatch.delenv("EPOCHS_PERSISTENCE_DRIVER", raising=False)
    cfg = load_config(str(tmp_path))
    cfg["cors"]["origins"].append("http://evil")
    assert "http://evil" not in get_cors_origins(load_config(str(tmp_path)))
