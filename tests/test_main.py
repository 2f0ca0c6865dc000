from unittest.mock import patch

import pytest

import messages_api.__main__ as entry


DB_VARS = ("DATABASE_URL", "DB_USER", "DB_HOST", "DB_NAME", "DB_PASSWORD", "DB_PORT")


@pytest.fixture
def clean_env(monkeypatch):
    for name in DB_VARS + ("HOST", "PORT", "SHUTDOWN_TIMEOUT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.mark.parametrize("timeout, expected", [("0.5", 1), ("2.1", 3), ("10", 10)])
def test_main_passes_whole_seconds_rounded_up(clean_env, timeout, expected):
    clean_env.setenv("DATABASE_URL", "sqlite://")
    clean_env.setenv("SHUTDOWN_TIMEOUT", timeout)
    clean_env.setenv("PORT", "8081")

    with patch.object(entry.uvicorn, "run") as run:
        assert entry.main() == 0

    run.assert_called_once()
    kwargs = run.call_args.kwargs
    assert kwargs["timeout_graceful_shutdown"] == expected
    assert kwargs["timeout_graceful_shutdown"] > 0
    assert kwargs["port"] == 8081
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["log_level"] == "info"


def test_main_returns_1_on_missing_config(clean_env, caplog):
    with patch.object(entry.uvicorn, "run") as run:
        assert entry.main() == 1

    run.assert_not_called()
    assert "Invalid configuration" in caplog.text
    assert "DB_HOST" in caplog.text
