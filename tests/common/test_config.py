from __future__ import annotations

from pathlib import Path

import pytest

from idsync.config import (
    ConfigurationError,
    MissingConfigurationError,
    SyncConfig,
    get_definitions_path,
    get_sync_config,
    positive_int_env_var,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_positive_int_env_var_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_SIZE", " ")

    assert positive_int_env_var("EXAMPLE_SIZE", 7) == 7


@pytest.mark.parametrize("raw", ["zero", "0", "-5"])
def test_positive_int_env_var_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, raw: str
) -> None:
    monkeypatch.setenv("EXAMPLE_SIZE", raw)

    with pytest.raises(ConfigurationError, match="EXAMPLE_SIZE"):
        positive_int_env_var("EXAMPLE_SIZE", 7)


def test_sync_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("IDSYNC_PAGE_SIZE", raising=False)
    monkeypatch.delenv("IDSYNC_HOUSEKEEPING_BATCH_SIZE", raising=False)

    assert get_sync_config() == SyncConfig(page_size=500, housekeeping_batch_size=100)


def test_sync_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IDSYNC_PAGE_SIZE", "25")
    monkeypatch.setenv("IDSYNC_HOUSEKEEPING_BATCH_SIZE", "3")

    assert get_sync_config() == SyncConfig(page_size=25, housekeeping_batch_size=3)


def test_definitions_path_is_required(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("IDSYNC_DEFINITIONS", raising=False)

    with pytest.raises(MissingConfigurationError, match="IDSYNC_DEFINITIONS"):
        get_definitions_path()


def test_definitions_path_expands_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("IDSYNC_DEFINITIONS", "~/idsync/definitions.json")

    assert get_definitions_path() == tmp_path / "idsync" / "definitions.json"
