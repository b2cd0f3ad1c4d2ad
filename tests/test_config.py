from pathlib import Path

import pytest

from matrixci.config import Settings
from matrixci.errors import ConfigError


def test_defaults_from_empty_env():
    settings = Settings.from_env({})

    assert settings == Settings()
    assert settings.workers is None
    assert settings.workdir == Path(".")


def test_values_from_env():
    settings = Settings.from_env(
        {
            "MATRIXCI_WORKERS": "3",
            "MATRIXCI_WORKDIR": "/src",
            "MATRIXCI_TIMEOUT": "90",
            "MATRIXCI_DEBUG": "yes",
        }
    )

    assert settings.workers == 3
    assert settings.workdir == Path("/src")
    assert settings.timeout == 90.0
    assert settings.debug is True


def test_blank_values_are_unset():
    assert Settings.from_env({"MATRIXCI_WORKERS": "  ", "MATRIXCI_TIMEOUT": ""}) == Settings()


@pytest.mark.parametrize(
    "env",
    [
        {"MATRIXCI_WORKERS": "0"},
        {"MATRIXCI_WORKERS": "two"},
        {"MATRIXCI_TIMEOUT": "-1"},
        {"MATRIXCI_TIMEOUT": "soon"},
    ],
)
def test_invalid_values(env):
    with pytest.raises(ConfigError):
        Settings.from_env(env)


def test_override_ignores_none():
    base = Settings(workers=2, timeout=10.0)
    updated = base.override(workers=None, timeout=5.0, debug=None)

    assert updated.workers == 2
    assert updated.timeout == 5.0
    assert updated.debug is False
