"""Shared fixtures."""

import pytest

import prosescope.config as config_mod


@pytest.fixture(autouse=True)
def _isolate_user_config(tmp_path_factory, monkeypatch):
    """Never read the developer's real ``~/.prosescope/config.yml``."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setattr(config_mod, "USER_CONFIG_PATH", home / ".prosescope" / "config.yml")
