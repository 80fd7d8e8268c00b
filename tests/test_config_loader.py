# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for tracker configuration loading."""

import dataclasses

import pytest

from mail_tracker.config_loader import TrackerConfig, load_tracker_config


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for field in dataclasses.fields(TrackerConfig):
        monkeypatch.delenv(f"MT_{field.name.upper()}", raising=False)


def test_defaults():
    config = load_tracker_config()
    assert config == TrackerConfig()
    assert config.open_path == "/email/t"
    assert config.click_path == "/email/n"
    assert config.token_length == 32


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("MT_BASE_URL", "https://env.example.com")
    monkeypatch.setenv("MT_INJECT_PIXEL", "no")
    monkeypatch.setenv("MT_EXPIRE_DAYS", "7")
    config = load_tracker_config()
    assert config.base_url == "https://env.example.com"
    assert config.inject_pixel is False
    assert config.expire_days == 7


def test_invalid_environment_value_uses_default(monkeypatch, caplog):
    monkeypatch.setenv("MT_TOKEN_LENGTH", "long")
    config = load_tracker_config()
    assert config.token_length == 32
    assert "MT_TOKEN_LENGTH" in caplog.text


def test_config_file_wins_over_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("MT_BASE_URL", "https://env.example.com")
    monkeypatch.setenv("MT_TRACK_LINKS", "true")
    config_file = tmp_path / "config.ini"
    config_file.write_text("""
[tracker]
base_url = https://file.example.com
track_links = off
db_path = /var/lib/tracker.db
expire_days =
""")
    config = load_tracker_config(str(config_file))
    assert config.base_url == "https://file.example.com"
    assert config.track_links is False
    assert config.db_path == "/var/lib/tracker.db"
    assert config.expire_days == 60


def test_invalid_file_value_keeps_previous(tmp_path, monkeypatch):
    monkeypatch.setenv("MT_EXPIRE_DAYS", "30")
    config_file = tmp_path / "config.ini"
    config_file.write_text("[tracker]\nexpire_days = soon\ninject_pixel = maybe\n")
    config = load_tracker_config(str(config_file))
    assert config.expire_days == 30
    assert config.inject_pixel is True


def test_missing_file_and_section(tmp_path):
    assert load_tracker_config(str(tmp_path / "absent.ini")) == TrackerConfig()
    other = tmp_path / "other.ini"
    other.write_text("[server]\nport = 1\n")
    assert load_tracker_config(str(other)) == TrackerConfig()
