# /// script
# requires-python = ">=3.12"
# dependencies = ["pytest"]
# ///
"""Tests for environment-variable configuration."""

import logging
import sys
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import config


def test_data_dir_default(monkeypatch):
    monkeypatch.delenv(config.DATA_DIR_ENV, raising=False)
    assert config.get_data_dir() == config.DEFAULT_DATA_DIR
    assert config.DEFAULT_DATA_DIR.parts[-2:] == ("data", "games")


def test_data_dir_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv(config.DATA_DIR_ENV, str(tmp_path))
    assert config.get_data_dir() == tmp_path


def test_log_level(monkeypatch):
    monkeypatch.delenv(config.LOG_LEVEL_ENV, raising=False)
    assert config.get_log_level() == logging.INFO
    monkeypatch.setenv(config.LOG_LEVEL_ENV, "debug")
    assert config.get_log_level() == logging.DEBUG
    monkeypatch.setenv(config.LOG_LEVEL_ENV, "chatty")
    assert config.get_log_level() == logging.INFO
