"""Tests for environment-driven configuration."""

import logging

from diffdrive_trajopt.config import DEFAULT_IPOPT_MAX_ITER, get_ipopt_options, get_log_level


def test_defaults(monkeypatch):
    monkeypatch.delenv("TRAJOPT_LOG_LEVEL", raising=False)
    monkeypatch.delenv("TRAJOPT_IPOPT_PRINT_LEVEL", raising=False)
    monkeypatch.delenv("TRAJOPT_IPOPT_MAX_ITER", raising=False)

    assert get_log_level() == logging.INFO
    options = get_ipopt_options()
    assert options['ipopt.print_level'] == 0
    assert options['ipopt.max_iter'] == DEFAULT_IPOPT_MAX_ITER
    assert options['print_time'] is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TRAJOPT_LOG_LEVEL", "debug")
    monkeypatch.setenv("TRAJOPT_IPOPT_PRINT_LEVEL", "5")
    monkeypatch.setenv("TRAJOPT_IPOPT_MAX_ITER", "42")

    assert get_log_level() == logging.DEBUG
    options = get_ipopt_options()
    assert options['ipopt.print_level'] == 5
    assert options['ipopt.max_iter'] == 42
    assert options['print_time'] is True


def test_unknown_log_level(monkeypatch):
    monkeypatch.setenv("TRAJOPT_LOG_LEVEL", "chatty")
    assert get_log_level() == logging.INFO
