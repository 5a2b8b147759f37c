"""Tests for the polling worker command line."""

import pytest

from pagegen.worker.__main__ import default_worker_id, parse_args


def test_parse_args_defaults() -> None:
    args = parse_args(["--job-id", "job-1"])

    assert args.job_id == "job-1"
    assert args.worker_id == default_worker_id()
    assert args.provider is None


def test_parse_args_overrides() -> None:
    args = parse_args(["--job-id", "job-1", "--worker-id", "w-7", "--provider", "ollama"])

    assert args.worker_id == "w-7"
    assert args.provider == "ollama"


def test_job_id_is_required() -> None:
    with pytest.raises(SystemExit):
        parse_args([])


def test_unknown_provider_is_rejected() -> None:
    with pytest.raises(SystemExit):
        parse_args(["--job-id", "job-1", "--provider", "gpt"])
