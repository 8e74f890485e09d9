"""Tests for the relay CLI."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from src.analysis.fetcher import AnalysisFetchError
from src.cli import cli
from src.webhook.signature import is_signature_valid

ENV = {"PORT": "8123", "SECRET": "s3cr3t", "ACCESS_TOKEN": "tok", "API_URL": None}


def _write_payload(tmp_path: Path, payload: dict) -> str:
    p = tmp_path / "payload.json"
    p.write_text(json.dumps(payload, indent=2))
    return str(p)


def test_sign_outputs_verifiable_signature(tmp_path: Path) -> None:
    payload = {"type": "EVENT", "resource": {"id": "abc123"}}
    result = CliRunner().invoke(cli, ["sign", _write_payload(tmp_path, payload), "--secret", "s3cr3t"])
    assert result.exit_code == 0
    signature = result.output.strip()
    assert is_signature_valid("s3cr3t", signature, json.dumps(payload, separators=(",", ":")))


def test_sign_reads_secret_from_env(tmp_path: Path) -> None:
    path = _write_payload(tmp_path, {"type": "EVENT"})
    from_env = CliRunner().invoke(cli, ["sign", path], env={"SECRET": "k"})
    explicit = CliRunner().invoke(cli, ["sign", path, "--secret", "k"])
    assert from_env.exit_code == 0
    assert from_env.output == explicit.output


def test_fetch_prints_result() -> None:
    payload = {"data": {"libraryTrack": {"id": "abc123"}}}
    with patch("src.cli.AnalysisFetcher.fetch_analysis", new_callable=AsyncMock) as mock_fetch:
        mock_fetch.return_value = payload
        result = CliRunner().invoke(cli, ["fetch", "abc123"], env=ENV)
    assert result.exit_code == 0
    assert json.loads(result.output) == payload
    mock_fetch.assert_awaited_once_with("abc123")


def test_fetch_failure_exits_nonzero() -> None:
    with patch("src.cli.AnalysisFetcher.fetch_analysis", new_callable=AsyncMock) as mock_fetch:
        mock_fetch.side_effect = AnalysisFetchError("abc123", "connection refused")
        result = CliRunner().invoke(cli, ["fetch", "abc123"], env=ENV)
    assert result.exit_code == 1


def test_serve_runs_uvicorn_on_configured_port() -> None:
    with patch("src.cli.uvicorn.run") as mock_run:
        result = CliRunner().invoke(cli, ["serve", "--host", "127.0.0.1"], env=ENV)
    assert result.exit_code == 0
    mock_run.assert_called_once()
    assert mock_run.call_args.kwargs == {"host": "127.0.0.1", "port": 8123}


def test_serve_aborts_on_missing_config() -> None:
    with patch("src.cli.uvicorn.run") as mock_run:
        result = CliRunner().invoke(cli, ["serve"], env={**ENV, "SECRET": None})
    assert result.exit_code == 2
    assert "SECRET" in result.output
    mock_run.assert_not_called()
