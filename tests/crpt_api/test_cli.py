"""Tests for the ``crpt-api`` command line."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from CrptApi.cli import app
from CrptApi.client import CrptApiClient

runner = CliRunner()


@pytest.fixture
def doc_files(tmp_path: Path, sample_document) -> list[Path]:
    paths = []
    for index in range(3):
        wire = sample_document.to_wire()
        wire["doc_id"] = f"DOC-{index}"
        path = tmp_path / f"doc-{index}.json"
        path.write_text(json.dumps(wire), encoding="utf-8")
        paths.append(path)
    return paths


@pytest.fixture
def patched_http(monkeypatch, make_endpoint):
    """Route the CLI's HTTP client to a recording endpoint."""

    def install(statuses=None):
        endpoint = make_endpoint(statuses)
        monkeypatch.setattr(
            "CrptApi.client.build_http_client",
            lambda settings, transport=None: httpx.Client(transport=endpoint.transport),
        )
        return endpoint

    return install


def test_submit_all_ok(doc_files, patched_http) -> None:
    endpoint = patched_http()

    result = runner.invoke(
        app,
        [
            "submit",
            *map(str, doc_files),
            "--signature",
            "c2ln",
            "--rate",
            "10/second",
            "--log-level",
            "WARNING",
        ],
    )

    assert result.exit_code == 0, result.output
    assert result.output.count("Doc created!") == 3
    assert sorted(body["doc_id"] for body in endpoint.bodies()) == ["DOC-0", "DOC-1", "DOC-2"]
    assert all(body["signature"] == "c2ln" for body in endpoint.bodies())


def test_submit_reports_failures(doc_files, patched_http) -> None:
    patched_http([200, 500, 200])

    result = runner.invoke(
        app,
        [
            "submit",
            *map(str, doc_files),
            "--signature",
            "sig",
            "--window",
            "1",
            "--capacity",
            "5",
            "--workers",
            "1",
        ],
    )

    assert result.exit_code == 1
    assert "Server error (HTTP 500)" in result.output
    assert "1 of 3 submissions failed" in result.output


def test_signature_file(doc_files, patched_http, tmp_path: Path) -> None:
    endpoint = patched_http()
    sig_path = tmp_path / "sig.txt"
    sig_path.write_text("from-file\n", encoding="utf-8")

    result = runner.invoke(
        app,
        ["submit", str(doc_files[0]), "--signature-file", str(sig_path), "--rate", "1/second"],
    )

    assert result.exit_code == 0, result.output
    assert endpoint.bodies()[0]["signature"] == "from-file"


@pytest.mark.parametrize(
    "extra",
    [
        ["--signature", "s"],
        ["--signature", "s", "--rate", "0/second"],
        ["--signature", "s", "--rate", "5/second", "--capacity", "3"],
        ["--rate", "5/second"],
    ],
)
def test_bad_parameters(doc_files, patched_http, extra) -> None:
    endpoint = patched_http()

    result = runner.invoke(app, ["submit", str(doc_files[0]), *extra])

    assert result.exit_code == 2
    assert endpoint.requests == []


def test_invalid_document(tmp_path: Path, patched_http) -> None:
    patched_http()
    bad = tmp_path / "bad.json"
    bad.write_text('{"doc_id": "X", "unknown": 1}', encoding="utf-8")

    result = runner.invoke(app, ["submit", str(bad), "--signature", "s", "--rate", "1/second"])

    assert result.exit_code == 2


def test_rate_info() -> None:
    result = runner.invoke(app, ["rate-info", "300/minute"])

    assert result.exit_code == 0
    assert result.output.strip() == "capacity=300 window_s=60 rps=5"


def test_rate_info_rejects_garbage() -> None:
    result = runner.invoke(app, ["rate-info", "lots"])

    assert result.exit_code == 2


@pytest.mark.parametrize("content", ["", "\n", "   \n\t"])
def test_empty_signature_file_is_usage_error(
    doc_files, patched_http, tmp_path: Path, content: str
) -> None:
    endpoint = patched_http()
    sig_path = tmp_path / "sig.txt"
    sig_path.write_text(content, encoding="utf-8")

    result = runner.invoke(
        app,
        ["submit", str(doc_files[0]), "--signature-file", str(sig_path), "--rate", "1/second"],
    )

    assert result.exit_code == 2
    assert not isinstance(result.exception, ValueError)
    assert endpoint.requests == []


def test_blank_signature_option_is_usage_error(doc_files, patched_http) -> None:
    endpoint = patched_http()

    result = runner.invoke(
        app, ["submit", str(doc_files[0]), "--signature", "  ", "--rate", "1/second"]
    )

    assert result.exit_code == 2
    assert endpoint.requests == []


def test_failed_submission_does_not_hide_others(doc_files, patched_http, monkeypatch) -> None:
    endpoint = patched_http()
    original = CrptApiClient.submit

    def flaky_submit(self, document, signature, **kwargs):
        if document.doc_id == "DOC-1":
            raise ValueError("cannot build payload")
        return original(self, document, signature, **kwargs)

    monkeypatch.setattr(CrptApiClient, "submit", flaky_submit)

    result = runner.invoke(
        app,
        [
            "submit",
            *map(str, doc_files),
            "--signature",
            "s",
            "--rate",
            "10/second",
            "--log-level",
            "WARNING",
        ],
    )

    assert result.exit_code == 1
    assert result.output.count("Doc created!") == 2
    assert "doc-1.json: cannot build payload" in result.output
    assert "1 of 3 submissions failed" in result.output
    assert len(endpoint.requests) == 2


def test_acquire_timeout_setting_applies_without_flag(
    doc_files, patched_http, monkeypatch
) -> None:
    endpoint = patched_http()
    monkeypatch.setenv("CRPT_API_ACQUIRE_TIMEOUT_S", "0")

    result = runner.invoke(
        app,
        [
            "submit",
            *map(str, doc_files[:2]),
            "--signature",
            "s",
            "--window",
            "60",
            "--capacity",
            "1",
            "--workers",
            "1",
        ],
    )

    assert result.exit_code == 1
    assert "Retry later. Request limit exceeded." in result.output
    assert len(endpoint.requests) == 1
