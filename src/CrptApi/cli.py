"""Command line entry point: submit document files through one rate-limited client.

Provides:
- crpt-api submit   - POST one or more JSON documents, honouring the quota
- crpt-api rate-info - Show how a rate string is interpreted
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from CrptApi.client import CrptApiClient
from CrptApi.errors import CrptApiError, get_actionable_error_message, log_submission_result
from CrptApi.logging_utils import setup_logging
from CrptApi.models import Document
from CrptApi.pipeline import SubmissionResult
from CrptApi.ratelimit.config import RateSpec, parse_rate_string
from CrptApi.settings import load_settings

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="crpt-api",
    help="Submit signed documents to the registry without exceeding a request quota",
    no_args_is_help=True,
)


# ============================================================================
# Helper Functions
# ============================================================================


def _resolve_rate(rate: Optional[str], window: Optional[float], capacity: Optional[int]) -> RateSpec:
    if rate is not None:
        if window is not None or capacity is not None:
            raise typer.BadParameter("use either --rate or --window/--capacity, not both")
        return parse_rate_string(rate)
    if window is None or capacity is None:
        raise typer.BadParameter("--rate or both --window and --capacity are required")
    return RateSpec(capacity=capacity, window_s=window)


def _resolve_signature(signature: Optional[str], signature_file: Optional[Path]) -> str:
    if (signature is None) == (signature_file is None):
        raise typer.BadParameter("pass exactly one of --signature or --signature-file")
    if signature_file is not None:
        value = signature_file.read_text(encoding="utf-8").strip()
        if not value:
            raise typer.BadParameter(f"{signature_file}: signature file is empty")
        return value
    assert signature is not None
    if not signature.strip():
        raise typer.BadParameter("--signature must not be empty")
    return signature


def _load_document(path: Path) -> Document:
    try:
        return Document.from_json(path.read_bytes())
    except ValidationError as exc:
        raise typer.BadParameter(f"{path}: invalid document: {exc}") from exc


def _describe(result: SubmissionResult) -> str:
    if result.ok:
        return "Doc created!"
    assert result.error is not None
    message, _ = get_actionable_error_message(result.error)
    return message


# ============================================================================
# Commands
# ============================================================================


@app.command()
def submit(
    documents: List[Path] = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Document JSON files"
    ),
    signature: Optional[str] = typer.Option(None, "--signature", help="Signature string"),
    signature_file: Optional[Path] = typer.Option(
        None, "--signature-file", exists=True, dir_okay=False, help="File holding the signature"
    ),
    rate: Optional[str] = typer.Option(None, "--rate", help="Quota such as '10/second'"),
    window: Optional[float] = typer.Option(None, "--window", help="Window length in seconds"),
    capacity: Optional[int] = typer.Option(None, "--capacity", help="Requests per window"),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        min=0,
        help="Seconds to wait for a slot (default: CRPT_API_ACQUIRE_TIMEOUT_S, else wait)",
    ),
    workers: int = typer.Option(4, "--workers", min=1, help="Concurrent submitters"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Override endpoint URL"),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (default: CRPT_API_LOG_LEVEL or INFO)"
    ),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="JSONL log destination"),
) -> None:
    """Submit each DOCUMENT with the same signature, at most N per window."""

    overrides = {"endpoint_url": endpoint} if endpoint else {}
    try:
        settings = load_settings(**overrides)
        spec = _resolve_rate(rate, window, capacity)
    except CrptApiError as exc:
        raise typer.BadParameter(str(exc)) from exc

    setup_logging(level=log_level or settings.log_level.value, log_file=log_file)
    sig = _resolve_signature(signature, signature_file)
    loaded = [(path, _load_document(path)) for path in documents]

    # Without --timeout the client falls back to settings.acquire_timeout_s.
    wait = {} if timeout is None else {"timeout": timeout}

    failures = 0
    with CrptApiClient.from_rate(spec, settings=settings) as api:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                (path, pool.submit(api.submit, document, sig, **wait))
                for path, document in loaded
            ]
            for path, future in futures:
                try:
                    result = future.result()
                except ValueError as exc:
                    logger.error(
                        "Submission not attempted",
                        extra={"extra_fields": {"path": str(path), "error": str(exc)}},
                    )
                    typer.echo(f"{path}: {exc}")
                    failures += 1
                    continue
                log_submission_result(result, logger=logger)
                typer.echo(f"{path}: {_describe(result)}")
                if not result.ok:
                    failures += 1

    if failures:
        typer.echo(f"{failures} of {len(loaded)} submissions failed", err=True)
        raise typer.Exit(code=1)


@app.command("rate-info")
def rate_info(rate: str = typer.Argument(..., help="Quota such as '10/second'")) -> None:
    """Show the window and capacity a rate string maps to."""
    try:
        spec = parse_rate_string(rate)
    except CrptApiError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"capacity={spec.capacity} window_s={spec.window_s:g} rps={spec.rps:g}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
