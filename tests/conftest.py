# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for the CrptApi suite",
#   "sections": [
#     {
#       "id": "fakeclock",
#       "name": "FakeClock",
#       "anchor": "class-fakeclock",
#       "kind": "class"
#     },
#     {
#       "id": "recordingendpoint",
#       "name": "RecordingEndpoint",
#       "anchor": "class-recordingendpoint",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Adds ``src`` to ``sys.path`` and provides hermetic building blocks: a manual
monotonic clock for window arithmetic, an ``httpx.MockTransport`` backed
endpoint that records every POST, and a fully populated sample document.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import date
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional

import httpx
import pytest

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from CrptApi.models import Document, Participant, Product  # noqa: E402
from CrptApi.settings import CrptApiSettings  # noqa: E402

ENDPOINT = "https://registry.test/api/v3/lk/documents/create"


class FakeClock:
    """Manually advanced clock standing in for ``time.monotonic``."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingEndpoint:
    """MockTransport handler that records requests and replays scripted statuses."""

    def __init__(
        self,
        statuses: Optional[List[int]] = None,
        *,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> None:
        self._statuses = list(statuses or [])
        self._handler = handler
        self._lock = threading.Lock()
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            status = self._statuses.pop(0) if self._statuses else 200
        if self._handler is not None:
            return self._handler(request)
        return httpx.Response(status, json={"status": status}, request=request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def bodies(self) -> List[dict[str, Any]]:
        return [json.loads(req.content) for req in self.requests]


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Iterator[None]:
    """Undo ``setup_logging`` so ``caplog`` keeps seeing package records."""
    logger = logging.getLogger("CrptApi")
    level, propagate = logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if getattr(handler, "_crpt_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def endpoint() -> RecordingEndpoint:
    return RecordingEndpoint()


@pytest.fixture
def make_endpoint() -> Callable[..., RecordingEndpoint]:
    return RecordingEndpoint


@pytest.fixture
def settings() -> CrptApiSettings:
    return CrptApiSettings(endpoint_url=ENDPOINT)


@pytest.fixture
def sample_document() -> Document:
    return Document(
        description=[Participant(inn="7700000001")],
        doc_id="DOC-0001",
        doc_status="DRAFT",
        doc_type="LP_INTRODUCE_GOODS",
        import_request=True,
        owner_inn="7700000001",
        participant_inn="7700000002",
        producer_inn="7700000003",
        production_date=date(2024, 1, 15),
        production_type="OWN_PRODUCTION",
        products=[
            Product(
                certificate_document="CONFORMITY_CERTIFICATE",
                certificate_document_date=date(2023, 12, 1),
                certificate_document_number="RU-123",
                owner_inn="7700000001",
                producer_inn="7700000003",
                production_date=date(2024, 1, 15),
                tnved_code="6401100000",
                uit_code="010460043993125621JgXJ5.T",
                uitu_code="046004399312562",
            )
        ],
        reg_date=date(2024, 1, 20),
        reg_number="REG-42",
    )
