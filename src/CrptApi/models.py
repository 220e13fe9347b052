# === NAVMAP v1 ===
# {
#   "module": "CrptApi.models",
#   "purpose": "Document, product and participant models with their wire mapping.",
#   "sections": [
#     {
#       "id": "participant",
#       "name": "Participant",
#       "anchor": "class-participant",
#       "kind": "class"
#     },
#     {
#       "id": "product",
#       "name": "Product",
#       "anchor": "class-product",
#       "kind": "class"
#     },
#     {
#       "id": "document",
#       "name": "Document",
#       "anchor": "class-document",
#       "kind": "class"
#     },
#     {
#       "id": "submissionrequest",
#       "name": "SubmissionRequest",
#       "anchor": "class-submissionrequest",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Document models and their fixed field-name mapping to the wire form.

The registry expects snake_case keys for most fields with two camelCase
exceptions (``importRequest`` and ``participantInn``) and dates rendered as
``yyyy-MM-dd``. Models are frozen: the submission core hands them to the
serializer and never mutates them.

Example:
    >>> doc = Document(doc_id="D-1", products=[Product(uit_code="0104")])
    >>> SubmissionRequest(doc, "c2lnbmF0dXJl").payload["doc_id"]
    'D-1'
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from functools import cached_property
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = ["Participant", "Product", "Document", "SubmissionRequest"]

SIGNATURE_FIELD = "signature"


def _to_date(value: Any) -> Any:
    """Drop the time part of ``datetime`` inputs; the wire only carries dates."""
    if isinstance(value, datetime):
        return value.date()
    return value


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready mapping using wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class Participant(_WireModel):
    """Participant listed in a document description."""

    inn: Optional[str] = Field(default=None, alias="participantInn")


class Product(_WireModel):
    """Single product entry of a document."""

    certificate_document: Optional[str] = None
    certificate_document_date: Optional[date] = None
    certificate_document_number: Optional[str] = None
    owner_inn: Optional[str] = None
    producer_inn: Optional[str] = None
    production_date: Optional[date] = None
    tnved_code: Optional[str] = None
    uit_code: Optional[str] = None
    uitu_code: Optional[str] = None

    @field_validator("certificate_document_date", "production_date", mode="before")
    @classmethod
    def normalise_dates(cls, value: Any) -> Any:
        return _to_date(value)


class Document(_WireModel):
    """Registration document submitted to the endpoint."""

    description: Tuple[Participant, ...] = ()
    doc_id: Optional[str] = None
    doc_status: Optional[str] = None
    doc_type: Optional[str] = None
    import_request: bool = Field(default=False, alias="importRequest")
    owner_inn: Optional[str] = None
    participant_inn: Optional[str] = None
    producer_inn: Optional[str] = None
    production_date: Optional[date] = None
    production_type: Optional[str] = None
    products: Tuple[Product, ...] = ()
    reg_date: Optional[date] = None
    reg_number: Optional[str] = None

    @field_validator("production_date", "reg_date", mode="before")
    @classmethod
    def normalise_dates(cls, value: Any) -> Any:
        return _to_date(value)

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "Document":
        """Parse a document from its JSON wire form."""
        return cls.model_validate_json(data)


@dataclass(frozen=True)
class SubmissionRequest:
    """One document paired with its pre-computed signature.

    The wire payload is built on first access and then reused, so the body
    that reaches the endpoint always carries the ``signature`` field.
    """

    document: Document
    signature: str

    def __post_init__(self) -> None:
        if not isinstance(self.signature, str) or not self.signature:
            raise ValueError("signature must be a non-empty string")

    @property
    def doc_id(self) -> Optional[str]:
        return self.document.doc_id

    @cached_property
    def payload(self) -> Mapping[str, Any]:
        """Read-only wire mapping with ``signature`` added.

        Raises:
            ValueError: If the document already has a ``signature`` field.
                :class:`Document` forbids extra keys, so only a subclass
                declaring that field can hit this.
        """
        wire = self.document.to_wire()
        if SIGNATURE_FIELD in wire:
            raise ValueError(f"document already defines a {SIGNATURE_FIELD!r} field")
        wire[SIGNATURE_FIELD] = self.signature
        return MappingProxyType(wire)

    @cached_property
    def body(self) -> bytes:
        return json.dumps(dict(self.payload), ensure_ascii=False).encode("utf-8")
