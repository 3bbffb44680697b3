"""
Module: retail_engines.identifiers
Responsibility:
    Map a human-facing reference (an invoice number as typed, a code from
    an old export, a persistence key) to the canonical key that update and
    delete operations must target.

Architecture position:
    Engines -- pure lookup over an in-memory collection, zero I/O.

This is a migration-compatibility shim, not a permanent design feature.
Historical records carry more than one ID scheme: store-assigned
sequential codes (``SAL-0007``) next to opaque persistence keys (UUIDs, or
24-hex document ids from the earlier document store). Resolution is an
explicit prioritized search over a small enumerated set of key fields:

    1. the candidate object's own canonical key field
    2. the candidate id itself, if it already has a canonical key's shape
    3. a record whose business code equals the candidate id
    4. otherwise the candidate id unchanged, so the downstream operation
       fails explicitly instead of touching the wrong record
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any
from uuid import UUID

from retail_kernel.domain.values import read_field
from retail_kernel.logging_config import get_logger

logger = get_logger("engines.identifiers")

CANONICAL_KEY_FIELDS: tuple[str, ...] = ("id", "_id")
BUSINESS_CODE_FIELDS: tuple[str, ...] = (
    "invoice_number",
    "sale_id",
    "saleId",
    "receipt_number",
    "code",
)

_DOCUMENT_ID = re.compile(r"^[0-9a-fA-F]{24}$")


def canonical_key_of(record: Any) -> str | None:
    """The first non-empty canonical key on ``record``, as a string."""
    if record is None:
        return None
    for name in CANONICAL_KEY_FIELDS:
        value = read_field(record, name)
        if value not in (None, ""):
            return str(value)
    return None


def has_canonical_shape(candidate: Any) -> bool:
    """True for UUIDs (any standard spelling) and 24-hex document ids."""
    if isinstance(candidate, UUID):
        return True
    text = str(candidate).strip()
    if _DOCUMENT_ID.match(text):
        return True
    try:
        UUID(text)
    except ValueError:
        return False
    return True


def resolve_id(
    collection: Iterable[Any],
    candidate_id: Any,
    candidate_object: Any = None,
) -> str:
    """
    Resolve ``candidate_id`` to the canonical key of a record in ``collection``.

    Postconditions:
        - Returns a string key; never raises.
        - When nothing matches, returns ``str(candidate_id)`` unchanged.
    """
    from_object = canonical_key_of(candidate_object)
    if from_object is not None:
        return from_object

    text = "" if candidate_id is None else str(candidate_id).strip()
    if text and has_canonical_shape(candidate_id):
        return text

    if text:
        for record in collection:
            for name in BUSINESS_CODE_FIELDS:
                code = read_field(record, name)
                if code is not None and str(code).strip() == text:
                    key = canonical_key_of(record)
                    if key is not None:
                        logger.debug("identifier_resolved_by_code", extra={
                            "reference": text,
                            "code_field": name,
                            "canonical_key": key,
                        })
                        return key

    logger.info("identifier_unresolved", extra={"reference": text})
    return text


def find_by_key(collection: Iterable[Any], key: str) -> Any | None:
    """The record whose canonical key equals ``key``, if any."""
    for record in collection:
        if canonical_key_of(record) == key:
            return record
    return None
