"""Deterministic SHA-256 fingerprints over canonical JSON."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any, NoReturn

from sealvault.domain.errors import InvalidRequestError

type JsonPayload = str | Mapping[str, Any] | list[Any]


def canonical_json(value: Any) -> str:
    """Serialise ``value`` so that equal JSON documents produce equal text."""

    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def _reject_constant(name: str) -> NoReturn:
    raise ValueError(f"{name} is not a JSON number")


def load_json(text: str) -> Any:
    """Strict ``json.loads``: NaN and Infinity are rejected and runaway nesting is a
    ``ValueError`` rather than a ``RecursionError``.
    """

    try:
        return json.loads(text, parse_constant=_reject_constant)
    except RecursionError as exc:
        raise ValueError("JSON nesting is too deep") from exc


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_value(value: Any) -> str:
    return sha256_hex(canonical_json(value))


def payload_text(payload: JsonPayload) -> str:
    """Return the text form a draft stores for ``payload``."""

    if isinstance(payload, str):
        return payload
    try:
        return canonical_json(payload)
    except (ValueError, RecursionError) as exc:
        raise InvalidRequestError(f"Payload is not representable as JSON: {exc}") from exc


def payload_hash(text: str) -> str:
    """Hash a stored payload.

    Well-formed JSON is hashed in canonical form, so key order and whitespace do not
    change the fingerprint. Text that does not parse is hashed byte for byte; it will
    be quarantined at validation but still needs a stable fingerprint.
    """

    try:
        return hash_value(load_json(text))
    except (ValueError, RecursionError):
        return sha256_hex(text)


def metadata_hash(*, evidence_type: str, ingestion_method: str, tenant_id: str) -> str:
    return hash_value(
        {
            "evidence_type": evidence_type,
            "ingestion_method": str(ingestion_method),
            "tenant_id": tenant_id,
        }
    )
