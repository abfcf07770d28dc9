from __future__ import annotations

import hashlib

import pytest

from sealvault.domain.errors import InvalidRequestError
from sealvault.domain.hashing import (
    canonical_json,
    load_json,
    metadata_hash,
    payload_hash,
    payload_text,
)


def test_payload_hash_ignores_key_order_and_whitespace() -> None:
    compact = payload_hash('{"b":1,"a":{"y":[1,2],"x":null}}')
    spaced = payload_hash('{ "a": {"x": null, "y": [1, 2]},\n  "b": 1 }')

    assert compact == spaced
    assert len(compact) == 64


def test_payload_hash_changes_with_content() -> None:
    assert payload_hash('{"a": 1}') != payload_hash('{"a": 2}')


def test_payload_hash_falls_back_to_raw_text_for_invalid_json() -> None:
    text = "{not json"

    assert payload_hash(text) == hashlib.sha256(text.encode("utf-8")).hexdigest()


def test_payload_text_keeps_strings_and_canonicalises_objects() -> None:
    assert payload_text('{"b": 1}') == '{"b": 1}'
    assert payload_text({"b": 1, "a": ["é"]}) == '{"a":["é"],"b":1}'


def test_payload_hash_matches_for_object_and_its_text() -> None:
    payload = {"sku_code": "SKU-1", "weight_kg": 1.5}

    reordered = '{"weight_kg":1.5,"sku_code":"SKU-1"}'

    assert payload_hash(payload_text(payload)) == payload_hash(reordered)


def test_metadata_hash_depends_on_tenant() -> None:
    first = metadata_hash(evidence_type="BOM_V1", ingestion_method="FILE_UPLOAD", tenant_id="a")
    second = metadata_hash(evidence_type="BOM_V1", ingestion_method="FILE_UPLOAD", tenant_id="b")

    assert first != second


def test_canonical_json_is_compact_and_sorted() -> None:
    assert canonical_json({"z": 1, "a": True}) == '{"a":true,"z":1}'


@pytest.mark.parametrize("text", ['{"weight": NaN}', "[-Infinity]", "[" * 200_000])
def test_payload_hash_falls_back_to_raw_text_for_unparseable_json(text: str) -> None:
    assert payload_hash(text) == hashlib.sha256(text.encode("utf-8")).hexdigest()


def test_load_json_rejects_non_finite_numbers_and_runaway_nesting() -> None:
    assert load_json('{"a": [1.5, null]}') == {"a": [1.5, None]}
    with pytest.raises(ValueError, match="NaN"):
        load_json('{"a": NaN}')
    with pytest.raises(ValueError, match="nesting"):
        load_json("[" * 200_000)


def test_payload_text_rejects_objects_that_are_not_json() -> None:
    with pytest.raises(InvalidRequestError):
        payload_text({"weight": float("inf")})
