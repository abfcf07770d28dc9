"""Typed claim schemas per evidence type.

Each evidence type maps to a pydantic model describing the structure of its payload
plus the claims that must be present before a draft can be validated. Structure
problems are schema mismatches; missing required claims are validation failures.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Final, cast

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from sealvault.domain.errors import SchemaMismatchError
from sealvault.domain.hashing import load_json
from sealvault.domain.model import FieldError


def _number_to_str(value: object) -> object:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


@dataclass(frozen=True, slots=True)
class RequiredClaim:
    """At least one of ``fields`` must carry a non-blank value."""

    fields: tuple[str, ...]
    message: str

    def is_satisfied(self, claims: Mapping[str, Any]) -> bool:
        return any(not is_blank(claims.get(name)) for name in self.fields)


class ClaimsModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    required_claims: ClassVar[tuple[RequiredClaim, ...]] = ()

    def missing_claims(self) -> list[FieldError]:
        data = self.model_dump()
        return [
            FieldError(field=required.fields[0], message=required.message)
            for required in self.required_claims
            if not required.is_satisfied(data)
        ]


class GenericClaims(ClaimsModel):
    pass


class SupplierMasterClaims(ClaimsModel):
    required_claims = (
        RequiredClaim(("supplier_name", "legal_name"), "Supplier name is required"),
        RequiredClaim(("country_code",), "Country code is required"),
    )

    supplier_name: str | None = None
    legal_name: str | None = None
    country_code: str | None = None


class SkuMasterClaims(ClaimsModel):
    required_claims = (
        RequiredClaim(("sku_code",), "SKU code is required"),
        RequiredClaim(("sku_name",), "SKU name is required"),
    )

    sku_code: str | None = None
    sku_name: str | None = None
    weight_kg: float | None = None
    unit_weight: float | None = None

    _stringify = field_validator("sku_code", mode="before")(_number_to_str)


class BomComponent(BaseModel):
    model_config = ConfigDict(extra="allow")

    component_ref: str | None = None
    component_code_raw: str | None = None
    status: str | None = None
    quantity: float | None = None

    _stringify = field_validator("component_code_raw", mode="before")(_number_to_str)


class BomClaims(ClaimsModel):
    components: list[BomComponent] = []


class CbamImportClaims(ClaimsModel):
    supplier_name: str | None = None
    installation_id: str | None = None
    cn_code: str | None = None

    _stringify = field_validator("installation_id", "cn_code", mode="before")(_number_to_str)


class ShipmentLeg(BaseModel):
    model_config = ConfigDict(extra="allow")

    distance_km: float | None = None
    transport_mode: str | None = None


class LogisticsClaims(ClaimsModel):
    legs: list[ShipmentLeg] | None = None
    shipment_legs: list[ShipmentLeg] | None = None


CLAIM_MODELS: Final[dict[str, type[ClaimsModel]]] = {
    "SUPPLIER_MASTER_V1": SupplierMasterClaims,
    "SKU_MASTER_V1": SkuMasterClaims,
    "BOM_V1": BomClaims,
    "CBAM_IMPORT_V1": CbamImportClaims,
    "LOGISTICS_SHIPMENT_V1": LogisticsClaims,
}

# evidence types outside the registry still get structural checks by family
_FAMILY_MODELS: Final[tuple[tuple[tuple[str, ...], type[ClaimsModel]], ...]] = (
    (("CBAM",), CbamImportClaims),
    (("BOM",), BomClaims),
    (("LOGISTICS", "SHIPMENT"), LogisticsClaims),
)


def claim_model_for(evidence_type: str) -> type[ClaimsModel]:
    exact = CLAIM_MODELS.get(evidence_type)
    if exact is not None:
        return exact
    for markers, model in _FAMILY_MODELS:
        if any(marker in evidence_type for marker in markers):
            return model
    return GenericClaims


def decode_payload(text: str) -> dict[str, Any]:
    """Parse stored payload text into a JSON object."""

    try:
        decoded = load_json(text)
    except ValueError as exc:
        raise SchemaMismatchError([FieldError("payload", "Invalid JSON format")]) from exc
    if not isinstance(decoded, dict):
        raise SchemaMismatchError([FieldError("payload", "Payload must be a JSON object")])
    return cast(dict[str, Any], decoded)


def parse_claims(evidence_type: str, claims: Mapping[str, Any]) -> ClaimsModel:
    model = claim_model_for(evidence_type)
    try:
        return model.model_validate(dict(claims))
    except ValidationError as exc:
        errors = [
            FieldError(
                field=".".join(["payload", *(str(part) for part in error["loc"])]),
                message=error["msg"],
            )
            for error in exc.errors()
        ]
        raise SchemaMismatchError(errors) from exc
