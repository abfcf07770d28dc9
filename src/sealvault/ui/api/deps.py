"""Request-scoped dependencies shared by the routers."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, Request

from sealvault.app import EvidenceServices
from sealvault.domain.context import RequestScope
from sealvault.domain.errors import InvalidRequestError

DEFAULT_ACTOR = "api"


def trace_id_from_request(request: Request) -> str:
    trace_id = getattr(request.state, "trace_id", None)
    if trace_id:
        return trace_id
    trace_id = request.headers.get("x-trace-id") or uuid.uuid4().hex
    request.state.trace_id = trace_id
    return trace_id


def get_services(request: Request) -> EvidenceServices:
    return request.app.state.services


def get_scope(
    x_tenant_id: Annotated[str | None, Header()] = None,
    x_actor: Annotated[str | None, Header()] = None,
) -> RequestScope:
    if not x_tenant_id or not x_tenant_id.strip():
        raise InvalidRequestError("X-Tenant-Id header is required")
    return RequestScope(tenant_id=x_tenant_id.strip(), actor=(x_actor or DEFAULT_ACTOR).strip())


TraceId = Annotated[str, Depends(trace_id_from_request)]
Scope = Annotated[RequestScope, Depends(get_scope)]
Services = Annotated[EvidenceServices, Depends(get_services)]
