"""
Dataverse Web API adapter.

Implements CrmServiceAdapter over the Dataverse OData v4 Web API:
- Queries: GET /{entityset}?$select=...&$filter=... (follows @odata.nextLink)
- Updates: PATCH /{entityset}({id}) with If-Match: * so a missing record is
  never created by accident
- Batches: POST /$batch (multipart/mixed) with Prefer: odata.continue-on-error,
  one independent request per part (no change sets, which would be atomic)
- Impersonation: CallerObjectId header resolved from systemuser.domainname

Error classification:
- requests.Timeout / ConnectionError -> TransientError
- HTTP 429 and 5xx -> TransientError
- Other HTTP 4xx -> PermanentError
Per-item failures inside a $batch response are NOT raised; they are
returned in the BatchOutcome.
"""

import email
import json
import logging
import uuid
from typing import Any, Optional, Sequence

import requests

from pdtemplate import constants
from pdtemplate.errors import ImpersonationError, PermanentError, TransientError
from pdtemplate.schemas import (
    BatchItemFault,
    BatchItemResponse,
    BatchOutcome,
    EntityReference,
    MutationRequest,
    Record,
    SetStateRequest,
    UpdateRequest,
)

LOOKUP_ANNOTATION = "@Microsoft.Dynamics.CRM.lookuplogicalname"

# Entity set names that do not follow the pluralization rule
ENTITY_SET_NAMES: dict[str, str] = {}


def entity_set_name(logical_name: str) -> str:
    """Entity set (collection) name for an entity logical name."""
    if logical_name in ENTITY_SET_NAMES:
        return ENTITY_SET_NAMES[logical_name]
    if logical_name.endswith("y") and logical_name[-2:-1] not in "aeiou":
        return logical_name[:-1] + "ies"
    if logical_name.endswith(("s", "x", "ch", "sh")):
        return logical_name + "es"
    return logical_name + "s"


def odata_literal(value: Any) -> str:
    """Render a value as an OData $filter literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, EntityReference):
        return value.id
    text = str(value).replace("'", "''")
    return f"'{text}'"


def build_filter(attribute: str, values: Sequence[Any], filters: Optional[dict[str, Any]] = None) -> str:
    """Equality-OR over `values`, AND'ed with the fixed `filters`."""
    clause = " or ".join(f"{attribute} eq {odata_literal(v)}" for v in values)
    parts = [f"({clause})"]
    for name, value in (filters or {}).items():
        parts.append(f"{name} eq {odata_literal(value)}")
    return " and ".join(parts)


class DataverseWebApiAdapter:
    """
    CrmServiceAdapter backed by the Dataverse Web API.

    Args:
        environment_url: Organization URL (e.g., https://contoso.crm.dynamics.com)
        access_token: OAuth bearer token for the organization
        api_version: Web API version
        timeout: Per-request timeout in seconds
        session: Optional requests.Session (tests inject a mock)
        logger: Optional logger
    """

    def __init__(
        self,
        environment_url: str,
        access_token: str,
        api_version: str = "9.2",
        timeout: float = 120,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.base_url = f"{environment_url.rstrip('/')}/api/data/v{api_version}"
        self.timeout = timeout
        self._logger = logger or logging.getLogger(__name__)
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
            "OData-MaxVersion": "4.0",
            "OData-Version": "4.0",
            "Prefer": f'odata.include-annotations="{LOOKUP_ANNOTATION[1:]}"',
        })
        # domainname -> header tuple, or None when the user does not exist
        self._callers: dict[str, Optional[tuple[str, str]]] = {}

    # -------------------------------------------------------------------------
    # CrmServiceAdapter
    # -------------------------------------------------------------------------

    def retrieve_multiple_by_attribute(
        self,
        entity: str,
        attribute: str,
        values: Sequence[Any],
        columns: Optional[Sequence[str]] = None,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[Record]:
        params = {"$filter": build_filter(attribute, values, filters)}
        select = self._select(entity, columns)
        if select:
            params["$select"] = select

        url: Optional[str] = f"{self.base_url}/{entity_set_name(entity)}"
        records = []
        while url:
            body = self._request("GET", url, params=params).json()
            records.extend(self._to_record(entity, row) for row in body.get("value", []))
            url = body.get("@odata.nextLink")
            params = None  # nextLink already carries the query
        return records

    def retrieve(self, entity: str, record_id: str, columns: Optional[Sequence[str]] = None) -> Record:
        params = {}
        select = self._select(entity, columns)
        if select:
            params["$select"] = select
        response = self._request("GET", self._record_url(entity, record_id), params=params)
        return self._to_record(entity, response.json())

    def update(self, record: Record) -> None:
        self._request(
            "PATCH",
            self._record_url(record.logical_name, record.id),
            json=self._to_payload(record),
            headers={"If-Match": "*"},
        )

    def execute_multiple(
        self,
        requests: Sequence[MutationRequest],
        impersonate_as: Optional[str] = None,
        fallback_to_existing_user: bool = True,
    ) -> BatchOutcome:
        if not requests:
            return BatchOutcome()

        headers = {"Prefer": "odata.continue-on-error"}
        if impersonate_as:
            caller = self._caller_header(impersonate_as, fallback_to_existing_user)
            if caller is not None:
                headers[caller[0]] = caller[1]

        boundary = f"batch_{uuid.uuid4()}"
        headers["Content-Type"] = f"multipart/mixed; boundary={boundary}"
        body = self._batch_body(boundary, requests)

        response = self._request("POST", f"{self.base_url}/$batch", data=body.encode("utf-8"), headers=headers)
        return parse_batch_response(response.headers.get("Content-Type", ""), response.content)

    # -------------------------------------------------------------------------
    # Impersonation
    # -------------------------------------------------------------------------

    def _caller_header(self, domain_name: str, fallback: bool) -> Optional[tuple[str, str]]:
        key = domain_name.lower()
        if key not in self._callers:
            fields = constants.SystemUser.Fields
            users = self.retrieve_multiple_by_attribute(
                constants.SystemUser.LOGICAL_NAME,
                fields.DOMAIN_NAME,
                [domain_name],
                columns=[fields.AAD_OBJECT_ID],
            )
            if not users:
                self._callers[key] = None
            elif users[0].get_str(fields.AAD_OBJECT_ID):
                self._callers[key] = ("CallerObjectId", users[0].get_str(fields.AAD_OBJECT_ID))
            else:
                self._callers[key] = ("MSCRMCallerID", users[0].id)

        caller = self._callers[key]
        if caller is None:
            if not fallback:
                raise ImpersonationError(f"User {domain_name} does not exist")
            self._logger.warning(
                f"Failed to find user {domain_name} to impersonate. Executing as the authenticated user."
            )
        return caller

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def _batch_body(self, boundary: str, requests: Sequence[MutationRequest]) -> str:
        lines = []
        for index, request in enumerate(requests, start=1):
            target = request.target_reference
            lines.extend([
                f"--{boundary}",
                "Content-Type: application/http",
                "Content-Transfer-Encoding: binary",
                f"Content-ID: {index}",
                "",
                f"PATCH {self._record_url(target.logical_name, target.id)} HTTP/1.1",
                "Content-Type: application/json",
                "If-Match: *",
                "",
                json.dumps(self._request_payload(request)),
            ])
        lines.append(f"--{boundary}--")
        return "\r\n".join(lines) + "\r\n"

    def _request_payload(self, request: MutationRequest) -> dict[str, Any]:
        if isinstance(request, UpdateRequest):
            return self._to_payload(request.target)
        if isinstance(request, SetStateRequest):
            return {"statecode": request.state, "statuscode": request.status}
        raise PermanentError(f"Unsupported request: {type(request).__name__}")

    @staticmethod
    def _to_payload(record: Record) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for name, value in record.attributes.items():
            if name == f"{record.logical_name}id":
                continue
            if isinstance(value, EntityReference):
                payload[f"{name}@odata.bind"] = f"/{entity_set_name(value.logical_name)}({value.id})"
            else:
                payload[name] = value
        return payload

    @staticmethod
    def _to_record(entity: str, row: dict[str, Any]) -> Record:
        attributes: dict[str, Any] = {}
        for key, value in row.items():
            if "@" in key:
                continue
            if key.startswith("_") and key.endswith("_value"):
                name = key[1:-len("_value")]
                target = row.get(f"{key}{LOOKUP_ANNOTATION}") or name
                attributes[name] = EntityReference(target, value) if value else None
            elif value is None or isinstance(value, (str, int, bool)):
                attributes[key] = value
        return Record(entity, str(row.get(f"{entity}id", "")), attributes)

    @staticmethod
    def _select(entity: str, columns: Optional[Sequence[str]]) -> Optional[str]:
        if columns is None:
            return None
        return ",".join([f"{entity}id", *columns])

    def _record_url(self, entity: str, record_id: str) -> str:
        return f"{self.base_url}/{entity_set_name(entity)}({record_id})"

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise TransientError(f"{method} {url} timed out: {e}") from e
        except requests.ConnectionError as e:
            raise TransientError(f"{method} {url} failed to connect: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientError(f"{method} {url} returned {response.status_code}: {_error_message(response.text)}")
        if response.status_code >= 400:
            raise PermanentError(f"{method} {url} returned {response.status_code}: {_error_message(response.text)}")
        return response


def parse_batch_response(content_type: str, content: bytes) -> BatchOutcome:
    """
    Parse a multipart/mixed $batch response into a BatchOutcome.

    Each application/http part carries one response, in request order.
    """
    if "multipart/mixed" not in content_type:
        raise PermanentError(f"Unexpected $batch response content type: {content_type!r}")

    message = email.message_from_bytes(
        b"Content-Type: " + content_type.encode("ascii") + b"\r\n\r\n" + content
    )
    responses = []
    for index, part in enumerate(p for p in message.walk() if p.get_content_type() == "application/http"):
        raw = part.get_payload(decode=True) or b""
        text = raw.decode("utf-8", errors="replace")
        head, _, body = text.partition("\r\n\r\n") if "\r\n\r\n" in text else text.partition("\n\n")
        status_line = head.splitlines()[0] if head else ""
        try:
            status = int(status_line.split()[1])
        except (IndexError, ValueError):
            raise PermanentError(f"Malformed $batch part status line: {status_line!r}") from None

        fault = None
        if status >= 400:
            code, message_text = _error_detail(body)
            fault = BatchItemFault(index=index, message=message_text or status_line, code=code)
        responses.append(BatchItemResponse(index=index, fault=fault))
    return BatchOutcome(responses)


def _error_detail(body: str) -> tuple[Optional[str], str]:
    try:
        error = json.loads(body.strip()).get("error", {})
    except ValueError:
        return None, body.strip()
    return error.get("code"), error.get("message", "")


def _error_message(body: str) -> str:
    return _error_detail(body)[1] or body[:200]
