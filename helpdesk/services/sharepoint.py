"""
SharePoint List Store

Implements the ListStore protocol over the SharePoint REST API:
- Item listing with $select / $expand / $filter / $orderby / $top
- Item fetch, create, update (MERGE) and delete by id
- Translation between logical field names and SharePoint internal names

Requests are not retried; a failed request surfaces as ListStoreError.
Timeouts are left to the httpx client.
"""
import httpx
from typing import Dict, Any, Optional, List, Sequence

from helpdesk.config import get_settings, sharepoint_api_url
from helpdesk.exceptions import ListStoreError
from helpdesk.services.filter_compiler import render_odata
from helpdesk.services.list_store import ListQuery, Record
from helpdesk.utils.logger import get_logger
from helpdesk.utils.odata import odata_string

settings = get_settings()
logger = get_logger(__name__)

# Logical field -> SharePoint internal name
FIELD_NAMES: Dict[str, str] = {
    "id": "Id",
    "title": "Title",
    "description": "Description",
    "category_id": "CategoryIdId",
    "category": "CategoryId",
    "priority": "Priority",
    "status": "Status",
    "requester_id": "RequesterId",
    "requester": "Requester",
    "approver_id": "ApproverId",
    "approver": "Approver",
    "assigned_to_id": "AssignedToId",
    "assigned_to": "AssignedTo",
    "sla_hours": "SLAHours",
    "due_date": "DueDate",
    "resolution_date": "ResolutionDate",
    "last_approval_outcome": "LastApprovalOutcome",
    "ticket_number": "TicketNumber",
    "created": "Created",
    "modified": "Modified",
}

# Sub-fields of expanded person / lookup relations
RELATION_FIELDS: Dict[str, str] = {
    "id": "Id",
    "title": "Title",
    "email": "EMail",
}

# Lookups are filtered through the expanded relation, not the FK column
FILTER_NAMES: Dict[str, str] = {
    **FIELD_NAMES,
    "category_id": "CategoryId/Id",
}

_REVERSE_FIELDS = {v: k for k, v in FIELD_NAMES.items()}
_REVERSE_RELATION = {v: k for k, v in RELATION_FIELDS.items()}


def internal_name(field: str) -> str:
    """Map "requester/email" -> "Requester/EMail", "title" -> "Title\""""
    if "/" in field:
        relation, sub = field.split("/", 1)
        return f"{FIELD_NAMES.get(relation, relation)}/{RELATION_FIELDS.get(sub, sub)}"
    return FIELD_NAMES.get(field, field)


def to_record(item: Dict[str, Any]) -> Record:
    """Translate a SharePoint item into the canonical record shape"""
    record: Record = {}
    for key, value in item.items():
        if key.startswith("odata.") or key == "__metadata":
            continue
        name = _REVERSE_FIELDS.get(key, key)
        if isinstance(value, dict):
            value = {
                _REVERSE_RELATION.get(sub, sub): sub_value
                for sub, sub_value in value.items()
                if not sub.startswith("odata.") and sub != "__metadata"
            }
        record[name] = value
    return record


def to_payload(fields: Record) -> Dict[str, Any]:
    """Translate canonical write fields into SharePoint internal names"""
    return {FIELD_NAMES.get(key, key): value for key, value in fields.items()}


class SharePointListStore:
    """
    SharePoint REST list store with bearer-token authentication
    """

    def __init__(
        self,
        site_url: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.base_url = sharepoint_api_url(site_url) if site_url else settings.SHAREPOINT_API_URL
        self.access_token = access_token or settings.sharepoint_access_token
        self.headers = {
            "Accept": "application/json;odata=nometadata",
            "Content-Type": "application/json;odata=nometadata",
        }
        self.timeout = timeout or settings.sharepoint_timeout

    def _items_endpoint(self, list_name: str, item_id: Optional[int] = None) -> str:
        endpoint = f"lists/getbytitle({odata_string(list_name)})/items"
        if item_id is not None:
            endpoint += f"({int(item_id)})"
        return endpoint

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Pull the server message out of an OData error body"""
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if not isinstance(body, dict):
            return response.reason_phrase
        error = body.get("odata.error") or body.get("error") or {}
        message = error.get("message")
        if isinstance(message, dict):
            message = message.get("value")
        return message or response.reason_phrase

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> Any:
        """
        Make an authenticated HTTP request

        Args:
            method: HTTP method
            endpoint: Path below /_api/web
            headers: Extra headers merged over the defaults
            **kwargs: Additional arguments for httpx

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            ListStoreError: On transport or HTTP errors
        """
        url = f"{self.base_url}/{endpoint}"
        request_headers = {
            **self.headers,
            "Authorization": f"Bearer {self.access_token}",
            **(headers or {}),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=request_headers,
                    **kwargs
                )
                response.raise_for_status()
                if not response.content:
                    return None
                return response.json()

        except httpx.HTTPStatusError as e:
            message = self._error_message(e.response)
            logger.error(f"SharePoint {method} {endpoint} failed ({e.response.status_code}): {message}")
            raise ListStoreError(message, status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.error(f"SharePoint {method} {endpoint} failed: {e}")
            raise ListStoreError(str(e) or e.__class__.__name__) from e

    @staticmethod
    def _projection_params(select: Sequence[str], expand: Sequence[str]) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if select:
            params["$select"] = ",".join(internal_name(f) for f in select)
        if expand:
            params["$expand"] = ",".join(internal_name(f) for f in expand)
        return params

    async def list_items(self, list_name: str, query: ListQuery) -> List[Record]:
        """List items matching ``query``"""
        params = self._projection_params(query.select, query.expand)

        filter_expr = render_odata(query.filters, FILTER_NAMES)
        if filter_expr:
            params["$filter"] = filter_expr
        if query.order_by:
            direction = "asc" if query.ascending else "desc"
            params["$orderby"] = f"{internal_name(query.order_by)} {direction}"
        if query.top is not None:
            params["$top"] = str(query.top)

        logger.debug(f"Listing {list_name} with {params}")
        body = await self._make_request("GET", self._items_endpoint(list_name), params=params)
        items = (body or {}).get("value", [])
        return [to_record(item) for item in items]

    async def get_item(
        self,
        list_name: str,
        item_id: int,
        select: Sequence[str] = (),
        expand: Sequence[str] = ()
    ) -> Record:
        """Fetch one item by id"""
        body = await self._make_request(
            "GET",
            self._items_endpoint(list_name, item_id),
            params=self._projection_params(select, expand)
        )
        if not body:
            raise ListStoreError(f"Item {item_id} not found in list '{list_name}'", status_code=404)
        return to_record(body)

    async def add_item(self, list_name: str, fields: Record) -> Record:
        """Create an item; returns the created record"""
        body = await self._make_request(
            "POST",
            self._items_endpoint(list_name),
            json=to_payload(fields)
        )
        return to_record(body or {})

    async def update_item(self, list_name: str, item_id: int, fields: Record) -> None:
        """Merge ``fields`` into an existing item"""
        await self._make_request(
            "POST",
            self._items_endpoint(list_name, item_id),
            headers={"IF-MATCH": "*", "X-HTTP-Method": "MERGE"},
            json=to_payload(fields)
        )

    async def delete_item(self, list_name: str, item_id: int) -> None:
        """Delete an item permanently"""
        await self._make_request(
            "POST",
            self._items_endpoint(list_name, item_id),
            headers={"IF-MATCH": "*", "X-HTTP-Method": "DELETE"}
        )
