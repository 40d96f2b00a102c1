# network.py
import json
import logging
from typing import Optional, List, Dict, Iterable, Any

from playwright.async_api import Page, Request, Error as PlaywrightError

from .constants import MAX_CONTENT_TYPE
from .errors import NetworkCaptureDegradation
from .models import SchemaType, RequestDescriptor, NetworkCallRecord

logger = logging.getLogger(__name__)

PROGRAMMATIC_CATEGORIES = frozenset({'xhr', 'fetch'})
FORM_ENCODED = 'application/x-www-form-urlencoded'


def value_type(value: Any) -> SchemaType:
    # bool is an int subclass, so it has to be checked first
    if value is None:
        return SchemaType.STRING
    if isinstance(value, bool):
        return SchemaType.BOOLEAN
    if isinstance(value, (int, float)):
        return SchemaType.NUMBER
    if isinstance(value, str):
        return SchemaType.STRING
    if isinstance(value, list):
        return SchemaType.ARRAY
    if isinstance(value, dict):
        return SchemaType.OBJECT
    return SchemaType.UNKNOWN


def decode_body(body_text: str) -> Any:
    try:
        return json.loads(body_text)
    except (TypeError, ValueError) as e:
        raise NetworkCaptureDegradation(f"Body is not JSON: {e}") from e


def infer_body_schema(body_text: Optional[str]) -> Optional[Dict[str, SchemaType]]:
    """
    One-level schema of a request body.

    A JSON object maps each top-level key to its type (null counts as string);
    any other JSON value becomes a single ``_body`` field. Bodies that are not
    JSON at all have no schema.
    """
    if not body_text:
        return None
    try:
        body = decode_body(body_text)
    except NetworkCaptureDegradation as e:
        logger.debug(f"Schema omitted: {e}")
        return None
    return schema_of(body)


def schema_of(body: Any) -> Dict[str, SchemaType]:
    if not isinstance(body, dict):
        return {'_body': value_type(body)}
    return {key: value_type(value) for key, value in body.items()}


def normalize_requests(descriptors: Iterable[RequestDescriptor]) -> List[NetworkCallRecord]:
    records = []
    seen = set()
    for d in descriptors:
        if (d.resource_category or '').lower() not in PROGRAMMATIC_CATEGORIES:
            continue
        key = (d.method, d.url)
        if key in seen:
            continue
        seen.add(key)
        records.append(NetworkCallRecord(
            method=d.method,
            url=d.url,
            sample_body=d.body_text or None,
            inferred_schema=schema_of(d.body_data) if d.body_data is not None else infer_body_schema(d.body_text),
            content_type=(d.content_type or '')[:MAX_CONTENT_TYPE] or None,
        ))
    return records


def describe_request(request: Request) -> RequestDescriptor:
    try:
        body = request.post_data
    except (UnicodeDecodeError, ValueError):
        body = None
    content_type = request.headers.get('content-type')
    body_data = None
    if body and (content_type or '').lower().startswith(FORM_ENCODED):
        try:
            body_data = request.post_data_json
        except PlaywrightError as e:
            logger.debug(f"Form body of {request.url} not decoded: {e}")
    return RequestDescriptor(
        method=request.method,
        url=request.url,
        resource_category=request.resource_type,
        body_text=body,
        content_type=content_type,
        body_data=body_data,
    )


class NetworkCapture:
    """Records requests finished on a page between attach() and detach()."""

    def __init__(self, page: Page):
        self.page = page
        self.descriptors: List[RequestDescriptor] = []
        self._attached = False

    def _on_request_finished(self, request: Request):
        self.descriptors.append(describe_request(request))

    def attach(self):
        if not self._attached:
            self.page.on('requestfinished', self._on_request_finished)
            self._attached = True

    def detach(self):
        if self._attached:
            self.page.remove_listener('requestfinished', self._on_request_finished)
            self._attached = False

    async def settle(self, settle_ms: int):
        await self.page.wait_for_timeout(settle_ms)
        self.detach()

    def records(self) -> List[NetworkCallRecord]:
        records = normalize_requests(self.descriptors)
        logger.info(f"Captured {len(records)} programmatic calls ({len(self.descriptors)} requests seen)")
        return records
