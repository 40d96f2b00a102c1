# session.py
import json
import logging
from enum import Enum
from typing import Optional, Dict, Any, Mapping, Union

from playwright.async_api import async_playwright, Page, Browser, BrowserContext, Error as PlaywrightError

from .constants import build_config
from .errors import PreconditionError, FetchError, MalformedInputError, ResolutionError
from .models import SnapshotDocument
from .network import NetworkCapture
from .resolver import click_element, fill_element
from .snapshots import capture_snapshot

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LAUNCHED = "launched"
    NAVIGATED = "navigated"
    READY = "ready"


def coerce_fields(payload: Union[Mapping[str, Any], str, None]) -> Dict[str, Any]:
    if payload is None:
        return {}
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise MalformedInputError(f"fill_form: fields are not valid JSON: {e}") from e
    if not isinstance(payload, Mapping):
        raise MalformedInputError(f"fill_form: fields must be an object, got {type(payload).__name__}")
    if any(not str(name).strip() for name in payload):
        raise MalformedInputError("fill_form: field names must not be empty")
    return dict(payload)


class BrowserSession:
    """
    One browser, one context, one page. Callers own the handle and must not
    issue overlapping operations on it; close() is the only way to cancel.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = build_config(**(config or {}))
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.state = SessionState.UNINITIALIZED

    async def __aenter__(self):
        await self.launch()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _require_page(self, operation: str) -> Page:
        if self.page is None:
            raise PreconditionError(f"{operation}: browser not launched. Call launch first.")
        return self.page

    async def launch(self, headed: Optional[bool] = None) -> dict:
        if self.page is not None:
            return {'ok': True, 'message': 'Browser already open'}
        headed = self.config['headful'] if headed is None else headed
        try:
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(
                headless=not headed,
                args=[] if headed else ['--no-sandbox'],
            )
            self.context = await self.browser.new_context(
                user_agent=self.config['user_agent'],
                viewport=self.config['viewport'],
            )
            self.page = await self.context.new_page()
        except Exception as e:
            logger.error(f"Browser launch failed: {e}")
            await self._release()
            raise
        self.state = SessionState.LAUNCHED
        logger.info(f"Browser launched ({'headed' if headed else 'headless'})")
        return {'ok': True, 'message': 'Browser opened (visible)' if headed else 'Browser opened (headless)'}

    async def navigate(
        self,
        url: str,
        wait_until: Optional[str] = None,
        timeout: Optional[int] = None,
        capture_network: bool = False,
    ) -> dict:
        page = self._require_page('navigate')
        capture = NetworkCapture(page) if capture_network else None
        if capture:
            capture.attach()
        try:
            try:
                response = await page.goto(
                    url,
                    wait_until=wait_until or self.config['wait_until'],
                    timeout=timeout or self.config['navigation_timeout'],
                )
            except PlaywrightError as e:
                raise FetchError(url, cause=e) from e
            self.state = SessionState.NAVIGATED
            result = {
                'ok': True,
                'url': page.url,
                'status': response.status if response else None,
                'title': await page.title(),
            }
            if capture:
                await capture.settle(self.config['network_settle_ms'])
                result['networkCalls'] = capture.records()
        finally:
            if capture:
                capture.detach()
        self.state = SessionState.READY
        logger.info(f"Navigated to {result['url']} (status {result['status']})")
        return result

    async def content(self) -> str:
        return await self._require_page('content').content()

    async def click(self, target: str) -> dict:
        page = self._require_page('click')
        return await click_element(page, target, timeout=self.config['click_timeout'])

    async def fill(self, field: str, value: Any) -> dict:
        page = self._require_page('fill')
        return await fill_element(page, field, value, timeout=self.config['fill_timeout'])

    async def fill_form(self, fields: Union[Mapping[str, Any], str, None]) -> dict:
        """
        Fill several fields in the caller's key order.

        The first field that cannot be resolved aborts the batch. Fields filled
        before it stay filled and are listed on the raised error's ``filled``.
        A malformed payload fills nothing.
        """
        self._require_page('fill_form')
        try:
            values = coerce_fields(fields)
        except MalformedInputError as e:
            logger.warning(f"Ignoring batch fill: {e}")
            values = {}
        filled = []
        for name, value in values.items():
            try:
                await self.fill(name, value)
            except ResolutionError as e:
                raise ResolutionError(e.target, e.strategies, filled=[f['field'] for f in filled]) from e
            filled.append({'field': name, 'value': str(value)})
        return {'ok': True, 'filled': filled}

    async def get_snapshot(self) -> SnapshotDocument:
        page = self._require_page('snapshot')
        return await capture_snapshot(page, self.config)

    async def _release(self):
        """Close context, browser and driver; every step runs even if an earlier one fails."""
        steps = [
            ('context', self.context.close if self.context else None),
            ('browser', self.browser.close if self.browser else None),
            ('driver', self.playwright.stop if self.playwright else None),
        ]
        self.playwright = None
        self.browser = None
        self.context = None
        self.page = None
        self.state = SessionState.UNINITIALIZED
        first_error = None
        for name, step in steps:
            if step is None:
                continue
            try:
                await step()
            except Exception as e:
                logger.warning(f"Failed to close {name}: {e}")
                first_error = first_error or e
        if first_error:
            raise first_error

    async def close(self) -> dict:
        if not (self.browser or self.playwright):
            return {'ok': True, 'message': 'No browser was open'}
        await self._release()
        logger.info("Browser closed")
        return {'ok': True, 'message': 'Browser closed'}
