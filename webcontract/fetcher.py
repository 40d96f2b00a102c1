# fetcher.py
import asyncio
import logging
from typing import Optional, Dict, Any, List, Tuple

import requests
from playwright.async_api import async_playwright, Error as PlaywrightError

from .constants import build_config
from .errors import FetchError
from .models import NetworkCallRecord
from .network import NetworkCapture

logger = logging.getLogger(__name__)


def fetch_html_http(url: str, config: Optional[Dict[str, Any]] = None) -> str:
    config = config or build_config()
    try:
        response = requests.get(
            url,
            headers={'User-Agent': config['http_user_agent']},
            timeout=config['navigation_timeout'] / 1000,
        )
    except requests.exceptions.RequestException as e:
        raise FetchError(url, cause=e) from e
    if not response.ok:
        raise FetchError(url, status=response.status_code)
    return response.text


async def fetch_html_chromium(url: str, config: Optional[Dict[str, Any]] = None) -> str:
    config = config or build_config()
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        try:
            page = await browser.new_page()
            await page.goto(url, wait_until=config['wait_until'], timeout=config['navigation_timeout'])
            await page.wait_for_timeout(config['render_settle_ms'])
            return await page.content()
        finally:
            await browser.close()


async def fetch_html(url: str, config: Optional[Dict[str, Any]] = None) -> str:
    """Rendered HTML of ``url``; plain HTTP GET when Chromium is disabled or fails."""
    config = config or build_config()
    if config['use_chromium']:
        try:
            return await fetch_html_chromium(url, config)
        except PlaywrightError as e:
            logger.warning(f"Chromium fetch failed, falling back to HTTP GET: {e}")
    return await asyncio.to_thread(fetch_html_http, url, config)


async def fetch_with_network_discovery(
    url: str,
    config: Optional[Dict[str, Any]] = None,
) -> Tuple[str, List[NetworkCallRecord]]:
    config = config or build_config()
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        try:
            page = await browser.new_page()
            capture = NetworkCapture(page)
            capture.attach()
            try:
                await page.goto(url, wait_until=config['wait_until'], timeout=config['navigation_timeout'])
            except PlaywrightError as e:
                raise FetchError(url, cause=e) from e
            await capture.settle(config['network_settle_ms'])
            html = await page.content()
            return html, capture.records()
        finally:
            await browser.close()
