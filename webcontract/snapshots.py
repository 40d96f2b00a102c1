# snapshots.py
import logging
from typing import Dict, Any, Optional

from playwright.async_api import Page

from .constants import (
    MAX_SNAPSHOT_BUTTONS, MAX_SNAPSHOT_LINKS, MAX_SNAPSHOT_FORMS, MAX_SNAPSHOT_TEXT, MAX_SNAPSHOT_HREF,
)
from .extractor import parse_markup, extract_forms, extract_buttons, extract_links, page_title
from .models import SnapshotDocument

logger = logging.getLogger(__name__)


def summarize_markup(
    html: str,
    url: str = '',
    max_buttons: int = MAX_SNAPSHOT_BUTTONS,
    max_links: int = MAX_SNAPSHOT_LINKS,
    max_forms: int = MAX_SNAPSHOT_FORMS,
) -> SnapshotDocument:
    soup = parse_markup(html)

    buttons = []
    for btn in extract_buttons(soup):
        if len(buttons) >= max_buttons:
            break
        if btn.label:
            buttons.append({'type': 'button', 'text': btn.label[:MAX_SNAPSHOT_TEXT], 'tag': btn.tag})

    links = []
    for link in extract_links(soup):
        if len(links) >= max_links:
            break
        if link.label:
            links.append({'type': 'link', 'text': link.label[:MAX_SNAPSHOT_TEXT], 'href': link.href[:MAX_SNAPSHOT_HREF]})

    forms = []
    for form in extract_forms(soup)[:max_forms]:
        inputs = [
            {'name': f.name, 'label': f.label, 'type': f.input_type}
            for f in form.fields
            if f.input_type != 'hidden'
        ]
        forms.append({'type': 'form', 'submitLabel': form.submit_text or 'Submit', 'inputs': inputs})

    return SnapshotDocument(url=url, title=page_title(soup), buttons=buttons, links=links, forms=forms)


async def capture_snapshot(page: Page, config: Optional[Dict[str, Any]] = None) -> SnapshotDocument:
    config = config or {}
    html = await page.content()
    snapshot = summarize_markup(
        html,
        url=page.url,
        max_buttons=config.get('max_buttons', MAX_SNAPSHOT_BUTTONS),
        max_links=config.get('max_links', MAX_SNAPSHOT_LINKS),
        max_forms=config.get('max_forms', MAX_SNAPSHOT_FORMS),
    )
    logger.info(
        f"Snapshot of {snapshot.url}: {len(snapshot.buttons)} buttons, "
        f"{len(snapshot.links)} links, {len(snapshot.forms)} forms"
    )
    return snapshot
