# pipeline.py
"""
URL → rendered HTML → affordances → contract.
"""
import logging
from typing import Optional, Dict, Any, Iterable, Tuple

from .constants import build_config
from .extractor import parse_markup, extract_forms, extract_buttons, extract_links, page_title
from .fetcher import fetch_html, fetch_with_network_discovery
from .models import ContractDocument, InteractiveGroups, NetworkCallRecord
from .synthesizer import synthesize_contract

logger = logging.getLogger(__name__)


def generate_contract(
    html: str,
    context: Optional[str] = None,
    network_calls: Optional[Iterable[NetworkCallRecord]] = None,
    carry_required: bool = False,
) -> ContractDocument:
    soup = parse_markup(html)
    groups = InteractiveGroups(
        forms=extract_forms(soup),
        buttons=extract_buttons(soup),
        links=extract_links(soup),
    )
    return synthesize_contract(
        groups,
        title=page_title(soup),
        context=context,
        network_calls=network_calls,
        carry_required=carry_required,
    )


async def url_to_contract(
    url: str,
    context: Optional[str] = None,
    use_chromium: bool = True,
    discover_network: bool = False,
    config: Optional[Dict[str, Any]] = None,
) -> Tuple[str, ContractDocument]:
    config = build_config(**dict(config or {}, use_chromium=use_chromium))
    logger.info(f"Building contract for {url}")
    if discover_network and use_chromium:
        html, calls = await fetch_with_network_discovery(url, config)
        return html, generate_contract(html, context=context, network_calls=calls)
    html = await fetch_html(url, config)
    return html, generate_contract(html, context=context)
