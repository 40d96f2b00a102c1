# constants.py
from typing import Dict, Any

# Constants
AGENT_PREFIX = "/agent"
DEFAULT_CONTRACT_NAME = "pageActions"
MAX_CONTRACT_NAME = 40
MAX_LINK_PATH_SLUG = 30

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
HTTP_USER_AGENT = "Mozilla/5.0 (compatible; AgentContractGenerator/1.0)"
VIEWPORT = {"width": 1280, "height": 800}

NAVIGATION_TIMEOUT = 30000
CLICK_TIMEOUT = 10000
FILL_TIMEOUT = 8000
RENDER_SETTLE_MS = 1500
NETWORK_SETTLE_MS = 2500
MAX_SELECTOR_LENGTH = 200
RESOLVE_POLL_MS = 250

MAX_SNAPSHOT_BUTTONS = 50
MAX_SNAPSHOT_LINKS = 80
MAX_SNAPSHOT_FORMS = 20
MAX_SNAPSHOT_TEXT = 80
MAX_SNAPSHOT_HREF = 200
MAX_CONTENT_TYPE = 80

DEFAULT_CONFIG: Dict[str, Any] = {
    'headful': False,
    'use_chromium': True,
    'wait_until': 'domcontentloaded',
    'navigation_timeout': NAVIGATION_TIMEOUT,
    'click_timeout': CLICK_TIMEOUT,
    'fill_timeout': FILL_TIMEOUT,
    'render_settle_ms': RENDER_SETTLE_MS,
    'network_settle_ms': NETWORK_SETTLE_MS,
    'user_agent': USER_AGENT,
    'http_user_agent': HTTP_USER_AGENT,
    'viewport': VIEWPORT,
    'max_buttons': MAX_SNAPSHOT_BUTTONS,
    'max_links': MAX_SNAPSHOT_LINKS,
    'max_forms': MAX_SNAPSHOT_FORMS,
}


def build_config(**overrides) -> Dict[str, Any]:
    unknown = set(overrides) - set(DEFAULT_CONFIG)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
    config = dict(DEFAULT_CONFIG)
    config.update(overrides)
    return config
