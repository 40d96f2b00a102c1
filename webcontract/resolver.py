# resolver.py
"""
Resolution of human-readable labels onto live page elements.

A resolver walks an ordered list of matchers; the first matcher whose
locator finds at least one element wins. When no matcher finds anything the
whole list is tried again every RESOLVE_POLL_MS until the timeout runs out,
so labels rendered shortly after navigation still resolve.
"""
import logging
import re
from typing import Optional, List, Tuple, Iterable, Any

from playwright.async_api import Page, Locator, Error as PlaywrightError

from .constants import CLICK_TIMEOUT, FILL_TIMEOUT, MAX_SELECTOR_LENGTH, RESOLVE_POLL_MS
from .errors import ResolutionError, MalformedInputError

logger = logging.getLogger(__name__)

SELECTOR_SHAPE = re.compile(r'^[#.\[]|[a-z]+\[|^input$|^button$', re.IGNORECASE)


def looks_like_selector(target: str) -> bool:
    return bool(SELECTOR_SHAPE.search(target)) or '>>' in target


def css_string(value: str) -> str:
    return value.replace('\\', '\\\\').replace('"', '\\"')


class Matcher:
    name = 'matcher'

    def applies(self, target: str) -> bool:
        return True

    def locate(self, page: Page, target: str) -> Locator:
        raise NotImplementedError

    async def match(self, page: Page, target: str) -> Optional[Locator]:
        try:
            locator = self.locate(page, target)
            count = await locator.count()
        except PlaywrightError as e:
            logger.debug(f"{self.name} rejected '{target}': {e}")
            return None
        return locator.first if count else None


class SelectorMatcher(Matcher):
    name = 'selector'

    def applies(self, target: str) -> bool:
        return len(target) < MAX_SELECTOR_LENGTH and looks_like_selector(target)

    def locate(self, page: Page, target: str) -> Locator:
        return page.locator(target)


class RoleMatcher(Matcher):
    def __init__(self, role: str):
        self.role = role
        self.name = f"role:{role}"

    def locate(self, page: Page, target: str) -> Locator:
        return page.get_by_role(self.role, name=target)


class TextMatcher(Matcher):
    name = 'text'

    def locate(self, page: Page, target: str) -> Locator:
        return page.get_by_text(target, exact=False)


class FieldNameMatcher(Matcher):
    name = 'field-name'

    def locate(self, page: Page, target: str) -> Locator:
        value = css_string(target)
        return page.locator(
            f'input[name="{value}"], select[name="{value}"], textarea[name="{value}"]'
        )


class LabelMatcher(Matcher):
    name = 'label'

    def locate(self, page: Page, target: str) -> Locator:
        return page.get_by_label(target)


class PlaceholderMatcher(Matcher):
    name = 'placeholder'

    def locate(self, page: Page, target: str) -> Locator:
        return page.get_by_placeholder(target)


class ElementResolver:
    def __init__(self, matchers: Iterable[Matcher]):
        self.matchers: List[Matcher] = list(matchers)

    async def resolve(self, page: Page, target: str, timeout: int = 0) -> Tuple[str, Locator]:
        rounds = max(1, timeout // RESOLVE_POLL_MS)
        for attempt in range(rounds):
            if attempt:
                await page.wait_for_timeout(RESOLVE_POLL_MS)
            tried = []
            for matcher in self.matchers:
                if not matcher.applies(target):
                    continue
                tried.append(matcher.name)
                locator = await matcher.match(page, target)
                if locator is not None:
                    logger.debug(f"Resolved '{target}' with {matcher.name} (round {attempt + 1})")
                    return matcher.name, locator
        raise ResolutionError(target, tried)


def click_resolver() -> ElementResolver:
    return ElementResolver([
        SelectorMatcher(),
        RoleMatcher('button'),
        RoleMatcher('link'),
        TextMatcher(),
    ])


def fill_resolver() -> ElementResolver:
    return ElementResolver([
        FieldNameMatcher(),
        LabelMatcher(),
        PlaceholderMatcher(),
    ])


def _required(target: Any, operation: str) -> str:
    text = str(target or '').strip()
    if not text:
        raise MalformedInputError(f"{operation}: description or selector is required")
    return text


async def click_element(page: Page, target: str, timeout: int = CLICK_TIMEOUT) -> dict:
    target = _required(target, 'click')
    strategy, locator = await click_resolver().resolve(page, target, timeout)
    try:
        await locator.click(timeout=timeout)
    except PlaywrightError as e:
        raise ResolutionError(target, [strategy]) from e
    logger.info(f"Clicked '{target}' via {strategy}")
    return {'ok': True, 'clicked': target, 'strategy': strategy}


async def fill_element(page: Page, field: str, value: Any, timeout: int = FILL_TIMEOUT) -> dict:
    field = _required(field, 'fill')
    text = str(value)
    strategy, locator = await fill_resolver().resolve(page, field, timeout)
    try:
        await locator.fill(text, timeout=timeout)
    except PlaywrightError as e:
        raise ResolutionError(field, [strategy]) from e
    logger.info(f"Filled '{field}' via {strategy}")
    return {'ok': True, 'field': field, 'value': text, 'strategy': strategy}
