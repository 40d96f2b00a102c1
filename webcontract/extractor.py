# extractor.py
"""
Structural extraction of interactive affordances (forms, buttons, links)
from raw markup. Every function here degrades instead of raising: broken
markup yields fewer records, never an exception.
"""
import logging
import re
from typing import List, Optional, Union

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from .models import (
    SchemaType, FieldRecord, FormRecord, ButtonRecord, LinkRecord, InteractiveGroups,
)

logger = logging.getLogger(__name__)

INPUT_TYPE_SCHEMA = {
    'text': SchemaType.STRING,
    'email': SchemaType.STRING,
    'password': SchemaType.STRING,
    'tel': SchemaType.STRING,
    'url': SchemaType.STRING,
    'hidden': SchemaType.STRING,
    'search': SchemaType.STRING,
    'number': SchemaType.NUMBER,
    'checkbox': SchemaType.BOOLEAN,
}

FIELD_TAGS = ['input', 'select', 'textarea']

SUBMIT_SELECTOR = (
    'button[type="submit" i], button:not([type]), '
    'input[type="submit" i], input[type="image" i]'
)

BUTTON_SELECTOR = ', '.join([
    'button',
    'input[type="button" i]',
    'input[type="submit" i]',
    'input[type="image" i]',
    '[role="button"]',
    'a[class*="btn"]',
    'a[class*="button"]',
    '[data-action]',
    '[data-submit]',
    '[onclick]',
])

# first non-empty wins, after the element's visible text
BUTTON_LABEL_ATTRS = ['value', 'aria-label', 'title', 'data-label', 'data-action', 'alt']

SCRIPT_HREF = re.compile(r'^\s*javascript\s*:', re.IGNORECASE)

Markup = Union[str, bytes, BeautifulSoup, None]


def parse_markup(html: Markup) -> BeautifulSoup:
    if isinstance(html, BeautifulSoup):
        return html
    if not isinstance(html, (str, bytes)):
        html = ''
    try:
        return BeautifulSoup(html, 'html.parser')
    except ParserRejectedMarkup as e:
        logger.warning(f"Markup rejected by parser, treating as empty: {e}")
        return BeautifulSoup('', 'html.parser')


def clean_text(value: Optional[str]) -> str:
    return ' '.join((value or '').split())


def element_text(el: Tag) -> str:
    return clean_text(el.get_text(' ', strip=True))


def attr_text(el: Tag, name: str) -> str:
    value = el.get(name)
    if isinstance(value, list):  # multi-valued attributes such as class
        value = ' '.join(value)
    return clean_text(value)


def infer_field_type(input_type: str) -> SchemaType:
    return INPUT_TYPE_SCHEMA.get((input_type or '').lower(), SchemaType.STRING)


def normalize_method(value: Optional[str]) -> str:
    return 'POST' if (value or '').strip().upper() == 'POST' else 'GET'


def page_title(soup: BeautifulSoup) -> str:
    if soup.title is None:
        return ''
    return clean_text(soup.title.get_text())


def _field_type(inp: Tag) -> str:
    if inp.name in ('select', 'textarea'):
        return inp.name
    return attr_text(inp, 'type').lower() or 'text'


def _submit_text(form: Tag) -> str:
    control = form.select_one(SUBMIT_SELECTOR)
    if control is None:
        return ''
    if control.name == 'input':
        return attr_text(control, 'value') or attr_text(control, 'alt')
    return element_text(control)


def extract_forms(soup: BeautifulSoup) -> List[FormRecord]:
    forms = []
    for form in soup.find_all('form'):
        fields = []
        seen = set()
        for inp in form.find_all(FIELD_TAGS):
            name = attr_text(inp, 'name')
            if not name or name in seen:
                continue
            seen.add(name)
            input_type = _field_type(inp)
            fields.append(FieldRecord(
                name=name,
                inferred_type=infer_field_type(input_type),
                required=inp.has_attr('required'),
                input_type=input_type,
                label=attr_text(inp, 'aria-label') or attr_text(inp, 'placeholder') or name,
            ))
        submit_text = _submit_text(form)
        forms.append(FormRecord(
            method=normalize_method(attr_text(form, 'method')),
            target=attr_text(form, 'action'),
            fields=fields,
            submit_label=submit_text or 'submit',
            submit_text=submit_text,
            identifier=attr_text(form, 'id') or None,
            styling=attr_text(form, 'class') or None,
        ))
    logger.debug(f"Extracted {len(forms)} forms")
    return forms


def button_label(el: Tag) -> str:
    text = element_text(el)
    if text:
        return text
    for name in BUTTON_LABEL_ATTRS:
        value = attr_text(el, name)
        if value:
            return value
    return ''


def extract_buttons(soup: BeautifulSoup) -> List[ButtonRecord]:
    buttons = []
    for i, el in enumerate(soup.select(BUTTON_SELECTOR)):
        buttons.append(ButtonRecord(
            label=button_label(el),
            index=i + 1,
            identifier=attr_text(el, 'id') or None,
            styling=attr_text(el, 'class') or None,
            tag=el.name or '',
            input_type=attr_text(el, 'type').lower(),
            in_form=el.find_parent('form') is not None,
        ))
    logger.debug(f"Extracted {len(buttons)} buttons")
    return buttons


def is_actionable_href(href: str) -> bool:
    return bool(href) and not href.startswith('#') and not SCRIPT_HREF.match(href)


def extract_links(soup: BeautifulSoup) -> List[LinkRecord]:
    links = []
    for el in soup.select('a[href]'):
        href = attr_text(el, 'href')
        if not is_actionable_href(href):
            continue
        links.append(LinkRecord(
            href=href,
            label=element_text(el),
            index=len(links) + 1,
            identifier=attr_text(el, 'id') or None,
            styling=attr_text(el, 'class') or None,
        ))
    logger.debug(f"Extracted {len(links)} links")
    return links


def extract_interactive(html: Markup) -> InteractiveGroups:
    soup = parse_markup(html)
    return InteractiveGroups(
        forms=extract_forms(soup),
        buttons=extract_buttons(soup),
        links=extract_links(soup),
    )
