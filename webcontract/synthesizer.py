# synthesizer.py
"""
Deterministic synthesis of a ContractDocument from extracted affordances.

Ordering is always forms, buttons, links, then network actions, and every
name is claimed through a single NameRegistry so that names stay unique
(case-insensitively) within one call. Nothing is cached between calls.
"""
import logging
import re
from typing import Optional, List, Iterable, Set
from urllib.parse import urlparse

from .constants import AGENT_PREFIX, DEFAULT_CONTRACT_NAME, MAX_CONTRACT_NAME, MAX_LINK_PATH_SLUG
from .models import (
    ActionRecord, ContractDocument, ElementKind, FormRecord, ButtonRecord, LinkRecord,
    InteractiveGroups, NetworkAction, NetworkCallRecord,
)

logger = logging.getLogger(__name__)

NON_SLUG = re.compile(r'[^a-zA-Z0-9_]')
NON_API_NAME = re.compile(r'[^a-z0-9_]')
URL_ORIGIN = re.compile(r'^https?://[^/]+', re.IGNORECASE)
TOKEN = re.compile(r'^[A-Za-z0-9_]+$')


def slugify(name: Optional[str]) -> str:
    return NON_SLUG.sub('', re.sub(r'\s+', '_', name or '')).lower()


class NameRegistry:
    """Used action names for one synthesis call, compared case-insensitively."""

    def __init__(self):
        self._used: Set[str] = set()

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._used

    def __len__(self) -> int:
        return len(self._used)

    def claim(self, base: str) -> str:
        name = base
        n = 2
        while name.lower() in self._used:
            name = f"{base}_{n}"
            n += 1
        self._used.add(name.lower())
        return name


def contract_name(title: Optional[str] = None, context: Optional[str] = None) -> str:
    if context:
        candidate = re.sub(r'\s+', '_', context.strip())
        if TOKEN.match(candidate):
            return candidate
    if title and title.strip():
        derived = NON_SLUG.sub('', re.sub(r'\s+', '_', title.strip()))[:MAX_CONTRACT_NAME]
        return derived or DEFAULT_CONTRACT_NAME
    return DEFAULT_CONTRACT_NAME


def endpoint_for(name: str) -> str:
    return f"{AGENT_PREFIX}/{name}"


def form_actions(forms: List[FormRecord], registry: NameRegistry) -> List[ActionRecord]:
    actions = []
    for idx, form in enumerate(forms):
        name = registry.claim(slugify(form.submit_label) or f"submitForm_{idx + 1}")
        actions.append(ActionRecord(
            name=name,
            method=form.method,
            endpoint=endpoint_for(name),
            schema={f.name: f.inferred_type.value for f in form.fields},
            description=f"Submit: {form.submit_label}" if form.submit_label else f"Form {idx + 1}",
            provenance=ElementKind.FORM,
            required_fields=tuple(f.name for f in form.fields if f.required),
        ))
    return actions


def button_actions(buttons: List[ButtonRecord], registry: NameRegistry, form_names: Set[str]) -> List[ActionRecord]:
    actions = []
    for btn in buttons:
        base = slugify(btn.label) or slugify(btn.identifier)
        if btn.in_form and base and base in form_names:
            logger.debug(f"Skipping submit control '{btn.label}' already covered by form action")
            continue
        name = registry.claim(base or f"button_{btn.index}")
        actions.append(ActionRecord(
            name=name,
            method='POST',
            endpoint=endpoint_for(name),
            schema={},
            description=btn.label or btn.identifier or f"Button {btn.index}",
            provenance=ElementKind.BUTTON,
        ))
    return actions


def link_path_slug(href: str) -> str:
    path = URL_ORIGIN.sub('', href).replace('/', '_')[:MAX_LINK_PATH_SLUG]
    return slugify(path) or 'link'


def link_actions(links: List[LinkRecord], registry: NameRegistry) -> List[ActionRecord]:
    actions = []
    for link in links:
        base = slugify(link.label) or slugify(link.identifier) or link_path_slug(link.href)
        name = registry.claim(base)
        actions.append(ActionRecord(
            name=name,
            method='GET',
            endpoint=endpoint_for(name),
            schema={},
            description=link.label or link.href,
            provenance=ElementKind.LINK,
        ))
    return actions


def network_action_base(call: NetworkCallRecord, position: int) -> str:
    try:
        parsed = urlparse(call.url)
    except ValueError:
        return f"api_{position}"
    if not parsed.scheme or not parsed.netloc:
        return f"api_{position}"
    path = parsed.path.rstrip('/') or 'root'
    base = '_'.join([s for s in path.split('/') if s][-2:]) or 'api'
    return NON_API_NAME.sub('_', f"{call.method}_{base}".lower())


def network_actions(calls: Iterable[NetworkCallRecord], registry: NameRegistry) -> List[NetworkAction]:
    actions = []
    for position, call in enumerate(calls, start=1):
        name = registry.claim(network_action_base(call, position))
        schema = None
        if call.inferred_schema is not None:
            schema = {k: v.value for k, v in call.inferred_schema.items()}
        actions.append(NetworkAction(
            name=name,
            method=call.method,
            url=call.url,
            body_schema=schema,
            description=f"Real API: {call.method} {call.url}",
        ))
    return actions


def synthesize_contract(
    groups: InteractiveGroups,
    title: Optional[str] = None,
    context: Optional[str] = None,
    network_calls: Optional[Iterable[NetworkCallRecord]] = None,
    carry_required: bool = False,
) -> ContractDocument:
    registry = NameRegistry()
    forms = form_actions(groups.forms, registry)
    form_names = {a.name for a in forms}
    actions = forms + button_actions(groups.buttons, registry, form_names) + link_actions(groups.links, registry)
    api_actions = network_actions(network_calls or [], registry)
    contract = ContractDocument(
        name=contract_name(title, context),
        actions=actions,
        network_actions=api_actions,
        carry_required=carry_required,
    )
    logger.info(
        f"Synthesized contract '{contract.name}': {len(actions)} actions, "
        f"{len(api_actions)} network actions"
    )
    return contract
