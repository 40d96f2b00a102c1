# models.py
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple

import yaml


class SchemaType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    UNKNOWN = "unknown"


class ElementKind(str, Enum):
    FORM = "form"
    BUTTON = "button"
    LINK = "link"


@dataclass
class FieldRecord:
    name: str
    inferred_type: SchemaType = SchemaType.STRING
    required: bool = False
    input_type: str = "text"  # raw type attribute, or the tag for select/textarea
    label: str = ""


@dataclass
class FormRecord:
    method: str
    target: str
    fields: List[FieldRecord] = field(default_factory=list)
    submit_label: str = "submit"
    submit_text: str = ""  # text of the submit control itself, empty when there is none
    identifier: Optional[str] = None
    styling: Optional[str] = None
    kind: ElementKind = ElementKind.FORM


@dataclass
class ButtonRecord:
    label: str
    index: int
    identifier: Optional[str] = None
    styling: Optional[str] = None
    tag: str = ""
    input_type: str = ""
    in_form: bool = False
    kind: ElementKind = ElementKind.BUTTON


@dataclass
class LinkRecord:
    href: str
    label: str
    index: int
    identifier: Optional[str] = None
    styling: Optional[str] = None
    kind: ElementKind = ElementKind.LINK


@dataclass
class InteractiveGroups:
    forms: List[FormRecord] = field(default_factory=list)
    buttons: List[ButtonRecord] = field(default_factory=list)
    links: List[LinkRecord] = field(default_factory=list)


@dataclass(frozen=True)
class ActionRecord:
    name: str
    method: str
    endpoint: str
    schema: Dict[str, str]
    description: str
    provenance: ElementKind
    required_fields: Tuple[str, ...] = ()

    def to_dict(self, carry_required: bool = False) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'method': self.method,
            'endpoint': self.endpoint,
            'schema': dict(self.schema),
            'description': self.description,
            'provenance': self.provenance.value,
        }
        if carry_required:
            data['required'] = list(self.required_fields)
        return data


@dataclass
class RequestDescriptor:
    method: str
    url: str
    resource_category: str  # xhr, fetch, document, script, ...
    body_text: Optional[str] = None
    content_type: Optional[str] = None
    body_data: Any = None  # body already decoded by the browser (form-encoded posts)


@dataclass
class NetworkCallRecord:
    method: str
    url: str
    sample_body: Optional[str] = None
    inferred_schema: Optional[Dict[str, SchemaType]] = None
    content_type: Optional[str] = None

    @property
    def dedup_key(self) -> Tuple[str, str]:
        return (self.method, self.url)


@dataclass(frozen=True)
class NetworkAction:
    name: str
    method: str
    url: str
    body_schema: Optional[Dict[str, str]]
    description: str

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'method': self.method,
            'url': self.url,
            'description': self.description,
        }
        if self.body_schema is not None:
            data['bodySchema'] = dict(self.body_schema)
        return data


@dataclass
class ContractDocument:
    name: str
    actions: List[ActionRecord] = field(default_factory=list)
    network_actions: List[NetworkAction] = field(default_factory=list)
    carry_required: bool = False

    def action_names(self) -> List[str]:
        return [a.name for a in self.actions] + [a.name for a in self.network_actions]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'actions': [a.to_dict(self.carry_required) for a in self.actions],
        }
        if self.network_actions:
            data['networkActions'] = [a.to_dict() for a in self.network_actions]
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


@dataclass
class SnapshotDocument:
    url: str
    title: str
    buttons: List[Dict[str, str]] = field(default_factory=list)
    links: List[Dict[str, str]] = field(default_factory=list)
    forms: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'title': self.title,
            'buttons': self.buttons,
            'links': self.links,
            'forms': self.forms,
        }

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), allow_unicode=True, default_flow_style=False, sort_keys=False)
