from .errors import (
    WebContractError, PreconditionError, ResolutionError, NetworkCaptureDegradation, FetchError, MalformedInputError,
)
from .extractor import extract_interactive, parse_markup
from .models import (
    SchemaType, ElementKind, FieldRecord, FormRecord, ButtonRecord, LinkRecord, InteractiveGroups,
    ActionRecord, RequestDescriptor, NetworkCallRecord, NetworkAction, ContractDocument, SnapshotDocument,
)
from .network import normalize_requests, infer_body_schema, NetworkCapture
from .pipeline import generate_contract, url_to_contract
from .resolver import ElementResolver, click_resolver, fill_resolver
from .session import BrowserSession, SessionState
from .snapshots import summarize_markup, capture_snapshot
from .synthesizer import synthesize_contract
from .fetcher import fetch_html, fetch_with_network_discovery
