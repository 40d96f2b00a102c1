# errors.py
from typing import Optional, Sequence, List, Dict, Any


class WebContractError(Exception):
    """Base class for every error raised by webcontract."""

    def to_result(self) -> Dict[str, Any]:
        return {'ok': False, 'error': str(self)}


class PreconditionError(WebContractError):
    """An operation needs a live browser session and none is open."""


class ResolutionError(WebContractError):
    """No matcher located the requested element, or it never became interactable."""

    def __init__(self, target: str, strategies: Sequence[str] = (), filled: Optional[List[str]] = None):
        self.target = target
        self.strategies = list(strategies)
        # fields already applied when a batch fill aborts
        self.filled = list(filled or [])
        tried = f" (tried: {', '.join(self.strategies)})" if self.strategies else ""
        super().__init__(f"Could not resolve element: {target}{tried}")

    def to_result(self) -> Dict[str, Any]:
        result = super().to_result()
        result['target'] = self.target
        if self.filled:
            result['filled'] = self.filled
        return result


class NetworkCaptureDegradation(WebContractError):
    """A captured request body could not be parsed; its schema is omitted."""


class FetchError(WebContractError):
    def __init__(self, url: str, status: Optional[int] = None, cause: Optional[BaseException] = None):
        self.url = url
        self.status = status
        self.cause = cause
        if status is not None:
            message = f"HTTP {status}: {url}"
        else:
            message = f"Failed to load {url}: {cause}"
        super().__init__(message)


class MalformedInputError(WebContractError):
    """Structured input (e.g. a batch fill payload) could not be interpreted."""
