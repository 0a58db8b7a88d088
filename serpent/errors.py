"""Error taxonomy and user-facing classification.

Errors never cross a context boundary as objects. A context that fails
serializes the error with ``error_to_wire`` and the receiving context
rebuilds it with ``error_from_wire``.
"""

import asyncio
from typing import Optional

import httpx


class SerpentError(Exception):
    """Base exception for Serpent."""


class NoContentAvailable(SerpentError):
    """Extraction produced nothing. A normal empty result, not a failure."""


class SerpentTimeout(SerpentError):
    """A bridge or relay deadline passed before an answer arrived."""


class BridgeTimeout(SerpentTimeout):
    """No responder answered a cross-context request in time."""


class RelayError(SerpentError):
    """Delivery to the messaging endpoint failed."""


class RelayTimeout(SerpentTimeout, RelayError):
    """An outbound request to the endpoint was aborted at its deadline."""


class EndpointRejected(RelayError):
    """The endpoint answered with a structured error."""

    def __init__(self, description: str):
        super().__init__(description)
        self.description = description


class TransportFailure(RelayError):
    """The endpoint could not be reached at all (DNS, connection refused)."""


class InvalidPayload(RelayError):
    """The payload cannot be sent as given (bad base64, over the size cap)."""


class ConfigurationMissing(SerpentError):
    """Credential or target conversation is not provisioned."""


class ChannelCollisionError(SerpentError):
    """Two channels in one session share a tag."""


_WIRE_KINDS: dict[str, type[SerpentError]] = {
    cls.__name__: cls
    for cls in (
        NoContentAvailable,
        BridgeTimeout,
        RelayTimeout,
        RelayError,
        EndpointRejected,
        TransportFailure,
        InvalidPayload,
        ConfigurationMissing,
    )
}


def error_to_wire(e: BaseException) -> dict:
    """Serialize an exception into a plain message-safe dict."""
    kind = type(e).__name__
    if kind not in _WIRE_KINDS:
        kind = "RelayError"
    message = e.description if isinstance(e, EndpointRejected) else str(e)
    return {"kind": kind, "message": message or type(e).__name__}


def error_from_wire(payload: Optional[dict]) -> SerpentError:
    """Rebuild an exception from ``error_to_wire`` output.

    Unknown or malformed payloads become a plain ``RelayError``.
    """
    if not isinstance(payload, dict):
        return RelayError("Unknown relay error")
    cls = _WIRE_KINDS.get(payload.get("kind", ""), RelayError)
    message = payload.get("message") or "Unknown relay error"
    return cls(message)


def classify_error(e: BaseException) -> str:
    """Classify any exception into a short line for the user.

    Endpoint descriptions are passed through verbatim so the user sees
    exactly what the service said.
    """
    if isinstance(e, EndpointRejected):
        return e.description
    if isinstance(e, ConfigurationMissing):
        return "Missing configuration"
    if isinstance(e, TransportFailure):
        return f"No network: {e}" if str(e) else "No network"
    if isinstance(e, SerpentTimeout):
        return "Timed out"
    if isinstance(e, NoContentAvailable):
        return "No content"
    if isinstance(e, InvalidPayload):
        return f"Cannot send: {e}"

    # Raw library errors that slipped past the relay's own mapping
    if isinstance(e, httpx.ConnectError):
        return "No network"
    if isinstance(e, (httpx.TimeoutException, asyncio.TimeoutError)):
        return "Timed out"

    type_name = type(e).__name__
    return f"Something went wrong ({type_name}). Check logs for details."
