"""Parsing of raw T411 API response bodies."""
import json
import logging
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from t411.api.exceptions import ApiError, AuthenticationError, ParseError
from t411.api.models import TorrentEntry, TorrentStatus

logger = logging.getLogger(__name__)

# Service error codes meaning the Authorization token was refused
TOKEN_ERROR_CODES = frozenset({201, 202})

SEARCH_META_FIELDS = ("query", "total", "offset", "limit")


def _decode_object(text: str) -> Dict[str, Any]:
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ParseError(f"Expected a JSON object, got {type(payload).__name__}")
    return payload


def extract_json_payload(body: str) -> Dict[str, Any]:
    """
    Decode the JSON object carried by a response body.

    The search endpoint has been seen to print a few lines of metadata before
    the JSON document, so when the body is not JSON as a whole the payload is
    looked up by content: decoding starts at the first line opening an object.

    Args:
        body: Raw response text

    Returns:
        Decoded JSON object

    Raises:
        ParseError: If no JSON object can be decoded
    """
    if not body or not body.strip():
        raise ParseError("Empty response body")

    try:
        return _decode_object(body)
    except json.JSONDecodeError:
        pass

    lines = body.splitlines()
    for index, line in enumerate(lines):
        if not line.lstrip().startswith("{"):
            continue
        candidate = "\n".join(lines[index:])
        try:
            payload = _decode_object(candidate)
        except json.JSONDecodeError:
            continue
        if index:
            logger.debug(f"Skipped {index} preamble line(s) before JSON payload")
        return payload

    raise ParseError("Response body does not contain a JSON object")


def raise_for_error_payload(payload: Dict[str, Any]) -> None:
    """Raise ApiError when the payload is a service-level error."""
    if "error" not in payload:
        return
    code = _error_code(payload.get("code"))
    raise ApiError(str(payload["error"]), code)


def _error_code(value: Any):
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def parse_auth_response(body: str) -> str:
    """
    Extract the token from a /auth response.

    Raises:
        AuthenticationError: If the service refused the credentials
        ParseError: If the body is not a token payload
    """
    payload = extract_json_payload(body)
    if "error" in payload:
        raise AuthenticationError(str(payload["error"]), _error_code(payload.get("code")))

    token = payload.get("token")
    if not isinstance(token, str) or not token:
        raise ParseError("Authentication response carries no token")
    return token


def parse_search_payload(payload: Dict[str, Any]) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """
    Split a decoded search payload into its metadata and raw torrents.

    Returns:
        (metadata dict, list of raw torrent dicts)
    """
    raise_for_error_payload(payload)

    torrents = payload.get("torrents")
    if not isinstance(torrents, list):
        raise ParseError("Search response has no 'torrents' list")

    raw_torrents = []
    for item in torrents:
        # Hidden torrents are listed as bare ids
        if isinstance(item, dict):
            raw_torrents.append(item)
        else:
            logger.debug(f"Skipping non-object torrent item: {item!r}")

    meta = {key: payload[key] for key in SEARCH_META_FIELDS if key in payload}
    return meta, raw_torrents


def split_torrent(raw: Dict[str, Any]) -> Tuple[TorrentEntry, TorrentStatus]:
    """Decompose a raw torrent into its entry and status parts."""
    try:
        entry = TorrentEntry.model_validate(raw)
        status = TorrentStatus.model_validate(raw)
    except ValidationError as e:
        raise ParseError(f"Invalid torrent {raw.get('id')!r}: {e}") from e
    return entry, status
