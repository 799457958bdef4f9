"""T411 API client."""
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import requests

from t411.api.exceptions import (
    ApiError,
    AuthenticationError,
    NetworkError,
    NotAuthenticatedError,
    ParseError,
)
from t411.api.ingest import RecordSink, ingest_torrents
from t411.api.models import SearchOptions, SearchResult, Session
from t411.api.parser import (
    TOKEN_ERROR_CODES,
    extract_json_payload,
    parse_auth_response,
    parse_search_payload,
    raise_for_error_payload,
)
from t411.config.settings import settings

logger = logging.getLogger(__name__)


class ApiClient:
    """
    Client for the T411 torrent API.

    The client is either unauthenticated or holds a Session obtained from
    login(). Searches need a session, either the stored one or one passed
    explicitly, and fail with NotAuthenticatedError before any request is
    sent when none is available.
    """

    AUTH_PATH = "/auth"
    SEARCH_PATH = "/torrents/search/"

    def __init__(
        self,
        base_url: Optional[str] = None,
        http: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        max_workers: Optional[int] = None,
        task_timeout: Optional[float] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API endpoint. If None, uses settings.api_url
            http: requests session to send requests with. A new one is created if None
            timeout: Per-request timeout in seconds. If None, uses settings.request_timeout
            max_workers: Ingestion pool size. If None, uses settings.max_workers
            task_timeout: Per-torrent ingestion timeout. If None, uses settings.task_timeout
        """
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.max_workers = max_workers if max_workers is not None else settings.max_workers
        self.task_timeout = task_timeout if task_timeout is not None else settings.task_timeout

        # Sent with every request; a caller-supplied session keeps its own headers untouched
        self.headers = {
            "User-Agent": settings.user_agent,
            "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
        }
        self.http = http or requests.Session()

        self._session: Optional[Session] = None
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def session(self) -> Optional[Session]:
        """Current login session, or None."""
        return self._session

    def is_authenticated(self) -> bool:
        """Whether the client holds a session that has not expired."""
        return self._session is not None and not self._session.is_expired()

    def login(self, username: Optional[str] = None, password: Optional[str] = None) -> Session:
        """
        Authenticate with the API and keep the resulting session.

        Args:
            username: Account name. If None, uses settings.username
            password: Account password. If None, uses settings.password

        Returns:
            The new Session

        Raises:
            AuthenticationError: If the credentials are refused or the response is malformed
            NetworkError: If the request fails
        """
        username = username if username is not None else settings.username
        password = password if password is not None else settings.password
        if not username or not password:
            raise AuthenticationError("Username and password are required")

        logger.debug(f"Authenticating as {username}...")
        response = self._send("POST", self.AUTH_PATH, data={"username": username, "password": password})

        try:
            token = parse_auth_response(response.text)
        except AuthenticationError as e:
            logger.warning(f"Authentication failed: ({e.code}) {e.message}")
            raise
        except ParseError as e:
            logger.warning(f"Authentication failed, unexpected response: {e}")
            raise AuthenticationError(f"Malformed authentication response: {e}") from e

        self._session = Session.issue(token, username=username, ttl_seconds=settings.session_ttl_seconds)
        logger.info(f"Successfully authenticated as {username}")
        return self._session

    def logout(self) -> None:
        """Forget the current session. No request is sent."""
        if self._session is not None:
            logger.info(f"Logged out {self._session.username}")
        self._session = None

    def raw_search(self, options: Optional[SearchOptions] = None, *, session: Optional[Session] = None) -> Dict[str, Any]:
        """
        Run a search and return the decoded JSON payload as is.

        Raises:
            NotAuthenticatedError: If no valid session is available or the token is refused
            NetworkError: If the request fails
            ParseError: If the body carries no JSON object
            ApiError: If the service answers with an error payload
        """
        options = options or SearchOptions()
        active = self._require_session(session)

        path = self.SEARCH_PATH + quote(options.query, safe="")
        response = self._send(
            "GET",
            path,
            params=options.to_params(),
            headers=active.authorization_header(),
        )
        payload = extract_json_payload(response.text)

        try:
            raise_for_error_payload(payload)
        except ApiError as e:
            if e.code in TOKEN_ERROR_CODES:
                raise NotAuthenticatedError(f"Token refused by the service: {e.message}") from e
            raise
        return payload

    def search(
        self,
        options: Optional[SearchOptions] = None,
        *,
        session: Optional[Session] = None,
        sink: Optional[RecordSink] = None,
    ) -> SearchResult:
        """
        Search for torrents and decompose every result into entry and status.

        Args:
            options: Search parameters, defaults to SearchOptions()
            session: Session to use instead of the stored one
            sink: Receiver of the entry and status of each torrent

        Returns:
            SearchResult with records in response order

        Raises:
            NotAuthenticatedError: If no valid session is available or the token is refused
            NetworkError: If the request fails
            ParseError: If the response is not a search payload
            ApiError: If the service answers with an error payload
            IngestError: If a torrent cannot be ingested
        """
        options = options or SearchOptions()
        payload = self.raw_search(options, session=session)
        meta, raw_torrents = parse_search_payload(payload)

        records = ingest_torrents(
            raw_torrents,
            sink,
            max_workers=self.max_workers,
            task_timeout=self.task_timeout,
        )

        result = SearchResult(
            query=str(meta.get("query", options.query)),
            total=_as_int(meta.get("total"), len(records)),
            offset=_as_int(meta.get("offset"), options.offset),
            limit=_as_int(meta.get("limit"), options.limit),
            records=records,
        )
        logger.info(f"Found {len(records)} torrents for query: {options.query!r} (total {result.total})")
        return result

    def submit_search(
        self,
        options: Optional[SearchOptions] = None,
        *,
        session: Optional[Session] = None,
        sink: Optional[RecordSink] = None,
        callback: Optional[Callable[[Future], Any]] = None,
    ) -> Future:
        """
        Run search() in the background.

        Errors, NotAuthenticatedError included, are delivered through the future.

        Args:
            callback: Called with the finished future

        Returns:
            Future resolving to a SearchResult
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="t411-search")
        future = self._executor.submit(self.search, options, session=session, sink=sink)
        if callback is not None:
            future.add_done_callback(callback)
        return future

    def close(self) -> None:
        """Release the HTTP session and the background executor."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_session(self, session: Optional[Session]) -> Session:
        active = session or self._session
        if active is None:
            raise NotAuthenticatedError("Not authenticated - call login() first")
        if active.is_expired():
            raise NotAuthenticatedError("Session expired - call login() again")
        return active

    def _send(self, method: str, path: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> requests.Response:
        url = self.base_url + path
        logger.debug(f"{method} {url} params={kwargs.get('params')}")
        try:
            response = self.http.request(
                method, url, headers={**self.headers, **(headers or {})}, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise NetworkError(f"{method} {path} failed: {e}") from e
        return response


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
