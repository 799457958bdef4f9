"""T411 API client, request options and result models."""

from t411.api.client import ApiClient
from t411.api.exceptions import (
    ApiError,
    AuthenticationError,
    IngestError,
    IngestTimeoutError,
    NetworkError,
    NotAuthenticatedError,
    ParseError,
    T411Error,
)
from t411.api.ingest import RecordCollector, RecordSink
from t411.api.models import (
    SearchOptions,
    SearchResult,
    Session,
    TorrentEntry,
    TorrentRecord,
    TorrentStatus,
)

__all__ = [
    'ApiClient',
    'SearchOptions', 'SearchResult', 'Session', 'TorrentEntry', 'TorrentRecord', 'TorrentStatus',
    'RecordCollector', 'RecordSink',
    'T411Error', 'ApiError', 'AuthenticationError', 'NotAuthenticatedError',
    'NetworkError', 'ParseError', 'IngestError', 'IngestTimeoutError',
]
