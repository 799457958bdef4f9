"""Client for the T411 torrent-indexing API."""

from t411.api import ApiClient, SearchOptions, SearchResult, Session, TorrentRecord

__all__ = ['ApiClient', 'SearchOptions', 'SearchResult', 'Session', 'TorrentRecord']
