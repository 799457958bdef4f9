"""Data models for T411 search requests, sessions and results."""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Optional
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SearchOptions(BaseModel):
    """Parameters of a single search request."""
    model_config = ConfigDict(frozen=True)

    query: str = Field("", description="Search expression, empty matches everything")
    limit: int = Field(10, ge=1, description="Maximum number of results")
    offset: int = Field(0, ge=0, description="Page number, starting at 0")
    category_id: Optional[int] = Field(None, ge=0, description="(Sub-)category filter")

    @field_validator("query")
    @classmethod
    def _strip_query(cls, value: str) -> str:
        return value.strip()

    def to_params(self) -> Dict[str, str]:
        """Query-string parameters of the search request."""
        params = {"limit": str(self.limit), "offset": str(self.offset)}
        if self.category_id is not None:
            params["cid"] = str(self.category_id)
        return params

    @classmethod
    def from_params(cls, query: str, params: Mapping[str, str]) -> "SearchOptions":
        """Rebuild options from a (possibly URL-quoted) query and the parameters produced by to_params()."""
        cid = params.get("cid")
        return cls(
            query=unquote(query),
            limit=int(params.get("limit", 10)),
            offset=int(params.get("offset", 0)),
            category_id=int(cid) if cid is not None else None,
        )

    def next_page(self) -> "SearchOptions":
        """Options for the page that follows this one."""
        return self.model_copy(update={"offset": self.offset + 1})


class Session(BaseModel):
    """Authentication state returned by a successful login."""
    model_config = ConfigDict(frozen=True)

    token: str = Field(..., min_length=1, description="Opaque credential sent in the Authorization header")
    username: str = Field("", description="Account the token was issued for")
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: Optional[datetime] = Field(None, description="None when the token has no known expiry")

    @classmethod
    def issue(cls, token: str, username: str = "", ttl_seconds: Optional[int] = None) -> "Session":
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        return cls(token=token, username=username, issued_at=now, expires_at=expires_at)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at

    def authorization_header(self) -> Dict[str, str]:
        # T411 expects the bare token, without a scheme prefix
        return {"Authorization": self.token}

    def __repr__(self) -> str:
        return f"Session(username={self.username!r}, token='{self.token[:4]}...', expires_at={self.expires_at!r})"


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class TorrentEntry(BaseModel):
    """Descriptive metadata of a torrent."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int = Field(..., description="Torrent identifier")
    name: str = Field(..., min_length=1, description="Torrent title")
    category: Optional[int] = Field(None, description="Sub-category identifier")
    category_name: Optional[str] = Field(None, alias="categoryname")
    rewritten_name: Optional[str] = Field(None, alias="rewritten", description="URL slug of the torrent")
    added: Optional[str] = Field(None, description="Upload date as reported by the service")
    owner: Optional[int] = Field(None, description="Uploader user id")
    username: Optional[str] = Field(None, description="Uploader name")
    privacy: Optional[str] = None
    is_verified: bool = Field(False, alias="isVerified")

    @field_validator("category", "owner", mode="before")
    @classmethod
    def _optional_int(cls, value):
        return _blank_to_none(value)


class TorrentStatus(BaseModel):
    """Live counters of a torrent."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    torrent_id: int = Field(..., alias="id")
    size: int = Field(0, ge=0, description="Size in bytes")
    seeders: int = Field(0, ge=0)
    leechers: int = Field(0, ge=0)
    times_completed: int = Field(0, ge=0)
    comments: int = Field(0, ge=0)

    @field_validator("size", "seeders", "leechers", "times_completed", "comments", mode="before")
    @classmethod
    def _counter(cls, value):
        value = _blank_to_none(value)
        return 0 if value is None else value


class TorrentRecord(BaseModel):
    """A fully ingested torrent: entry and status of the same torrent."""
    model_config = ConfigDict(frozen=True)

    entry: TorrentEntry
    status: TorrentStatus

    @model_validator(mode="after")
    def _same_torrent(self) -> "TorrentRecord":
        if self.status.torrent_id != self.entry.id:
            raise ValueError(
                f"status belongs to torrent {self.status.torrent_id}, entry is {self.entry.id}"
            )
        return self

    @property
    def id(self) -> int:
        return self.entry.id

    @property
    def name(self) -> str:
        return self.entry.name

    def __str__(self) -> str:
        return (
            f"{self.entry.name} | Size: {self.status.size} B | "
            f"Seeders: {self.status.seeders} | Leechers: {self.status.leechers}"
        )


class SearchResult(BaseModel):
    """One page of search results, records in response order."""
    query: str = ""
    total: int = Field(0, ge=0, description="Number of matches reported by the service")
    offset: int = 0
    limit: int = 0
    records: List[TorrentRecord] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)
