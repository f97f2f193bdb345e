"""Typed Trakt payloads exchanged by the sync client.

Items are a tagged union over movies, shows and episodes: ``type`` names the
variant and exactly that variant's payload is populated. Request bodies for
the ``/sync`` and list-item endpoints are derived from items through
:class:`SyncBody`, and the receipts those endpoints answer with decode into
:class:`SyncResult`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from trakt_sync.backend.common.errors import ConfigError, DecodeError


class SyncMode(str, Enum):
    """Operating mode gating whether mutating calls are sent."""

    FULL = "full"
    ADD_ONLY = "add-only"
    DRY_RUN = "dry-run"

    @classmethod
    def parse(cls, value: Any) -> "SyncMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError as exc:
            valid = ", ".join(mode.value for mode in cls)
            raise ConfigError(f"failure using trakt sync mode {value}: valid modes are {valid}") from exc

    @property
    def allows_add(self) -> bool:
        return self is not SyncMode.DRY_RUN

    @property
    def allows_remove(self) -> bool:
        return self is SyncMode.FULL


class ItemType(str, Enum):
    MOVIE = "movie"
    SHOW = "show"
    EPISODE = "episode"

    @property
    def plural(self) -> str:
        return f"{self.value}s"


_ITEM_TYPES = frozenset(t.value for t in ItemType)
_ENTRY_LEVEL_FIELDS = ("rating", "rated_at", "watched_at")


class Ids(BaseModel):
    model_config = ConfigDict(extra="ignore")

    trakt: Optional[int] = None
    slug: Optional[str] = None
    imdb: Optional[str] = None
    tmdb: Optional[int] = None
    tvdb: Optional[int] = None


class ItemSpec(BaseModel):
    """Payload of one item variant: identifiers plus optional sync metadata."""

    model_config = ConfigDict(extra="ignore")

    ids: Ids
    title: Optional[str] = None
    year: Optional[int] = None
    season: Optional[int] = None
    number: Optional[int] = None
    rating: Optional[int] = Field(default=None, ge=1, le=10)
    rated_at: Optional[str] = None
    watched_at: Optional[str] = None

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(include={"ids", "rating", "rated_at", "watched_at"}, exclude_none=True)


class Item(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: ItemType
    movie: Optional[ItemSpec] = None
    show: Optional[ItemSpec] = None
    episode: Optional[ItemSpec] = None

    @model_validator(mode="before")
    @classmethod
    def lift_entry_fields(cls, data: Any) -> Any:
        # API entries carry rating/watched_at next to the variant, not inside it.
        if not isinstance(data, Mapping):
            return data
        payload = dict(data)
        item_type = payload.get("type")
        if isinstance(item_type, ItemType):
            item_type = item_type.value
        if item_type == ItemType.EPISODE.value and isinstance(payload.get("show"), Mapping):
            # episodes embed their parent show; it is context, not a second variant
            payload.pop("show")
        variant = payload.get(item_type) if isinstance(item_type, str) else None
        if isinstance(variant, Mapping):
            variant = dict(variant)
            for key in _ENTRY_LEVEL_FIELDS:
                if payload.get(key) is not None and variant.get(key) is None:
                    variant[key] = payload[key]
            payload[item_type] = variant
        return payload

    @model_validator(mode="after")
    def check_single_variant(self) -> "Item":
        populated = [t for t in ItemType if getattr(self, t.value) is not None]
        if populated != [self.type]:
            names = ", ".join(t.value for t in populated) or "none"
            raise ValueError(f"item of type {self.type.value} must populate exactly that variant (got {names})")
        return self

    @classmethod
    def of(cls, item_type: ItemType, spec: ItemSpec) -> "Item":
        return cls(type=item_type, **{item_type.value: spec})

    @property
    def spec(self) -> ItemSpec:
        return getattr(self, self.type.value)

    def label(self) -> str:
        ids = self.spec.ids
        ident = ids.imdb or ids.slug or (str(ids.trakt) if ids.trakt is not None else "?")
        return f"{self.type.value}:{ident}"


def is_supported_entry(entry: Any) -> bool:
    """True for API entries whose ``type`` is one of the item variants."""

    return isinstance(entry, Mapping) and entry.get("type") in _ITEM_TYPES


class SyncBody(BaseModel):
    movies: List[Dict[str, Any]] = Field(default_factory=list)
    shows: List[Dict[str, Any]] = Field(default_factory=list)
    episodes: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_items(cls, items: Iterable[Item]) -> "SyncBody":
        body = cls()
        for item in items:
            getattr(body, item.type.plural).append(item.spec.to_body())
        return body

    def payload(self) -> Dict[str, Any]:
        return {key: value for key, value in self.model_dump().items() if value}


class ListIds(BaseModel):
    model_config = ConfigDict(extra="ignore")

    trakt: Optional[int] = None
    slug: Optional[str] = None


class TraktList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ids: ListIds
    name: Optional[str] = None
    description: Optional[str] = None
    privacy: Optional[str] = None
    item_count: Optional[int] = None
    is_watchlist: bool = False
    items: List[Item] = Field(default_factory=list)

    @property
    def slug(self) -> Optional[str]:
        return self.ids.slug


WATCHLIST_SLUG = "watchlist"


class ListCreateBody(BaseModel):
    name: str
    description: str
    privacy: str = "public"
    display_numbers: bool = False
    allow_comments: bool = True
    sort_by: str = "rank"
    sort_how: str = "asc"

    @classmethod
    def template(cls, name: str, *, now: Optional[datetime] = None) -> "ListCreateBody":
        stamp = (now or datetime.now(timezone.utc)).strftime("%a, %d %b %Y %H:%M:%S %Z")
        return cls(name=name, description=f"list auto imported by trakt-sync on {stamp}")


class AuthCodes(BaseModel):
    model_config = ConfigDict(extra="ignore")

    device_code: str
    user_code: str
    verification_url: Optional[str] = None
    expires_in: Optional[int] = None
    interval: Optional[int] = None


class AuthTokens(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    created_at: Optional[int] = None


class CategoryCounts(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    movies: int = 0
    shows: int = 0
    seasons: int = 0
    episodes: int = 0
    people: int = 0


class NotFound(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    movies: Sequence[Mapping[str, Any]] = Field(default_factory=tuple)
    shows: Sequence[Mapping[str, Any]] = Field(default_factory=tuple)
    seasons: Sequence[Mapping[str, Any]] = Field(default_factory=tuple)
    episodes: Sequence[Mapping[str, Any]] = Field(default_factory=tuple)
    people: Sequence[Mapping[str, Any]] = Field(default_factory=tuple)

    def counts(self) -> CategoryCounts:
        return CategoryCounts(
            movies=len(self.movies),
            shows=len(self.shows),
            seasons=len(self.seasons),
            episodes=len(self.episodes),
            people=len(self.people),
        )


class SyncResult(BaseModel):
    """Receipt returned by mutating sync endpoints; reporting only."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    added: CategoryCounts = Field(default_factory=CategoryCounts)
    deleted: CategoryCounts = Field(default_factory=CategoryCounts)
    existing: CategoryCounts = Field(default_factory=CategoryCounts)
    not_found: NotFound = Field(default_factory=NotFound)

    def summary(self) -> Dict[str, Dict[str, int]]:
        return {
            "added": self.added.model_dump(),
            "deleted": self.deleted.model_dump(),
            "existing": self.existing.model_dump(),
            "not_found": self.not_found.counts().model_dump(),
        }


T = TypeVar("T")


def decode_json(response, operation: str) -> Any:
    """Read a JSON body, always releasing the response."""

    try:
        return response.json()
    except ValueError as exc:
        raise DecodeError(operation, exc) from exc
    finally:
        response.close()


def decode_as(model: Type[T], response, operation: str) -> T:
    data = decode_json(response, operation)
    try:
        return TypeAdapter(model).validate_python(data)
    except ValidationError as exc:
        raise DecodeError(operation, exc) from exc
