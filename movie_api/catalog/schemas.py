"""Pydantic models for catalog records and request payloads.

Records are the canonical shape of everything written to the cache:
the cache holds `TypeAdapter.dump_json` output of these types, never
loosely-typed blobs.
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, field_validator

NonEmptyStr = Annotated[str, Field(min_length=1)]


# ═══════════════ RECORDS ═══════════════

class Genre(BaseModel):
    id: str
    name: str
    movies: list[str] = Field(default_factory=list)


class Movie(BaseModel):
    id: str
    name: str
    director: str
    actors: list[str] = Field(default_factory=list)
    rating: str
    image: str | None = None
    genres: list[str] = Field(default_factory=list)


class MovieDetail(BaseModel):
    """A movie with its genre references expanded to full records."""
    id: str
    name: str
    director: str
    actors: list[str] = Field(default_factory=list)
    rating: str
    image: str | None = None
    genres: list[Genre] = Field(default_factory=list)


class GenreWithMovies(BaseModel):
    """A genre with its movie references expanded to full records."""
    id: str
    name: str
    movies: list[Movie] = Field(default_factory=list)


# ═══════════════ REQUEST PAYLOADS ═══════════════

def _rating_to_str(value: Any) -> Any:
    # Ratings arrive as 9.3 or "9.3"; both are stored as text.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class MovieCreate(BaseModel):
    name: NonEmptyStr
    director: NonEmptyStr
    actors: list[NonEmptyStr]
    rating: NonEmptyStr = Field(validation_alias=AliasChoices("rating", "imbdrating"))
    image: str | None = None
    genres: list[uuid.UUID] = Field(default_factory=list)

    normalize_rating = field_validator("rating", mode="before")(_rating_to_str)

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class MovieUpdate(BaseModel):
    """Partial update — only fields present in the request body are written."""
    name: NonEmptyStr | None = None
    director: NonEmptyStr | None = None
    actors: list[NonEmptyStr] | None = None
    rating: NonEmptyStr | None = Field(
        default=None, validation_alias=AliasChoices("rating", "imbdrating"),
    )
    image: str | None = None
    genres: list[uuid.UUID] | None = None

    normalize_rating = field_validator("rating", mode="before")(_rating_to_str)

    def to_fields(self) -> dict[str, Any]:
        fields = self.model_dump(mode="json", exclude_unset=True)
        # An explicit null only clears the optional image.
        return {k: v for k, v in fields.items() if v is not None or k == "image"}


class GenreCreate(BaseModel):
    name: NonEmptyStr


# ═══════════════ CACHE ADAPTERS ═══════════════

MOVIE_LIST = TypeAdapter(list[Movie])
MOVIE_DETAIL = TypeAdapter(MovieDetail)
GENRE = TypeAdapter(Genre)
GENRE_LIST = TypeAdapter(list[Genre])
GENRE_WITH_MOVIES_LIST = TypeAdapter(list[GenreWithMovies])
