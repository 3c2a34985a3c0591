"""Entity store — async persistence for movies and genres.

Every call opens its own session; the single-row write is the unit of
atomicity. Infrastructure failures surface as StoreError. Not-found is
signalled by returning None, including for ids that are not valid UUIDs.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import Text, cast, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from movie_api.catalog.schemas import Genre, GenreWithMovies, Movie, MovieDetail
from movie_api.models import Genre as GenreRow
from movie_api.models import Movie as MovieRow

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """The entity store is unreachable or rejected an operation."""


def _parse_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _movie_record(row: MovieRow) -> Movie:
    return Movie(
        id=str(row.id),
        name=row.name,
        director=row.director,
        actors=list(row.actors or []),
        rating=row.rating,
        image=row.image,
        genres=list(row.genres or []),
    )


def _genre_record(row: GenreRow) -> Genre:
    return Genre(id=str(row.id), name=row.name, movies=list(row.movies or []))


def _resolve(ids: list[str], rows_by_id: dict[str, Any]) -> list[Any]:
    """Follow references in order; dangling ids are skipped, duplicates kept."""
    return [rows_by_id[i] for i in ids if i in rows_by_id]


def append_movie_statement(genre_pks: set[uuid.UUID], movie_id: str):
    """Single UPDATE appending movie_id to each genre's `movies` array.

    The append happens inside the row update, so concurrent fan-outs to the
    same genre each keep their id.
    """
    return (
        update(GenreRow)
        .where(GenreRow.id.in_(list(genre_pks)))
        .values(movies=GenreRow.movies.op("||")(func.jsonb_build_array(cast(movie_id, Text))))
        .execution_options(synchronize_session=False)
    )


class CatalogStore:
    """SQLAlchemy-backed store for Movie and Genre documents."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            logger.error("Store operation failed: %s", str(e)[:200])
            raise StoreError(str(e)[:200]) from e

    async def _rows_by_id(self, session: AsyncSession, model, ids: list[str]) -> dict[str, Any]:
        parsed = {p for p in (_parse_id(i) for i in ids) if p is not None}
        if not parsed:
            return {}
        result = await session.execute(select(model).where(model.id.in_(list(parsed))))
        return {str(row.id): row for row in result.scalars()}

    # ═══════════════ MOVIES ═══════════════

    async def find_movies(self) -> list[Movie]:
        async with self._session() as session:
            result = await session.execute(select(MovieRow).order_by(MovieRow.created_at))
            return [_movie_record(row) for row in result.scalars()]

    async def find_movie(self, movie_id: str, expand_genres: bool = False) -> Movie | MovieDetail | None:
        pk = _parse_id(movie_id)
        if pk is None:
            return None
        async with self._session() as session:
            row = await session.get(MovieRow, pk)
            if row is None:
                return None
            movie = _movie_record(row)
            if not expand_genres:
                return movie
            genres = await self._rows_by_id(session, GenreRow, movie.genres)
            return MovieDetail(
                **movie.model_dump(exclude={"genres"}),
                genres=[_genre_record(g) for g in _resolve(movie.genres, genres)],
            )

    async def create_movie(self, fields: dict[str, Any]) -> Movie:
        async with self._session() as session:
            row = MovieRow(id=uuid.uuid4(), **fields)
            session.add(row)
            await session.commit()
            return _movie_record(row)

    async def update_movie(self, movie_id: str, fields: dict[str, Any]) -> Movie | None:
        pk = _parse_id(movie_id)
        if pk is None:
            return None
        async with self._session() as session:
            row = await session.get(MovieRow, pk)
            if row is None:
                return None
            for name, value in fields.items():
                setattr(row, name, value)
            await session.commit()
            return _movie_record(row)

    async def delete_movie(self, movie_id: str) -> Movie | None:
        pk = _parse_id(movie_id)
        if pk is None:
            return None
        async with self._session() as session:
            row = await session.get(MovieRow, pk)
            if row is None:
                return None
            movie = _movie_record(row)
            await session.delete(row)
            await session.commit()
            return movie

    # ═══════════════ GENRES ═══════════════

    async def find_genres(self, expand_movies: bool = False) -> list[Genre] | list[GenreWithMovies]:
        async with self._session() as session:
            result = await session.execute(select(GenreRow).order_by(GenreRow.created_at))
            genres = [_genre_record(row) for row in result.scalars()]
            if not expand_movies:
                return genres
            all_ids = [m for g in genres for m in g.movies]
            movies = await self._rows_by_id(session, MovieRow, all_ids)
            return [
                GenreWithMovies(
                    id=g.id,
                    name=g.name,
                    movies=[_movie_record(m) for m in _resolve(g.movies, movies)],
                )
                for g in genres
            ]

    async def find_genre(self, genre_id: str, expand_movies: bool = False) -> Genre | GenreWithMovies | None:
        pk = _parse_id(genre_id)
        if pk is None:
            return None
        async with self._session() as session:
            row = await session.get(GenreRow, pk)
            if row is None:
                return None
            genre = _genre_record(row)
            if not expand_movies:
                return genre
            movies = await self._rows_by_id(session, MovieRow, genre.movies)
            return GenreWithMovies(
                id=genre.id,
                name=genre.name,
                movies=[_movie_record(m) for m in _resolve(genre.movies, movies)],
            )

    async def create_genre(self, fields: dict[str, Any]) -> Genre:
        async with self._session() as session:
            row = GenreRow(id=uuid.uuid4(), movies=[], **fields)
            session.add(row)
            await session.commit()
            return _genre_record(row)

    async def delete_genre(self, genre_id: str) -> Genre | None:
        pk = _parse_id(genre_id)
        if pk is None:
            return None
        async with self._session() as session:
            row = await session.get(GenreRow, pk)
            if row is None:
                return None
            genre = _genre_record(row)
            await session.delete(row)
            await session.commit()
            return genre

    async def push_movie_to_genres(self, genre_ids: list[str], movie_id: str) -> int:
        """Append movie_id to the `movies` list of every genre in genre_ids.

        Not de-duplicated. Unknown genre ids are ignored. Returns the number
        of genres updated.
        """
        pks = {p for p in (_parse_id(i) for i in genre_ids) if p is not None}
        if not pks:
            return 0
        async with self._session() as session:
            result = await session.execute(append_movie_statement(pks, movie_id))
            await session.commit()
            return result.rowcount
