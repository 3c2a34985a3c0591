"""Catalog operations — every read and write goes through the cache-aside accessor.

Key map:
  movies:all               list_movies           invalidated by every movie write
  movie:<id>               get_movie             invalidated by movie update/delete
  genres:all               list_genres           invalidated by genre create/delete
  genres:all-with-movies   list_genres_with_movies
  genre:<id>               get_genre             written through on genre create
  genre:<id>:movies        get_genre_movies

Movie writes append back-references to genres but do not invalidate the
derived genre views (genres:all-with-movies, genre:<id>:movies); those
catch up on TTL expiry or manual invalidation. Back-references are never
pruned on movie delete or when a movie's genre list shrinks.
"""

import logging

from movie_api.catalog.schemas import (
    GENRE,
    GENRE_LIST,
    GENRE_WITH_MOVIES_LIST,
    MOVIE_DETAIL,
    MOVIE_LIST,
    Genre,
    GenreCreate,
    GenreWithMovies,
    Movie,
    MovieCreate,
    MovieDetail,
    MovieUpdate,
)
from movie_api.catalog.store import CatalogStore, StoreError
from movie_api.services.cache_aside import (
    GENRES_ALL,
    GENRES_ALL_WITH_MOVIES,
    MOVIES_ALL,
    CacheAside,
    genre_key,
    genre_movies_key,
    movie_key,
)

logger = logging.getLogger(__name__)


class CatalogService:
    """Movie and genre operations with cache population and invalidation."""

    def __init__(self, store: CatalogStore, cache: CacheAside):
        self.store = store
        self.cache = cache

    # ═══════════════ MOVIES ═══════════════

    async def list_movies(self) -> list[Movie]:
        return await self.cache.fetch(MOVIES_ALL, self.store.find_movies, MOVIE_LIST)

    async def get_movie(self, movie_id: str) -> MovieDetail | None:
        return await self.cache.fetch(
            movie_key(movie_id),
            lambda: self.store.find_movie(movie_id, expand_genres=True),
            MOVIE_DETAIL,
        )

    async def create_movie(self, payload: MovieCreate) -> Movie:
        fields = payload.to_fields()
        movie = await self.cache.mutate(
            lambda: self.store.create_movie(fields),
            invalidate=[MOVIES_ALL],
        )
        logger.info("Movie created | id=%s | genres=%d", movie.id, len(movie.genres))
        await self._link_genres(movie)
        return movie

    async def update_movie(self, movie_id: str, payload: MovieUpdate) -> Movie | None:
        fields = payload.to_fields()
        movie = await self.cache.mutate(
            lambda: self.store.update_movie(movie_id, fields),
            invalidate=[MOVIES_ALL, movie_key(movie_id)],
        )
        if movie is None:
            return None
        logger.info("Movie updated | id=%s | fields=%s", movie.id, ",".join(fields))
        # Only a genre list sent in this request is fanned out, as on create.
        if "genres" in fields:
            await self._link_genres(movie)
        return movie

    async def delete_movie(self, movie_id: str) -> Movie | None:
        movie = await self.cache.mutate(
            lambda: self.store.delete_movie(movie_id),
            invalidate=[MOVIES_ALL, movie_key(movie_id)],
        )
        if movie is not None:
            logger.info("Movie deleted | id=%s", movie.id)
        return movie

    async def _link_genres(self, movie: Movie) -> None:
        """Best-effort fan-out: append the movie id to each referenced genre.

        Runs after the movie write has committed and its keys are invalidated.
        On failure the movie stays without back-references; the error is
        logged and re-raised so the caller sees it.
        """
        if not movie.genres:
            return
        try:
            updated = await self.store.push_movie_to_genres(movie.genres, movie.id)
        except StoreError:
            logger.error(
                "Genre back-reference update failed | movie=%s | genres=%s",
                movie.id, ",".join(movie.genres),
            )
            raise
        logger.info("Genre back-references appended | movie=%s | genres=%d", movie.id, updated)

    # ═══════════════ GENRES ═══════════════

    async def list_genres(self) -> list[Genre]:
        return await self.cache.fetch(GENRES_ALL, self.store.find_genres, GENRE_LIST)

    async def list_genres_with_movies(self) -> list[GenreWithMovies]:
        return await self.cache.fetch(
            GENRES_ALL_WITH_MOVIES,
            lambda: self.store.find_genres(expand_movies=True),
            GENRE_WITH_MOVIES_LIST,
        )

    async def get_genre(self, genre_id: str) -> Genre | None:
        return await self.cache.fetch(
            genre_key(genre_id),
            lambda: self.store.find_genre(genre_id),
            GENRE,
        )

    async def get_genre_movies(self, genre_id: str) -> list[Movie] | None:
        async def load() -> list[Movie] | None:
            genre = await self.store.find_genre(genre_id, expand_movies=True)
            return None if genre is None else genre.movies

        return await self.cache.fetch(genre_movies_key(genre_id), load, MOVIE_LIST)

    async def create_genre(self, payload: GenreCreate) -> Genre:
        fields = payload.model_dump()
        genre = await self.cache.mutate(
            lambda: self.store.create_genre(fields),
            invalidate=[GENRES_ALL, GENRES_ALL_WITH_MOVIES],
            write_through=lambda g: genre_key(g.id),
            adapter=GENRE,
        )
        logger.info("Genre created | id=%s | name=%s", genre.id, genre.name)
        return genre

    async def delete_genre(self, genre_id: str) -> Genre | None:
        genre = await self.cache.mutate(
            lambda: self.store.delete_genre(genre_id),
            invalidate=[
                genre_key(genre_id),
                genre_movies_key(genre_id),
                GENRES_ALL,
                GENRES_ALL_WITH_MOVIES,
            ],
        )
        if genre is not None:
            logger.info("Genre deleted | id=%s", genre.id)
        return genre
