"""Shared test fixtures — in-memory store, fake clock, cache and HTTP client."""

import uuid
from collections import Counter

import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient

from movie_api.catalog.routes import get_catalog
from movie_api.catalog.schemas import Genre, GenreWithMovies, Movie, MovieDetail
from movie_api.catalog.service import CatalogService
from movie_api.catalog.store import StoreError
from movie_api.main import app
from movie_api.services.cache import CacheService
from movie_api.services.cache_aside import CacheAside


class FakeClock:
    """Monotonic timer that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryCatalogStore:
    """Stand-in for CatalogStore that records how often each operation runs.

    Names listed in `failing` raise StoreError, as the real store does when
    the database is unreachable.
    """

    def __init__(self):
        self.movies: dict[str, Movie] = {}
        self.genres: dict[str, Genre] = {}
        self.calls: Counter = Counter()
        self.failing: set[str] = set()

    def _track(self, name: str) -> None:
        self.calls[name] += 1
        if name in self.failing:
            raise StoreError(f"{name}: connection refused")

    def _expand_genre(self, genre: Genre) -> GenreWithMovies:
        movies = [self.movies[m].model_copy(deep=True) for m in genre.movies if m in self.movies]
        return GenreWithMovies(id=genre.id, name=genre.name, movies=movies)

    async def find_movies(self):
        self._track("find_movies")
        return [m.model_copy(deep=True) for m in self.movies.values()]

    async def find_movie(self, movie_id, expand_genres=False):
        self._track("find_movie")
        movie = self.movies.get(movie_id)
        if movie is None:
            return None
        if not expand_genres:
            return movie.model_copy(deep=True)
        genres = [self.genres[g].model_copy(deep=True) for g in movie.genres if g in self.genres]
        return MovieDetail(**movie.model_dump(exclude={"genres"}), genres=genres)

    async def create_movie(self, fields):
        self._track("create_movie")
        movie = Movie(id=str(uuid.uuid4()), **fields)
        self.movies[movie.id] = movie
        return movie.model_copy(deep=True)

    async def update_movie(self, movie_id, fields):
        self._track("update_movie")
        movie = self.movies.get(movie_id)
        if movie is None:
            return None
        self.movies[movie_id] = movie.model_copy(update=fields)
        return self.movies[movie_id].model_copy(deep=True)

    async def delete_movie(self, movie_id):
        self._track("delete_movie")
        return self.movies.pop(movie_id, None)

    async def find_genres(self, expand_movies=False):
        self._track("find_genres")
        if expand_movies:
            return [self._expand_genre(g) for g in self.genres.values()]
        return [g.model_copy(deep=True) for g in self.genres.values()]

    async def find_genre(self, genre_id, expand_movies=False):
        self._track("find_genre")
        genre = self.genres.get(genre_id)
        if genre is None:
            return None
        return self._expand_genre(genre) if expand_movies else genre.model_copy(deep=True)

    async def create_genre(self, fields):
        self._track("create_genre")
        genre = Genre(id=str(uuid.uuid4()), movies=[], **fields)
        self.genres[genre.id] = genre
        return genre.model_copy(deep=True)

    async def delete_genre(self, genre_id):
        self._track("delete_genre")
        return self.genres.pop(genre_id, None)

    async def push_movie_to_genres(self, genre_ids, movie_id):
        self._track("push_movie_to_genres")
        updated = 0
        for genre_id in dict.fromkeys(genre_ids):
            if genre_id in self.genres:
                self.genres[genre_id].movies.append(movie_id)
                updated += 1
        return updated


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_service(clock):
    """Memory-backed cache service (no Redis) on a controllable clock."""
    return CacheService(fallback_maxsize=128, timer=clock)


@pytest.fixture
def fake_redis():
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def redis_cache_service(fake_redis):
    svc = CacheService()
    svc.use_client(fake_redis)
    return svc


@pytest.fixture
def store():
    return InMemoryCatalogStore()


@pytest.fixture
def catalog(store, cache_service):
    return CatalogService(store, CacheAside(cache_service, ttl=3600))


@pytest.fixture
async def client(catalog):
    app.dependency_overrides[get_catalog] = lambda: catalog
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def movie_payload():
    return {
        "name": "The Shawshank Redemption",
        "director": "Frank Darabont",
        "actors": ["Tim Robbins", "Morgan Freeman"],
        "imbdrating": 9.3,
        "image": "https://www.example.com/movie-image.jpg",
        "genres": [],
    }
