"""SQLAlchemy ORM models."""

from movie_api.models.base import Base
from movie_api.models.genre import Genre
from movie_api.models.movie import Movie

__all__ = ["Base", "Movie", "Genre"]
