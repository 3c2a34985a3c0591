"""HTTP surface for movies and genres, mounted under /api."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from movie_api.catalog.schemas import (
    Genre,
    GenreCreate,
    GenreWithMovies,
    Movie,
    MovieCreate,
    MovieDetail,
    MovieUpdate,
)
from movie_api.catalog.service import CatalogService

router = APIRouter(prefix="/api")


def get_catalog(request: Request) -> CatalogService:
    """FastAPI dependency — the CatalogService built at startup."""
    return request.app.state.catalog


def _not_found(what: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": f"{what} not found"})


# ═══════════════ MOVIES ═══════════════

@router.get("/movies", response_model=list[Movie], tags=["Movies"])
async def list_movies(catalog: CatalogService = Depends(get_catalog)):
    return await catalog.list_movies()


@router.get("/movies/{movie_id}", response_model=MovieDetail, tags=["Movies"])
async def get_movie(movie_id: str, catalog: CatalogService = Depends(get_catalog)):
    movie = await catalog.get_movie(movie_id)
    if movie is None:
        return _not_found("Movie")
    return movie


@router.post("/movies", status_code=201, tags=["Movies"])
async def create_movie(payload: MovieCreate, catalog: CatalogService = Depends(get_catalog)):
    movie = await catalog.create_movie(payload)
    return {"message": "Movie Created", "movie": movie.model_dump()}


@router.put("/movies/{movie_id}", response_model=Movie, tags=["Movies"])
async def update_movie(
    movie_id: str,
    payload: MovieUpdate,
    catalog: CatalogService = Depends(get_catalog),
):
    movie = await catalog.update_movie(movie_id, payload)
    if movie is None:
        return _not_found("Movie")
    return movie


@router.delete("/movies/{movie_id}", tags=["Movies"])
async def delete_movie(movie_id: str, catalog: CatalogService = Depends(get_catalog)):
    if await catalog.delete_movie(movie_id) is None:
        return _not_found("Movie")
    return {"message": "Movie deleted"}


# ═══════════════ GENRES ═══════════════

@router.get("/genres", response_model=list[Genre], tags=["Genres"])
async def list_genres(catalog: CatalogService = Depends(get_catalog)):
    return await catalog.list_genres()


@router.get("/genres-movies", response_model=list[GenreWithMovies], tags=["Genres"])
async def list_genres_with_movies(catalog: CatalogService = Depends(get_catalog)):
    return await catalog.list_genres_with_movies()


@router.get("/genres/{genre_id}", response_model=Genre, tags=["Genres"])
async def get_genre(genre_id: str, catalog: CatalogService = Depends(get_catalog)):
    genre = await catalog.get_genre(genre_id)
    if genre is None:
        return _not_found("Genre")
    return genre


@router.get("/genres/{genre_id}/movies", response_model=list[Movie], tags=["Genres"])
async def get_genre_movies(genre_id: str, catalog: CatalogService = Depends(get_catalog)):
    movies = await catalog.get_genre_movies(genre_id)
    if movies is None:
        return _not_found("Genre")
    return movies


@router.post("/genres", status_code=201, tags=["Genres"])
async def create_genre(payload: GenreCreate, catalog: CatalogService = Depends(get_catalog)):
    genre = await catalog.create_genre(payload)
    return {"message": "Genre Created", "genre": genre.model_dump()}


@router.delete("/genres/{genre_id}", tags=["Genres"])
async def delete_genre(genre_id: str, catalog: CatalogService = Depends(get_catalog)):
    if await catalog.delete_genre(genre_id) is None:
        return _not_found("Genre")
    return {"message": "Genre deleted"}
