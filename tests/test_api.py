"""End-to-end API tests — the FastAPI app over the in-memory store and cache."""

import pytest


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestMoviesEndpoint:
    @pytest.mark.asyncio
    async def test_create_movie(self, client, movie_payload):
        resp = await client.post("/api/movies", json=movie_payload)
        assert resp.status_code == 201
        data = resp.json()
        assert data["message"] == "Movie Created"
        assert data["movie"]["id"]
        assert data["movie"]["rating"] == "9.3"
        assert data["movie"]["actors"] == ["Tim Robbins", "Morgan Freeman"]

    @pytest.mark.asyncio
    async def test_create_missing_field_is_400(self, client, movie_payload, store):
        del movie_payload["director"]
        resp = await client.post("/api/movies", json=movie_payload)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid data"}
        assert store.calls["create_movie"] == 0

    @pytest.mark.asyncio
    async def test_create_empty_actor_is_400(self, client, movie_payload):
        movie_payload["actors"] = ["Tim Robbins", ""]
        resp = await client.post("/api/movies", json=movie_payload)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_create_malformed_genre_id_is_400(self, client, movie_payload):
        movie_payload["genres"] = ["not-an-id"]
        resp = await client.post("/api/movies", json=movie_payload)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_list_movies_cached_until_write(self, client, movie_payload, store):
        await client.post("/api/movies", json=movie_payload)
        first = await client.get("/api/movies")
        second = await client.get("/api/movies")
        assert first.status_code == 200
        assert first.content == second.content
        assert store.calls["find_movies"] == 1

        await client.post("/api/movies", json={**movie_payload, "name": "The Green Mile"})
        third = await client.get("/api/movies")
        assert len(third.json()) == 2
        assert store.calls["find_movies"] == 2

    @pytest.mark.asyncio
    async def test_get_movie(self, client, movie_payload):
        created = (await client.post("/api/movies", json=movie_payload)).json()["movie"]
        resp = await client.get(f"/api/movies/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["name"] == "The Shawshank Redemption"
        assert resp.json()["genres"] == []

    @pytest.mark.asyncio
    async def test_get_movie_not_found_every_time(self, client, store):
        for _ in range(2):
            resp = await client.get("/api/movies/6500000000000000000000aa")
            assert resp.status_code == 404
            assert resp.json() == {"error": "Movie not found"}
        assert store.calls["find_movie"] == 2

    @pytest.mark.asyncio
    async def test_update_movie(self, client, movie_payload):
        created = (await client.post("/api/movies", json=movie_payload)).json()["movie"]
        resp = await client.put(f"/api/movies/{created['id']}", json={"imbdrating": "9.4"})
        assert resp.status_code == 200
        assert resp.json()["rating"] == "9.4"
        assert resp.json()["director"] == "Frank Darabont"

        listed = (await client.get("/api/movies")).json()
        assert listed[0]["rating"] == "9.4"

    @pytest.mark.asyncio
    async def test_update_missing_movie(self, client):
        resp = await client.put("/api/movies/missing", json={"name": "x"})
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_update_invalid_payload(self, client, movie_payload):
        created = (await client.post("/api/movies", json=movie_payload)).json()["movie"]
        resp = await client.put(f"/api/movies/{created['id']}", json={"name": ""})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_movie(self, client, movie_payload):
        created = (await client.post("/api/movies", json=movie_payload)).json()["movie"]
        await client.get("/api/movies")

        resp = await client.delete(f"/api/movies/{created['id']}")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Movie deleted"}
        assert (await client.get("/api/movies")).json() == []
        assert (await client.get(f"/api/movies/{created['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_missing_movie(self, client):
        resp = await client.delete("/api/movies/missing")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_store_failure_is_500(self, client, store):
        store.failing.add("find_movies")
        resp = await client.get("/api/movies")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal Server Error"}


class TestGenresEndpoint:
    @pytest.mark.asyncio
    async def test_genre_lifecycle(self, client):
        resp = await client.post("/api/genres", json={"name": "Drama"})
        assert resp.status_code == 201
        genre = resp.json()["genre"]
        assert resp.json()["message"] == "Genre Created"
        assert genre["id"]

        resp = await client.get(f"/api/genres/{genre['id']}")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Drama"

        resp = await client.delete(f"/api/genres/{genre['id']}")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Genre deleted"}

        resp = await client.get(f"/api/genres/{genre['id']}")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Genre not found"}

    @pytest.mark.asyncio
    async def test_create_genre_without_name(self, client, store):
        resp = await client.post("/api/genres", json={})
        assert resp.status_code == 400
        assert store.calls["create_genre"] == 0

    @pytest.mark.asyncio
    async def test_list_genres_byte_identical(self, client):
        await client.post("/api/genres", json={"name": "Drama"})
        await client.post("/api/genres", json={"name": "Comedy"})
        first = await client.get("/api/genres")
        second = await client.get("/api/genres")
        assert first.status_code == 200
        assert first.content == second.content
        assert [g["name"] for g in first.json()] == ["Drama", "Comedy"]

    @pytest.mark.asyncio
    async def test_movie_create_links_genre(self, client, movie_payload, catalog):
        genre = (await client.post("/api/genres", json={"name": "Drama"})).json()["genre"]
        await client.get("/api/genres-movies")

        movie = (await client.post(
            "/api/movies", json={**movie_payload, "genres": [genre["id"]]},
        )).json()["movie"]
        assert movie["genres"] == [genre["id"]]

        # Derived view is refreshed only after manual invalidation
        stale = (await client.get("/api/genres-movies")).json()
        assert stale[0]["movies"] == []
        await catalog.cache.invalidate("genres:all-with-movies")
        fresh = (await client.get("/api/genres-movies")).json()
        assert [m["id"] for m in fresh[0]["movies"]] == [movie["id"]]

        detail = (await client.get(f"/api/movies/{movie['id']}")).json()
        assert detail["genres"][0]["name"] == "Drama"

    @pytest.mark.asyncio
    async def test_genre_movies(self, client, movie_payload):
        genre = (await client.post("/api/genres", json={"name": "Drama"})).json()["genre"]
        await client.post("/api/movies", json={**movie_payload, "genres": [genre["id"]]})
        resp = await client.get(f"/api/genres/{genre['id']}/movies")
        assert resp.status_code == 200
        assert [m["name"] for m in resp.json()] == ["The Shawshank Redemption"]

    @pytest.mark.asyncio
    async def test_genre_movies_missing_genre(self, client):
        resp = await client.get("/api/genres/missing/movies")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_missing_genre(self, client):
        resp = await client.delete("/api/genres/missing")
        assert resp.status_code == 404
