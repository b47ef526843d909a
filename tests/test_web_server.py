"""HTTP API постов."""
import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from models.post import get_all_posts, insert_post
from services.photo_acquirer import storage_name
from services.web_server import create_app

ORIGIN = "http://localhost:3000"


@pytest_asyncio.fixture
async def client(db, acquirer, assembler):
    app = create_app(acquirer, assembler, cors_origin=ORIGIN)
    async with TestClient(TestServer(app)) as client:
        yield client


@pytest.mark.asyncio
async def test_list_posts(client):
    resp = await client.get("/posts")
    assert resp.status == 200
    assert await resp.json() == []

    post = await insert_post(["a.jpg", "b.jpg"], "hello")
    resp = await client.get("/posts")
    assert await resp.json() == [post.to_dict()]


@pytest.mark.asyncio
async def test_new_post_from_refs(client):
    resp = await client.post("/newpost", json={"photoRefs": ["P1", "P2"], "caption": "api"})

    assert resp.status == 201
    body = await resp.json()
    assert body["photo_paths"] == [storage_name("P1"), storage_name("P2")]
    assert body["caption"] == "api"
    assert len(await get_all_posts()) == 1


@pytest.mark.asyncio
async def test_new_post_accepts_legacy_photo_path(client):
    resp = await client.post("/newpost", json={"photoPath": "P1", "caption": "old client"})

    assert resp.status == 201
    assert (await resp.json())["photo_paths"] == [storage_name("P1")]


@pytest.mark.asyncio
async def test_new_post_partial_failure(client, fetcher):
    fetcher.failing.add("P2")

    resp = await client.post("/newpost", json={"photoRefs": ["P1", "P2", "P3"], "caption": ""})

    assert resp.status == 201
    assert (await resp.json())["photo_paths"] == [storage_name("P1"), storage_name("P3")]


@pytest.mark.asyncio
async def test_new_post_all_failed(client, fetcher):
    fetcher.failing.update({"P1", "P2"})

    resp = await client.post("/newpost", json={"photoRefs": ["P1", "P2"], "caption": "x"})

    assert resp.status == 422
    body = await resp.json()
    assert body["status"] == "empty_batch"
    assert len(body["errors"]) == 2
    assert await get_all_posts() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"caption": "no refs"},
    {"photoRefs": [], "caption": "empty"},
    {"photoRefs": ["P1", ""], "caption": "blank ref"},
    {"photoRefs": ["P1"], "caption": 5},
    ["not", "an", "object"],
])
async def test_new_post_rejects_bad_payload(client, payload):
    resp = await client.post("/newpost", json=payload)

    assert resp.status == 400


@pytest.mark.asyncio
async def test_new_post_rejects_bad_json(client):
    resp = await client.post("/newpost", data="{not json", headers={"Content-Type": "application/json"})

    assert resp.status == 400
    assert (await resp.json())["status"] == "bad_json"


@pytest.mark.asyncio
async def test_delete_post(client):
    post = await insert_post(["a.jpg"], "bye")

    resp = await client.delete(f"/posts/{post.id}")
    assert resp.status == 200

    resp = await client.delete(f"/posts/{post.id}")
    assert resp.status == 404


@pytest.mark.asyncio
async def test_get_photo(client, acquirer):
    storage_id = await acquirer.acquire("P1", "u1")

    resp = await client.get(f"/photos/{storage_id}")
    assert resp.status == 200
    assert await resp.read() == b"bytes:P1"

    resp = await client.get("/photos/missing")
    assert resp.status == 404


@pytest.mark.asyncio
async def test_cors_headers(client):
    resp = await client.get("/posts")
    assert resp.headers["Access-Control-Allow-Origin"] == ORIGIN

    resp = await client.options("/newpost")
    assert resp.status == 200
    assert "POST" in resp.headers["Access-Control-Allow-Methods"]

    resp = await client.get("/nowhere")
    assert resp.status == 404
    assert resp.headers["Access-Control-Allow-Origin"] == ORIGIN


@pytest.mark.asyncio
async def test_get_single_post(client):
    post = await insert_post(["a.jpg", "b.jpg"], "one")

    resp = await client.get(f"/posts/{post.id}")
    assert resp.status == 200
    assert await resp.json() == post.to_dict()

    resp = await client.get(f"/posts/{post.id + 1}")
    assert resp.status == 404


@pytest.mark.asyncio
async def test_out_of_range_id_is_not_found(client):
    huge = "99999999999999999999"

    resp = await client.delete(f"/posts/{huge}")
    assert resp.status == 404
    assert (await resp.json())["status"] == "not_found"

    resp = await client.get(f"/posts/{huge}")
    assert resp.status == 404
