"""CRUD постов в SQLite."""
import asyncio
import json

import aiosqlite
import pytest

import database
from errors import StoreWriteError
from models.post import MAX_POST_ID, Post, delete_post, get_all_posts, get_post, insert_post


@pytest.mark.asyncio
async def test_insert_assigns_increasing_ids(db):
    first = await insert_post(["a.jpg", "b.jpg"], "two photos")
    second = await insert_post(["c.jpg"], "")

    assert second.id > first.id
    assert first == Post(id=first.id, photo_paths=("a.jpg", "b.jpg"), caption="two photos")
    assert await get_all_posts() == [first, second]


@pytest.mark.asyncio
async def test_photo_paths_stored_as_json_array(db):
    post = await insert_post(["b.jpg", "a.jpg"], "порядок")

    conn = await database.get_db()
    cursor = await conn.execute("SELECT photo_paths, caption FROM posts WHERE id = ?", (post.id,))
    row = await cursor.fetchone()

    assert json.loads(row["photo_paths"]) == ["b.jpg", "a.jpg"]
    assert row["caption"] == "порядок"


@pytest.mark.asyncio
async def test_get_post(db):
    post = await insert_post(["a.jpg"], "x")

    assert await get_post(post.id) == post
    assert await get_post(post.id + 100) is None


@pytest.mark.asyncio
async def test_to_dict_shape(db):
    post = await insert_post(["a.jpg", "b.jpg"], "cap")

    assert post.to_dict() == {"id": post.id, "photo_paths": ["a.jpg", "b.jpg"], "caption": "cap"}


@pytest.mark.asyncio
async def test_delete_missing_id_returns_false(db):
    assert await delete_post(12345) is False


@pytest.mark.asyncio
async def test_delete_twice(db):
    post = await insert_post(["a.jpg"], "")

    assert await delete_post(post.id) is True
    assert await delete_post(post.id) is False
    assert await get_all_posts() == []


@pytest.mark.asyncio
async def test_insert_requires_photos(db):
    with pytest.raises(ValueError):
        await insert_post([], "no photos")


@pytest.mark.asyncio
async def test_write_failure_raises_store_error(db):
    conn = await database.get_db()
    await conn.execute("DROP TABLE posts")
    await conn.commit()

    with pytest.raises(StoreWriteError):
        await insert_post(["a.jpg"], "lost")


@pytest.mark.asyncio
async def test_legacy_single_photo_table_is_migrated(tmp_path):
    path = str(tmp_path / "legacy.db")
    async with aiosqlite.connect(path) as conn:
        await conn.execute(
            "CREATE TABLE posts (id INTEGER PRIMARY KEY AUTOINCREMENT, photo_path TEXT, caption TEXT)"
        )
        await conn.execute("INSERT INTO posts (photo_path, caption) VALUES (?, ?)", ("old.jpg", "старый"))
        await conn.execute("INSERT INTO posts (photo_path, caption) VALUES (?, ?)", (None, "без фото"))
        await conn.execute("INSERT INTO posts (photo_path, caption) VALUES (?, ?)", ("", "пустой путь"))
        await conn.commit()

    await database.init_db(path)
    try:
        posts = await get_all_posts()
        assert posts == [Post(id=1, photo_paths=("old.jpg",), caption="старый")]
        assert await get_post(2) is None

        new = await insert_post(["new.jpg"], "новый")
        assert new.id > 1
        assert await get_all_posts() == [posts[0], new]
    finally:
        await database.close_db()


@pytest.mark.asyncio
async def test_out_of_range_id(db):
    assert await delete_post(MAX_POST_ID + 1) is False
    assert await get_post(MAX_POST_ID + 1) is None


@pytest.mark.asyncio
async def test_failed_insert_does_not_roll_back_concurrent_ones(db):
    conn = await database.get_db()
    await conn.execute(
        "CREATE TRIGGER reject_bad BEFORE INSERT ON posts WHEN NEW.caption = 'bad' "
        "BEGIN SELECT RAISE(ABORT, 'rejected'); END"
    )
    await conn.commit()

    results = await asyncio.gather(
        insert_post(["a.jpg"], "good 1"),
        insert_post(["b.jpg"], "bad"),
        insert_post(["c.jpg"], "good 2"),
        return_exceptions=True,
    )

    assert isinstance(results[1], StoreWriteError)
    assert await get_all_posts() == [results[0], results[2]]
