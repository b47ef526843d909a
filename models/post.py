"""
CRUD-операции с постами.

Пост неизменяем: создаётся одной вставкой, читается списком, удаляется по id.
photo_paths хранится в базе JSON-массивом, порядок фото сохраняется.
"""
import json
from dataclasses import dataclass

import aiosqlite

from database import get_db, get_write_lock
from errors import StoreWriteError

# Больше id в SQLite INTEGER не бывает
MAX_POST_ID = 2**63 - 1


@dataclass(frozen=True)
class Post:
    id: int
    photo_paths: tuple[str, ...]
    caption: str

    @classmethod
    def from_row(cls, row) -> "Post":
        raw = row["photo_paths"] or "[]"
        return cls(
            id=row["id"],
            photo_paths=tuple(json.loads(raw)),
            caption=row["caption"] or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "photo_paths": list(self.photo_paths),
            "caption": self.caption,
        }


def _valid_id(post_id: int) -> bool:
    return 0 < post_id <= MAX_POST_ID


async def insert_post(photo_paths: list[str], caption: str) -> Post:
    """Создаёт пост, возвращает его с присвоенным id.

    Либо записывается весь список фото с подписью, либо ничего (StoreWriteError).
    """
    paths = list(photo_paths)
    if not paths:
        raise ValueError("пост должен содержать хотя бы одно фото")
    caption = caption or ""

    db = await get_db()
    async with await get_write_lock():
        try:
            cursor = await db.execute(
                "INSERT INTO posts (photo_paths, caption) VALUES (?, ?)",
                (json.dumps(paths, ensure_ascii=False), caption),
            )
            await db.commit()
        except aiosqlite.Error as e:
            try:
                await db.rollback()
            except aiosqlite.Error as rollback_error:
                print(f"[POST] Откат не удался: {rollback_error}")
            raise StoreWriteError(f"не удалось сохранить пост: {e}") from e

    return Post(id=cursor.lastrowid, photo_paths=tuple(paths), caption=caption)


async def get_all_posts() -> list[Post]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT id, photo_paths, caption FROM posts WHERE photo_paths != '[]' ORDER BY id"
    )
    rows = await cursor.fetchall()
    return [Post.from_row(r) for r in rows]


async def get_post(post_id: int) -> Post | None:
    if not _valid_id(post_id):
        return None
    db = await get_db()
    cursor = await db.execute(
        "SELECT id, photo_paths, caption FROM posts WHERE id = ? AND photo_paths != '[]'",
        (post_id,),
    )
    row = await cursor.fetchone()
    return Post.from_row(row) if row else None


async def delete_post(post_id: int) -> bool:
    """Удаляет пост. Возвращает True если запись была и удалена."""
    if not _valid_id(post_id):
        return False
    db = await get_db()
    async with await get_write_lock():
        cursor = await db.execute("DELETE FROM posts WHERE id = ?", (post_id,))
        await db.commit()
    return cursor.rowcount > 0
