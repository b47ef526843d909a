"""
База данных SQLite — создание таблицы постов и общее соединение.
Использует единое разделяемое соединение с WAL-mode для конкурентного доступа.
"""
import asyncio
import json
import aiosqlite

import config

_db_path: str = config.DB_PATH

# Единое разделяемое соединение
_shared_db: aiosqlite.Connection | None = None

# Запись + commit/rollback на общем соединении — только под этим локом,
# иначе rollback одной вставки откатит чужую незакоммиченную
_write_lock: asyncio.Lock | None = None


async def init_db(path: str | None = None):
    """Создаёт таблицу posts если её нет и открывает shared-соединение."""
    global _shared_db, _db_path

    if path:
        _db_path = path
    if _shared_db is not None:
        await close_db()

    async with aiosqlite.connect(_db_path) as db:
        await db.executescript("""
            CREATE TABLE IF NOT EXISTS posts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                photo_paths TEXT NOT NULL DEFAULT '[]',
                caption TEXT NOT NULL DEFAULT ''
            );
        """)
        await db.commit()

        # Миграция: старая схема хранила одно фото в колонке photo_path
        try:
            await db.execute("ALTER TABLE posts ADD COLUMN photo_paths TEXT NOT NULL DEFAULT '[]'")
            await db.commit()
        except aiosqlite.OperationalError as e:
            if "duplicate column" not in str(e).lower():
                raise

        cursor = await db.execute("PRAGMA table_info(posts)")
        columns = {row[1] for row in await cursor.fetchall()}
        if "photo_path" in columns:
            # Пост без фото в новой схеме невозможен — такие записи удаляем
            cursor = await db.execute(
                "DELETE FROM posts WHERE photo_paths = '[]' "
                "AND (photo_path IS NULL OR TRIM(photo_path) = '')"
            )
            if cursor.rowcount > 0:
                print(f"[STARTUP] Миграция: удалено {cursor.rowcount} постов без фото")

            cursor = await db.execute(
                "SELECT id, photo_path FROM posts WHERE photo_paths = '[]' AND photo_path IS NOT NULL"
            )
            legacy = await cursor.fetchall()
            for post_id, photo_path in legacy:
                await db.execute(
                    "UPDATE posts SET photo_paths = ? WHERE id = ?",
                    (json.dumps([photo_path], ensure_ascii=False), post_id),
                )
            await db.commit()
            if legacy:
                print(f"[STARTUP] Миграция: {len(legacy)} постов переведено на photo_paths")

    await get_db()

    print("✅ База данных инициализирована")


async def get_db() -> aiosqlite.Connection:
    """Возвращает shared-соединение с БД. НЕ закрывайте его!"""
    global _shared_db, _write_lock
    if _shared_db is None:
        # Открываем shared-соединение с WAL-mode
        _shared_db = await aiosqlite.connect(_db_path)
        _shared_db.row_factory = aiosqlite.Row
        await _shared_db.execute("PRAGMA journal_mode=WAL")
        _write_lock = asyncio.Lock()
    return _shared_db


async def get_write_lock() -> asyncio.Lock:
    """Лок записи для shared-соединения (создаётся вместе с ним)."""
    await get_db()
    return _write_lock


async def close_db():
    """Закрывает shared-соединение. Вызывать при остановке бота."""
    global _shared_db, _write_lock
    if _shared_db:
        await _shared_db.close()
        _shared_db = None
        _write_lock = None
