"""
HTTP API постов для фронтенда.

GET    /posts             — список постов
GET    /posts/{id}        — один пост
POST  /newpost           — пост из пачки ссылок на фото {"photoRefs": [...], "caption": "..."}
DELETE /posts/{id}        — удалить пост
GET    /photos/{photo_id} — файл фото
"""
import json
from aiohttp import web

from errors import EmptyBatchError, StoreWriteError
from models.post import get_all_posts, get_post, delete_post
from services.photo_acquirer import PhotoAcquirer
from services.post_assembler import PostAssembler
from utils.logger import log_error

ACQUIRER_KEY = web.AppKey("acquirer", PhotoAcquirer)
ASSEMBLER_KEY = web.AppKey("assembler", PostAssembler)
CORS_ORIGIN_KEY = web.AppKey("cors_origin", str)

_runner: web.AppRunner | None = None


def _cors_headers(origin: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }


@web.middleware
async def _cors_middleware(request: web.Request, handler):
    headers = _cors_headers(request.app[CORS_ORIGIN_KEY])
    if request.method == "OPTIONS":
        return web.Response(headers=headers)
    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(headers)
        raise
    response.headers.update(headers)
    return response


async def _handle_list(request: web.Request) -> web.Response:
    posts = await get_all_posts()
    return web.json_response([p.to_dict() for p in posts])


async def _handle_get(request: web.Request) -> web.Response:
    post = await get_post(int(request.match_info["post_id"]))
    if post is None:
        return web.json_response({"status": "not_found"}, status=404)
    return web.json_response(post.to_dict())


def _parse_refs(data: dict) -> list[str] | None:
    """Ссылки на фото из тела запроса. Старый формат — одна photoPath."""
    refs = data.get("photoRefs")
    if refs is None and data.get("photoPath"):
        refs = [data["photoPath"]]
    if not isinstance(refs, list) or not refs:
        return None
    if not all(isinstance(r, str) and r.strip() for r in refs):
        return None
    return [r.strip() for r in refs]


async def _handle_new_post(request: web.Request) -> web.Response:
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return web.json_response({"status": "bad_json"}, status=400)
    if not isinstance(data, dict):
        return web.json_response({"status": "bad_json"}, status=400)

    refs = _parse_refs(data)
    caption = data.get("caption", "")
    if refs is None or not isinstance(caption, str):
        return web.json_response(
            {"status": "missing_fields", "error": "Нужно передать photoRefs и caption"},
            status=400,
        )

    assembler = request.app[ASSEMBLER_KEY]
    try:
        post = await assembler.submit_batch(request.app[ACQUIRER_KEY], refs, caption)
    except EmptyBatchError as e:
        return web.json_response(
            {"status": "empty_batch", "errors": [str(f) for f in e.failures]},
            status=422,
        )
    except StoreWriteError as e:
        await log_error(f"HTTP /newpost: {e}")
        return web.json_response(
            {"status": "store_error", "error": "Ошибка при сохранении поста в базе данных"},
            status=500,
        )

    print(f"[HTTP] Новый пост #{post.id}: фото={len(post.photo_paths)}")
    return web.json_response(post.to_dict(), status=201)


async def _handle_delete(request: web.Request) -> web.Response:
    post_id = int(request.match_info["post_id"])
    if not await delete_post(post_id):
        return web.json_response({"status": "not_found"}, status=404)
    print(f"[HTTP] Пост #{post_id} удалён")
    return web.json_response({"status": "deleted", "id": post_id})


async def _handle_photo(request: web.Request) -> web.StreamResponse:
    path = request.app[ACQUIRER_KEY].photo_path(request.match_info["photo_id"])
    if path is None:
        return web.json_response({"status": "not_found", "error": "Изображение не найдено"}, status=404)
    return web.FileResponse(path)


def create_app(acquirer: PhotoAcquirer, assembler: PostAssembler,
               cors_origin: str = "*") -> web.Application:
    app = web.Application(middlewares=[_cors_middleware])
    app[ACQUIRER_KEY] = acquirer
    app[ASSEMBLER_KEY] = assembler
    app[CORS_ORIGIN_KEY] = cors_origin

    app.router.add_get("/posts", _handle_list)
    app.router.add_get(r"/posts/{post_id:\d+}", _handle_get)
    app.router.add_post("/newpost", _handle_new_post)
    app.router.add_delete(r"/posts/{post_id:\d+}", _handle_delete)
    app.router.add_get("/photos/{photo_id}", _handle_photo)
    return app


async def start_web_server(acquirer: PhotoAcquirer, assembler: PostAssembler,
                           host: str = "0.0.0.0", port: int = 3001,
                           cors_origin: str = "*"):
    """Запускает HTTP API."""
    global _runner

    app = create_app(acquirer, assembler, cors_origin)
    _runner = web.AppRunner(app)
    await _runner.setup()

    site = web.TCPSite(_runner, host, port)
    try:
        await site.start()
        print(f"[STARTUP] HTTP API запущен на {host}:{port}")
    except OSError as e:
        print(f"[STARTUP] HTTP API: не удалось запустить на {host}:{port} — {e}")
        await _runner.cleanup()
        _runner = None


async def stop_web_server():
    """Останавливает HTTP API."""
    global _runner
    if _runner:
        await _runner.cleanup()
        _runner = None
        print("[SHUTDOWN] HTTP API остановлен")
