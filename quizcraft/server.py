"""
HTTP server for QuizCraft: question set discovery, raw set files and the
name-normalizing questions endpoint.
"""
import asyncio
import logging
import os
from typing import Optional

from aiohttp import web

from .errors import MalformedPayloadError, QuestionSetNotFoundError
from .registry import QuestionSetRegistry


logger = logging.getLogger(__name__)

REGISTRY_KEY = web.AppKey("registry", QuestionSetRegistry)


async def handle_ping(_: web.Request) -> web.Response:
    return web.json_response({"message": os.getenv("PING_MESSAGE", "ping")})


async def handle_question_sets(request: web.Request) -> web.Response:
    """List question sets as [{filename, title}]."""
    registry = request.app[REGISTRY_KEY]
    try:
        sets = registry.list_sets()
    except Exception as e:
        logger.error(f"Error loading question sets: {e}")
        return web.json_response({"error": "Failed to load question sets"}, status=500)
    return web.json_response([s.to_dict() for s in sets])


async def handle_get_questions(request: web.Request) -> web.Response:
    """Serve a question set by name, matching case- and whitespace-insensitively."""
    filename = request.query.get("file")
    if not filename:
        return web.json_response({"error": "File parameter is required"}, status=400)

    registry = request.app[REGISTRY_KEY]
    try:
        payload = registry.load_set(filename)
    except QuestionSetNotFoundError:
        return web.json_response({"error": "Question set not found"}, status=404)
    except (MalformedPayloadError, OSError) as e:
        logger.error(f"Error serving questions for {filename}: {e}")
        return web.json_response({"error": "Failed to load questions"}, status=500)
    return web.json_response(payload)


async def handle_static_file(request: web.Request) -> web.StreamResponse:
    """Serve a file from the question directory by its exact name."""
    registry = request.app[REGISTRY_KEY]
    directory = registry.find_directory()
    filename = os.path.basename(request.match_info["filename"])
    if directory is None or not filename or filename.startswith("."):
        raise web.HTTPNotFound()

    path = directory / filename
    if not path.is_file():
        raise web.HTTPNotFound()
    return web.FileResponse(path)


def create_app(registry: Optional[QuestionSetRegistry] = None) -> web.Application:
    """
    Build the QuizCraft web application.

    Args:
        registry: Registry to serve from; defaults to the standard directories

    Returns:
        Configured aiohttp Application
    """
    app = web.Application()
    app[REGISTRY_KEY] = registry if registry is not None else QuestionSetRegistry()

    app.router.add_get("/api/ping", handle_ping)
    app.router.add_get("/api/question-sets", handle_question_sets)
    app.router.add_get("/api/questions", handle_get_questions)
    app.router.add_get("/question-sets.json", handle_question_sets)
    app.router.add_get("/{filename}", handle_static_file)
    return app


async def run_server(app: web.Application, host: str, port: int, stop_event: Optional[asyncio.Event] = None) -> None:
    """
    Serve the application until ``stop_event`` is set (or forever).

    Args:
        app: Application from create_app
        host: Bind address
        port: Bind port
        stop_event: Optional event that shuts the server down when set
    """
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
        logger.info(f"QuizCraft server listening on http://{host}:{port}")
        await (stop_event or asyncio.Event()).wait()
    finally:
        await runner.cleanup()
        logger.info("QuizCraft server stopped")
