"""
API HTTP de consultation des lobbies (aiohttp).

Routes :
- GET /, /server                    : version, nombre de guildes, nombre de lobbies en cours
- GET /server/guilds                : guildes du bot
- GET /server/lobbies               : instantané de tous les lobbies
- GET /lobby/{voice_channel_id}     : instantané d'un lobby
- GET|POST /lobby/{voice_channel_id}/{player_id}/kill : tue un joueur

Les erreurs sont renvoyées en JSON `{"status", "message"}`.
L'authentification est gérée en amont (reverse proxy).
"""
from __future__ import annotations

import logging

import discord
from aiohttp import web

from core.exceptions import LobbyNotFound, NotFoundError, PlayerNotFound, ValidationError

logger = logging.getLogger(__name__)

BOT_KEY = web.AppKey("bot", discord.Client)
VERSION_KEY = web.AppKey("version", str)

routes = web.RouteTableDef()


def _json_error(status: int, message: str) -> web.Response:
    return web.json_response({"status": status, "message": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPNotFound:
        return _json_error(404, "Aucun point d'API de ce type.")
    except web.HTTPException as exc:
        if exc.status < 400:
            raise
        return _json_error(exc.status, exc.reason)
    except NotFoundError as exc:
        return _json_error(404, str(exc))
    except ValidationError as exc:
        return _json_error(400, str(exc))
    except Exception:  # noqa: BLE001
        logger.exception("Erreur API %s %s", request.method, request.path)
        return _json_error(500, "Erreur interne.")


def _lobby(request: web.Request):
    bot = request.app[BOT_KEY]
    raw = request.match_info["voice_channel_id"]
    try:
        voice_channel_id = int(raw)
    except ValueError:
        raise LobbyNotFound(raw) from None
    lobby = bot.lobbies.get(voice_channel_id)
    if lobby is None:
        raise LobbyNotFound(voice_channel_id)
    if lobby.voice_channel is None:
        lobby.voice_channel = bot.get_channel(voice_channel_id)
    return lobby


@routes.get("/")
@routes.get("/server")
async def server_info(request: web.Request) -> web.Response:
    bot = request.app[BOT_KEY]
    return web.json_response({
        "version": request.app[VERSION_KEY],
        "guilds_supported": len(bot.guilds),
        "lobbies_in_progress": bot.lobbies.count(),
    })


@routes.get("/server/guilds")
async def server_guilds(request: web.Request) -> web.Response:
    bot = request.app[BOT_KEY]
    return web.json_response([
        {"id": str(guild.id), "name": guild.name, "member_count": guild.member_count}
        for guild in bot.guilds
    ])


@routes.get("/server/lobbies")
async def server_lobbies(request: web.Request) -> web.Response:
    bot = request.app[BOT_KEY]
    return web.json_response([lobby.to_dict() for lobby in bot.lobbies.lobbies()])


@routes.get("/lobby/{voice_channel_id}")
async def lobby_detail(request: web.Request) -> web.Response:
    return web.json_response(_lobby(request).to_dict())


@routes.get("/lobby/{voice_channel_id}/{player_id}/kill")
@routes.post("/lobby/{voice_channel_id}/{player_id}/kill")
async def lobby_kill(request: web.Request) -> web.Response:
    lobby = _lobby(request)
    raw = request.match_info["player_id"]
    try:
        player_id = int(raw)
    except ValueError:
        raise PlayerNotFound(raw) from None
    member = await lobby.fetch_member(player_id)
    if member is None or member.bot:
        raise PlayerNotFound(player_id)
    player = await lobby.kill_player(member)
    return web.json_response(player.to_dict())


def create_app(bot, *, version: str = "Unreleased") -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[BOT_KEY] = bot
    app[VERSION_KEY] = version
    app.add_routes(routes)
    return app


async def start_api(bot, host: str, port: int, *, version: str = "Unreleased") -> web.AppRunner:
    runner = web.AppRunner(create_app(bot, version=version))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("API HTTP démarrée sur %s:%s", host, port)
    return runner


__all__ = ["create_app", "start_api", "routes"]
