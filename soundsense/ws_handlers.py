"""
ws_handlers.py - Handlers de mensagens WebSocket
"""
from fastapi import WebSocket

from .service import SoundsenseService
from .sounds import RuleLoadError
from .ws_messages import make_message
from .logger import get_logger

logger = get_logger("ws_handlers")


async def handle_volume(service: SoundsenseService, ws: WebSocket, payload: dict) -> None:
    """Ajusta volume de um canal (ou 'all')"""
    channel = payload.get("channel", "all")
    try:
        value = float(payload.get("value"))
    except (TypeError, ValueError):
        await ws.send_json(make_message("error", {"message": "Volume inválido"}))
        return

    if not isinstance(channel, str):
        await ws.send_json(make_message("error", {"message": "Canal inválido"}))
        return

    # A UI manda 0..100
    value = max(0.0, min(1.0, value / 100.0))

    if not service.set_volume(channel, value):
        await ws.send_json(make_message("error", {"message": f"Canal desconhecido: {channel}"}))


async def handle_load_soundpack(service: SoundsenseService, ws: WebSocket, payload: dict) -> None:
    """Carrega outro soundpack; erro de configuração não derruba o atual"""
    path = payload.get("path")
    if not isinstance(path, str) or not path:
        await ws.send_json(make_message("error", {"message": "Caminho do soundpack obrigatório"}))
        return

    try:
        service.load_soundpack(path)
    except RuleLoadError as e:
        logger.error(f"Failed to load soundpack {path}: {e}")
        await ws.send_json(make_message("error", {"message": f"Falha ao carregar soundpack: {e}"}))


async def handle_load_gamelog(service: SoundsenseService, ws: WebSocket, payload: dict) -> None:
    """Troca o gamelog acompanhado"""
    path = payload.get("path")
    if not isinstance(path, str) or not path:
        await ws.send_json(make_message("error", {"message": "Caminho do gamelog obrigatório"}))
        return
    await service.load_gamelog(path)


async def handle_sound_ended(service: SoundsenseService, ws: WebSocket, payload: dict) -> None:
    """O navegador terminou de tocar um som"""
    sound_id = payload.get("sound_id")
    if not isinstance(sound_id, str):
        return
    if not service.sound_ended(sound_id):
        logger.debug(f"sound_ended for unknown sound {sound_id}")


HANDLERS = {
    "volume": handle_volume,
    "load_soundpack": handle_load_soundpack,
    "load_gamelog": handle_load_gamelog,
    "sound_ended": handle_sound_ended,
}
