from fastapi import WebSocket, WebSocketDisconnect

from .service import SoundsenseService
from .ws_handlers import HANDLERS
from .ws_messages import make_message, parse_message
from .logger import get_logger

# Estado global da aplicação
service = SoundsenseService()
logger = get_logger("ws")


async def websocket_endpoint(ws: WebSocket, service: SoundsenseService = service):
    """Endpoint WebSocket - controle da UI e notificações do engine"""
    await ws.accept()
    logger.debug("WebSocket accepted")

    service.broadcaster.add_websocket(ws)
    try:
        # Cliente novo recebe a lista de canais atual
        if service.broadcaster.last_channels is not None:
            await ws.send_json(service.broadcaster.last_channels)
        await ws.send_json(make_message("init_ok", {
            "soundpack": str(service.soundpack_path) if service.soundpack_path else None,
            "gamelog": str(service.watcher.path) if service.watcher else None,
        }))

        # Loop de mensagens
        while True:
            raw = await ws.receive_text()
            message = parse_message(raw)
            if message is None:
                logger.warning("Invalid message received")
                await ws.send_json(make_message("error", {"message": "Mensagem inválida"}))
                continue

            logger.debug(f"Received '{message['type']}' message")
            handler = HANDLERS[message["type"]]
            await handler(service, ws, message["payload"])

    except WebSocketDisconnect as e:
        logger.info(f"WebSocket disconnected (code: {e.code})")
    except Exception as e:
        logger.exception(f"WebSocket error: {e}")
    finally:
        service.broadcaster.remove_websocket(ws)
