from contextlib import asynccontextmanager
from fastapi import FastAPI, WebSocket, Request
from fastapi.responses import FileResponse, JSONResponse
from .ws import websocket_endpoint, service
from .logger import get_current_log_file_path, get_logger
from .config import DEBUG_API_SECRET, GAMELOG_PATH, SOUNDPACK_PATH, WS_CLOSE_CODES

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app):
    logger.info(f"Log file: {get_current_log_file_path()}")
    # Startup: soundpack inválido aborta a inicialização
    if SOUNDPACK_PATH:
        service.load_soundpack(SOUNDPACK_PATH)
    await service.start()
    logger.info("Service started")
    if GAMELOG_PATH:
        await service.load_gamelog(GAMELOG_PATH)

    yield

    # Shutdown
    await service.stop()
    logger.info("Service stopped")


app = FastAPI(lifespan=lifespan)


def _check_debug_auth(request: Request) -> bool:
    """Verifica se o request tem autorização para acessar endpoints de debug.
    Se DEBUG_API_SECRET estiver vazio, permite acesso (dev mode)."""
    if not DEBUG_API_SECRET:
        return True
    return request.headers.get("X-Debug-Secret") == DEBUG_API_SECRET


@app.get("/api/channels")
def channels_status(request: Request):
    """Retorna canais e sons ativos (útil para debug)"""
    if not _check_debug_auth(request):
        return JSONResponse(status_code=403, content={"error": "Forbidden"})

    engine = service.engine
    if engine is None:
        return {"soundpack": None, "channels": [], "active": 0}

    channels = []
    for name in engine.channel_names:
        channel = engine.channel(name)
        loop = channel.current_loop
        channels.append({
            "name": name,
            "volume": channel.volume,
            "active": channel.active_count(),
            "loop": loop.describe() if loop else None,
        })

    return {
        "soundpack": str(service.soundpack_path),
        "master_volume": engine.master_volume,
        "active": engine.active_count,
        "channels": channels,
    }


@app.get("/sounds/{sound_path:path}")
def sound_file(sound_path: str):
    """Arquivos de áudio do soundpack ativo (caminhos das mensagens 'sound')"""
    path = service.sound_file(sound_path)
    if path is None:
        return JSONResponse(status_code=404, content={"error": "Not found"})
    return FileResponse(path)


@app.websocket("/ws")
async def websocket_route(websocket: WebSocket):
    try:
        await websocket_endpoint(websocket)
    except Exception as e:
        logger.exception(f"WebSocket error during handshake: {e}")
        try:
            await websocket.close(code=WS_CLOSE_CODES["internal_error"], reason="Internal server error")
        except RuntimeError:
            pass


@app.get("/health")
def health_check():
    """Health check público"""
    return {
        "status": "ok",
        "soundpack": service.engine is not None,
        "gamelog": service.watcher is not None,
        "clients": len(service.broadcaster.websocket_clients),
    }
