import os
from typing import Dict, Final, Optional

# Soundpack e gamelog (podem ser trocados em runtime via websocket)
SOUNDPACK_PATH: Final[Optional[str]] = os.environ.get("SOUNDPACK_PATH") or None
GAMELOG_PATH: Final[Optional[str]] = os.environ.get("GAMELOG_PATH") or None
# O gamelog do Dwarf Fortress é gravado em cp437
GAMELOG_ENCODING: Final[str] = os.environ.get("GAMELOG_ENCODING", "cp437")

# Loop do watcher
GAMELOG_POLL_INTERVAL_SECONDS: Final[float] = float(os.environ.get("GAMELOG_POLL_INTERVAL_SECONDS", 0.1))
GAMELOG_MISSING_SLEEP_SECONDS: Final[float] = 1.0
MAINTENANCE_INTERVAL_SECONDS: Final[float] = float(os.environ.get("MAINTENANCE_INTERVAL_SECONDS", 0.1))

# Engine
DEFAULT_CHANNEL: Final[str] = "misc"
MASTER_VOLUME: Final[float] = float(os.environ.get("MASTER_VOLUME", 1.0))
# One-shot no navegador sem "sound_ended" é dado como terminado depois disso
BROWSER_ONE_SHOT_TIMEOUT_SECONDS: Final[float] = float(os.environ.get("BROWSER_ONE_SHOT_TIMEOUT_SECONDS", 30.0))

# Notificações para a UI (fila nunca bloqueia; excesso é descartado)
NOTIFY_QUEUE_MAX_SIZE: Final[int] = int(os.environ.get("NOTIFY_QUEUE_MAX_SIZE", 1024))

# Debug endpoints (secret header para proteger /api/channels)
# Vazio = sem proteção (dev mode).
DEBUG_API_SECRET: Final[str] = os.environ.get("DEBUG_API_SECRET", "")

# Códigos de fechamento WebSocket
WS_CLOSE_CODES: Final[Dict[str, int]] = {
    "internal_error": 1011,
}
