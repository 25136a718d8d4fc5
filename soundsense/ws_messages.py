"""
Formato das mensagens WebSocket: {"type": ..., "payload": {...}}
"""
import json
from typing import Any, Dict, Optional, Tuple

# Tamanho máximo de uma mensagem bruta (bytes)
_MAX_RAW_MESSAGE_SIZE = 8192

# Campos aceitos por tipo de mensagem do cliente
_CLIENT_PAYLOAD_FIELDS: Dict[str, Tuple[str, ...]] = {
    "volume": ("channel", "value"),
    "load_soundpack": ("path",),
    "load_gamelog": ("path",),
    "sound_ended": ("sound_id",),
}


def make_message(message_type: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "type": message_type,
        "payload": payload or {},
    }


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def parse_message(raw: str) -> Optional[Dict[str, Any]]:
    """Valida uma mensagem do cliente.

    Aceita os campos dentro de "payload" ou soltos no topo da mensagem.
    Campos desconhecidos ou não escalares são descartados; a validação dos
    valores fica com cada handler.

    Returns:
        {"type", "payload"} ou None se a mensagem for inválida
    """
    if len(raw) > _MAX_RAW_MESSAGE_SIZE:
        return None

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    message_type = data.get("type")
    fields = _CLIENT_PAYLOAD_FIELDS.get(message_type) if isinstance(message_type, str) else None
    if fields is None:
        return None

    source = data.get("payload", data)
    if not isinstance(source, dict):
        return None

    payload = {key: source[key] for key in fields if key in source and _is_scalar(source[key])}
    return make_message(message_type, payload)
