"""
Broadcaster - fila de notificações para os clientes WebSocket

O engine chama notify() de forma síncrona; a mensagem só é enviada depois,
pela task de broadcast. notify() nunca bloqueia.
"""
import asyncio
from typing import Dict, List, Optional, Set

from fastapi import WebSocket

from .config import NOTIFY_QUEUE_MAX_SIZE
from .logger import get_logger

logger = get_logger("broadcaster")


class Broadcaster:
    """Distribui mensagens do engine para todos os clientes conectados"""

    def __init__(self, max_size: int = NOTIFY_QUEUE_MAX_SIZE):
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_size)
        self.websocket_clients: Set[WebSocket] = set()
        self.dropped = 0
        self.task: Optional[asyncio.Task] = None
        # Última lista de canais, reenviada para quem conecta depois do load
        self.last_channels: Optional[Dict] = None

    def notify(self, message: Dict):
        """Enfileira uma mensagem (fire-and-forget)"""
        if message.get("type") == "channels":
            self.last_channels = message
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Notification queue full, dropping '{message.get('type')}' message")

    def add_websocket(self, ws: WebSocket):
        self.websocket_clients.add(ws)
        logger.debug(f"WebSocket added (total: {len(self.websocket_clients)})")

    def remove_websocket(self, ws: WebSocket):
        if ws in self.websocket_clients:
            self.websocket_clients.remove(ws)
            logger.debug(f"WebSocket removed (remaining: {len(self.websocket_clients)})")

    def drain(self) -> List[Dict]:
        """Retira tudo que está na fila sem enviar"""
        messages = []
        while not self.queue.empty():
            messages.append(self.queue.get_nowait())
        return messages

    async def broadcast_message(self, message: Dict):
        """Envia mensagem para todos os clientes"""
        disconnected_clients = []

        for ws in list(self.websocket_clients):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.warning(f"Failed to send message to client, marking for removal: {e}")
                disconnected_clients.append(ws)

        # Remove clientes desconectados
        for ws in disconnected_clients:
            self.remove_websocket(ws)

    async def start(self):
        if self.task is None or self.task.done():
            self.task = asyncio.create_task(self._broadcast_loop())
            logger.info("Broadcast task started")

    async def stop(self):
        if self.task and not self.task.done():
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                logger.info("Broadcast task stopped")
        self.task = None

    async def _broadcast_loop(self):
        while True:
            message = await self.queue.get()
            try:
                await self.broadcast_message(message)
            except Exception as e:
                logger.exception(f"Error broadcasting message: {e}")
