"""
SoundsenseService - liga gamelog, engine de sons e UI
Responsável por carregar soundpacks, acompanhar o gamelog e rodar a manutenção
"""
import asyncio
import random
from pathlib import Path
from typing import Dict, Optional

from .broadcaster import Broadcaster
from .config import MAINTENANCE_INTERVAL_SECONDS, MASTER_VOLUME
from .gamelog import GamelogWatcher
from .sounds import BrowserSink, SoundEngine
from .ws_messages import make_message
from .logger import get_logger

logger = get_logger("service")


class SoundsenseService:
    """Estado da aplicação: um engine, um gamelog, vários clientes"""

    def __init__(self, broadcaster: Optional[Broadcaster] = None, rng: Optional[random.Random] = None,
                 maintenance_interval: float = MAINTENANCE_INTERVAL_SECONDS):
        self.broadcaster = broadcaster or Broadcaster()
        self.rng = rng or random.Random()
        self.maintenance_interval = maintenance_interval
        self.engine: Optional[SoundEngine] = None
        self.sink: Optional[BrowserSink] = None
        self.soundpack_path: Optional[Path] = None
        self.watcher: Optional[GamelogWatcher] = None
        self.maintenance_task: Optional[asyncio.Task] = None
        # Volumes pedidos pela UI; reaplicados quando o soundpack é trocado
        self.volumes: Dict[str, float] = {"all": MASTER_VOLUME}

    def load_soundpack(self, path: Path) -> SoundEngine:
        """Carrega um soundpack e substitui o engine atual.

        Raises:
            RuleLoadError: o soundpack é inválido; o engine anterior continua ativo
        """
        path = Path(path)
        sink = BrowserSink(
            self.broadcaster.notify,
            sound_root=path,
            has_listeners=lambda: bool(self.broadcaster.websocket_clients),
        )
        engine = SoundEngine.load(
            path,
            sink,
            notify=self.broadcaster.notify,
            rng=self.rng,
            master_volume=self.volumes.get("all", MASTER_VOLUME),
        )

        if self.engine is not None:
            self.engine.shutdown()
        self.engine = engine
        self.sink = sink
        self.soundpack_path = path

        for name, value in self.volumes.items():
            if name != "all" and name in engine.channel_names:
                engine.set_volume(name, value)

        logger.info(f"Soundpack loaded: {path} ({len(engine.rules)} rules)")
        self.broadcaster.notify(make_message("system", {"message": f"Soundpack carregado: {path.name}"}))
        return engine

    async def load_gamelog(self, path: Path) -> GamelogWatcher:
        """Passa a acompanhar outro gamelog"""
        if self.watcher is not None:
            await self.watcher.stop()
        self.watcher = GamelogWatcher(Path(path), self.process_line)
        await self.watcher.start()
        self.broadcaster.notify(make_message("system", {"message": f"Gamelog: {Path(path).name}"}))
        return self.watcher

    def process_line(self, line: str) -> int:
        if self.engine is None:
            return 0
        return self.engine.process_line(line)

    def set_volume(self, channel: str, value: float) -> bool:
        self.volumes[channel] = value
        if self.engine is None:
            return channel == "all"
        return self.engine.set_volume(channel, value)

    def sound_ended(self, sound_id: str) -> bool:
        if self.sink is None:
            return False
        return self.sink.mark_ended(sound_id)

    def sound_file(self, relative: str) -> Optional[Path]:
        """Arquivo do soundpack ativo pedido pelo navegador (None se não existir
        ou se estiver fora do soundpack)"""
        if self.soundpack_path is None:
            return None
        root = self.soundpack_path.resolve()
        candidate = (root / relative).resolve()
        if root not in candidate.parents:
            return None
        if not candidate.is_file():
            return None
        return candidate

    def tick(self) -> int:
        if self.engine is None:
            return 0
        return self.engine.tick()

    def channel_names(self):
        if self.engine is None:
            return []
        return self.engine.channel_names

    async def start(self):
        await self.broadcaster.start()
        if self.maintenance_task is None or self.maintenance_task.done():
            self.maintenance_task = asyncio.create_task(self._maintenance_loop())
            logger.info("Maintenance task started")

    async def stop(self):
        if self.watcher is not None:
            await self.watcher.stop()
        if self.maintenance_task and not self.maintenance_task.done():
            self.maintenance_task.cancel()
            try:
                await self.maintenance_task
            except asyncio.CancelledError:
                logger.info("Maintenance task stopped")
        self.maintenance_task = None
        if self.engine is not None:
            self.engine.shutdown()
        await self.broadcaster.stop()

    async def _maintenance_loop(self):
        """Tick periódico do engine"""
        while True:
            try:
                await asyncio.sleep(self.maintenance_interval)
                self.tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in maintenance loop: {e}")
