"""
GamelogWatcher - acompanha o gamelog (tail -f) e entrega cada linha nova
"""
import asyncio
import os
from pathlib import Path
from typing import Callable, List, Optional

import aiofiles

from .config import GAMELOG_ENCODING, GAMELOG_MISSING_SLEEP_SECONDS, GAMELOG_POLL_INTERVAL_SECONDS
from .logger import get_logger

logger = get_logger("gamelog")


class GamelogWatcher:
    """Lê as linhas acrescentadas ao gamelog e chama on_line para cada uma.

    Começa no fim do arquivo: só o que o jogo escrever depois conta.
    """

    def __init__(
        self,
        path: Path,
        on_line: Callable[[str], object],
        encoding: str = GAMELOG_ENCODING,
        poll_interval: float = GAMELOG_POLL_INTERVAL_SECONDS,
        from_start: bool = False,
    ):
        self.path = Path(path)
        self.on_line = on_line
        self.encoding = encoding
        self.poll_interval = poll_interval
        self.offset: Optional[int] = 0 if from_start else None
        self.partial = b""
        self.lines_read = 0
        self.task: Optional[asyncio.Task] = None

    async def start(self):
        """Inicia task de leitura"""
        if self.task is None or self.task.done():
            self.task = asyncio.create_task(self._watch_loop())
            logger.info(f"Watching gamelog {self.path}")

    async def stop(self):
        """Para a task de leitura"""
        if self.task and not self.task.done():
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                logger.info(f"Stopped watching gamelog {self.path}")
        self.task = None

    async def poll_once(self) -> int:
        """Lê o que foi acrescentado desde a última leitura.

        Returns:
            Número de linhas entregues
        """
        if not os.path.exists(self.path):
            return 0

        size = os.path.getsize(self.path)
        if self.offset is None:
            # Primeira leitura: pula o histórico
            self.offset = size
            return 0
        if size < self.offset:
            # Arquivo foi truncado/recriado
            logger.info(f"Gamelog {self.path} truncated, restarting from the beginning")
            self.offset = 0
            self.partial = b""
        if size == self.offset:
            return 0

        async with aiofiles.open(self.path, "rb") as f:
            await f.seek(self.offset)
            data = await f.read()
        self.offset += len(data)

        lines = self._split_lines(data)
        for line in lines:
            self.on_line(line)
        self.lines_read += len(lines)
        return len(lines)

    def _split_lines(self, data: bytes) -> List[str]:
        buffer = self.partial + data
        *complete, self.partial = buffer.split(b"\n")
        return [
            raw.rstrip(b"\r").decode(self.encoding, errors="replace")
            for raw in complete
        ]

    async def _watch_loop(self):
        """Loop de leitura periódica"""
        while True:
            try:
                if not os.path.exists(self.path):
                    await asyncio.sleep(GAMELOG_MISSING_SLEEP_SECONDS)
                    continue
                await self.poll_once()
                await asyncio.sleep(self.poll_interval)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Error reading gamelog {self.path}: {e}")
                await asyncio.sleep(GAMELOG_MISSING_SLEEP_SECONDS)
