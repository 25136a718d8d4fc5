"""
Interface abstrata para o dispositivo de reprodução (sink).

O engine só conhece PlaybackSink/PlaybackHandle. A renderização real do áudio
acontece fora dele: no navegador (BrowserSink) ou em lugar nenhum (MemorySink,
usado em testes e dry runs).
"""
import itertools
import time
from abc import ABC, abstractmethod
from dataclasses import asdict
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from .errors import PlaybackError
from .models import SoundEvent
from ..config import BROWSER_ONE_SHOT_TIMEOUT_SECONDS
from ..ws_messages import make_message
from ..logger import get_logger

logger = get_logger(__name__)


class PlaybackHandle(ABC):
    """Uma reprodução em andamento."""

    @abstractmethod
    def is_finished(self) -> bool:
        """Indica se a reprodução terminou (consultado no tick)"""
        pass

    @abstractmethod
    def stop(self):
        """Interrompe a reprodução"""
        pass

    @abstractmethod
    def set_volume(self, volume: float):
        """Reescala a reprodução (volume do canal * master)"""
        pass


class PlaybackSink(ABC):
    """Primitiva externa 'toque estes arquivos'. Nunca bloqueia."""

    @abstractmethod
    def play(
        self,
        paths: Sequence[Path],
        *,
        channel: str,
        volume: float,
        gain: float = 1.0,
        balance: float = 0.0,
        delay_ms: int = 0,
        looped: bool = False,
    ) -> PlaybackHandle:
        """Inicia a reprodução dos caminhos em ordem

        Levanta PlaybackError se o arquivo não puder ser tocado.
        """
        pass


class MemoryHandle(PlaybackHandle):
    """Handle em memória; termina quando finish() ou stop() é chamado."""

    def __init__(self, sound_id: str, paths: Sequence[Path], channel: str, volume: float,
                 gain: float, balance: float, delay_ms: int, looped: bool):
        self.sound_id = sound_id
        self.paths = list(paths)
        self.channel = channel
        self.volume = volume
        self.gain = gain
        self.balance = balance
        self.delay_ms = delay_ms
        self.looped = looped
        self.finished = False
        self.stopped = False

    def is_finished(self) -> bool:
        return self.finished or self.stopped

    def stop(self):
        self.stopped = True

    def set_volume(self, volume: float):
        self.volume = volume

    def finish(self):
        """Simula o fim natural da reprodução"""
        self.finished = True


class MemorySink(PlaybackSink):
    """Implementação em memória (para testes e dry runs)"""

    def __init__(self, missing: Optional[Sequence[Path]] = None):
        self.handles: List[MemoryHandle] = []
        self._missing = {Path(p) for p in (missing or [])}
        self._ids = itertools.count(1)

    def play(self, paths, *, channel, volume, gain=1.0, balance=0.0, delay_ms=0, looped=False):
        for path in paths:
            if Path(path) in self._missing:
                raise PlaybackError(path, "file not available")
        handle = MemoryHandle(f"m{next(self._ids)}", paths, channel, volume, gain, balance, delay_ms, looped)
        self.handles.append(handle)
        return handle

    def finish_all(self):
        for handle in self.handles:
            if not handle.looped:
                handle.finish()


class BrowserHandle(PlaybackHandle):
    """Handle de um som tocado no navegador.

    O navegador avisa o fim com uma mensagem 'sound_ended' (ver ws_handlers).
    Um one-shot sem aviso expira depois de one_shot_timeout segundos, e termina
    na hora se não houver ninguém ouvindo. Loops só terminam com stop().
    """

    def __init__(self, sink: "BrowserSink", event: SoundEvent, gain: float, looped: bool, started_at: float):
        self._sink = sink
        self.event = event
        self.gain = gain
        self.looped = looped
        self.started_at = started_at
        self.finished = False

    @property
    def sound_id(self) -> str:
        return self.event.sound_id

    def is_finished(self) -> bool:
        if not self.finished and not self.looped and self._sink.expired(self):
            logger.debug(f"Som {self.sound_id} expirou sem sound_ended", extra={"sound_id": self.sound_id})
            self.finished = True
            self._sink.forget(self.sound_id)
        return self.finished

    def stop(self):
        if self.finished:
            return
        self.finished = True
        self._sink.emit(SoundEvent(action="stop", channel=self.event.channel, target=self.sound_id))
        self._sink.forget(self.sound_id)

    def set_volume(self, volume: float):
        self.event.volume = int(round(volume * self.gain * 100))
        self._sink.emit(SoundEvent(
            action="volume",
            channel=self.event.channel,
            volume=self.event.volume,
            target=self.sound_id,
        ))


class BrowserSink(PlaybackSink):
    """Transforma comandos de reprodução em mensagens 'sound' para a UI.

    Os caminhos são enviados relativos a sound_root (quando possível); o
    navegador busca os arquivos em /sounds/<caminho> (ver main.py).
    """

    def __init__(
        self,
        notify: Callable[[Dict], None],
        sound_root: Optional[Path] = None,
        has_listeners: Optional[Callable[[], bool]] = None,
        one_shot_timeout: float = BROWSER_ONE_SHOT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._notify = notify
        self.sound_root = Path(sound_root) if sound_root is not None else None
        self._has_listeners = has_listeners
        self.one_shot_timeout = one_shot_timeout
        self._clock = clock
        self._handles: Dict[str, BrowserHandle] = {}
        self._ids = itertools.count(1)

    def play(self, paths, *, channel, volume, gain=1.0, balance=0.0, delay_ms=0, looped=False):
        sound_id = f"s{next(self._ids)}"
        event = SoundEvent(
            action="loop" if looped else "play",
            channel=channel,
            paths=[self._public_path(p) for p in paths],
            delay_ms=delay_ms,
            pan=int(round(balance * 100)),
            volume=int(round(volume * gain * 100)),
            sound_id=sound_id,
        )
        handle = BrowserHandle(self, event, gain, looped, self._clock())
        self._handles[sound_id] = handle
        logger.debug(f"Som criado: paths={event.paths}, loop={looped}", extra={"channel": channel, "sound_id": sound_id})
        self.emit(event)
        return handle

    def emit(self, event: SoundEvent):
        payload = {k: v for k, v in asdict(event).items() if v is not None}
        self._notify(make_message("sound", payload))

    def expired(self, handle: BrowserHandle) -> bool:
        """One-shot que ninguém vai avisar que terminou"""
        if self._has_listeners is not None and not self._has_listeners():
            return True
        return self._clock() - handle.started_at >= self.one_shot_timeout

    def mark_ended(self, sound_id: str) -> bool:
        """Chamado quando o navegador avisa que o som terminou"""
        handle = self._handles.pop(sound_id, None)
        if handle is None:
            return False
        handle.finished = True
        return True

    def forget(self, sound_id: str):
        self._handles.pop(sound_id, None)

    def active_ids(self) -> List[str]:
        return list(self._handles.keys())

    def _public_path(self, path: Path) -> str:
        path = Path(path)
        if self.sound_root is not None:
            try:
                return path.relative_to(self.sound_root).as_posix()
            except ValueError:
                pass
        return path.as_posix()
