"""
Canal de reprodução: uma "pista" nomeada com volume próprio, um conjunto de
one-shots ativos e no máximo um loop.
"""

import random
from typing import List, Optional, Sequence, Tuple

from .models import SoundFile
from .sink import PlaybackHandle, PlaybackSink
from ..logger import get_logger

logger = get_logger(__name__)


class Channel:
    """Estado de concorrência e handles ativos de um canal."""

    def __init__(self, name: str, sink: PlaybackSink, volume: float = 1.0, master_volume: float = 1.0):
        self.name = name
        self.volume = volume
        self._sink = sink
        self._scale = volume * master_volume
        self._one_shots: List[PlaybackHandle] = []
        self._loop: Optional[PlaybackHandle] = None
        self._loop_file: Optional[SoundFile] = None

    @property
    def scale(self) -> float:
        """Volume efetivo (canal * master) aplicado a toda reprodução."""
        return self._scale

    @property
    def current_loop(self) -> Optional[SoundFile]:
        return self._loop_file if self._loop is not None else None

    def start_or_replace_loop(self, files: Sequence[SoundFile], rng: random.Random,
                              rule_delay: int = 0, rule_random_balance: bool = False) -> Optional[PlaybackHandle]:
        """Para o loop atual e, se houver arquivos, inicia outro.

        Uma lista vazia é um "stop" puro.
        """
        self._stop_loop()
        if not files:
            return None

        sound_file = rng.choice(files)
        handle = self._play(sound_file, rng, rule_delay, rule_random_balance, looped=True)
        if handle is not None:
            self._loop = handle
            self._loop_file = sound_file
            logger.debug(f"Canal {self.name}: loop iniciado ({sound_file.describe()})")
        return handle

    def add_one_shot(self, sound_file: SoundFile, rng: random.Random,
                     rule_delay: int = 0, rule_random_balance: bool = False) -> Optional[PlaybackHandle]:
        """Toca um arquivo uma vez, sem mexer no loop."""
        handle = self._play(sound_file, rng, rule_delay, rule_random_balance, looped=False)
        if handle is not None:
            self._one_shots.append(handle)
        return handle

    def reap(self) -> int:
        """Remove one-shots que já terminaram e retorna o total ativo."""
        before = len(self._one_shots)
        self._one_shots = [h for h in self._one_shots if not h.is_finished()]
        if self._loop is not None and self._loop.is_finished():
            # Loop interrompido pelo sink (ex.: arquivo sumiu)
            logger.debug(f"Canal {self.name}: loop terminou no sink")
            self._loop = None
            self._loop_file = None
        reaped = before - len(self._one_shots)
        if reaped:
            logger.debug(f"Canal {self.name}: {reaped} one-shots finalizados")
        return self.active_count()

    def set_volume(self, channel_volume: float, master_volume: float) -> None:
        """Reescala toda reprodução ativa (e futura) por canal * master."""
        self.volume = channel_volume
        self._scale = channel_volume * master_volume
        for handle in self._handles():
            handle.set_volume(self._scale)

    def active_count(self) -> int:
        return len(self._one_shots) + (1 if self._loop is not None else 0)

    def stop_all(self) -> None:
        """Para tudo (usado ao trocar de soundpack)."""
        for handle in self._handles():
            handle.stop()
        self._one_shots = []
        self._loop = None
        self._loop_file = None

    def _handles(self) -> List[PlaybackHandle]:
        handles = list(self._one_shots)
        if self._loop is not None:
            handles.append(self._loop)
        return handles

    def _stop_loop(self) -> None:
        if self._loop is None:
            return
        logger.debug(f"Canal {self.name}: loop parado")
        self._loop.stop()
        self._loop = None
        self._loop_file = None

    def _play(self, sound_file: SoundFile, rng: random.Random, rule_delay: int,
              rule_random_balance: bool, looped: bool) -> Optional[PlaybackHandle]:
        paths = sound_file.paths
        if not paths:
            # Playlist vazia: não contribui com nada
            logger.debug(f"Canal {self.name}: arquivo sem caminhos ignorado")
            return None

        balance, delay_ms = self._placement(sound_file, rng, rule_delay, rule_random_balance)
        return self._sink.play(
            paths,
            channel=self.name,
            volume=self._scale,
            gain=sound_file.gain,
            balance=balance,
            delay_ms=delay_ms,
            looped=looped,
        )

    @staticmethod
    def _placement(sound_file: SoundFile, rng: random.Random, rule_delay: int,
                   rule_random_balance: bool) -> Tuple[float, int]:
        if sound_file.random_balance or rule_random_balance:
            balance = rng.uniform(-1.0, 1.0)
        else:
            balance = sound_file.balance
        return balance, sound_file.delay + (rule_delay or 0)
