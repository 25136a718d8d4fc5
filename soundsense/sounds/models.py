"""
Modelos de dados para o engine de sons.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple
import re


@dataclass
class SoundEvent:
    """Comando de som a ser emitido para o cliente."""
    action: str
    channel: Optional[str] = None
    paths: Optional[List[str]] = None
    delay_ms: int = 0
    pan: Optional[int] = None
    volume: Optional[int] = None
    sound_id: Optional[str] = None
    target: Optional[str] = None


class LoopDirective(Enum):
    START = "start"
    STOP = "stop"


@dataclass(frozen=True)
class SoundFile:
    """Arquivo (ou playlist expandida) declarado por um <soundFile>."""
    path: Optional[Path] = None
    playlist: Optional[Tuple[Path, ...]] = None
    # Carregado mas ignorado na seleção (ver DESIGN.md)
    weight: int = 0
    volume: float = 0.0
    random_balance: bool = False
    balance: float = 0.0
    delay: int = 0

    @property
    def is_playlist(self) -> bool:
        return self.playlist is not None

    @property
    def paths(self) -> Tuple[Path, ...]:
        """Caminhos a tocar, em ordem."""
        if self.playlist is not None:
            return self.playlist
        if self.path is not None:
            return (self.path,)
        return ()

    @property
    def gain(self) -> float:
        """Ajuste de volume (dB) convertido para fator linear."""
        return 10 ** (self.volume / 20.0)

    def describe(self) -> str:
        if self.is_playlist:
            return f"playlist[{len(self.playlist)}]"
        return str(self.path)


@dataclass(frozen=True)
class RuleEntry:
    """Regra <sound> compilada. Imutável depois do carregamento."""
    pattern: re.Pattern
    channel: Optional[str] = None
    loop: Optional[LoopDirective] = None
    concurrency: Optional[int] = None
    timeout: Optional[int] = None
    probability: Optional[int] = None
    delay: Optional[int] = None
    halt_on_match: bool = False
    random_balance: bool = False
    files: Tuple[SoundFile, ...] = ()
    source: Optional[Path] = field(default=None, compare=False)


@dataclass
class LoadedRules:
    """Resultado do carregamento de um soundpack."""
    rules: List[RuleEntry]
    channels: List[str]
