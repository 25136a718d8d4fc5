"""
Exceções do engine de sons.
"""

from pathlib import Path
from typing import Optional, Union


class SoundsenseError(Exception):
    """Base para todos os erros do engine."""


class RuleLoadError(SoundsenseError):
    """Erro fatal de configuração ao carregar um soundpack.

    Um soundpack quebrado não pode ser aplicado pela metade, então qualquer
    erro aqui aborta o carregamento inteiro.
    """

    def __init__(self, path: Optional[Union[str, Path]], detail: str):
        self.path = Path(path) if path is not None else None
        self.detail = detail
        where = f"{self.path}: " if self.path is not None else ""
        super().__init__(f"{where}{detail}")


class UnsupportedPlaylistFormat(RuleLoadError):
    """Playlist com extensão diferente de m3u/pls."""


class PlaybackError(SoundsenseError):
    """Falha do sink ao iniciar a reprodução de um arquivo (não fatal)."""

    def __init__(self, path: Union[str, Path], detail: str):
        self.path = Path(path)
        self.detail = detail
        super().__init__(f"{self.path}: {detail}")
