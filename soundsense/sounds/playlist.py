"""
Expansão de playlists (m3u / pls) em listas de caminhos.
"""

import re
from pathlib import Path
from typing import List

from .errors import RuleLoadError, UnsupportedPlaylistFormat
from ..logger import get_logger

logger = get_logger(__name__)

# Diretivas (#EXTM3U, #EXTINF...) e comentários
M3U_DIRECTIVE_RE = re.compile(r"#(?:EXT[A-Z]*)?")
PLS_ENTRY_RE = re.compile(r"File\d+=(.+)", re.IGNORECASE)


def parse_playlist(path: Path) -> List[Path]:
    """Retorna os arquivos da playlist, relativos ao diretório dela.

    Não verifica se os arquivos existem; isso fica por conta do sink.
    """
    path = Path(path)
    extension = path.suffix.lower().lstrip(".")
    if extension not in ("m3u", "pls"):
        raise UnsupportedPlaylistFormat(path, f"unsupported playlist format '{path.suffix}'")

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise RuleLoadError(path, f"cannot read playlist: {e}") from e

    parent = path.parent
    entries: List[Path] = []
    if extension == "m3u":
        for line in text.splitlines():
            line = line.strip()
            if not line or M3U_DIRECTIVE_RE.match(line):
                continue
            entries.append(parent / line)
    else:
        for line in text.splitlines():
            m = PLS_ENTRY_RE.match(line.strip())
            if m:
                entries.append(parent / m.group(1).strip())

    logger.debug(f"Playlist {path} expandida: {len(entries)} arquivos")
    return entries
