"""
Parser dos arquivos XML de um soundpack.

Cada arquivo pode declarar zero ou mais <sound>, cada um com zero ou mais
<soundFile>. A ordem das regras é a ordem do documento, com os arquivos
visitados na ordem da árvore de diretórios.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set

from .errors import RuleLoadError
from .matcher import compile_pattern
from .models import LoadedRules, LoopDirective, RuleEntry, SoundFile
from .playlist import parse_playlist
from ..config import DEFAULT_CHANNEL
from ..logger import get_logger

logger = get_logger(__name__)

# Atributos conhecidos que não têm efeito aqui
_IGNORED_SOUND_ATTRS = frozenset({"ansiFormat", "ansiPattern", "playbackThreshhold"})


def find_rule_files(root: Path) -> List[Path]:
    """Lista os .xml sob root (percurso iterativo, ordem alfabética por nível)."""
    root = Path(root)
    if not root.is_dir():
        raise RuleLoadError(root, "soundpack directory not found")

    found: List[Path] = []
    pending: List[Path] = [root]
    # Diretórios já visitados (resolvidos): evita ciclos de symlink
    visited: Set[Path] = set()
    while pending:
        directory = pending.pop()
        real = directory.resolve()
        if real in visited:
            logger.warning(f"Diretório repetido ignorado (symlink em ciclo?): {directory}")
            continue
        visited.add(real)
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise RuleLoadError(directory, f"cannot list directory: {e}") from e

        subdirs: List[Path] = []
        for entry in entries:
            if entry.is_dir():
                subdirs.append(entry)
            elif entry.is_file() and entry.suffix.lower() == ".xml":
                found.append(entry)
        # Empilha ao contrário para visitar na ordem alfabética
        pending.extend(reversed(subdirs))

    return found


def load_rules(root: Path) -> LoadedRules:
    """Carrega todas as regras de um soundpack.

    Args:
        root: Diretório raiz do soundpack

    Returns:
        LoadedRules com as regras em ordem e os nomes de canal (o canal
        padrão sempre primeiro)

    Raises:
        RuleLoadError: qualquer erro de configuração (fatal)
    """
    root = Path(root)
    logger.info(f"Carregando soundpack: {root}")

    rules: List[RuleEntry] = []
    channels: Dict[str, None] = {DEFAULT_CHANNEL: None}

    files = find_rule_files(root)
    for file_path in files:
        file_rules = parse_rule_file(file_path)
        for rule in file_rules:
            if rule.channel is not None:
                channels.setdefault(rule.channel, None)
        rules.extend(file_rules)

    logger.info(f"Carregamento concluído: {len(rules)} regras de {len(files)} arquivos, {len(channels)} canais")
    return LoadedRules(rules=rules, channels=list(channels))


def parse_rule_file(file_path: Path) -> List[RuleEntry]:
    """Parseia um arquivo XML e retorna suas regras em ordem."""
    rules: List[RuleEntry] = []
    current: Optional[Dict[str, Any]] = None

    try:
        for event, elem in ET.iterparse(str(file_path), events=("start", "end")):
            tag = _local_name(elem.tag)
            if event == "start":
                if tag == "sound":
                    current = _parse_sound_attrs(file_path, elem.attrib)
                elif tag == "soundFile":
                    if current is None:
                        logger.debug(f"<soundFile> fora de <sound> ignorado em {file_path}")
                        continue
                    current["files"].append(_parse_sound_file(file_path, elem.attrib))
            elif tag == "sound" and current is not None:
                rules.append(_build_rule(file_path, current))
                current = None
                elem.clear()
    except ET.ParseError as e:
        raise RuleLoadError(file_path, f"malformed XML: {e}") from e
    except OSError as e:
        raise RuleLoadError(file_path, f"cannot read file: {e}") from e

    logger.debug(f"{file_path}: {len(rules)} regras")
    return rules


def _parse_sound_attrs(file_path: Path, attrs: Dict[str, str]) -> Dict[str, Any]:
    """Converte atributos de <sound> nos campos de RuleEntry."""
    raw: Dict[str, Any] = {
        "pattern": None,
        "channel": None,
        "loop": None,
        "concurrency": None,
        "timeout": None,
        "probability": None,
        "delay": None,
        "halt_on_match": False,
        "random_balance": False,
        "files": [],
    }

    for name, value in attrs.items():
        name = _local_name(name)
        if name == "logPattern":
            raw["pattern"] = value
        elif name == "channel":
            raw["channel"] = value
        elif name == "loop":
            raw["loop"] = LoopDirective.START if value == "start" else LoopDirective.STOP
        # "concurency" e "propability" são grafados assim nos soundpacks
        elif name in ("concurency", "concurrency"):
            raw["concurrency"] = _parse_number(file_path, name, value, int)
        elif name == "timeout":
            raw["timeout"] = _parse_number(file_path, name, value, int)
        elif name in ("propability", "probability"):
            raw["probability"] = _parse_number(file_path, name, value, int)
        elif name == "delay":
            raw["delay"] = _parse_number(file_path, name, value, int)
        elif name == "haltOnMatch":
            raw["halt_on_match"] = value == "true"
        elif name == "randomBalance":
            raw["random_balance"] = value == "true"
        elif name in _IGNORED_SOUND_ATTRS:
            continue
        else:
            logger.warning(f"Atributo de sound desconhecido '{name}' em {file_path}")

    return raw


def _parse_sound_file(file_path: Path, attrs: Dict[str, str]) -> SoundFile:
    """Converte um <soundFile>; playlists são expandidas aqui mesmo."""
    path = file_path.parent
    is_playlist = False
    weight = 0
    volume = 0.0
    random_balance = False
    balance = 0.0
    delay = 0

    for name, value in attrs.items():
        name = _local_name(name)
        if name == "fileName":
            path = path / value
        elif name == "weight":
            weight = _parse_number(file_path, name, value, int)
            if weight < 0:
                raise RuleLoadError(file_path, f"negative weight '{value}'")
        elif name == "volumeAdjustment":
            volume = _parse_number(file_path, name, value, float)
        elif name == "randomBalance":
            random_balance = value == "true"
        elif name == "balanceAdjustment":
            balance = _parse_number(file_path, name, value, float)
        elif name == "delay":
            delay = _parse_number(file_path, name, value, int)
        elif name == "playlist":
            is_playlist = True
        else:
            logger.warning(f"Atributo de soundFile desconhecido '{name}' em {file_path}")

    if is_playlist:
        return SoundFile(
            playlist=tuple(parse_playlist(path)),
            weight=weight,
            volume=volume,
            random_balance=random_balance,
            balance=balance,
            delay=delay,
        )
    return SoundFile(
        path=path,
        weight=weight,
        volume=volume,
        random_balance=random_balance,
        balance=balance,
        delay=delay,
    )


def _build_rule(file_path: Path, raw: Dict[str, Any]) -> RuleEntry:
    """Constrói a regra a partir dos dados parseados."""
    pattern = raw["pattern"]
    if pattern is None:
        raise RuleLoadError(file_path, "<sound> without logPattern")

    return RuleEntry(
        pattern=compile_pattern(pattern, file_path),
        channel=raw["channel"],
        loop=raw["loop"],
        concurrency=raw["concurrency"],
        timeout=raw["timeout"],
        probability=raw["probability"],
        delay=raw["delay"],
        halt_on_match=raw["halt_on_match"],
        random_balance=raw["random_balance"],
        files=tuple(raw["files"]),
        source=file_path,
    )


def _parse_number(file_path: Path, name: str, value: str, kind: Callable[[str], Any]) -> Any:
    try:
        return kind(value.strip())
    except ValueError as e:
        raise RuleLoadError(file_path, f"invalid value for '{name}': '{value}'") from e


def _local_name(tag: str) -> str:
    """Remove o namespace '{uri}' de tags/atributos."""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag
