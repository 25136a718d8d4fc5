"""
Compilação e normalização de padrões (matchers).
"""

import re
from pathlib import Path
from typing import Optional

from .errors import RuleLoadError
from ..logger import get_logger

logger = get_logger(__name__)

# Barra invertida antes de um caractere que não é metacaractere de regex
FAULTY_ESCAPE_RE = re.compile(r"(?:\\)([^.+*?()|\[\]{}^$])")
# Artefato "|())" de alternativa vazia
EMPTY_GROUP_RE = re.compile(r"\|\(\)\)")


def fix_pattern(pattern: str) -> str:
    """Corrige erros comuns dos padrões dos soundpacks, nesta ordem:

    1. remove escapes inúteis (``\\y`` -> ``y``);
    2. troca ``|())`` por ``)?``.
    """
    fixed = FAULTY_ESCAPE_RE.sub(r"\1", pattern)
    fixed = EMPTY_GROUP_RE.sub(")?", fixed)
    return fixed


def compile_pattern(pattern: str, source: Optional[Path] = None) -> re.Pattern:
    """Aplica as correções e compila; falha de compilação é fatal."""
    fixed = fix_pattern(pattern)
    try:
        return re.compile(fixed)
    except re.error as e:
        logger.error(f"Erro ao compilar regex '{pattern}' de {source}: {e}")
        raise RuleLoadError(source, f"invalid logPattern '{pattern}': {e}") from e


def normalize_line(line: str) -> str:
    """Normaliza linha removendo ANSI codes e newlines."""
    text = str(line or "")
    text = text.replace("\r", "").replace("\n", "")
    text = re.sub(r"\x1b\[[0-9;]*m", "", text)
    text = re.sub(r"\x1b\][^\x07]*\x07", "", text)
    return text
