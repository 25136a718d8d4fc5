"""Pytest fixtures shared by the soundsense tests.

Provides:
- make_soundpack: writes XML rule files (and any extra files) under tmp_path
- sink: fresh MemorySink
- rng: seeded random.Random
- make_rule: builds a RuleEntry directly, without XML
"""

import os
import random
import re
import tempfile
from pathlib import Path

# Logs dos testes fora do repositório
os.environ.setdefault("SOUNDSENSE_LOG_DIR", os.path.join(tempfile.gettempdir(), "soundsense-test-logs"))

import pytest

from soundsense.sounds import MemorySink, RuleEntry, SoundFile


def sounds_xml(*sounds: str) -> str:
    """Wrap <sound> elements in a soundpack document."""
    body = "\n".join(sounds)
    return f'<?xml version="1.0" encoding="UTF-8"?>\n<sounds>\n{body}\n</sounds>\n'


@pytest.fixture
def make_soundpack(tmp_path):
    """Fixture returning a builder for soundpack trees.

    Values may be text, bytes, or a list of <sound> elements (wrapped in a
    <sounds> document).

    Example:
        def test_x(make_soundpack):
            root = make_soundpack({"combat/hits.xml": ['<sound logPattern="x"/>']})
    """
    def build(files):
        root = tmp_path / "pack"
        root.mkdir(exist_ok=True)
        for relative, content in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, (list, tuple)):
                content = sounds_xml(*content)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content, encoding="utf-8")
        return root

    return build


@pytest.fixture
def sink():
    return MemorySink()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def make_rule():
    def build(pattern, *files, **fields):
        sound_files = tuple(
            f if isinstance(f, SoundFile) else SoundFile(path=Path(f))
            for f in files
        )
        return RuleEntry(pattern=re.compile(pattern), files=sound_files, **fields)

    return build
