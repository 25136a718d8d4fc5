"""
Engine de sons dirigido por log.

Exemplo:
    from soundsense.sounds import SoundEngine, MemorySink

    engine = SoundEngine.load("soundpacks/default", MemorySink())
    engine.process_line("You strike the goblin in the head!")
    engine.tick()
"""

from .engine import SoundEngine
from .channel import Channel
from .errors import SoundsenseError, RuleLoadError, UnsupportedPlaylistFormat, PlaybackError
from .models import RuleEntry, SoundFile, SoundEvent, LoopDirective, LoadedRules
from .parser import load_rules, find_rule_files
from .playlist import parse_playlist
from .sink import PlaybackSink, PlaybackHandle, MemorySink, BrowserSink

__all__ = [
    "SoundEngine",
    "Channel",
    "SoundsenseError",
    "RuleLoadError",
    "UnsupportedPlaylistFormat",
    "PlaybackError",
    "RuleEntry",
    "SoundFile",
    "SoundEvent",
    "LoopDirective",
    "LoadedRules",
    "load_rules",
    "find_rule_files",
    "parse_playlist",
    "PlaybackSink",
    "PlaybackHandle",
    "MemorySink",
    "BrowserSink",
]
