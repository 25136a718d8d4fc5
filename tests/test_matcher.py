"""
Pattern fix-up and compilation tests.
"""

from pathlib import Path

import pytest

from soundsense.sounds.errors import RuleLoadError
from soundsense.sounds.matcher import compile_pattern, fix_pattern, normalize_line


SOUNDPACK_PATTERNS = [
    r"You strike\ the (.+)\.",
    r"(The|An?) (.+) (hacks|slashes|())\ at you",
    r"^\[.*\] You have been struck",
    r"(cheers|celebrates|())!",
    r"has been (struck down|killed)\.$",
]


class TestFixPattern:

    def test_strips_escape_before_plain_character(self):
        assert fix_pattern(r"You\ strike") == "You strike"
        assert fix_pattern(r"\:\-") == ":-"

    def test_keeps_escape_before_metacharacter(self):
        assert fix_pattern(r"goblin\.") == r"goblin\."
        assert fix_pattern(r"\(\)\[\]\{\}\^\$\|\?\*\+") == r"\(\)\[\]\{\}\^\$\|\?\*\+"

    def test_class_escapes_are_treated_as_no_ops(self):
        # \d vira "d": comportamento herdado dos soundpacks
        assert fix_pattern(r"\d+ damage") == "d+ damage"

    def test_empty_alternation_becomes_optional_group(self):
        assert fix_pattern("(strikes|())") == "(strikes)?"
        assert fix_pattern("a (b|c|()) d") == "a (b|c)? d"

    def test_escape_fix_runs_before_group_fix(self):
        assert fix_pattern(r"(\a|())") == "(a)?"

    @pytest.mark.parametrize("pattern", SOUNDPACK_PATTERNS)
    def test_fix_is_idempotent(self, pattern):
        once = fix_pattern(pattern)
        assert fix_pattern(once) == once
        assert compile_pattern(once).pattern == compile_pattern(pattern).pattern


class TestCompilePattern:

    @pytest.mark.parametrize("pattern", SOUNDPACK_PATTERNS)
    def test_soundpack_patterns_compile(self, pattern):
        compiled = compile_pattern(pattern)
        assert compiled.pattern == fix_pattern(pattern)

    def test_fixed_pattern_matches_anywhere_in_line(self):
        compiled = compile_pattern(r"You strike\ the (.+)\.")
        match = compiled.search("[12:00] You strike the goblin.")
        assert match is not None
        assert match.group(1) == "goblin"

    def test_invalid_pattern_is_fatal_and_names_file_and_pattern(self):
        source = Path("pack/combat.xml")
        with pytest.raises(RuleLoadError) as exc_info:
            compile_pattern("(unclosed", source)

        assert exc_info.value.path == source
        assert "(unclosed" in str(exc_info.value)
        assert "combat.xml" in str(exc_info.value)


class TestNormalizeLine:

    def test_strips_newlines(self):
        assert normalize_line("You strike the goblin\r\n") == "You strike the goblin"

    def test_strips_ansi_codes(self):
        assert normalize_line("\x1b[31mYou are hit\x1b[0m") == "You are hit"

    def test_none_becomes_empty(self):
        assert normalize_line(None) == ""


class TestFixPatternLimits:

    def test_repeated_empty_alternation_is_not_idempotent(self):
        # Cada passada consome um "|())"; reaplicar muda o padrão
        once = fix_pattern("(a|()|())")

        assert once == "(a|())?"
        assert fix_pattern(once) == "(a)??"
        assert compile_pattern("(a|()|())").search("b") is not None
