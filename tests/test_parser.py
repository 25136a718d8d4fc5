"""
Rule loader tests: XML parsing, document order, channel discovery, load errors.
"""

import logging

import pytest

from soundsense.config import DEFAULT_CHANNEL
from soundsense.sounds.errors import RuleLoadError, UnsupportedPlaylistFormat
from soundsense.sounds.models import LoopDirective
from soundsense.sounds.parser import find_rule_files, load_rules, parse_rule_file


class TestFindRuleFiles:

    def test_walks_tree_in_sorted_order(self, make_soundpack):
        root = make_soundpack({
            "b.xml": [],
            "a.xml": [],
            "combat/hits.xml": [],
            "combat/deep/more.xml": [],
            "ambience/wind.xml": [],
            "notes.txt": "not a rule file",
            "combat/hit1.ogg": b"",
        })

        found = [p.relative_to(root).as_posix() for p in find_rule_files(root)]

        assert found == [
            "a.xml",
            "b.xml",
            "ambience/wind.xml",
            "combat/hits.xml",
            "combat/deep/more.xml",
        ]

    def test_missing_root_is_fatal(self, tmp_path):
        with pytest.raises(RuleLoadError):
            find_rule_files(tmp_path / "nope")

    def test_symlink_cycle_is_visited_once(self, make_soundpack):
        root = make_soundpack({"rules.xml": [], "combat/hits.xml": []})
        (root / "combat" / "back").symlink_to(root, target_is_directory=True)

        found = [p.relative_to(root).as_posix() for p in find_rule_files(root)]

        assert found == ["rules.xml", "combat/hits.xml"]


class TestSoundAttributes:

    def test_all_rule_attributes(self, make_soundpack):
        root = make_soundpack({"rules.xml": [
            '<sound logPattern="You strike" channel="combat" loop="start" concurency="3" '
            'timeout="500" propability="10" delay="250" haltOnMatch="true" randomBalance="true">'
            '<soundFile fileName="hit1.ogg"/>'
            '</sound>'
        ]})

        [rule] = load_rules(root).rules

        assert rule.pattern.pattern == "You strike"
        assert rule.channel == "combat"
        assert rule.loop is LoopDirective.START
        assert rule.concurrency == 3
        assert rule.timeout == 500
        assert rule.probability == 10
        assert rule.delay == 250
        assert rule.halt_on_match is True
        assert rule.random_balance is True
        assert rule.source == root / "rules.xml"

    def test_defaults(self, make_soundpack):
        root = make_soundpack({"rules.xml": ['<sound logPattern="x"/>']})

        [rule] = load_rules(root).rules

        assert rule.channel is None
        assert rule.loop is None
        assert rule.concurrency is None
        assert rule.probability is None
        assert rule.halt_on_match is False
        assert rule.random_balance is False
        assert rule.files == ()

    def test_loop_values(self, make_soundpack):
        root = make_soundpack({"rules.xml": [
            '<sound logPattern="a" channel="music" loop="start"/>',
            '<sound logPattern="b" channel="music" loop="stop"/>',
            '<sound logPattern="c" channel="music" loop="whatever"/>',
        ]})

        loops = [rule.loop for rule in load_rules(root).rules]

        assert loops == [LoopDirective.START, LoopDirective.STOP, LoopDirective.STOP]

    def test_correct_spellings_are_accepted(self, make_soundpack):
        root = make_soundpack({"rules.xml": ['<sound logPattern="x" concurrency="2" probability="5"/>']})

        [rule] = load_rules(root).rules

        assert rule.concurrency == 2
        assert rule.probability == 5

    def test_unknown_attribute_is_logged_and_ignored(self, make_soundpack, caplog):
        root = make_soundpack({"rules.xml": [
            '<sound logPattern="x" ansiFormat="1" frobnicate="yes">'
            '<soundFile fileName="a.ogg" sparkle="true"/>'
            '</sound>'
        ]})

        with caplog.at_level(logging.WARNING):
            [rule] = load_rules(root).rules

        assert "frobnicate" in caplog.text
        assert "sparkle" in caplog.text
        assert "ansiFormat" not in caplog.text
        assert len(rule.files) == 1


class TestSoundFiles:

    def test_file_attributes(self, make_soundpack):
        root = make_soundpack({"combat/rules.xml": [
            '<sound logPattern="x">'
            '<soundFile fileName="hit/punch1.ogg" weight="50" volumeAdjustment="-6" '
            'randomBalance="true" balanceAdjustment="-0.5" delay="100"/>'
            '</sound>'
        ]})

        [rule] = load_rules(root).rules
        [sound_file] = rule.files

        assert sound_file.path == root / "combat" / "hit/punch1.ogg"
        assert sound_file.weight == 50
        assert sound_file.volume == -6.0
        assert sound_file.random_balance is True
        assert sound_file.balance == -0.5
        assert sound_file.delay == 100
        assert sound_file.is_playlist is False

    def test_playlist_is_expanded_at_load(self, make_soundpack):
        root = make_soundpack({
            "music/rules.xml": [
                '<sound logPattern="x" channel="music" loop="start">'
                '<soundFile fileName="calm.m3u" playlist="true"/>'
                '</sound>'
            ],
            "music/calm.m3u": "#EXTM3U\na.ogg\nb.ogg\n",
        })

        [rule] = load_rules(root).rules
        [sound_file] = rule.files

        assert sound_file.is_playlist
        assert sound_file.paths == (root / "music" / "a.ogg", root / "music" / "b.ogg")

    def test_empty_playlist_is_permitted(self, make_soundpack):
        root = make_soundpack({
            "rules.xml": ['<sound logPattern="x"><soundFile fileName="empty.m3u" playlist="true"/></sound>'],
            "empty.m3u": "#EXTM3U\n",
        })

        [rule] = load_rules(root).rules

        assert rule.files[0].paths == ()

    def test_files_keep_document_order(self, make_soundpack):
        root = make_soundpack({"rules.xml": [
            '<sound logPattern="x">'
            '<soundFile fileName="1.ogg"/><soundFile fileName="2.ogg"/><soundFile fileName="3.ogg"/>'
            '</sound>'
        ]})

        [rule] = load_rules(root).rules

        assert [f.path.name for f in rule.files] == ["1.ogg", "2.ogg", "3.ogg"]

    def test_sound_file_outside_sound_is_ignored(self, make_soundpack):
        root = make_soundpack({"rules.xml": [
            '<soundFile fileName="stray.ogg"/>',
            '<sound logPattern="x"><soundFile fileName="a.ogg"/></sound>',
        ]})

        [rule] = load_rules(root).rules

        assert [f.path.name for f in rule.files] == ["a.ogg"]

    def test_describe_names_file_or_playlist_size(self, make_soundpack):
        root = make_soundpack({
            "rules.xml": [
                '<sound logPattern="x"><soundFile fileName="calm.m3u" playlist="true"/>'
                '<soundFile fileName="hit1.ogg"/></sound>'
            ],
            "calm.m3u": "#EXTM3U\na.ogg\nb.ogg\n",
        })

        [rule] = load_rules(root).rules

        assert [f.describe() for f in rule.files] == ["playlist[2]", str(root / "hit1.ogg")]


class TestLoadOrderAndChannels:

    def test_rules_follow_document_order_across_files(self, make_soundpack):
        root = make_soundpack({
            "a.xml": ['<sound logPattern="first"/>', '<sound logPattern="second"/>'],
            "sub/c.xml": ['<sound logPattern="fourth"/>'],
            "b.xml": ['<sound logPattern="third"/>'],
        })

        patterns = [rule.pattern.pattern for rule in load_rules(root).rules]

        assert patterns == ["first", "second", "third", "fourth"]

    def test_channels_include_default_and_every_referenced_name(self, make_soundpack):
        root = make_soundpack({
            "a.xml": ['<sound logPattern="x" channel="combat"/>', '<sound logPattern="y"/>'],
            "b.xml": ['<sound logPattern="z" channel="music"/>', '<sound logPattern="w" channel="combat"/>'],
        })

        loaded = load_rules(root)

        assert loaded.channels == [DEFAULT_CHANNEL, "combat", "music"]

    def test_empty_soundpack(self, make_soundpack):
        root = make_soundpack({"readme.txt": "nothing here"})

        loaded = load_rules(root)

        assert loaded.rules == []
        assert loaded.channels == [DEFAULT_CHANNEL]


class TestLoadErrors:

    def test_invalid_pattern_aborts_load(self, make_soundpack):
        root = make_soundpack({
            "a.xml": ['<sound logPattern="fine"/>'],
            "b.xml": ['<sound logPattern="(broken"/>'],
        })

        with pytest.raises(RuleLoadError) as exc_info:
            load_rules(root)

        assert exc_info.value.path == root / "b.xml"
        assert "(broken" in str(exc_info.value)

    def test_missing_pattern_is_fatal(self, make_soundpack):
        root = make_soundpack({"a.xml": ['<sound channel="combat"/>']})

        with pytest.raises(RuleLoadError):
            load_rules(root)

    @pytest.mark.parametrize("attrs", [
        'concurency="many"',
        'timeout="1.5s"',
        'propability=""',
        'delay="soon"',
    ])
    def test_malformed_rule_number_is_fatal(self, make_soundpack, attrs):
        root = make_soundpack({"a.xml": [f'<sound logPattern="x" {attrs}/>']})

        with pytest.raises(RuleLoadError) as exc_info:
            load_rules(root)

        assert attrs.split("=")[0] in str(exc_info.value)

    @pytest.mark.parametrize("attrs", [
        'weight="heavy"',
        'weight="-1"',
        'volumeAdjustment="loud"',
        'balanceAdjustment="left"',
    ])
    def test_malformed_file_attribute_is_fatal(self, make_soundpack, attrs):
        root = make_soundpack({"a.xml": [f'<sound logPattern="x"><soundFile fileName="a.ogg" {attrs}/></sound>']})

        with pytest.raises(RuleLoadError):
            load_rules(root)

    def test_unsupported_playlist_is_fatal(self, make_soundpack):
        root = make_soundpack({
            "a.xml": ['<sound logPattern="x"><soundFile fileName="list.txt" playlist="true"/></sound>'],
            "list.txt": "a.ogg\n",
        })

        with pytest.raises(UnsupportedPlaylistFormat):
            load_rules(root)

    def test_malformed_xml_is_fatal(self, make_soundpack):
        root = make_soundpack({"a.xml": "<sounds><sound logPattern='x'></sounds>"})

        with pytest.raises(RuleLoadError):
            load_rules(root)

    def test_parse_rule_file_reports_unreadable_file(self, tmp_path):
        with pytest.raises(RuleLoadError):
            parse_rule_file(tmp_path / "missing.xml")
