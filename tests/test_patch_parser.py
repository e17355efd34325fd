"""
Unit tests for registry patch file parsing.
"""
import pytest

from core.patch_parser import (
    RegKey,
    RegValue,
    is_valid_value_name,
    normalize_line,
    parse_patch_content,
    parse_patch_file,
    parse_patch_lines,
    split_value_line,
)

HEADER = "Windows Registry Editor Version 5.00"


def parse(*lines):
    return parse_patch_lines([HEADER, *lines])


class TestNormalizeLine:

    def test_strips_whitespace(self):
        assert normalize_line("  [HKLM\\X]  \r\n") == "[HKLM\\X]"

    def test_replaces_control_characters(self):
        assert normalize_line('"a"="b\x01c\x7f"') == '"a"="b?c?"'

    def test_keeps_printable_text(self):
        assert normalize_line('"Name"="Ünïcode"') == '"Name"="Ünïcode"'

    @pytest.mark.parametrize("char", ["\ufffe", "\uffff", "\ud800", "\udcff"])
    def test_replaces_characters_xml_cannot_hold(self, char):
        assert normalize_line(f'"a"="x{char}y"') == '"a"="x?y"'


class TestSplitValueLine:

    def test_simple_pair(self):
        assert split_value_line('"Ver"="1.0"') == ('"Ver"', '"1.0"')

    def test_equals_in_data(self):
        assert split_value_line('"Cmd"="a=b=c"') == ('"Cmd"', '"a=b=c"')

    def test_equals_in_name(self):
        assert split_value_line('"a=b"="c"') == ('"a=b"', '"c"')

    def test_equals_in_name_and_data(self):
        assert split_value_line('"a=b"="c=d"') == ('"a=b"', '"c=d"')

    def test_default_value_with_equals_in_data(self):
        assert split_value_line('@="x=y"') == ('@', '"x=y"')

    def test_no_equals(self):
        assert split_value_line('garbage') == ('garbage', '')

    def test_empty_data(self):
        assert split_value_line('"a"=') == ('"a"', '')


class TestValueNameValidation:

    @pytest.mark.parametrize("name", ['@', '"Ver"', '""', '"with space"'])
    def test_valid(self, name):
        assert is_valid_value_name(name)

    @pytest.mark.parametrize("name", ['BadName', '"unterminated', 'unopened"', '"', ''])
    def test_invalid(self, name):
        assert not is_valid_value_name(name)


class TestParsePatchLines:

    def test_empty_input(self):
        snapshot = parse_patch_lines([])
        assert snapshot.keys == {}
        assert snapshot.values == {}
        assert snapshot.malformed_lines == []

    def test_header_only(self):
        snapshot = parse()
        assert snapshot.keys == {}
        assert snapshot.values == {}

    def test_first_line_always_discarded(self):
        snapshot = parse_patch_lines(["[HKLM\\Header]", "[HKLM\\Real]"])
        assert list(snapshot.keys) == ["HKLM\\Real"]

    def test_key_and_values(self):
        snapshot = parse(
            "[HKEY_LOCAL_MACHINE\\SOFTWARE\\Acme]",
            '"Version"="1.0"',
            '@="default"',
            '"Count"=dword:00000001',
        )
        path = "HKEY_LOCAL_MACHINE\\SOFTWARE\\Acme"
        assert snapshot.keys == {path: RegKey(path)}
        assert snapshot.values == {
            path + "\\Version": RegValue(path, "Version", '"1.0"'),
            path + "\\@": RegValue(path, "@", '"default"'),
            path + "\\Count": RegValue(path, "Count", "dword:00000001"),
        }

    def test_blank_lines_ignored(self):
        snapshot = parse("", "[HKLM\\X]", "   ", '"a"="1"', "")
        assert len(snapshot.keys) == 1
        assert len(snapshot.values) == 1

    def test_value_before_any_key_uses_empty_path(self):
        snapshot = parse('"Orphan"="1"')
        assert snapshot.values == {"\\Orphan": RegValue("", "Orphan", '"1"')}

    def test_repeated_identity_overwrites(self):
        snapshot = parse("[HKLM\\X]", '"a"="1"', '"a"="2"')
        assert list(snapshot.values.values()) == [RegValue("HKLM\\X", "a", '"2"')]

    def test_repeated_key_overwrites(self):
        snapshot = parse("[HKLM\\X]", "[HKLM\\Y]", "[HKLM\\X]")
        assert sorted(snapshot.keys) == ["HKLM\\X", "HKLM\\Y"]

    def test_values_follow_most_recent_key(self):
        snapshot = parse("[HKLM\\X]", '"a"="1"', "[HKLM\\Y]", '"a"="2"')
        assert snapshot.values["HKLM\\X\\a"].data == '"1"'
        assert snapshot.values["HKLM\\Y\\a"].data == '"2"'

    def test_continuation_lines_are_joined(self):
        snapshot = parse("[HKLM\\X]", "foo\\", 'bar="baz"')
        # the joined line is foobar="baz", whose name is unquoted
        assert snapshot.malformed_lines == ['[HKLM\\X] foobar="baz"']

    def test_continuation_hex_value(self):
        snapshot = parse(
            "[HKLM\\X]",
            '"Blob"=hex:01,02,\\',
            "  03,04,\\",
            "  05",
        )
        assert snapshot.values["HKLM\\X\\Blob"].data == "hex:01,02,03,04,05"

    def test_continuation_buffer_spans_key_lines(self):
        snapshot = parse("[HKLM\\X]", '"a"=hex:01,\\', "[HKLM\\Y]", "02")
        assert snapshot.values["HKLM\\Y\\a"].data == "hex:01,02"

    def test_malformed_name_collected(self):
        snapshot = parse("[HKLM\\X]", "BadName=1", '"Good"="1"')
        assert snapshot.malformed_lines == ["[HKLM\\X] BadName=1"]
        assert list(snapshot.values) == ["HKLM\\X\\Good"]

    def test_malformed_without_equals(self):
        snapshot = parse("[HKLM\\X]", "stray text")
        assert snapshot.malformed_lines == ["[HKLM\\X] stray text="]
        assert snapshot.values == {}

    def test_control_characters_in_data(self):
        snapshot = parse("[HKLM\\X]", '"a"="x\x02y"')
        assert snapshot.values["HKLM\\X\\a"].data == '"x?y"'

    def test_noncharacter_in_key_and_data(self):
        snapshot = parse("[HKLM\\X\ufffe]", '"a"="x\uffffy"')
        assert snapshot.values == {"HKLM\\X?\\a": RegValue("HKLM\\X?", "a", '"x?y"')}

    def test_quoted_name_with_equals(self):
        snapshot = parse("[HKLM\\X]", '"k=v"="data"')
        assert snapshot.values["HKLM\\X\\k=v"] == RegValue("HKLM\\X", "k=v", '"data"')

    def test_parsing_is_idempotent(self):
        lines = [HEADER, "[HKLM\\X]", '"a"="1"', "bad=1", '"b"=hex:01,\\', "02"]
        assert parse_patch_lines(lines) == parse_patch_lines(lines)

    def test_qualified_name_property(self):
        value = RegValue("HKLM\\X", "Ver", '"1"')
        assert value.qualified_name == "HKLM\\X\\Ver"


class TestParsePatchFile:

    def test_reads_file(self, write_patch):
        path = write_patch("base.reg", "[HKLM\\X]", '"a"="1"')
        snapshot = parse_patch_file(path)
        assert snapshot.values["HKLM\\X\\a"].data == '"1"'

    def test_crlf_line_endings(self, tmp_path):
        path = tmp_path / "crlf.reg"
        path.write_bytes(b'REGEDIT4\r\n\r\n[HKLM\\X]\r\n"a"="1"\r\n')
        snapshot = parse_patch_file(str(path))
        assert snapshot.values == {"HKLM\\X\\a": RegValue("HKLM\\X", "a", '"1"')}

    def test_undecodable_bytes_replaced(self, tmp_path):
        path = tmp_path / "latin.reg"
        path.write_bytes(b'REGEDIT4\n[HKLM\\X]\n"a"="caf\xe9"\n')
        snapshot = parse_patch_file(str(path))
        assert snapshot.values["HKLM\\X\\a"].data == '"caf�"'

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            parse_patch_file(str(tmp_path / "missing.reg"))

    def test_parse_content(self):
        snapshot = parse_patch_content('REGEDIT4\n[HKLM\\X]\n"a"="1"\n')
        assert list(snapshot.keys) == ["HKLM\\X"]
