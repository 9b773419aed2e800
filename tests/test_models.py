"""Tests for MenuItem parsing and field extraction."""

import pytest

from heats.source.command import parse_menu_line
from heats.source.models import DisplayItem, MenuItem, value_to_string


class TestGetField:
    """Tests for MenuItem.get_field."""

    @pytest.fixture
    def item(self) -> MenuItem:
        return MenuItem(
            title="Firefox",
            subtitle="/usr/share/applications/firefox.desktop",
            icon_path="/icons/firefox.png",
            data={"path": "/usr/bin/firefox", "pid": 4242, "meta": {"focused": True}},
        )

    @pytest.mark.parametrize(
        ("field", "expected"),
        [
            ("title", "Firefox"),
            ("subtitle", "/usr/share/applications/firefox.desktop"),
            ("icon_path", "/icons/firefox.png"),
            ("data.path", "/usr/bin/firefox"),
            ("data.pid", "4242"),
            ("data.meta.focused", "true"),
        ],
    )
    def test_scalar_fields(self, item: MenuItem, field: str, expected: str) -> None:
        assert item.get_field(field) == expected

    def test_missing_key_is_empty(self, item: MenuItem) -> None:
        assert item.get_field("data.missing") == ""
        assert item.get_field("data.path.deeper") == ""

    def test_unknown_path_falls_back_to_title(self, item: MenuItem) -> None:
        assert item.get_field("name") == "Firefox"
        assert item.get_field("datapath") == "Firefox"
        assert item.get_field("") == "Firefox"

    def test_structured_data_is_rendered_as_json(self, item: MenuItem) -> None:
        assert item.get_field("data.meta") == '{"focused":true}'

    def test_absent_optional_fields_are_empty(self) -> None:
        item = MenuItem(title="Bare")
        assert item.get_field("subtitle") == ""
        assert item.get_field("icon_path") == ""

    def test_null_data_is_empty(self) -> None:
        item = MenuItem.model_validate_json('{"title": "x", "data": null}')
        assert item.get_field("data") == ""
        assert item.get_field("data.anything") == ""

    def test_list_data_cannot_be_walked(self) -> None:
        item = MenuItem(title="x", data=[1, 2])
        assert item.get_field("data") == "[1,2]"
        assert item.get_field("data.0") == ""


class TestValueToString:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, ""),
            ("text", "text"),
            (True, "true"),
            (False, "false"),
            (42, "42"),
            (1.5, "1.5"),
            ({"a": [1, "b"]}, '{"a":[1,"b"]}'),
            ("ünïcode", "ünïcode"),
        ],
    )
    def test_rendering(self, value, expected: str) -> None:
        assert value_to_string(value) == expected


class TestParseMenuLine:
    def test_parses_full_item(self) -> None:
        item = parse_menu_line(
            '{"title": "Alpha", "subtitle": "s", "icon_path": "/i.png", "data": "A1"}\n'
        )
        assert item == MenuItem(title="Alpha", subtitle="s", icon_path="/i.png", data="A1")

    def test_ignores_unknown_keys(self) -> None:
        item = parse_menu_line('{"title": "Alpha", "extra": 1}')
        assert item is not None
        assert item.title == "Alpha"

    @pytest.mark.parametrize(
        "line",
        ["", "   ", "not json", '{"subtitle": "no title"}', '["title"]', '{"title": 5}', '"Alpha"'],
    )
    def test_rejects_malformed_lines(self, line: str) -> None:
        assert parse_menu_line(line) is None


class TestDisplayItem:
    def test_from_menu_item_resolves_exec_path(self) -> None:
        item = MenuItem(title="Beta", subtitle="sub", icon_path="/b.png", data={"k": 1})
        display = DisplayItem.from_menu_item(item, "apps", id=3)
        assert display.title == "Beta"
        assert display.subtitle == "sub"
        assert display.exec_path == '{"k":1}'
        assert display.source_name == "apps"
        assert display.id == 3
        assert display.icon == "/b.png"

    def test_same_entry_ignores_id(self) -> None:
        a = DisplayItem(title="A", subtitle=None, exec_path="x", source_name="p", id=1)
        b = DisplayItem(title="A", subtitle="other", exec_path="x", source_name="p", id=2)
        assert a.same_entry(b)
        other = DisplayItem(title="A", subtitle=None, exec_path="y", source_name="p")
        assert not a.same_entry(other)
