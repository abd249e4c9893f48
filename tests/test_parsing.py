from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pytest

from requesterlib.errors import DeserializationError
from requesterlib.parsing import JsonResponseParser, LinkHeader


@dataclass
class Label:
    name: str
    color: str = "ffffff"


@dataclass
class Issue:
    number: int
    labels: List[Label] = field(default_factory=list)
    assignee: Optional[str] = None
    score: float = 0.0
    meta: Dict[str, int] = field(default_factory=dict)


class Milestone:
    def __init__(self, title: str):
        self.title = title

    @classmethod
    def from_dict(cls, data):
        return cls(data["title"])


parser = JsonResponseParser()


def test_link_header_parse():
    value = (
        '<https://api.test/items?page=2>; rel="next", '
        '<https://api.test/items?page=5>; rel="last", <https://api.test/items?page=1>; rel=first'
    )
    links = LinkHeader.parse(value)
    assert links == {
        "next": "https://api.test/items?page=2",
        "last": "https://api.test/items?page=5",
        "first": "https://api.test/items?page=1",
    }


def test_link_header_next_url():
    assert LinkHeader.next_url(None) is None
    assert LinkHeader.next_url('<https://a.test/x?page=9>; rel="last"') is None
    assert LinkHeader.next_url('</x?page=2>; rel="next"', "https://a.test/x?page=1") == "https://a.test/x?page=2"


def test_parse_raw_and_primitives():
    assert parser.parse(b'{"a": [1, 2]}') == {"a": [1, 2]}
    assert parser.parse(b"3", float) == 3.0
    assert parser.parse(b'"x"', str) == "x"
    with pytest.raises(DeserializationError):
        parser.parse(b'"x"', int)


def test_parse_nested_dataclasses():
    body = b'{"number": 7, "labels": [{"name": "bug"}], "score": 2, "meta": {"a": 1}, "unknown": true}'
    issue = parser.parse(body, Issue)
    assert issue == Issue(number=7, labels=[Label("bug")], score=2.0, meta={"a": 1})


def test_parse_list_schema():
    assert parser.parse(b'[{"name": "a"}, {"name": "b", "color": "000"}]', List[Label]) == [
        Label("a"),
        Label("b", "000"),
    ]
    with pytest.raises(DeserializationError):
        parser.parse(b'{"name": "a"}', List[Label])


def test_parse_from_dict_type():
    assert parser.parse(b'{"title": "v1"}', Milestone).title == "v1"


def test_parse_into_requires_object():
    with pytest.raises(DeserializationError):
        parser.parse_into(b"[1]", Issue(number=1))


def test_parse_into_plain_object_sets_present_keys():
    milestone = Milestone("old")
    milestone.state = "open"
    parser.parse_into(b'{"title": "new"}', milestone)
    assert milestone.title == "new"
    assert milestone.state == "open"


def test_bool_is_not_an_int():
    with pytest.raises(DeserializationError):
        parser.parse(b"true", int)
    assert parser.parse(b"1", int) == 1
    assert parser.parse(b"true", bool) is True


def test_parse_into_leaves_instance_untouched_on_bad_field():
    issue = Issue(number=1, assignee="octo", labels=[Label("bug")])
    with pytest.raises(DeserializationError):
        parser.parse_into(b'{"assignee": "hubot", "labels": "not-a-list"}', issue)
    assert issue == Issue(number=1, assignee="octo", labels=[Label("bug")])
