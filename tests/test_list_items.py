import json

import pytest

import list_items
from requesterlib.metrics import Metrics

from conftest import StubTransport


def stub_factory(transport):
    def factory(config):
        transport.config = config
        transport.metrics = Metrics()
        return transport

    return factory


def test_parse_headers():
    assert list_items.parse_headers(["Authorization: token abc", "X-A:b"]) == {"Authorization": "token abc", "X-A": "b"}
    with pytest.raises(ValueError):
        list_items.parse_headers(["nonsense"])


def test_main_writes_every_item(tmp_path, monkeypatch):
    transport = StubTransport()
    transport.add(
        "https://api.test/items?per_page=2",
        body=[{"id": 1}, {"id": 2}],
        headers={"Link": '<https://api.test/items?page=2&per_page=2>; rel="next"'},
    )
    transport.add("https://api.test/items?page=2&per_page=2", body=[{"id": 3}])
    monkeypatch.setattr(list_items, "HttpTransport", stub_factory(transport))
    out = tmp_path / "items.jsonl"

    code = list_items.main(["https://api.test/items", "--out", str(out), "--page-size", "2", "-H", "Authorization: token x"])

    assert code == 0
    assert [json.loads(line)["id"] for line in out.read_text().splitlines()] == [1, 2, 3]
    assert transport.config.default_headers == {"Authorization": "token x"}


def test_main_stops_at_max_items(tmp_path, monkeypatch):
    transport = StubTransport()
    transport.add(
        "https://api.test/items",
        body={"data": [{"id": 1}, {"id": 2}], "next": "/items?cursor=b"},
    )
    transport.add("https://api.test/items?cursor=b", body={"data": [{"id": 3}], "next": None})
    monkeypatch.setattr(list_items, "HttpTransport", stub_factory(transport))
    out = tmp_path / "items.jsonl"

    code = list_items.main(
        ["https://api.test/items", "--out", str(out), "--items-key", "data", "--next-field", "next", "--max-items", "2"]
    )

    assert code == 0
    assert len(out.read_text().splitlines()) == 2
    assert len(transport.requests) == 1


def test_main_reports_failures(tmp_path, monkeypatch):
    transport = StubTransport()
    monkeypatch.setattr(list_items, "HttpTransport", stub_factory(transport))
    assert list_items.main(["https://api.test/missing", "--out", str(tmp_path / "x.jsonl")]) == 1
