import pytest

from autoweb import PageInventory
from autoweb.inventory import (
    collect_urls,
    extract_candidates,
    looks_like_url,
    normalize_url,
    synthesize_identifier,
)

from .fakes import FakeChannel, FakeNode, FakePage

BASE = "https://shop.example.com/list/index.html"


@pytest.fixture
def shop():
    return FakePage([
        FakeNode(50, 50, id="buy-btn", title="立即购买" * 7, href="https://shop.example.com/p/1"),
        FakeNode(50, 2000, classes=["card", "hot"], title="热卖"),
        FakeNode(50, 120, tag="span"),
    ])


async def test_list_elements(shop):
    elements = await PageInventory(FakeChannel(shop)).list_elements()

    assert [e.identifier for e in elements] == ["#buy-btn", ".card.hot"]

    buy, card = elements
    assert len(buy.title) == 20
    assert buy.is_visible
    assert buy.url == "https://shop.example.com/p/1"
    assert not card.is_visible
    assert card.url is None
    assert (card.x, card.y) == (50, 2000)


async def test_list_elements_query_error_gives_empty_list():
    class Broken:
        async def evaluate(self, script, arg=None):
            return "ERROR: Target closed"

    assert await PageInventory(Broken()).list_elements() == []
    assert await PageInventory(Broken()).list_urls() == []


def test_synthesize_identifier():
    assert synthesize_identifier("buy", "btn primary", "BUTTON") == "#buy"
    assert synthesize_identifier("", "btn  primary", "BUTTON") == ".btn.primary"
    assert synthesize_identifier("", "   ", "DIV") == "div"
    assert synthesize_identifier("", "", "DIV") is None


async def test_list_urls_deduplicates_after_fragment_removal(shop):
    shop.url_entries = [
        {"kind": "url", "value": "/p/1", "base": BASE},
        {"kind": "url", "value": "https://shop.example.com/p/1#reviews", "base": BASE},
        {"kind": "url", "value": "../p/1#top", "base": BASE},
        {"kind": "url", "value": "detail.html", "base": BASE},
    ]

    urls = await PageInventory(FakeChannel(shop)).list_urls()

    assert urls == [
        "https://shop.example.com/p/1",
        "https://shop.example.com/list/detail.html",
    ]


def test_collect_urls_by_entry_kind():
    entries = [
        {"kind": "onclick", "value": "window.location.href='/cart'; return false;"},
        {"kind": "onclick", "value": "track('buy')"},
        {"kind": "css", "value": 'url("https://cdn.example.com/bg.png")'},
        {"kind": "style", "value": "background: url(img/local.png)"},
        {"kind": "style", "value": "background: url('/img/root.png')"},
        {"kind": "data", "value": "/api/items?page=2"},
        {"kind": "data", "value": "42"},
        {"kind": "refresh", "value": "5; URL='/landing'"},
        {"kind": "srcset", "value": "a.png 1x, /b.png 2x"},
        {"kind": "meta", "value": "https://shop.example.com/og.jpg"},
        {"kind": "url", "value": "javascript:void(0)"},
        {"kind": "url", "value": "data:image/png;base64,AAAA"},
    ]

    urls = collect_urls(entries, BASE)

    assert urls == [
        "https://shop.example.com/cart",
        "https://cdn.example.com/bg.png",
        "https://shop.example.com/img/root.png",
        "https://shop.example.com/api/items?page=2",
        "https://shop.example.com/landing",
        "https://shop.example.com/list/a.png",
        "https://shop.example.com/b.png",
        "https://shop.example.com/og.jpg",
    ]


def test_entry_base_overrides_document_base():
    entries = [{"kind": "url", "value": "inner.html", "base": "https://frames.example.com/f/"}]

    assert collect_urls(entries, BASE) == ["https://frames.example.com/f/inner.html"]


def test_extract_candidates_unknown_kind_keeps_value():
    assert extract_candidates("url", "/a") == ["/a"]
    assert extract_candidates("refresh", "10") == []


def test_looks_like_url():
    assert looks_like_url("//cdn.example.com/x.js")
    assert looks_like_url("https://a")
    assert not looks_like_url("img/a.png")
    assert not looks_like_url("true")


def test_normalize_url_edge_cases():
    assert normalize_url("  ", BASE) is None
    assert normalize_url("JavaScript:alert(1)", BASE) is None
    assert normalize_url("#top", BASE) == BASE
    # 无法解析的地址保留原样
    assert normalize_url("http://[::1", BASE) == "http://[::1"
    assert normalize_url("/x#y", "") == "/x"
