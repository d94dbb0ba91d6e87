"""Tests for the allow/deny lists and their on-disk store."""

import itertools

import pytest

from fountainscan.analyzer.lists import DomainLists, resolve
from fountainscan.constants import ListResolution, ListTag
from fountainscan.errors import InvalidDomainError, NotFoundError
from fountainscan.utils.lists import ListStore, read_list


class TestDomainLists:
    def test_add_entry_normalizes(self):
        lists = DomainLists()
        stored = lists.add_entry(ListTag.ALLOW, "https://www.Example.com/path")
        assert stored == "example.com"
        assert lists.allow == frozenset({"example.com"})

    def test_add_entry_is_idempotent(self):
        lists = DomainLists()
        lists.add_entry(ListTag.DENY, "scam.example")
        lists.add_entry(ListTag.DENY, "SCAM.example")
        assert lists.deny == frozenset({"scam.example"})

    def test_invalid_entry_is_rejected_without_change(self):
        lists = DomainLists(allow=["good.com"])
        with pytest.raises(InvalidDomainError):
            lists.add_entry(ListTag.ALLOW, "not a domain")
        assert lists.allow == frozenset({"good.com"})

    def test_remove_missing_entry_raises(self):
        lists = DomainLists(deny=["bad.com"])
        with pytest.raises(NotFoundError):
            lists.remove_entry(ListTag.DENY, "other.com")
        assert lists.deny == frozenset({"bad.com"})

    def test_remove_entry(self):
        lists = DomainLists(deny=["bad.com"])
        assert lists.remove_entry(ListTag.DENY, "www.bad.com") == "bad.com"
        assert lists.deny == frozenset()

    def test_mutation_does_not_touch_captured_sets(self):
        lists = DomainLists(allow=["a.com"])
        before = lists.allow
        lists.add_entry(ListTag.ALLOW, "b.com")
        assert before == frozenset({"a.com"})
        assert lists.allow == frozenset({"a.com", "b.com"})

    def test_allow_beats_deny(self):
        lists = DomainLists(allow=["example.com"], deny=["example.com"])
        assert lists.resolve("shop.example.com") == ListResolution.ALLOW

    def test_feed_entries_behave_as_deny(self):
        lists = DomainLists(feed=["phish.example"])
        assert lists.resolve("login.phish.example") == ListResolution.DENY

        lists.replace_feed([])
        assert lists.resolve("login.phish.example") == ListResolution.NONE

    def test_replace_swaps_whole_list(self):
        lists = DomainLists(allow=["a.com", "b.com"])
        lists.replace(ListTag.ALLOW, ["c.com", "invalid"])
        assert lists.allow == frozenset({"c.com"})

    def test_constructor_drops_invalid_entries(self):
        lists = DomainLists(allow=["ok.com", "nope"])
        assert lists.allow == frozenset({"ok.com"})


def test_resolve_is_order_independent():
    allow = ["trusted.org", "*.example.com"]
    deny = ["example.com", "bad.net", "trusted.org"]
    hosts = ["example.com", "api.example.com", "bad.net", "x.trusted.org", "other.io"]

    expected = {host: resolve(host, allow, deny) for host in hosts}
    assert expected["example.com"] == ListResolution.ALLOW
    assert expected["bad.net"] == ListResolution.DENY
    assert expected["x.trusted.org"] == ListResolution.ALLOW
    assert expected["other.io"] == ListResolution.NONE

    for allow_order in itertools.permutations(allow):
        for deny_order in itertools.permutations(deny):
            for host in hosts:
                assert resolve(host, allow_order, deny_order) == expected[host]


def test_list_tag_accepts_legacy_names():
    assert ListTag.from_string("whitelist") == ListTag.ALLOW
    assert ListTag.from_string("Blacklist") == ListTag.DENY
    with pytest.raises(ValueError):
        ListTag.from_string("greylist")


class TestListStore:
    def test_save_and_load(self, tmp_path):
        store = ListStore(tmp_path)
        store.save(ListTag.DENY, {"b.com", "a.com"})

        text = store.path_for(ListTag.DENY).read_text()
        assert text.startswith("#")
        assert text.index("a.com") < text.index("b.com")
        assert store.load(ListTag.DENY) == {"a.com", "b.com"}

    def test_read_list_skips_comments_and_invalid(self, tmp_path):
        path = tmp_path / "allowlist.txt"
        path.write_text("# comment\n\nWWW.Example.com\nnot valid\n*.trusted.org\n")
        assert read_list(path) == {"example.com", "*.trusted.org"}

    def test_missing_file_is_empty(self, tmp_path):
        store = ListStore(tmp_path)
        assert store.load(ListTag.ALLOW) == set()
        assert store.load_feed() == set()
