# ──────────────────────────────────────────────────────────────────────────────
# File: tests/test_pod_listing.py
# ──────────────────────────────────────────────────────────────────────────────
from services.pod_listing import EntryKind, ListingEntry, list_namespace

INDEX = {"A/B": "/lib/A/B.pm", "C": "/lib/C.pod"}


def test_root_listing_splits_namespaces_and_documents():
    groups = list_namespace(INDEX, [])
    assert sorted(groups) == ["A", "C"]
    assert groups["A"] == [ListingEntry("A/", "A/", EntryKind.NAMESPACE)]
    assert groups["C"] == [ListingEntry("C", "C", EntryKind.DOCUMENT, ".pod")]


def test_nested_listing_links_under_namespace():
    groups = list_namespace(INDEX, ["A"])
    assert list(groups) == ["B"]
    (entry,) = groups["B"]
    assert entry.name == "B"
    assert entry.link_path == "A/B"
    assert entry.kind is EntryKind.DOCUMENT
    assert entry.href("/pod") == "/pod/A/B.pm"


def test_namespace_entries_are_deduplicated():
    modules = {
        "Foo/Bar/One": "/l/Foo/Bar/One.pm",
        "Foo/Bar/Two": "/l/Foo/Bar/Two.pm",
        "Foo/Baz": "/l/Foo/Baz.pm",
    }
    groups = list_namespace(modules, ["Foo"])
    assert [e.name for e in groups["B"]] == ["Bar/", "Baz"]
    assert groups["B"][0].link_path == "Foo/Bar/"
    assert groups["B"][0].href("/pod") == "/pod/Foo/Bar/"


def test_module_and_namespace_with_same_name_both_listed():
    modules = {"Foo": "/l/Foo.pm", "Foo/Bar": "/l/Foo/Bar.pm"}
    groups = list_namespace(modules, [])
    assert [(e.name, e.kind) for e in groups["F"]] == [
        ("Foo", EntryKind.DOCUMENT),
        ("Foo/", EntryKind.NAMESPACE),
    ]


def test_groups_use_uppercased_first_letter_and_sorted_entries():
    modules = {"zeta": "/l/zeta.pod", "Zap": "/l/Zap.pm", "alpha": "/l/alpha.pl"}
    groups = list_namespace(modules, [])
    assert sorted(groups) == ["A", "Z"]
    assert [e.name for e in groups["Z"]] == ["Zap", "zeta"]


def test_prefix_must_match_whole_segment():
    modules = {"Foobar/X": "/l/Foobar/X.pm", "Foo/Y": "/l/Foo/Y.pm"}
    groups = list_namespace(modules, ["Foo"])
    assert [e.link_path for g in groups.values() for e in g] == ["Foo/Y"]


def test_unknown_namespace_is_empty_not_error():
    assert list_namespace(INDEX, ["Nope", "Nothing"]) == {}


def test_namespace_key_itself_is_not_listed_as_child():
    modules = {"A": "/l/A.pm", "A/B": "/l/A/B.pm"}
    groups = list_namespace(modules, ["A"])
    assert [e.name for g in groups.values() for e in g] == ["B"]
