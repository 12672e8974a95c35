# ──────────────────────────────────────────────────────────────────────────────
# File: pod_listing.py
# Directory: services/
# Purpose : Namespace listings over the module index
#           • Keep only names under one namespace level
#           • Split into child namespaces vs leaf documents
#           • Group alphabetically by first letter
#
# Downstream:
#   - routes.pod
#   - services.pod_html
#
# Contents:
#   - EntryKind
#   - ListingEntry
#   - list_namespace()
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from typing import Dict, List, Mapping, Sequence


class EntryKind(str, Enum):
    NAMESPACE = "namespace"
    DOCUMENT = "document"


@dataclass(frozen=True)
class ListingEntry:
    name: str
    link_path: str
    kind: EntryKind
    suffix: str = ""

    @property
    def is_namespace(self) -> bool:
        return self.kind is EntryKind.NAMESPACE

    def href(self, url_prefix: str) -> str:
        """Absolute link; documents keep their file extension so the route sees a file."""
        return f"{url_prefix.rstrip('/')}/{self.link_path}{self.suffix}"


ListingGroups = Dict[str, List[ListingEntry]]


def _join(*parts: str) -> str:
    return "/".join(p for p in parts if p)


def list_namespace(modules: Mapping[str, str], namespace: Sequence[str] = ()) -> ListingGroups:
    """
    Build the listing for one namespace level.

    ``modules`` maps logical names ("Foo/Bar") to file paths. Names with a
    further "/" below the namespace collapse into one namespace entry per
    first segment; the rest become document entries. Entries are grouped
    by the uppercased first character of their display name.
    """
    parts = [p for p in namespace if p]
    prefix = "/".join(parts)
    entries: Dict[tuple, ListingEntry] = {}

    for key, path in modules.items():
        if prefix:
            if not key.startswith(prefix + "/"):
                continue
            rel = key[len(prefix) + 1:]
        else:
            rel = key
        if not rel:
            continue

        if "/" in rel:
            segment = rel.split("/", 1)[0]
            if not segment:
                continue
            name = segment + "/"
            ident = (name, EntryKind.NAMESPACE)
            if ident not in entries:
                entries[ident] = ListingEntry(
                    name=name,
                    link_path=_join(prefix, segment) + "/",
                    kind=EntryKind.NAMESPACE,
                )
        elif key.endswith(rel):
            ident = (rel, EntryKind.DOCUMENT)
            if ident not in entries:
                entries[ident] = ListingEntry(
                    name=rel,
                    link_path=_join(prefix, rel),
                    kind=EntryKind.DOCUMENT,
                    suffix=PurePath(path).suffix,
                )

    groups: ListingGroups = {}
    for entry in sorted(entries.values(), key=lambda e: e.name):
        groups.setdefault(entry.name[0].upper(), []).append(entry)
    return groups
