"""Detect entries describing the same publication and merge them."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Tuple

from bibtidy.diagnostics import DUPLICATE_ENTRY, DUPLICATE_KEY, TidyWarning
from bibtidy.fields import FieldIndex, FieldMap, field_text, resolve_entry
from bibtidy.latex import normalize_abstract, normalize_doi, normalize_title, surnames
from bibtidy.nodes import Document, Entry

logger = logging.getLogger(__name__)

Signature = Tuple[str, str]


class UnionFind:
    """Disjoint sets over entry positions; the earliest position is the root."""

    def __init__(self, size: int) -> None:
        self.parent = list(range(size))

    def find(self, idx: int) -> int:
        if self.parent[idx] != idx:
            self.parent[idx] = self.find(self.parent[idx])
        return self.parent[idx]

    def union(self, left: int, right: int) -> None:
        root_left = self.find(left)
        root_right = self.find(right)
        if root_left == root_right:
            return
        if root_right < root_left:
            root_left, root_right = root_right, root_left
        self.parent[root_right] = root_left


def surname_key(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", name.lower())


def citation_signature(fields: FieldMap) -> str:
    title = normalize_title(field_text(fields, "title"))
    if not title:
        return ""
    authors = sorted({surname_key(name) for name in surnames(field_text(fields, "author"))})
    return f"{' '.join(authors)}|{title}"


def entry_signatures(entry: Entry, fields: FieldMap, strategies: List[str]) -> List[Signature]:
    signatures: List[Signature] = []
    for strategy in strategies:
        if strategy == "key":
            value = entry.key or ""
        elif strategy == "doi":
            value = normalize_doi(field_text(fields, "doi"))
        elif strategy == "abstract":
            value = normalize_abstract(field_text(fields, "abstract"))
        elif strategy == "citation":
            value = citation_signature(fields)
        else:
            value = ""
        if value:
            signatures.append((strategy, value))
    return signatures


def describe(entry: Entry) -> str:
    return entry.key or f"@{entry.command} entry without key"


def check_duplicate_keys(entries: List[Entry]) -> List[TidyWarning]:
    warnings: List[TidyWarning] = []
    first_by_key: Dict[str, Entry] = {}
    for entry in entries:
        if not entry.key:
            continue
        original = first_by_key.setdefault(entry.key, entry)
        if original is not entry:
            warnings.append(
                TidyWarning(
                    DUPLICATE_KEY,
                    f"Entry key {entry.key!r} is used more than once",
                    entry,
                    original,
                )
            )
    return warnings


def find_duplicates(
    document: Document, index: FieldIndex, strategies: List[str]
) -> Tuple[List[List[Entry]], List[TidyWarning]]:
    """Flag duplicate entries and group them into transitive clusters.

    Returns the clusters (each in document order, original first) and the
    DUPLICATE_KEY / DUPLICATE_ENTRY warnings.
    """
    entries = list(document.entries())
    warnings = check_duplicate_keys(entries)
    if not strategies:
        return [], warnings

    first_by_signature: Dict[Signature, int] = {}
    uf = UnionFind(len(entries))
    for idx, entry in enumerate(entries):
        fields = index.get(entry)
        if fields is None:
            fields = resolve_entry(entry)
        matched: List[int] = []
        for signature in entry_signatures(entry, fields, strategies):
            earlier = first_by_signature.setdefault(signature, idx)
            if earlier != idx and earlier not in matched:
                matched.append(earlier)
        if not matched:
            continue
        entry.duplicate_of = entries[min(matched)]
        for earlier in sorted(matched):
            uf.union(earlier, idx)
            warnings.append(
                TidyWarning(
                    DUPLICATE_ENTRY,
                    f"{describe(entry)} appears to be a duplicate of {describe(entries[earlier])}",
                    entry,
                    entries[earlier],
                )
            )

    clusters: Dict[int, List[Entry]] = {}
    for idx, entry in enumerate(entries):
        clusters.setdefault(uf.find(idx), []).append(entry)
    return [cluster for cluster in clusters.values() if len(cluster) > 1], warnings


def merge_fields(original: Entry, duplicate: Entry, overwrite: bool) -> None:
    for item in duplicate.fields:
        existing = original.get(item.name)
        if existing is None:
            original.add_field(item.copy())
            original.dirty = True
        elif overwrite and existing.value.render() != item.value.render():
            existing.value = item.copy().value
            existing.value.parent = existing
            original.dirty = True


def merge_cluster(
    document: Document, index: FieldIndex, cluster: List[Entry], strategy: str
) -> Entry:
    """Merge one cluster in place and return the surviving entry."""
    if strategy == "last":
        survivor = cluster[-1]
    else:
        survivor = cluster[0]
        if strategy in ("combine", "overwrite"):
            for duplicate in cluster[1:]:
                merge_fields(survivor, duplicate, strategy == "overwrite")
            index[survivor] = resolve_entry(survivor)
    for entry in cluster:
        if entry is survivor:
            continue
        document.remove_block(entry.parent)
        index.pop(entry, None)
    survivor.duplicate_of = None
    return survivor


def merge_duplicates(
    document: Document, index: FieldIndex, clusters: List[List[Entry]], strategy: str
) -> None:
    for cluster in clusters:
        merge_cluster(document, index, cluster, strategy)
    logger.debug(
        "merged %d duplicate entries (%s)",
        sum(len(cluster) - 1 for cluster in clusters),
        strategy,
    )
