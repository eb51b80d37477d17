"""Inline relative cross-file $refs ("./common.yaml#/components/schemas/Money").

Referenced files are fetched at most once per service through a ReferenceCache, then each
ref node is replaced by the fragment its JSON pointer locates. Fragments are
expanded recursively; a ref that re-enters a fragment already being expanded is
left as-is with a warning instead of recursing forever.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import posixpath
from collections.abc import Awaitable, Callable
from typing import Any

from spec_aggregator.refs import iter_refs, map_tree

log = logging.getLogger(__name__)

RELATIVE_REF_PREFIX = "./"

Loader = Callable[[str], Awaitable[Any]]


class ReferenceCache:
    """Resolved file path -> parsed document, scoped to one service's fetch pass.

    Concurrent requests for the same path share one in-flight fetch. A path whose
    fetch failed is remembered in `failed` and not requested again.
    """

    def __init__(self) -> None:
        self.documents: dict[str, Any] = {}
        self.failed: set[str] = set()
        self._inflight: dict[str, asyncio.Future[Any]] = {}

    def __contains__(self, path: str) -> bool:
        return path in self.documents

    def get(self, path: str) -> Any:
        return self.documents.get(path)

    async def fetch(self, path: str, loader: Loader) -> Any:
        if path in self.documents:
            return self.documents[path]
        if path in self.failed:
            return None
        fut = self._inflight.get(path)
        if fut is None:
            fut = asyncio.ensure_future(self._load(path, loader))
            self._inflight[path] = fut
        return await fut

    async def _load(self, path: str, loader: Loader) -> Any:
        try:
            log.info("Fetching referenced file: %s", path)
            doc = await loader(path)
            if doc is None:
                self.failed.add(path)
            else:
                self.documents[path] = doc
            return doc
        finally:
            self._inflight.pop(path, None)


def is_relative_ref(ref: Any) -> bool:
    return isinstance(ref, str) and ref.startswith(RELATIVE_REF_PREFIX)


def split_ref(ref: str) -> tuple[str, str]:
    """("./common.yaml", "/components/schemas/X") from "./common.yaml#/components/schemas/X"."""
    file_part, _, pointer = ref.partition("#")
    return file_part, pointer


def ref_file_path(specs_path: str, relative_file: str) -> str:
    """Repository path of a relative ref target; refs are relative to the specs root."""
    return posixpath.normpath(posixpath.join(specs_path, relative_file))


def relative_ref_files(node: Any, specs_path: str) -> set[str]:
    return {
        ref_file_path(specs_path, split_ref(ref)[0]) for ref in iter_refs(node) if is_relative_ref(ref)
    }


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def resolve_pointer(document: Any, pointer: str) -> tuple[bool, Any]:
    """Follow a JSON pointer. Returns (found, value); an empty pointer is the whole document."""
    current = document
    for raw in (p for p in pointer.split("/") if p):
        part = _unescape(raw)
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return False, None
    if current is None:
        return False, None
    return True, current


def expand_refs(
    node: Any,
    specs_path: str,
    cache: ReferenceCache,
    resolving: frozenset[tuple[str, str]] = frozenset(),
    source: str = "",
) -> Any:
    """Replace relative ref nodes with their cached fragments (no I/O).

    source names the referencing document (e.g. "acme/parcels:parcels.yaml") in warnings.
    """
    origin = source or specs_path

    def _visit(d: dict[str, Any]) -> Any:
        ref = d.get("$ref")
        if not is_relative_ref(ref):
            return None
        relative_file, pointer = split_ref(ref)
        full_path = ref_file_path(specs_path, relative_file)
        document = cache.get(full_path)
        if document is None:
            log.warning(
                "Could not resolve reference to %s (%s) in %s", relative_file, full_path, origin
            )
            return copy.deepcopy(d)
        key = (full_path, pointer)
        if key in resolving:
            log.warning("Reference cycle through %s in %s, leaving it unexpanded", ref, origin)
            return copy.deepcopy(d)
        found, fragment = resolve_pointer(document, pointer)
        if not found:
            log.warning(
                "Pointer #%s not found in %s (referenced from %s)", pointer, full_path, origin
            )
            return copy.deepcopy(d)
        return expand_refs(fragment, specs_path, cache, resolving | {key}, source)

    return map_tree(node, _visit)


async def resolve_external_refs(
    content: Any,
    loader: Loader,
    specs_path: str,
    cache: ReferenceCache | None = None,
    source: str = "",
) -> Any:
    """Return content with every relative $ref inlined.

    loader(path) fetches one repository file and returns its parsed content or
    None. Files referenced from fetched files are loaded in later rounds until
    nothing new turns up. Running this on an already resolved document is a no-op.
    source labels the document in log messages.
    """
    if cache is None:
        cache = ReferenceCache()
    pending = relative_ref_files(content, specs_path)
    if not pending:
        return content

    log.info(
        "Found %d externally referenced file(s) to resolve in %s",
        len(pending),
        source or specs_path,
    )
    attempted: set[str] = set()
    while pending:
        attempted |= pending
        batch = sorted(pending)
        docs = await asyncio.gather(*(cache.fetch(p, loader) for p in batch))
        discovered: set[str] = set()
        for doc in docs:
            if doc is not None:
                discovered |= relative_ref_files(doc, specs_path)
        pending = discovered - attempted

    return expand_refs(content, specs_path, cache, source=source)
