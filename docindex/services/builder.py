"""
Build a search index from a YAML page manifest.

The manifest lists the pages of a documentation site and, per page, the
blocks that become search records:

    pages:
      - title: Home
        path: index.md
        blocks:
          - {kind: text, text: "Documentation for FinanceCore."}
          - {kind: heading, title: FinanceCore}
          - {kind: docstring, binding: FinanceCore.Cashflow, category: type, text: "..."}

Locations follow the pretty-URL layout of the generated site: `index.md`
lives at "", `lib/api.md` at "lib/api/", and anchors are appended after '#'.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml

from docindex.domain.models import DEFAULT_VARIABLE_NAME, SearchIndex, SearchRecord
from docindex.domain.search_utils import slugify
from docindex.storage.script_codec import dump_search_index

logger = logging.getLogger(__name__)

DEFAULT_DOCSTRING_CATEGORY = "function"


def page_location(path: str) -> str:
    """
    Map a source page path to its URL prefix.

    "index.md" -> "", "lib/api.md" -> "lib/api/", "man/index.md" -> "man/".
    """
    normalized = path.replace("\\", "/").strip("/")
    if normalized.endswith(".md"):
        normalized = normalized[:-3]
    if normalized == "index":
        return ""
    if normalized.endswith("/index"):
        normalized = normalized[: -len("/index")]
    return f"{normalized}/" if normalized else ""


def docstring_anchor(binding: str, signature: Optional[str] = None) -> str:
    if signature:
        return f"{binding}-{signature}"
    return binding


class IndexBuilder:
    """
    Accumulates records page by page.

    Anchors are unique per page: a repeated heading slug gets "-1", "-2", ...
    appended, as the site generator does.
    """

    def __init__(self, variable_name: str = DEFAULT_VARIABLE_NAME, wrapped: bool = True):
        self.variable_name = variable_name
        self.wrapped = wrapped
        self.records: List[SearchRecord] = []
        self._anchors: Dict[str, Set[str]] = {}

    def _unique_anchor(self, page_loc: str, anchor: str) -> str:
        issued = self._anchors.setdefault(page_loc, set())
        candidate = anchor
        suffix = 0
        while candidate in issued:
            suffix += 1
            candidate = f"{anchor}-{suffix}"
        issued.add(candidate)
        return candidate

    def add_text(self, page_title: str, page_loc: str, text: str) -> SearchRecord:
        record = SearchRecord(
            location=page_loc,
            page=page_title,
            title=page_title,
            text=text,
            category="page",
        )
        self.records.append(record)
        return record

    def add_heading(self, page_title: str, page_loc: str, title: str, anchor: Optional[str] = None, text: str = "") -> SearchRecord:
        slug = self._unique_anchor(page_loc, anchor or slugify(title))
        record = SearchRecord(
            location=f"{page_loc}#{slug}",
            page=page_title,
            title=title,
            text=text,
            category="section",
        )
        self.records.append(record)
        return record

    def add_docstring(
        self,
        page_title: str,
        page_loc: str,
        binding: str,
        text: str,
        category: str = DEFAULT_DOCSTRING_CATEGORY,
        signature: Optional[str] = None,
    ) -> SearchRecord:
        anchor = self._unique_anchor(page_loc, docstring_anchor(binding, signature))
        record = SearchRecord(
            location=f"{page_loc}#{anchor}",
            page=page_title,
            title=binding,
            text=text,
            category=category,
        )
        self.records.append(record)
        return record

    def add_page(self, page: Dict[str, Any], page_number: int) -> None:
        if not isinstance(page, dict):
            raise ValueError(f"Page {page_number} must be a mapping")
        title = page.get("title")
        path = page.get("path")
        if not title or not path:
            raise ValueError(f"Page {page_number} needs both 'title' and 'path'")

        page_loc = page_location(str(path))
        for block_number, block in enumerate(page.get("blocks") or []):
            where = f"page '{title}' block {block_number}"
            if not isinstance(block, dict):
                raise ValueError(f"{where}: block must be a mapping")

            kind = block.get("kind")
            if kind == "text":
                self.add_text(title, page_loc, str(block.get("text") or ""))
            elif kind == "heading":
                if not block.get("title"):
                    raise ValueError(f"{where}: heading needs a 'title'")
                self.add_heading(
                    title,
                    page_loc,
                    str(block["title"]),
                    anchor=block.get("anchor"),
                    text=str(block.get("text") or ""),
                )
            elif kind == "docstring":
                if not block.get("binding"):
                    raise ValueError(f"{where}: docstring needs a 'binding'")
                self.add_docstring(
                    title,
                    page_loc,
                    str(block["binding"]),
                    str(block.get("text") or ""),
                    category=str(block.get("category") or DEFAULT_DOCSTRING_CATEGORY),
                    signature=block.get("signature"),
                )
            else:
                raise ValueError(f"{where}: unknown block kind {kind!r}")

    def build(self) -> SearchIndex:
        return SearchIndex(
            records=list(self.records),
            variable_name=self.variable_name,
            wrapped=self.wrapped,
        )


def build_from_manifest_data(
    manifest: Dict[str, Any],
    variable_name: str = DEFAULT_VARIABLE_NAME,
    wrapped: bool = True,
) -> SearchIndex:
    """
    Build an index from a parsed manifest.

    `variable_name` and `wrapped` apply unless the manifest sets its own.
    """
    if not isinstance(manifest, dict):
        raise ValueError("Manifest must be a mapping with a 'pages' list")
    pages = manifest.get("pages")
    if not isinstance(pages, list):
        raise ValueError("Manifest must contain a 'pages' list")

    builder = IndexBuilder(
        variable_name=manifest.get("variable_name") or variable_name,
        wrapped=bool(manifest.get("wrapped", wrapped)),
    )
    for page_number, page in enumerate(pages):
        builder.add_page(page, page_number)

    index = builder.build()
    logger.debug(f"Built search index with {len(index.records)} records from {len(pages)} pages")
    return index


def load_manifest(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse manifest: {e}", exc_info=True)
        raise ValueError(f"Failed to parse manifest YAML: {e}") from e


def build_from_manifest(path: Path, variable_name: str = DEFAULT_VARIABLE_NAME, wrapped: bool = True) -> SearchIndex:
    """
    Load a YAML page manifest and build the search index it describes.
    """
    manifest = load_manifest(path.read_text(encoding="utf-8"))
    return build_from_manifest_data(manifest, variable_name=variable_name, wrapped=wrapped)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python -m docindex.services.builder <manifest.yaml> [search_index.js]")
        sys.exit(2)

    manifest_path = Path(sys.argv[1])
    output_path = Path(sys.argv[2]) if len(sys.argv) > 2 else Path("search_index.js")

    try:
        built = build_from_manifest(manifest_path)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    dump_search_index(built, output_path)
    print(f"Wrote {len(built.records)} records to {output_path}")
