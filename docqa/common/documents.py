"""
Documentation Source

Loads DocumentItems from either:
- a JSON file: a list of categories ``{id, title, items: [...]}`` or a flat
  list of items ``{id, title, category, content, ...}``
- a directory of markdown files: ``<category>/<item>.md``; the title is the
  first ``# `` heading, falling back to the file stem
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .config import DEFAULT_DOCS_PATH
from .errors import ConfigurationError
from .schemas import DocumentItem

logger = logging.getLogger("docqa.common.documents")

_HEADING_PATTERN = re.compile(r"^#\s+(.+?)\s*$", re.MULTILINE)


class DocumentStore:
    """Read-only collection of documentation items, in load order."""

    def __init__(self, items: List[DocumentItem], category_titles: Optional[Dict[str, str]] = None):
        self._category_titles = dict(category_titles or {})
        self._by_id: Dict[str, DocumentItem] = {}
        for item in items:
            if item.id in self._by_id:
                logger.warning("Duplicate document id %r, keeping the first", item.id)
                continue
            self._by_id[item.id] = item
        self._items = list(self._by_id.values())

    def __len__(self) -> int:
        return len(self._items)

    def list_documents(self) -> List[DocumentItem]:
        return list(self._items)

    def get_document(self, item_id: str) -> Optional[DocumentItem]:
        return self._by_id.get(item_id)

    def list_categories(self) -> List[Dict[str, Any]]:
        """Categories in first-seen order, each with its items."""
        categories: Dict[str, Dict[str, Any]] = {}
        for item in self._items:
            if item.category not in categories:
                categories[item.category] = {
                    "id": item.category,
                    "title": self._category_titles.get(item.category)
                    or item.category.replace("-", " ").title(),
                    "items": [],
                }
            categories[item.category]["items"].append(item)
        return list(categories.values())

    def get_category(self, category_id: str) -> Optional[Dict[str, Any]]:
        return next((c for c in self.list_categories() if c["id"] == category_id), None)

    def search_documents(self, query: str) -> List[DocumentItem]:
        """
        Case-insensitive substring search over title, description, content
        and tags. A blank query matches nothing.
        """
        if not query or not query.strip():
            return []

        needle = query.lower()
        results = []
        for item in self._items:
            haystacks = [item.title, item.description or "", item.content, *item.tags]
            if any(needle in text.lower() for text in haystacks):
                results.append(item)
        return results

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Optional[str] = None) -> "DocumentStore":
        """
        Load documentation from a JSON file or markdown directory.

        Args:
            path: Source path (default: the packaged sample documentation)

        Raises:
            ConfigurationError: the path is missing or unreadable
        """
        source = Path(path).expanduser() if path else DEFAULT_DOCS_PATH
        titles: Dict[str, str] = {}
        if source.is_dir():
            items = _load_markdown_dir(source)
        elif source.is_file():
            items, titles = _load_json_file(source)
        else:
            raise ConfigurationError(f"Documentation source not found: {source}")

        logger.info("Loaded %d documentation items from %s", len(items), source)
        return cls(items, titles)


def _load_json_file(path: Path) -> Tuple[List[DocumentItem], Dict[str, str]]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read documentation file {path}: {e}") from e

    if not isinstance(data, list):
        raise ConfigurationError(f"Documentation file {path} must contain a JSON list")

    items = []
    titles: Dict[str, str] = {}
    for entry in data:
        if not isinstance(entry, dict):
            logger.warning("Skipping non-object documentation entry: %r", entry)
            continue
        if "items" in entry:
            # Category with nested items
            if entry.get("id") and entry.get("title"):
                titles[entry["id"]] = entry["title"]
            for raw in entry.get("items") or []:
                if not isinstance(raw, dict):
                    logger.warning("Skipping non-object documentation entry: %r", raw)
                    continue
                items.append(_to_item({**raw, "category": raw.get("category") or entry.get("id")}))
        else:
            items.append(_to_item(entry))
    return [item for item in items if item is not None], titles


def _to_item(raw: dict) -> Optional[DocumentItem]:
    try:
        return DocumentItem(
            id=raw["id"],
            title=raw.get("title") or raw["id"],
            category=raw.get("category") or "general",
            content=raw.get("content", ""),
            description=raw.get("description"),
            tags=list(raw.get("tags") or []),
        )
    except (KeyError, ValidationError) as e:
        logger.warning("Skipping malformed documentation entry: %s", e)
        return None


def _load_markdown_dir(root: Path) -> List[DocumentItem]:
    items = []
    for md_file in sorted(root.rglob("*.md")):
        try:
            content = md_file.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Skipping unreadable file %s: %s", md_file, e)
            continue

        relative = md_file.relative_to(root)
        category = relative.parts[0] if len(relative.parts) > 1 else "general"
        heading = _HEADING_PATTERN.search(content)
        items.append(
            DocumentItem(
                id=md_file.stem,
                title=heading.group(1) if heading else md_file.stem.replace("-", " ").title(),
                category=category,
                content=content,
            )
        )
    return items
