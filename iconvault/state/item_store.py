"""Dashboard item store -- bookmarks, services and categories in ``items.json``."""

from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from ..config.settings import cfg

logger = logging.getLogger(__name__)

ITEM_TYPES = ("bookmark", "service", "category")


@dataclass
class Item:
    id: str = ""
    type: str = "bookmark"
    name: str = ""
    url: str = ""
    section: str = ""
    icon: str = ""


class ItemStore:
    """Persists dashboard items, keyed by type then id."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or cfg.items_path
        self._items: dict[str, dict[str, Item]] = {t: {} for t in ITEM_TYPES}
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError):
            logger.warning("Unreadable item store %s -- starting empty", self._path)
            return
        for item_type in ITEM_TYPES:
            for raw in data.get(item_type, []):
                if not isinstance(raw, dict) or not raw.get("id"):
                    continue
                item = Item(**{k: str(v) for k, v in raw.items() if k in Item.__dataclass_fields__})
                item.type = item_type
                self._items[item_type][item.id] = item

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {t: [asdict(i) for i in items.values()] for t, items in self._items.items()}
        tmp = self._path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, indent=2) + "\n")
        os.replace(tmp, self._path)

    @staticmethod
    def _check_type(item_type: str) -> None:
        if item_type not in ITEM_TYPES:
            raise ValueError(f"Unknown item type: {item_type!r}")

    def add(
        self,
        item_type: str,
        name: str,
        *,
        url: str = "",
        section: str = "",
        icon: str = "",
        item_id: str = "",
    ) -> Item:
        self._check_type(item_type)
        item = Item(
            id=item_id or uuid.uuid4().hex[:8],
            type=item_type,
            name=name,
            url=url,
            section=section,
            icon=icon,
        )
        self._items[item_type][item.id] = item
        self._save()
        return item

    def get(self, item_type: str, item_id: str) -> Item | None:
        self._check_type(item_type)
        return self._items[item_type].get(item_id)

    def get_items(self, item_type: str, ids: list[str]) -> list[Item]:
        """Items of *item_type* with the given ids, in request order; unknown ids are skipped."""
        self._check_type(item_type)
        found = self._items[item_type]
        return [found[i] for i in ids if i in found]

    def list_items(self, item_type: str | None = None) -> list[Item]:
        if item_type is not None:
            self._check_type(item_type)
            return list(self._items[item_type].values())
        return [i for items in self._items.values() for i in items.values()]

    def set_icon(self, item_type: str, item_id: str, icon: str) -> bool:
        item = self.get(item_type, item_id)
        if item is None:
            return False
        item.icon = icon
        self._save()
        logger.debug("Set icon of %s/%s to %r", item_type, item_id, icon)
        return True

    def to_dict(self) -> dict[str, Any]:
        return {t: [asdict(i) for i in items.values()] for t, items in self._items.items()}
