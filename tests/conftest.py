"""Pytest configuration — adds src/ to sys.path and provides an in-memory drive."""

from __future__ import annotations

import os
import sys
from typing import Any
from urllib.parse import unquote

import pytest

# Add src/ to Python path so tests can import from firm_drive
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from firm_drive.graph.client import GraphApiError  # noqa: E402

_ROOT = "/me/drive/root"
_ROOT_PATH = "/me/drive/root:/"
_ITEMS = "/me/drive/items/"


def _segments(api_path: str) -> tuple[str, ...]:
    if api_path == _ROOT:
        return ()
    return tuple(unquote(part) for part in api_path[len(_ROOT_PATH) :].split("/"))


class FakeDrive:
    """Answers the GraphClient calls the placement code makes, from a dict of items.

    Items are keyed by their segment tuple. Copies land immediately unless
    ``copies_land`` is False, in which case they never become visible.
    """

    def __init__(self) -> None:
        self.items: dict[tuple[str, ...], dict[str, Any]] = {(): {"id": "root", "folder": {}}}
        self.copies_land = True
        self.created_folders: list[tuple[str, ...]] = []
        self.copies: list[dict[str, Any]] = []
        self.uploads: list[tuple[tuple[str, ...], bytes, str]] = []
        self.get_calls: list[str] = []
        self._next_id = 0

    # -- seeding -----------------------------------------------------------

    def add_folder(self, *segments: str) -> dict[str, Any]:
        for depth in range(1, len(segments) + 1):
            key = tuple(segments[:depth])
            if key not in self.items:
                self.items[key] = self._item(key[-1], folder=True)
        return self.items[tuple(segments)]

    def add_file(self, *segments: str, item_id: str | None = None) -> dict[str, Any]:
        self.add_folder(*segments[:-1])
        item = self._item(segments[-1], item_id=item_id)
        self.items[tuple(segments)] = item
        return item

    def has(self, *segments: str) -> bool:
        return tuple(segments) in self.items

    # -- GraphClient surface -------------------------------------------------

    def get(self, path: str) -> dict[str, Any]:
        self.get_calls.append(path)
        if path == f"{_ROOT}/children":
            return self._listing(())
        if path.endswith(":/children"):
            return self._listing(_segments(path[: -len(":/children")]))
        if path.startswith(_ITEMS):
            item_id = unquote(path[len(_ITEMS) :])
            for item in self.items.values():
                if item["id"] == item_id:
                    return item
            raise GraphApiError(404, "Item not found", "itemNotFound")
        key = _segments(path)
        if key in self.items:
            return self.items[key]
        raise GraphApiError(404, "The resource could not be found.", "itemNotFound")

    def post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        if path.endswith("/copy"):
            self.copies.append({"source": unquote(path[len(_ITEMS) : -len("/copy")]), **body})
            if self.copies_land:
                parent = self._key_for_id(body["parentReference"]["id"])
                self.items[(*parent, body["name"])] = self._item(body["name"])
            return {}
        parent = () if path == f"{_ROOT}/children" else _segments(path[: -len(":/children")])
        key = (*parent, body["name"])
        self.items[key] = self._item(body["name"], folder=True)
        self.created_folders.append(key)
        return self.items[key]

    def put_content(
        self, path: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> dict[str, Any]:
        key = _segments(path[: -len(":/content")])
        self.items[key] = self._item(key[-1])
        self.uploads.append((key, content, content_type))
        return self.items[key]

    # -- internals -----------------------------------------------------------

    def _item(self, name: str, folder: bool = False, item_id: str | None = None) -> dict[str, Any]:
        self._next_id += 1
        item: dict[str, Any] = {
            "id": item_id or f"item-{self._next_id}",
            "name": name,
            "webUrl": f"https://contoso-my.sharepoint.com/{name}",
            "createdDateTime": "2026-12-01T10:00:00Z",
        }
        if folder:
            item["folder"] = {}
        return item

    def _key_for_id(self, item_id: str) -> tuple[str, ...]:
        for key, item in self.items.items():
            if item["id"] == item_id:
                return key
        raise KeyError(item_id)

    def _listing(self, parent: tuple[str, ...]) -> dict[str, Any]:
        if parent not in self.items:
            raise GraphApiError(404, "Item not found", "itemNotFound")
        children = [
            item
            for key, item in self.items.items()
            if len(key) == len(parent) + 1 and key[: len(parent)] == parent
        ]
        return {"value": children}


@pytest.fixture
def fake_drive() -> FakeDrive:
    return FakeDrive()
