"""Drive path value type and idempotent folder-chain materialization."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import quote

from firm_drive.graph.client import GraphApiError
from firm_drive.graph.models import (
    CONFLICT_RENAME,
    FIELD_CONFLICT_BEHAVIOR,
    FIELD_FOLDER,
    FIELD_NAME,
)

if TYPE_CHECKING:
    from firm_drive.graph.client import GraphClient

logger = logging.getLogger(__name__)

DRIVE_PREFIX = "/me/drive"
_FORBIDDEN_SEGMENT_CHARS = frozenset("/\\")


class InvalidSegmentError(ValueError):
    """Raised when a folder or file name cannot be used as a path segment."""


class PathResolutionError(Exception):
    """Raised when a folder chain cannot be walked or created."""

    def __init__(self, path: str, status_code: int, message: str) -> None:
        super().__init__(f"Failed to resolve '{path}' (status {status_code}): {message}")
        self.path = path
        self.status_code = status_code


def validate_segment(segment: str) -> str:
    """Return the segment unchanged if it is a legal single path component.

    Raises:
        InvalidSegmentError: If the segment is empty, a dot entry, or contains
            a path separator.
    """
    if not isinstance(segment, str) or not segment.strip():
        raise InvalidSegmentError(f"Path segment must be a non-empty string: {segment!r}")
    if segment in (".", ".."):
        raise InvalidSegmentError(f"Path segment must not be a dot entry: {segment!r}")
    if any(ch in _FORBIDDEN_SEGMENT_CHARS for ch in segment):
        raise InvalidSegmentError(f"Path segment must not contain separators: {segment!r}")
    return segment


@dataclass(frozen=True)
class DrivePath:
    """Folder location relative to the drive root, as an ordered tuple of names.

    ``str()`` gives the ``root:/A/B`` form used in drive-relative references;
    ``api_path`` gives the URL-quoted Graph endpoint for the item itself.
    """

    segments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for segment in self.segments:
            validate_segment(segment)

    @classmethod
    def of(cls, segments: Iterable[str]) -> DrivePath:
        return cls(tuple(segments))

    @property
    def is_root(self) -> bool:
        return not self.segments

    def child(self, name: str) -> DrivePath:
        return DrivePath((*self.segments, name))

    @property
    def relative(self) -> str:
        """Slash-joined segments without the ``root:/`` prefix."""
        return "/".join(self.segments)

    @property
    def api_path(self) -> str:
        if self.is_root:
            return f"{DRIVE_PREFIX}/root"
        quoted = "/".join(quote(s, safe="") for s in self.segments)
        return f"{DRIVE_PREFIX}/root:/{quoted}"

    @property
    def children_path(self) -> str:
        """Graph endpoint listing (GET) or creating (POST) this folder's children."""
        if self.is_root:
            return f"{DRIVE_PREFIX}/root/children"
        return f"{self.api_path}:/children"

    def __str__(self) -> str:
        if self.is_root:
            return "root"
        return f"root:/{self.relative}"


class PathResolver:
    """Walks a folder chain from the drive root, creating missing folders."""

    def __init__(self, graph_client: GraphClient) -> None:
        self._graph = graph_client

    def ensure_path(self, segments: Iterable[str]) -> DrivePath:
        """Make sure every folder in ``segments`` exists, in order.

        Each segment is looked up under the previously resolved folder. A
        missing segment is created with rename-on-collision, so a concurrent
        creator never makes this call fail; at worst a suffixed sibling
        appears. Calling twice with the same segments resolves the same path.

        Args:
            segments: Folder names, outermost first.

        Returns:
            The resolved DrivePath.

        Raises:
            InvalidSegmentError: If any segment is not a legal folder name.
                Raised before any remote call is made.
            PathResolutionError: If a lookup fails with anything other than
                not-found, or a folder cannot be created.
        """
        target = DrivePath.of(segments)
        current = DrivePath()
        for segment in target.segments:
            candidate = current.child(segment)
            try:
                self._graph.get(candidate.api_path)
            except GraphApiError as exc:
                if not exc.is_not_found:
                    raise PathResolutionError(str(candidate), exc.status_code, exc.message) from exc
                self._create_folder(current, segment)
            current = candidate
        return current

    def _create_folder(self, parent: DrivePath, name: str) -> None:
        body = {
            FIELD_NAME: name,
            FIELD_FOLDER: {},
            FIELD_CONFLICT_BEHAVIOR: CONFLICT_RENAME,
        }
        try:
            self._graph.post(parent.children_path, body)
        except GraphApiError as exc:
            logger.error(
                "[ensure_path] failed to create folder; name:%s;parent:%s;status:%d",
                name,
                parent,
                exc.status_code,
            )
            path = str(parent.child(name))
            raise PathResolutionError(path, exc.status_code, exc.message) from exc
        logger.info("[ensure_path] created folder; name:%s;parent:%s", name, parent)
