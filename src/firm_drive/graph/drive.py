"""Thin OneDrive pass-throughs used by the file manager screens."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from firm_drive.graph.client import GraphApiError, get_client
from firm_drive.graph.models import (
    CONFLICT_RENAME,
    FIELD_CONFLICT_BEHAVIOR,
    FIELD_FOLDER,
    FIELD_NAME,
    ODATA_VALUE,
)
from firm_drive.graph.paths import DRIVE_PREFIX, DrivePath, validate_segment

if TYPE_CHECKING:
    from firm_drive.config import AppConfig
    from firm_drive.graph.client import GraphClient

logger = logging.getLogger(__name__)

ROOT_REFERENCE = "root"
ROOT_PATH_PREFIX = "root:"


def _path_reference(reference: str) -> DrivePath:
    """Parse a ``root:/A/B`` reference into a DrivePath."""
    relative = reference[len(ROOT_PATH_PREFIX) :]
    return DrivePath.of(part for part in relative.split("/") if part)


class DriveService:
    """Generic file operations on the caller's drive.

    Folder arguments accept ``"root"``, a ``"root:/A/B"`` path reference, or a
    drive item id.
    """

    def __init__(
        self,
        graph_client: GraphClient,
        root_folder: str,
        company_data_folder: str = "COMPANY_DATA",
    ) -> None:
        self._graph = graph_client
        self._root_folder = root_folder
        self._company_data_folder = company_data_folder

    def list_files(self, folder_id: str = ROOT_REFERENCE) -> list[dict[str, Any]]:
        if not folder_id or folder_id == ROOT_REFERENCE:
            path = DrivePath().children_path
        elif folder_id.startswith(ROOT_PATH_PREFIX):
            path = _path_reference(folder_id).children_path
        else:
            path = f"{DRIVE_PREFIX}/items/{quote(folder_id, safe='')}/children"
        return list(self._graph.get(path).get(ODATA_VALUE, []))

    def upload_file(
        self,
        file_name: str,
        content: bytes,
        folder: str = ROOT_REFERENCE,
        content_type: str = "application/octet-stream",
    ) -> dict[str, Any]:
        """Upload ``content`` as ``file_name`` into ``folder``, replacing any same-named file.

        Returns:
            Graph metadata of the uploaded item.
        """
        validate_segment(file_name)
        if not folder or folder == ROOT_REFERENCE:
            path = f"{DrivePath().child(file_name).api_path}:/content"
        elif folder.startswith(ROOT_PATH_PREFIX):
            path = f"{_path_reference(folder).child(file_name).api_path}:/content"
        else:
            path = (
                f"{DRIVE_PREFIX}/items/{quote(folder, safe='')}"
                f":/{quote(file_name, safe='')}:/content"
            )
        result = self._graph.put_content(path, content, content_type)
        logger.info("[upload_file] uploaded file; name:%s;bytes:%d", file_name, len(content))
        return result

    def create_folder(self, folder_name: str, parent: str = ROOT_REFERENCE) -> dict[str, Any]:
        """Create ``folder_name`` under ``parent``; a name clash yields a renamed sibling."""
        validate_segment(folder_name)
        if not parent or parent == ROOT_REFERENCE:
            path = DrivePath().children_path
        elif parent.startswith(ROOT_PATH_PREFIX):
            path = _path_reference(parent).children_path
        else:
            path = f"{DRIVE_PREFIX}/items/{quote(parent, safe='')}/children"
        body = {
            FIELD_NAME: folder_name,
            FIELD_FOLDER: {},
            FIELD_CONFLICT_BEHAVIOR: CONFLICT_RENAME,
        }
        result = self._graph.post(path, body)
        logger.info("[create_folder] created folder; name:%s;parent:%s", folder_name, parent)
        return result

    def download_file(self, file_id: str) -> bytes:
        return self._graph.get_content(f"{DRIVE_PREFIX}/items/{quote(file_id, safe='')}/content")

    def search_files(self, query: str) -> list[dict[str, Any]]:
        # OData string literals escape a single quote by doubling it.
        literal = quote(query.replace("'", "''"), safe="")
        response = self._graph.get(f"{DRIVE_PREFIX}/root/search(q='{literal}')")
        return list(response.get(ODATA_VALUE, []))

    def get_company_files(self, company_name: str) -> list[dict[str, Any]]:
        """List files in the company's folder; a missing folder means no files yet."""
        folder = DrivePath((self._root_folder, self._company_data_folder, company_name))
        try:
            response = self._graph.get(folder.children_path)
        except GraphApiError as exc:
            if exc.is_not_found:
                return []
            raise
        return list(response.get(ODATA_VALUE, []))


def drive_service_from_config(access_token: str | None, config: AppConfig) -> DriveService:
    """Construct a DriveService for one caller from configuration.

    Raises:
        MissingCredentialError: If the access token is empty.
    """
    return DriveService(
        graph_client=get_client(access_token),
        root_folder=config.upload_root,
        company_data_folder=config.company_data_folder,
    )
