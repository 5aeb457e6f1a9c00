"""Data models for Microsoft Graph API drive items."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Graph API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_FOLDER = "folder"
FIELD_WEB_URL = "webUrl"
FIELD_CREATED_DATE_TIME = "createdDateTime"
FIELD_PARENT_REFERENCE = "parentReference"
FIELD_CONFLICT_BEHAVIOR = "@microsoft.graph.conflictBehavior"

# OData response keys
ODATA_VALUE = "value"

CONFLICT_RENAME = "rename"


@dataclass
class DriveFile:
    """A file or folder stored in OneDrive."""

    id: str
    name: str
    web_url: str = ""
    created_date_time: str = ""

    @classmethod
    def from_graph(cls, raw: dict[str, Any]) -> DriveFile:
        """Map a raw Graph API item dict to a DriveFile."""
        return cls(
            id=raw.get(FIELD_ID, ""),
            name=raw.get(FIELD_NAME, ""),
            web_url=raw.get(FIELD_WEB_URL, ""),
            created_date_time=raw.get(FIELD_CREATED_DATE_TIME, ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            FIELD_ID: self.id,
            FIELD_NAME: self.name,
            FIELD_WEB_URL: self.web_url,
            FIELD_CREATED_DATE_TIME: self.created_date_time,
        }


@dataclass
class PlacementResult:
    """Outcome of placing a document into its destination folder.

    Attributes:
        success: True when the copy or upload was issued.
        target_path: Slash-joined destination folder (without the ``root:/`` prefix).
        new_name: Name the document was given in the destination folder.
        file: Metadata of the placed file, or None when it could not be
            observed before the polling budget ran out.
        message: Human-readable status, set for pending results.
    """

    success: bool
    target_path: str
    new_name: str
    file: DriveFile | None = None
    message: str = ""

    @property
    def pending(self) -> bool:
        return self.file is None

    def to_dict(self) -> dict[str, Any]:
        """Render the camelCase JSON shape returned to the frontend."""
        body: dict[str, Any] = {"success": self.success, "targetPath": self.target_path}
        if self.file is None:
            body["newName"] = self.new_name
            body["message"] = self.message
        else:
            body.update(self.file.to_dict())
        return body
