"""Records linking drive items to companies and applications."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class CompanyDocument:
    """A document generated for a company from the template."""

    id: str
    name: str
    web_url: str
    doc_type: str
    created_by: str = "System"
    created_date_time: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "webUrl": self.web_url,
            "type": self.doc_type,
            "createdBy": self.created_by,
            "createdDateTime": self.created_date_time,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CompanyDocument:
        return cls(
            id=raw.get("id", ""),
            name=raw.get("name", ""),
            web_url=raw.get("webUrl", ""),
            doc_type=raw.get("type", ""),
            created_by=raw.get("createdBy", "System"),
            created_date_time=raw.get("createdDateTime", ""),
        )


@dataclass
class ApplicationDocument:
    """A document copied into an application's folder."""

    id: str
    name: str
    web_url: str
    created_date_time: str
    source_file_id: str
    doc_type: str = "Generated"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "webUrl": self.web_url,
            "createdDateTime": self.created_date_time,
            "type": self.doc_type,
            "sourceFileId": self.source_file_id,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ApplicationDocument:
        return cls(
            id=raw.get("id", ""),
            name=raw.get("name", ""),
            web_url=raw.get("webUrl", ""),
            created_date_time=raw.get("createdDateTime", ""),
            source_file_id=raw.get("sourceFileId", ""),
            doc_type=raw.get("type", "Generated"),
        )


@dataclass
class PdfUpload:
    """A PDF uploaded into an application's folder.

    Attributes:
        id: Registry id of the upload (not the drive item id).
        pdf_doc_id: Id of the PDF document type in the masters list, if any.
        title: Document title; at most one upload per title per application.
        file_name: Name the PDF was stored under.
        uploaded_at: ISO timestamp of the upload.
        uploaded_by: User who uploaded it.
        file_id: Drive item id.
        file_url: Drive web URL.
        path: Slash-joined destination folder.
        is_locked: Locked uploads are read-only in the UI.
    """

    id: str
    title: str
    file_name: str
    uploaded_at: str
    file_id: str
    file_url: str
    path: str
    pdf_doc_id: str | None = None
    uploaded_by: str = "System"
    is_locked: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pdfDocId": self.pdf_doc_id,
            "title": self.title,
            "fileName": self.file_name,
            "uploadedAt": self.uploaded_at,
            "uploadedBy": self.uploaded_by,
            "fileId": self.file_id,
            "fileUrl": self.file_url,
            "path": self.path,
            "isLocked": self.is_locked,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PdfUpload:
        return cls(
            id=raw.get("id", ""),
            pdf_doc_id=raw.get("pdfDocId"),
            title=raw.get("title", ""),
            file_name=raw.get("fileName", ""),
            uploaded_at=raw.get("uploadedAt", ""),
            uploaded_by=raw.get("uploadedBy", "System"),
            file_id=raw.get("fileId", ""),
            file_url=raw.get("fileUrl", ""),
            path=raw.get("path", ""),
            is_locked=bool(raw.get("isLocked", False)),
        )
