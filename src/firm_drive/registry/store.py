"""Document registry backed by Azure Blob Storage."""

from __future__ import annotations

import contextlib
import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient

from firm_drive.registry.models import ApplicationDocument, CompanyDocument, PdfUpload

if TYPE_CHECKING:
    from firm_drive.config import AppConfig

logger = logging.getLogger(__name__)

# Named constants for registry configuration defaults
DEFAULT_REGISTRY_CONTAINER = "firm-drive-state"
DEFAULT_REGISTRY_BLOB_PREFIX = "registry/"

COMPANIES_DIR = "companies/"
APPLICATIONS_DIR = "applications/"


class RegistryRecordNotFoundError(Exception):
    """Raised when a registry record addressed by id does not exist."""


class DocumentRegistry:
    """Links drive items to the companies and applications they belong to.

    Each company and each application is one UTF-8 JSON blob, keyed by the
    URL-quoted company name or application file number. A missing blob reads
    as an empty record.
    """

    def __init__(
        self,
        storage_connection_string: str,
        container: str = DEFAULT_REGISTRY_CONTAINER,
        blob_prefix: str = DEFAULT_REGISTRY_BLOB_PREFIX,
    ) -> None:
        """Initialise the registry.

        Args:
            storage_connection_string: Azure Storage connection string.
            container: Blob container name for registry storage.
            blob_prefix: Prefix for registry blob paths (e.g. "registry/").
        """
        self._blob_service = BlobServiceClient.from_connection_string(storage_connection_string)
        self._container = container
        self._blob_prefix = blob_prefix

    # ------------------------------------------------------------------
    # Company documents
    # ------------------------------------------------------------------

    def list_company_documents(self, company_name: str) -> list[CompanyDocument]:
        record = self._read(self._company_blob(company_name))
        return [CompanyDocument.from_dict(d) for d in record.get("documents", [])]

    def add_company_document(self, company_name: str, document: CompanyDocument) -> None:
        """Append a document to the company, replacing any entry with the same id."""
        blob_path = self._company_blob(company_name)
        record = self._read(blob_path)
        documents = [d for d in record.get("documents", []) if d.get("id") != document.id]
        documents.append(document.to_dict())
        self._write(blob_path, {"companyName": company_name, "documents": documents})
        logger.info(
            "[add_company_document] stored; company:%s;document_id:%s",
            company_name,
            document.id,
        )

    def remove_document(self, file_id: str) -> bool:
        """Unlink a drive item from every company that references it.

        The drive item itself is left untouched.

        Returns:
            True if at least one company record changed.
        """
        container_client = self._blob_service.get_container_client(self._container)
        try:
            blob_names = [
                blob.name
                for blob in container_client.list_blobs(
                    name_starts_with=f"{self._blob_prefix}{COMPANIES_DIR}"
                )
            ]
        except ResourceNotFoundError:
            logger.info("[remove_document] registry container missing; file_id:%s", file_id)
            return False

        updated = False
        for blob_name in blob_names:
            record = self._read(blob_name)
            documents = record.get("documents", [])
            kept = [d for d in documents if d.get("id") != file_id]
            if len(kept) != len(documents):
                record["documents"] = kept
                self._write(blob_name, record)
                updated = True
        logger.info("[remove_document] file_id:%s;updated:%s", file_id, updated)
        return updated

    # ------------------------------------------------------------------
    # Application documents and PDF uploads
    # ------------------------------------------------------------------

    def get_application_record(self, application_file_no: str) -> dict[str, Any]:
        record = self._read(self._application_blob(application_file_no))
        return {
            "applicationFileNo": application_file_no,
            "documents": record.get("documents", []),
            "pdfUploads": record.get("pdfUploads", []),
        }

    def add_application_document(
        self, application_file_no: str, document: ApplicationDocument
    ) -> None:
        """Add a document to the application, updating it in place if the id is known."""
        record = self.get_application_record(application_file_no)
        documents = record["documents"]
        for index, existing in enumerate(documents):
            if existing.get("id") == document.id:
                documents[index] = document.to_dict()
                break
        else:
            documents.append(document.to_dict())
        self._write(self._application_blob(application_file_no), record)
        logger.info(
            "[add_application_document] stored; file_no:%s;document_id:%s",
            application_file_no,
            document.id,
        )

    def record_pdf_upload(self, application_file_no: str, upload: PdfUpload) -> None:
        """Store an upload; a previous upload with the same title is replaced."""
        record = self.get_application_record(application_file_no)
        uploads = record["pdfUploads"]
        for index, existing in enumerate(uploads):
            if existing.get("title") == upload.title:
                uploads[index] = upload.to_dict()
                break
        else:
            uploads.append(upload.to_dict())
        self._write(self._application_blob(application_file_no), record)
        logger.info(
            "[record_pdf_upload] stored; file_no:%s;title:%s",
            application_file_no,
            upload.title,
        )

    def set_pdf_lock(self, application_file_no: str, pdf_id: str, locked: bool) -> PdfUpload:
        """Lock or unlock an upload.

        Raises:
            RegistryRecordNotFoundError: If the application has no upload with ``pdf_id``.
        """
        record = self.get_application_record(application_file_no)
        for raw in record["pdfUploads"]:
            if raw.get("id") == pdf_id:
                raw["isLocked"] = locked
                self._write(self._application_blob(application_file_no), record)
                return PdfUpload.from_dict(raw)
        raise RegistryRecordNotFoundError(
            f"PDF '{pdf_id}' not found for application '{application_file_no}'"
        )

    def remove_pdf_upload(self, application_file_no: str, pdf_id: str) -> None:
        """Forget an upload; the drive file is left in place.

        Raises:
            RegistryRecordNotFoundError: If the application has no upload with ``pdf_id``.
        """
        record = self.get_application_record(application_file_no)
        kept = [p for p in record["pdfUploads"] if p.get("id") != pdf_id]
        if len(kept) == len(record["pdfUploads"]):
            raise RegistryRecordNotFoundError(
                f"PDF '{pdf_id}' not found for application '{application_file_no}'"
            )
        record["pdfUploads"] = kept
        self._write(self._application_blob(application_file_no), record)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _company_blob(self, company_name: str) -> str:
        return f"{self._blob_prefix}{COMPANIES_DIR}{quote(company_name, safe='')}.json"

    def _application_blob(self, application_file_no: str) -> str:
        return f"{self._blob_prefix}{APPLICATIONS_DIR}{quote(application_file_no, safe='')}.json"

    def _read(self, blob_path: str) -> dict[str, Any]:
        try:
            container_client = self._blob_service.get_container_client(self._container)
            blob_client = container_client.get_blob_client(blob_path)
            data = blob_client.download_blob().readall()
        except ResourceNotFoundError:
            return {}
        return json.loads(data.decode("utf-8"))  # type: ignore[no-any-return]

    def _write(self, blob_path: str, record: dict[str, Any]) -> None:
        container_client = self._blob_service.get_container_client(self._container)
        with contextlib.suppress(ResourceExistsError):
            container_client.create_container()

        blob_client = container_client.get_blob_client(blob_path)
        blob_client.upload_blob(json.dumps(record, indent=2).encode("utf-8"), overwrite=True)


def document_registry_from_config(config: AppConfig) -> DocumentRegistry:
    """Construct a DocumentRegistry from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured DocumentRegistry instance.
    """
    return DocumentRegistry(
        storage_connection_string=config.storage_connection_string,
        container=config.registry_container,
        blob_prefix=config.registry_blob_prefix,
    )
