"""Unit tests for registry/store.py — blob-backed company and application records."""

import json
from unittest.mock import MagicMock, patch

import pytest
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError

from firm_drive.config import AppConfig
from firm_drive.registry.models import ApplicationDocument, CompanyDocument, PdfUpload
from firm_drive.registry.store import (
    DocumentRegistry,
    RegistryRecordNotFoundError,
    document_registry_from_config,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _BlobContainer:
    """Dict-backed stand-in for a ContainerClient."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.container_client = MagicMock()
        self.container_client.create_container.side_effect = ResourceExistsError("exists")
        self.container_client.get_blob_client.side_effect = self._blob_client
        self.container_client.list_blobs.side_effect = self._list_blobs

    def _blob_client(self, name: str) -> MagicMock:
        blob_client = MagicMock()

        def download_blob() -> MagicMock:
            if name not in self.blobs:
                raise ResourceNotFoundError("missing")
            downloader = MagicMock()
            downloader.readall.return_value = self.blobs[name]
            return downloader

        def upload_blob(data: bytes, overwrite: bool = False) -> None:
            self.blobs[name] = data

        blob_client.download_blob.side_effect = download_blob
        blob_client.upload_blob.side_effect = upload_blob
        return blob_client

    def _list_blobs(self, name_starts_with: str = "") -> list[MagicMock]:
        listed = []
        for name in sorted(self.blobs):
            if name.startswith(name_starts_with):
                blob = MagicMock()
                blob.name = name
                listed.append(blob)
        return listed

    def record(self, name: str) -> dict:  # type: ignore[type-arg]
        return json.loads(self.blobs[name])  # type: ignore[no-any-return]


def _make_registry() -> tuple[DocumentRegistry, _BlobContainer]:
    container = _BlobContainer()
    with patch("firm_drive.registry.store.BlobServiceClient") as mock_bsc:
        mock_bsc.from_connection_string.return_value.get_container_client.return_value = (
            container.container_client
        )
        registry = DocumentRegistry("UseDevelopmentStorage=true")
    return registry, container


def _company_doc(doc_id: str = "doc-1", doc_type: str = "TSR") -> CompanyDocument:
    return CompanyDocument(
        id=doc_id,
        name=f"ICICI Bank-{doc_type}.docx",
        web_url=f"https://contoso-my.sharepoint.com/{doc_id}",
        doc_type=doc_type,
        created_by="advocate@firm.in",
        created_date_time="2026-12-01T10:00:00Z",
    )


def _uploads(registry: DocumentRegistry) -> list[PdfUpload]:
    record = registry.get_application_record("F100")
    return [PdfUpload.from_dict(p) for p in record["pdfUploads"]]


def _pdf(pdf_id: str = "pdf-upload-1", title: str = "Sale Deed") -> PdfUpload:
    return PdfUpload(
        id=pdf_id,
        title=title,
        file_name=f"F100-{title}.pdf",
        uploaded_at="2026-12-01T10:00:00Z",
        file_id=f"drive-{pdf_id}",
        file_url="https://contoso-my.sharepoint.com/pdf",
        path="ROOT/2025-2026/December/F100",
    )


# ---------------------------------------------------------------------------
# Company documents
# ---------------------------------------------------------------------------


class TestCompanyDocuments:
    def test_missing_company_has_no_documents(self) -> None:
        registry, _ = _make_registry()
        assert registry.list_company_documents("Nobody") == []

    def test_add_then_list(self) -> None:
        registry, container = _make_registry()

        registry.add_company_document("ICICI Bank", _company_doc())

        docs = registry.list_company_documents("ICICI Bank")
        assert docs == [_company_doc()]
        stored = container.record("registry/companies/ICICI%20Bank.json")
        assert stored["companyName"] == "ICICI Bank"
        assert stored["documents"][0]["type"] == "TSR"
        assert stored["documents"][0]["webUrl"].endswith("doc-1")

    def test_same_id_replaces_entry(self) -> None:
        registry, _ = _make_registry()
        registry.add_company_document("ICICI Bank", _company_doc("doc-1", "TSR"))
        registry.add_company_document("ICICI Bank", _company_doc("doc-1", "Deed"))

        docs = registry.list_company_documents("ICICI Bank")
        assert [d.doc_type for d in docs] == ["Deed"]

    def test_remove_document_unlinks_from_every_company(self) -> None:
        registry, _ = _make_registry()
        registry.add_company_document("ICICI Bank", _company_doc("shared"))
        registry.add_company_document("HDFC", _company_doc("shared"))
        registry.add_company_document("HDFC", _company_doc("other"))

        assert registry.remove_document("shared") is True

        assert registry.list_company_documents("ICICI Bank") == []
        assert [d.id for d in registry.list_company_documents("HDFC")] == ["other"]

    def test_remove_unknown_document_changes_nothing(self) -> None:
        registry, _ = _make_registry()
        registry.add_company_document("ICICI Bank", _company_doc())

        assert registry.remove_document("ghost") is False
        assert len(registry.list_company_documents("ICICI Bank")) == 1

    def test_remove_document_without_registry_container(self) -> None:
        registry, container = _make_registry()
        container.container_client.list_blobs.side_effect = ResourceNotFoundError(
            "The specified container does not exist."
        )

        assert registry.remove_document("doc-1") is False
        container.container_client.get_blob_client.assert_not_called()


# ---------------------------------------------------------------------------
# Application documents and PDF uploads
# ---------------------------------------------------------------------------


class TestApplicationRecord:
    def test_missing_application_is_empty(self) -> None:
        registry, _ = _make_registry()
        assert registry.get_application_record("F100") == {
            "applicationFileNo": "F100",
            "documents": [],
            "pdfUploads": [],
        }

    def test_add_application_document_upserts_by_id(self) -> None:
        registry, _ = _make_registry()
        doc = ApplicationDocument(
            id="copy-1",
            name="F100-TSR.docx",
            web_url="u",
            created_date_time="t1",
            source_file_id="src-1",
        )
        registry.add_application_document("F100", doc)
        doc.created_date_time = "t2"
        registry.add_application_document("F100", doc)

        documents = registry.get_application_record("F100")["documents"]
        assert len(documents) == 1
        assert documents[0]["createdDateTime"] == "t2"
        assert documents[0]["sourceFileId"] == "src-1"
        assert documents[0]["type"] == "Generated"

    def test_pdf_upload_replaced_by_title(self) -> None:
        registry, _ = _make_registry()
        registry.record_pdf_upload("F100", _pdf("pdf-upload-1", "Sale Deed"))
        registry.record_pdf_upload("F100", _pdf("pdf-upload-2", "Sale Deed"))
        registry.record_pdf_upload("F100", _pdf("pdf-upload-3", "Encumbrance"))

        uploads = _uploads(registry)
        assert [u.id for u in uploads] == ["pdf-upload-2", "pdf-upload-3"]

    def test_lock_and_unlock(self) -> None:
        registry, _ = _make_registry()
        registry.record_pdf_upload("F100", _pdf())

        locked = registry.set_pdf_lock("F100", "pdf-upload-1", True)
        assert locked.is_locked is True
        assert _uploads(registry)[0].is_locked is True

        registry.set_pdf_lock("F100", "pdf-upload-1", False)
        assert _uploads(registry)[0].is_locked is False

    def test_lock_unknown_pdf_raises(self) -> None:
        registry, _ = _make_registry()
        with pytest.raises(RegistryRecordNotFoundError, match="pdf-missing"):
            registry.set_pdf_lock("F100", "pdf-missing", True)

    def test_remove_pdf_upload(self) -> None:
        registry, _ = _make_registry()
        registry.record_pdf_upload("F100", _pdf())

        registry.remove_pdf_upload("F100", "pdf-upload-1")

        assert _uploads(registry) == []

    def test_remove_unknown_pdf_raises(self) -> None:
        registry, _ = _make_registry()
        with pytest.raises(RegistryRecordNotFoundError):
            registry.remove_pdf_upload("F100", "pdf-missing")


class TestDocumentRegistryFromConfig:
    def test_uses_configured_container_and_prefix(self) -> None:
        config = AppConfig(
            client_id="cid",
            client_secret="cs",
            tenant_id="tid",
            storage_connection_string="conn-str",
            registry_container="custom",
            registry_blob_prefix="state/",
        )
        with patch("firm_drive.registry.store.BlobServiceClient") as mock_bsc:
            registry = document_registry_from_config(config)
        mock_bsc.from_connection_string.assert_called_once_with("conn-str")
        assert registry._container == "custom"
        assert registry._blob_prefix == "state/"
