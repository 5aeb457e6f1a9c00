"""HTTP trigger blueprint — OneDrive document endpoints for the case management UI."""

import json
import logging
import uuid
from datetime import UTC, datetime
from typing import Any

import azure.functions as func

from firm_drive import __version__
from firm_drive.config import load_config
from firm_drive.graph.auth import GraphAuthError, token_broker_from_config
from firm_drive.graph.client import GraphApiError, MissingCredentialError
from firm_drive.graph.drive import drive_service_from_config
from firm_drive.graph.paths import InvalidSegmentError, PathResolutionError
from firm_drive.placement.engine import (
    CopyVerificationTimeoutError,
    DocumentExistsError,
    InvalidUploadError,
    TemplateNotFoundError,
    placement_engine_from_config,
)
from firm_drive.placement.naming import InvalidDateFormatError
from firm_drive.registry.models import ApplicationDocument, CompanyDocument, PdfUpload
from firm_drive.registry.store import RegistryRecordNotFoundError, document_registry_from_config

logger = logging.getLogger(__name__)

bp = func.Blueprint()

BEARER_PREFIX = "Bearer "
PDF_MIMETYPE = "application/pdf"

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (MissingCredentialError, 401),
    (GraphAuthError, 401),
    (InvalidSegmentError, 400),
    (InvalidDateFormatError, 400),
    (InvalidUploadError, 400),
    (TemplateNotFoundError, 404),
    (DocumentExistsError, 409),
    (RegistryRecordNotFoundError, 404),
    (PathResolutionError, 502),
    (CopyVerificationTimeoutError, 504),
)


class BadRequestError(Exception):
    """Raised when a request is missing required fields."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _json(body: Any, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(json.dumps(body), status_code=status_code, mimetype="application/json")


def _bearer_token(req: func.HttpRequest) -> str:
    """Return the Graph access token sent as ``Authorization: Bearer <token>``.

    Raises:
        MissingCredentialError: If the header is absent or malformed.
    """
    header = req.headers.get("Authorization") or ""
    if not header.startswith(BEARER_PREFIX):
        raise MissingCredentialError("No access token provided")
    token = header[len(BEARER_PREFIX) :].strip()
    if not token:
        raise MissingCredentialError("Invalid token format")
    return token


def _json_body(req: func.HttpRequest) -> dict[str, Any]:
    try:
        body = req.get_json()
    except ValueError as exc:
        raise BadRequestError("Request body must be JSON") from exc
    if not isinstance(body, dict):
        raise BadRequestError("Request body must be a JSON object")
    return body


def _require(values: dict[str, Any], message: str, *fields: str) -> None:
    if any(not values.get(name) for name in fields):
        raise BadRequestError(message)


def _uploaded_file(req: func.HttpRequest, max_bytes: int) -> tuple[str, bytes, str]:
    """Return (filename, content, mimetype) of the multipart ``file`` field."""
    upload = req.files.get("file")
    if upload is None:
        raise BadRequestError("No file provided")
    content = upload.read()
    if len(content) > max_bytes:
        raise BadRequestError(f"File exceeds the {max_bytes} byte upload limit", 413)
    return upload.filename or "", content, upload.mimetype or "application/octet-stream"


def _error_response(operation: str, exc: Exception) -> func.HttpResponse:
    """Map an exception to the HTTP error the UI expects."""
    if isinstance(exc, BadRequestError):
        return _json({"success": False, "error": str(exc)}, exc.status_code)
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            logger.warning("[%s] request failed; status:%d;error:%s", operation, status_code, exc)
            return _json({"success": False, "error": str(exc)}, status_code)
    if isinstance(exc, GraphApiError):
        status_code = exc.status_code if 400 <= exc.status_code < 500 else 502
        logger.warning("[%s] graph request failed; status:%d", operation, exc.status_code)
        return _json({"success": False, "error": exc.message}, status_code)

    logger.error("[%s] request failed", operation, exc_info=True)
    return _json({"success": False, "error": "Internal server error"}, 500)


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


# ---------------------------------------------------------------------------
# Service endpoints
# ---------------------------------------------------------------------------


@bp.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint. Returns service status and version."""
    logger.info("[health_check] health check requested")
    return _json({"status": "ok", "version": __version__})


@bp.route(route="onedrive/auth/token", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def exchange_token(req: func.HttpRequest) -> func.HttpResponse:
    """Redeem the sign-in redirect's authorization code for OneDrive tokens."""
    try:
        body = _json_body(req)
        _require(body, "Authorization code and redirect URI are required", "code", "redirectUri")
        broker = token_broker_from_config(load_config())
        return _json(broker.exchange_code(body["code"], body["redirectUri"]))
    except Exception as exc:
        return _error_response("exchange_token", exc)


@bp.route(route="onedrive/auth/refresh", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def refresh_token(req: func.HttpRequest) -> func.HttpResponse:
    """Trade a refresh token for a new OneDrive access token."""
    try:
        body = _json_body(req)
        _require(body, "Refresh token is required", "refreshToken")
        broker = token_broker_from_config(load_config())
        return _json(broker.refresh(body["refreshToken"]))
    except Exception as exc:
        return _error_response("refresh_token", exc)


# ---------------------------------------------------------------------------
# Document placement
# ---------------------------------------------------------------------------


@bp.route(
    route="onedrive/create-company-document",
    methods=["POST"],
    auth_level=func.AuthLevel.ANONYMOUS,
)
def create_company_document(req: func.HttpRequest) -> func.HttpResponse:
    """Create a company document from the template and record it for the company."""
    try:
        token = _bearer_token(req)
        body = _json_body(req)
        _require(body, "Company Name and Document Type are required", "companyName", "docType")
        company_name = body["companyName"]
        doc_type = body["docType"]
        created_by = body.get("createdBy") or "System"
        logger.info(
            "[create_company_document] request; company:%s;doc_type:%s;created_by:%s",
            company_name,
            doc_type,
            created_by,
        )

        config = load_config()
        engine = placement_engine_from_config(token, config)
        result = engine.create_company_document(company_name, doc_type)

        if result.file is None:
            return _json({"success": True, "message": result.message, **result.to_dict()})

        document_registry_from_config(config).add_company_document(
            company_name,
            CompanyDocument(
                id=result.file.id,
                name=result.file.name,
                web_url=result.file.web_url,
                doc_type=doc_type,
                created_by=created_by,
                created_date_time=result.file.created_date_time,
            ),
        )
        return _json(
            {
                "success": True,
                "message": "Document created successfully",
                "file": result.file.to_dict(),
            }
        )
    except Exception as exc:
        return _error_response("create_company_document", exc)


@bp.route(route="onedrive/copy-document", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def copy_document(req: func.HttpRequest) -> func.HttpResponse:
    """Copy a document into the application's financial-year folder."""
    try:
        token = _bearer_token(req)
        body = _json_body(req)
        _require(
            body,
            "File ID, Application File Number, and Application Date are required",
            "fileId",
            "applicationFileNo",
            "applicationDate",
        )
        file_id = body["fileId"]
        file_no = body["applicationFileNo"]
        logger.info(
            "[copy_document] request; file_id:%s;file_no:%s;date:%s",
            file_id,
            file_no,
            body["applicationDate"],
        )

        config = load_config()
        engine = placement_engine_from_config(token, config)
        result = engine.copy_document_to_structured_folder(
            file_id, file_no, body.get("companyName"), body["applicationDate"]
        )

        if result.file is not None:
            document_registry_from_config(config).add_application_document(
                file_no,
                ApplicationDocument(
                    id=result.file.id,
                    name=result.file.name,
                    web_url=result.file.web_url,
                    created_date_time=result.file.created_date_time or _now_iso(),
                    source_file_id=file_id,
                ),
            )
        return _json(result.to_dict())
    except Exception as exc:
        return _error_response("copy_document", exc)


@bp.route(route="onedrive/upload-pdf", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def upload_pdf(req: func.HttpRequest) -> func.HttpResponse:
    """Upload an application PDF into its financial-year folder and record it."""
    try:
        token = _bearer_token(req)
        config = load_config()
        _, content, mimetype = _uploaded_file(req, config.max_upload_bytes)
        if mimetype != PDF_MIMETYPE:
            raise BadRequestError("Only PDF files are allowed")
        form = req.form
        _require(
            form,
            "Application File Number, PDF Title, and Application Date are required",
            "applicationFileNo",
            "pdfTitle",
            "applicationDate",
        )
        file_no = form["applicationFileNo"]
        title = form["pdfTitle"]

        engine = placement_engine_from_config(token, config)
        result = engine.upload_application_pdf(file_no, title, content, form["applicationDate"])
        uploaded = result.file

        document_registry_from_config(config).record_pdf_upload(
            file_no,
            PdfUpload(
                id=f"pdf-upload-{uuid.uuid4().hex}",
                pdf_doc_id=form.get("pdfDocId") or None,
                title=title,
                file_name=result.new_name,
                uploaded_at=_now_iso(),
                uploaded_by=form.get("uploadedBy") or "System",
                file_id=uploaded.id if uploaded else "",
                file_url=uploaded.web_url if uploaded else "",
                path=result.target_path,
            ),
        )
        return _json(
            {
                "success": True,
                "fileUrl": uploaded.web_url if uploaded else "",
                "filePath": result.target_path,
                "fileName": result.new_name,
                "fileId": uploaded.id if uploaded else "",
            }
        )
    except Exception as exc:
        return _error_response("upload_pdf", exc)


def _set_pdf_lock(req: func.HttpRequest, locked: bool, operation: str) -> func.HttpResponse:
    try:
        _bearer_token(req)
        body = _json_body(req)
        _require(
            body,
            "Application File Number and PDF ID are required",
            "applicationFileNo",
            "pdfId",
        )
        registry = document_registry_from_config(load_config())
        registry.set_pdf_lock(body["applicationFileNo"], body["pdfId"], locked)
        state = "locked" if locked else "unlocked"
        return _json({"success": True, "message": f"PDF {state} successfully"})
    except Exception as exc:
        return _error_response(operation, exc)


@bp.route(route="onedrive/lock-pdf", methods=["PATCH"], auth_level=func.AuthLevel.ANONYMOUS)
def lock_pdf(req: func.HttpRequest) -> func.HttpResponse:
    return _set_pdf_lock(req, True, "lock_pdf")


@bp.route(route="onedrive/unlock-pdf", methods=["PATCH"], auth_level=func.AuthLevel.ANONYMOUS)
def unlock_pdf(req: func.HttpRequest) -> func.HttpResponse:
    return _set_pdf_lock(req, False, "unlock_pdf")


@bp.route(route="onedrive/delete-pdf", methods=["DELETE"], auth_level=func.AuthLevel.ANONYMOUS)
def delete_pdf(req: func.HttpRequest) -> func.HttpResponse:
    """Forget a PDF upload. The file stays in OneDrive."""
    try:
        _bearer_token(req)
        body = _json_body(req)
        _require(
            body,
            "Application File Number and PDF ID are required",
            "applicationFileNo",
            "pdfId",
        )
        registry = document_registry_from_config(load_config())
        registry.remove_pdf_upload(body["applicationFileNo"], body["pdfId"])
        return _json({"success": True, "message": "PDF deleted successfully"})
    except Exception as exc:
        return _error_response("delete_pdf", exc)


@bp.route(
    route="onedrive/company-documents/{companyName}",
    methods=["GET"],
    auth_level=func.AuthLevel.ANONYMOUS,
)
def company_documents(req: func.HttpRequest) -> func.HttpResponse:
    """List the documents recorded for a company."""
    try:
        _bearer_token(req)
        company_name = req.route_params.get("companyName", "")
        registry = document_registry_from_config(load_config())
        return _json([d.to_dict() for d in registry.list_company_documents(company_name)])
    except Exception as exc:
        return _error_response("company_documents", exc)


@bp.route(
    route="onedrive/company-files/{companyName}",
    methods=["GET"],
    auth_level=func.AuthLevel.ANONYMOUS,
)
def company_files(req: func.HttpRequest) -> func.HttpResponse:
    """List what is actually stored in the company's drive folder."""
    try:
        drive = drive_service_from_config(_bearer_token(req), load_config())
        return _json(drive.get_company_files(req.route_params.get("companyName", "")))
    except Exception as exc:
        return _error_response("company_files", exc)


@bp.route(
    route="onedrive/application-documents/{applicationFileNo}",
    methods=["GET"],
    auth_level=func.AuthLevel.ANONYMOUS,
)
def application_documents(req: func.HttpRequest) -> func.HttpResponse:
    """Return the documents and PDF uploads recorded for an application."""
    try:
        _bearer_token(req)
        file_no = req.route_params.get("applicationFileNo", "")
        registry = document_registry_from_config(load_config())
        return _json(registry.get_application_record(file_no))
    except Exception as exc:
        return _error_response("application_documents", exc)


# ---------------------------------------------------------------------------
# Generic file management
# ---------------------------------------------------------------------------


@bp.route(route="onedrive/files", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def list_files(req: func.HttpRequest) -> func.HttpResponse:
    try:
        drive = drive_service_from_config(_bearer_token(req), load_config())
        return _json(drive.list_files(req.params.get("folderId") or "root"))
    except Exception as exc:
        return _error_response("list_files", exc)


@bp.route(route="onedrive/files/upload", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def upload_file(req: func.HttpRequest) -> func.HttpResponse:
    try:
        token = _bearer_token(req)
        config = load_config()
        file_name, content, mimetype = _uploaded_file(req, config.max_upload_bytes)
        folder = req.form.get("folderId") or "root"
        drive = drive_service_from_config(token, config)
        return _json(drive.upload_file(file_name, content, folder, mimetype))
    except Exception as exc:
        return _error_response("upload_file", exc)


@bp.route(
    route="onedrive/files/{fileId}/download",
    methods=["GET"],
    auth_level=func.AuthLevel.ANONYMOUS,
)
def download_file(req: func.HttpRequest) -> func.HttpResponse:
    try:
        drive = drive_service_from_config(_bearer_token(req), load_config())
        content = drive.download_file(req.route_params.get("fileId", ""))
        return func.HttpResponse(content, status_code=200, mimetype="application/octet-stream")
    except Exception as exc:
        return _error_response("download_file", exc)


@bp.route(route="onedrive/files/{fileId}", methods=["DELETE"], auth_level=func.AuthLevel.ANONYMOUS)
def delete_file(req: func.HttpRequest) -> func.HttpResponse:
    """Unlink a file from company records. The file stays in OneDrive."""
    try:
        _bearer_token(req)
        registry = document_registry_from_config(load_config())
        registry.remove_document(req.route_params.get("fileId", ""))
        return _json({"success": True, "message": "Deleted from registry only"})
    except Exception as exc:
        return _error_response("delete_file", exc)


@bp.route(route="onedrive/folders", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def create_folder(req: func.HttpRequest) -> func.HttpResponse:
    try:
        token = _bearer_token(req)
        body = _json_body(req)
        _require(body, "Folder name is required", "folderName")
        drive = drive_service_from_config(token, load_config())
        return _json(drive.create_folder(body["folderName"], body.get("parentFolderId") or "root"))
    except Exception as exc:
        return _error_response("create_folder", exc)


@bp.route(route="onedrive/search", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def search_files(req: func.HttpRequest) -> func.HttpResponse:
    try:
        token = _bearer_token(req)
        query = req.params.get("query") or ""
        if not query:
            raise BadRequestError("Search query is required")
        drive = drive_service_from_config(token, load_config())
        return _json(drive.search_files(query))
    except Exception as exc:
        return _error_response("search_files", exc)
