"""Document placement engine — puts generated and copied documents in their folders."""

from __future__ import annotations

import logging
import time
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING
from urllib.parse import quote

from firm_drive.graph.client import GraphApiError, get_client
from firm_drive.graph.models import (
    FIELD_ID,
    FIELD_NAME,
    FIELD_PARENT_REFERENCE,
    ODATA_VALUE,
    DriveFile,
    PlacementResult,
)
from firm_drive.graph.paths import DrivePath, PathResolver, validate_segment
from firm_drive.placement.naming import (
    company_document_name,
    financial_year,
    month_name,
    next_available_name,
    parse_application_date,
    pdf_upload_name,
    strip_company_prefix,
)
from firm_drive.placement.polling import (
    RetryPolicy,
    Sleeper,
    VerificationTimeoutPolicy,
    wait_for_item,
)

if TYPE_CHECKING:
    from firm_drive.config import AppConfig
    from firm_drive.graph.client import GraphClient

logger = logging.getLogger(__name__)

PENDING_MESSAGE = "Copy operation started (metadata pending)."
PDF_MAGIC = b"%PDF"
PDF_CONTENT_TYPE = "application/pdf"


class PlacementError(Exception):
    """Base class for document placement failures."""


class TemplateNotFoundError(PlacementError):
    """Raised when the company document template is missing from the drive."""


class DocumentExistsError(PlacementError):
    """Raised when the company folder already holds a document with the generated name."""


class CopyVerificationTimeoutError(PlacementError):
    """Raised when an issued copy could not be observed within the polling budget.

    The copy may still complete server-side; only its metadata is unknown.
    """

    def __init__(self, target_path: str, name: str) -> None:
        super().__init__(
            f"File '{name}' was copied to '{target_path}' but its metadata could not be "
            "retrieved before the polling budget ran out"
        )
        self.target_path = target_path
        self.name = name


class InvalidUploadError(PlacementError):
    """Raised when uploaded content does not match the expected document type."""


class DocumentPlacementEngine:
    """Creates and copies documents into the firm's OneDrive folder structure.

    Two layouts are managed under the configured root folder:

    * company documents: ``<root>/<company data folder>/<company>/``
    * application documents:
      ``<root>/<financial year>/<month>/<application file number>/``
    """

    def __init__(
        self,
        graph_client: GraphClient,
        root_folder: str,
        template_filename: str = "letterpad.docx",
        company_data_folder: str = "COMPANY_DATA",
        retry_policy: RetryPolicy | None = None,
        template_timeout_policy: VerificationTimeoutPolicy = VerificationTimeoutPolicy.FAIL,
        structured_timeout_policy: VerificationTimeoutPolicy = VerificationTimeoutPolicy.PENDING,
        sleep: Sleeper = time.sleep,
    ) -> None:
        """Initialise the engine.

        Args:
            graph_client: Client bound to the caller's access token.
            root_folder: Top-level drive folder that holds every placed document.
            template_filename: Word template stored directly under ``root_folder``.
            company_data_folder: Folder under the root holding per-company folders.
            retry_policy: Polling policy used after issuing a copy.
            template_timeout_policy: Outcome when a template copy is never observed.
            structured_timeout_policy: Outcome when a structured copy is never observed.
            sleep: Pause function used between polling attempts.
        """
        self._graph = graph_client
        self._resolver = PathResolver(graph_client)
        self._root_folder = validate_segment(root_folder)
        self._template_filename = validate_segment(template_filename)
        self._company_data_folder = validate_segment(company_data_folder)
        self._retry_policy = retry_policy or RetryPolicy()
        self._template_timeout_policy = template_timeout_policy
        self._structured_timeout_policy = structured_timeout_policy
        self._sleep = sleep

    @property
    def root(self) -> DrivePath:
        return DrivePath((self._root_folder,))

    def company_folder(self, company_name: str) -> DrivePath:
        return self.root.child(self._company_data_folder).child(company_name)

    def application_folder(self, application_file_no: str, application_day: date) -> DrivePath:
        """Return ``<root>/<financial year>/<month>/<file number>`` for a date."""
        return (
            self.root.child(financial_year(application_day))
            .child(month_name(application_day))
            .child(application_file_no)
        )

    def create_company_document(self, company_name: str, doc_type: str) -> PlacementResult:
        """Copy the template into the company's folder as ``<company>-<docType>.docx``.

        Args:
            company_name: Company whose folder receives the document.
            doc_type: Document type used in the file name (e.g. "TSR").

        Returns:
            PlacementResult with the new file's metadata, or a pending result
            when the template timeout policy is PENDING and the copy was not
            observed in time.

        Raises:
            TemplateNotFoundError: If the template file does not exist.
            DocumentExistsError: If the company folder already holds a file with
                the generated name.
            PathResolutionError: If the company folder cannot be materialized.
            CopyVerificationTimeoutError: If the copy is never observed and the
                template timeout policy is FAIL.
            GraphApiError: For any other remote failure.
        """
        new_name = validate_segment(company_document_name(company_name, doc_type))
        logger.info(
            "[create_company_document] generating document; company:%s;doc_type:%s",
            company_name,
            doc_type,
        )

        template_path = self.root.child(self._template_filename)
        try:
            template = self._graph.get(template_path.api_path)
        except GraphApiError as exc:
            if exc.is_not_found:
                raise TemplateNotFoundError(
                    f"Template '{self._template_filename}' not found in "
                    f"'{self._root_folder}' folder."
                ) from exc
            raise

        target = self._resolver.ensure_path(self.company_folder(company_name).segments)
        self._reject_existing(target, new_name)
        self._issue_copy(template[FIELD_ID], target, new_name)
        return self._verify_copy(target, new_name, self._template_timeout_policy)

    def copy_document_to_structured_folder(
        self,
        file_id: str,
        application_file_no: str,
        company_name: str | None,
        application_date: str,
    ) -> PlacementResult:
        """Copy a drive file into ``<root>/<FY>/<month>/<file number>/``.

        The copy is named ``<file number>-<source name>`` with any leading
        company name stripped from the source name, and gets a numeric suffix
        when that name is already taken in the destination.

        Args:
            file_id: Drive item id of the source document.
            application_file_no: Application file number (e.g. "ULF-3561").
            company_name: Company whose name may prefix the source file name.
            application_date: Application date as ``dd-mm-yyyy``.

        Returns:
            PlacementResult with the new file's metadata, or a pending result
            when the structured timeout policy is PENDING and the copy was not
            observed in time.

        Raises:
            InvalidDateFormatError: If ``application_date`` is malformed.
            PathResolutionError: If the destination folder cannot be materialized.
            CopyVerificationTimeoutError: If the copy is never observed and the
                structured timeout policy is FAIL.
            GraphApiError: For any other remote failure.
        """
        # Reject a bad date before touching the drive.
        application_day = parse_application_date(application_date)
        folder = self.application_folder(application_file_no, application_day)

        source = self._graph.get(f"/me/drive/items/{quote(file_id, safe='')}")
        original_name = strip_company_prefix(source.get(FIELD_NAME, ""), company_name)
        logger.info(
            "[copy_document_to_structured_folder] resolved destination; file_no:%s;path:%s",
            application_file_no,
            folder,
        )

        target = self._resolver.ensure_path(folder.segments)
        listing = self._graph.get(target.children_path)
        existing = [child.get(FIELD_NAME, "") for child in listing.get(ODATA_VALUE, [])]
        new_name = validate_segment(
            next_available_name(existing, application_file_no, original_name)
        )

        self._issue_copy(file_id, target, new_name)
        return self._verify_copy(target, new_name, self._structured_timeout_policy)

    def upload_application_pdf(
        self,
        application_file_no: str,
        pdf_title: str,
        content: bytes,
        application_date: str,
    ) -> PlacementResult:
        """Upload a PDF as ``<file number>-<title>.pdf`` into the application folder.

        An existing file with the same name is replaced by the upload.

        Raises:
            InvalidUploadError: If ``content`` is not a PDF document.
            InvalidDateFormatError: If ``application_date`` is malformed.
            PathResolutionError: If the destination folder cannot be materialized.
            GraphApiError: If the upload fails.
        """
        if not content.startswith(PDF_MAGIC):
            raise InvalidUploadError("Only PDF files are allowed")
        application_day = parse_application_date(application_date)
        folder = self.application_folder(application_file_no, application_day)
        file_name = validate_segment(pdf_upload_name(application_file_no, pdf_title))

        target = self._resolver.ensure_path(folder.segments)
        raw = self._graph.put_content(
            f"{target.child(file_name).api_path}:/content", content, PDF_CONTENT_TYPE
        )
        uploaded = DriveFile.from_graph(raw)
        logger.info(
            "[upload_application_pdf] uploaded pdf; path:%s;name:%s;bytes:%d",
            target,
            file_name,
            len(content),
        )
        return PlacementResult(
            success=True, target_path=target.relative, new_name=file_name, file=uploaded
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _reject_existing(self, target: DrivePath, new_name: str) -> None:
        try:
            existing = self._graph.get(target.child(new_name).api_path)
        except GraphApiError as exc:
            if exc.is_not_found:
                return
            raise
        logger.warning(
            "[_reject_existing] document already exists; path:%s;name:%s;id:%s",
            target,
            new_name,
            existing.get(FIELD_ID),
        )
        raise DocumentExistsError(f"Document '{new_name}' already exists in '{target.relative}'")

    def _issue_copy(self, source_id: str, target: DrivePath, new_name: str) -> None:
        """Start a server-side copy; the API gives no handle to the new item."""
        folder = self._graph.get(target.api_path)
        payload = {FIELD_PARENT_REFERENCE: {FIELD_ID: folder[FIELD_ID]}, FIELD_NAME: new_name}
        self._graph.post(f"/me/drive/items/{quote(source_id, safe='')}/copy", payload)
        logger.info(
            "[_issue_copy] copy issued; source_id:%s;target:%s;name:%s",
            source_id,
            target,
            new_name,
        )

    def _verify_copy(
        self,
        target: DrivePath,
        new_name: str,
        timeout_policy: VerificationTimeoutPolicy,
    ) -> PlacementResult:
        item = wait_for_item(
            self._graph, target.child(new_name).api_path, self._retry_policy, self._sleep
        )
        if item is None:
            if timeout_policy is VerificationTimeoutPolicy.FAIL:
                raise CopyVerificationTimeoutError(target.relative, new_name)
            logger.warning(
                "[_verify_copy] copy started but metadata retrieval timed out; path:%s;name:%s",
                target,
                new_name,
            )
            return PlacementResult(
                success=True,
                target_path=target.relative,
                new_name=new_name,
                message=PENDING_MESSAGE,
            )
        if not item.created_date_time:
            item.created_date_time = datetime.now(tz=UTC).isoformat()
        logger.info("[_verify_copy] copy verified; path:%s;id:%s", target, item.id)
        return PlacementResult(
            success=True, target_path=target.relative, new_name=item.name, file=item
        )


def placement_engine_from_config(
    access_token: str | None,
    config: AppConfig,
    sleep: Sleeper = time.sleep,
) -> DocumentPlacementEngine:
    """Construct a DocumentPlacementEngine for one caller from configuration.

    Args:
        access_token: Caller's delegated Graph access token.
        config: Application configuration instance.
        sleep: Pause function used between polling attempts.

    Returns:
        Configured DocumentPlacementEngine instance.

    Raises:
        MissingCredentialError: If the access token is empty.
    """
    return DocumentPlacementEngine(
        graph_client=get_client(access_token),
        root_folder=config.upload_root,
        template_filename=config.template_filename,
        company_data_folder=config.company_data_folder,
        retry_policy=RetryPolicy(
            max_attempts=config.poll_max_attempts,
            base_delay=config.poll_base_delay_seconds,
        ),
        template_timeout_policy=VerificationTimeoutPolicy.parse(config.template_timeout_policy),
        structured_timeout_policy=VerificationTimeoutPolicy.parse(
            config.structured_timeout_policy
        ),
        sleep=sleep,
    )
