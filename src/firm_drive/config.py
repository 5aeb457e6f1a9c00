"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Domain constants
    have sensible defaults but can be overridden via environment variables.
    """

    # Required: no defaults, fail at startup if missing
    client_id: str
    client_secret: str
    tenant_id: str
    storage_connection_string: str

    # Domain constants: defaults provided, overridable via env
    upload_root: str = "UNIQUE LAGEL FIRM"
    template_filename: str = "letterpad.docx"
    company_data_folder: str = "COMPANY_DATA"
    poll_max_attempts: int = 5
    poll_base_delay_seconds: float = 0.5
    template_timeout_policy: str = "fail"
    structured_timeout_policy: str = "pending"
    registry_container: str = "firm-drive-state"
    registry_blob_prefix: str = "registry/"
    max_upload_bytes: int = 50 * 1024 * 1024


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        ONEDRIVE_CLIENT_ID: Azure AD application (client) ID.
        ONEDRIVE_CLIENT_SECRET: Azure AD application client secret.
        ONEDRIVE_TENANT_ID: Azure AD tenant ID.
        AzureWebJobsStorage: Azure Storage account connection string.

    Optional environment variables (with defaults):
        ONEDRIVE_UPLOAD_ROOT: Top-level drive folder for all documents
            (default: UNIQUE LAGEL FIRM).
        ONEDRIVE_TEMPLATE_FILENAME: Template file under the upload root
            (default: letterpad.docx).
        ONEDRIVE_COMPANY_DATA_FOLDER: Folder holding per-company documents
            (default: COMPANY_DATA).
        ONEDRIVE_POLL_MAX_ATTEMPTS: Lookups made after issuing a copy (default: 5).
        ONEDRIVE_POLL_BASE_DELAY_SECONDS: Linear backoff step between lookups
            (default: 0.5).
        ONEDRIVE_TEMPLATE_TIMEOUT_POLICY: "fail" or "pending" when a template copy
            cannot be verified (default: fail).
        ONEDRIVE_STRUCTURED_TIMEOUT_POLICY: "fail" or "pending" when a structured
            copy cannot be verified (default: pending).
        ONEDRIVE_REGISTRY_CONTAINER: Blob container for the document registry.
        ONEDRIVE_REGISTRY_BLOB_PREFIX: Blob path prefix for registry documents.
        ONEDRIVE_MAX_UPLOAD_BYTES: Upload size limit in bytes (default: 50 MiB).

    Returns:
        Configured AppConfig instance.
    """
    return AppConfig(
        client_id=os.environ["ONEDRIVE_CLIENT_ID"],
        client_secret=os.environ["ONEDRIVE_CLIENT_SECRET"],
        tenant_id=os.environ["ONEDRIVE_TENANT_ID"],
        storage_connection_string=os.environ["AzureWebJobsStorage"],  # noqa: SIM112
        upload_root=os.environ.get("ONEDRIVE_UPLOAD_ROOT", "UNIQUE LAGEL FIRM"),
        template_filename=os.environ.get("ONEDRIVE_TEMPLATE_FILENAME", "letterpad.docx"),
        company_data_folder=os.environ.get("ONEDRIVE_COMPANY_DATA_FOLDER", "COMPANY_DATA"),
        poll_max_attempts=int(os.environ.get("ONEDRIVE_POLL_MAX_ATTEMPTS", "5")),
        poll_base_delay_seconds=float(os.environ.get("ONEDRIVE_POLL_BASE_DELAY_SECONDS", "0.5")),
        template_timeout_policy=os.environ.get("ONEDRIVE_TEMPLATE_TIMEOUT_POLICY", "fail"),
        structured_timeout_policy=os.environ.get("ONEDRIVE_STRUCTURED_TIMEOUT_POLICY", "pending"),
        registry_container=os.environ.get("ONEDRIVE_REGISTRY_CONTAINER", "firm-drive-state"),
        registry_blob_prefix=os.environ.get("ONEDRIVE_REGISTRY_BLOB_PREFIX", "registry/"),
        max_upload_bytes=int(os.environ.get("ONEDRIVE_MAX_UPLOAD_BYTES", str(50 * 1024 * 1024))),
    )
