"""
Storage backends for QuranAkh.
"""
import logging

from .base import StorageAdapter

logger = logging.getLogger(__name__)


def build_storage_adapter(settings) -> StorageAdapter:
    """
    Build the adapter selected by STORAGE_BACKEND (sqlite, json or sheets).

    Raises:
        ValueError: unknown backend, or missing Sheets credentials
    """
    backend = (settings.storage_backend or "sqlite").lower()

    if backend == "sqlite":
        from .sqlite import SqliteAdapter

        logger.info(f"Initializing SQLite adapter ({settings.db_url.split('://')[0]})...")
        return SqliteAdapter.from_url(settings.db_url)

    if backend == "json":
        from .json import JsonAdapter

        logger.info(f"Initializing JSON adapter in {settings.json_data_dir}...")
        return JsonAdapter(settings.json_data_dir)

    if backend == "sheets":
        from .sheets import SheetsAdapter

        sa_json = settings.resolved_google_sa_json()
        if not sa_json or not settings.sheets_spreadsheet_id:
            raise ValueError("Google Sheets requires GOOGLE_SA_JSON and SHEETS_SPREADSHEET_ID")
        logger.info("Initializing Google Sheets adapter...")
        return SheetsAdapter(
            google_sa_json=sa_json,
            spreadsheet_id=settings.sheets_spreadsheet_id,
        )

    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")


__all__ = ["StorageAdapter", "build_storage_adapter"]
