# Archivo: core/sheets.py (Cliente asíncrono de Google Sheets para FastAPI)
"""
Async wrapper over the Google Sheets v4 `values` resource
(google-api-python-client).

The client library is blocking, so every request runs in a worker thread
with its own HTTP object. Failures are translated into the store error
taxonomy (core/errors.py) so upper layers never see HttpError.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import httplib2
from fastapi import Depends
from google.auth.exceptions import RefreshError, TransportError
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from core.config import settings
from core.errors import (
    StoreError,
    StorePermissionDenied,
    StoreSchemaError,
    StoreUnavailable,
    StoreWriteError,
)

logger = logging.getLogger("SheetsClient")


class SheetsClient:
    """Cliente de la API de Sheets para un spreadsheet concreto."""

    def __init__(
        self,
        spreadsheet_id: str,
        credentials: Optional[service_account.Credentials] = None,
        timeout: float = 30.0,
        http_factory: Optional[Callable[[], Any]] = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.credentials = credentials
        self.timeout = timeout
        self._http_factory = http_factory or self._authorized_http
        self._service = build("sheets", "v4", http=self._http_factory(), cache_discovery=False)

    def _authorized_http(self):
        # httplib2.Http no es thread-safe: uno nuevo por request
        http = httplib2.Http(timeout=self.timeout)
        if self.credentials is None:
            return http
        return AuthorizedHttp(self.credentials, http=http)

    @staticmethod
    def _error_message(error: HttpError) -> str:
        return getattr(error, "reason", None) or str(error)

    async def _execute(self, request, range_a1: str, write: bool = False) -> Dict[str, Any]:
        try:
            return await asyncio.to_thread(request.execute, http=self._http_factory()) or {}
        except HttpError as e:
            status = e.resp.status
            message = self._error_message(e)
        except RefreshError as e:
            logger.error(f"Token de service account rechazado: {e}")
            raise StorePermissionDenied(
                "Permission denied. Check the service account credentials."
            ) from e
        except (httplib2.HttpLib2Error, TransportError, OSError) as e:
            logger.error(f"Sheets {range_a1} falló a nivel transporte: {e!r}")
            raise StoreUnavailable(f"Spreadsheet store unreachable: {e}") from e

        logger.error(f"Sheets {range_a1} -> {status}: {message}")

        if status in (401, 403):
            raise StorePermissionDenied(
                "Permission denied. Make sure the service account has access to the spreadsheet."
            )
        if status == 404 or "Unable to parse range" in message:
            sheet = range_a1.split("!")[0]
            raise StoreSchemaError(
                f'Sheet "{sheet}" not found. Make sure you have a sheet named "{sheet}" in your spreadsheet.'
            )
        if status >= 500:
            raise StoreUnavailable(f"Spreadsheet store error ({status}): {message}")
        if write:
            raise StoreWriteError(f"Write rejected by spreadsheet store: {message}")
        raise StoreError(message or f"Spreadsheet request failed ({status})")

    def _values(self):
        return self._service.spreadsheets().values()

    # --- Lecturas ---
    async def get_values(self, range_a1: str) -> List[List[str]]:
        """Returns the raw rows of a range (empty list when the range has no data)."""
        request = self._values().get(spreadsheetId=self.spreadsheet_id, range=range_a1)
        data = await self._execute(request, range_a1)
        return data.get("values", [])

    # --- Escrituras ---
    async def update_values(self, range_a1: str, rows: List[List[Any]]) -> Dict[str, Any]:
        """Overwrites the cells of `range_a1` with `rows`."""
        request = self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=range_a1,
            valueInputOption="RAW",
            body={"range": range_a1, "majorDimension": "ROWS", "values": rows},
        )
        return await self._execute(request, range_a1, write=True)

    async def append_values(self, range_a1: str, rows: List[List[Any]]) -> Dict[str, Any]:
        """Appends rows after the last row with data; returns the `updates` block."""
        request = self._values().append(
            spreadsheetId=self.spreadsheet_id,
            range=range_a1,
            valueInputOption="RAW",
            insertDataOption="INSERT_ROWS",
            body={"majorDimension": "ROWS", "values": rows},
        )
        data = await self._execute(request, range_a1, write=True)
        return data.get("updates", {})

    async def clear_values(self, range_a1: str) -> Dict[str, Any]:
        """Clears cell contents; the rows themselves stay in place."""
        request = self._values().clear(spreadsheetId=self.spreadsheet_id, range=range_a1, body={})
        return await self._execute(request, range_a1, write=True)

    async def close(self):
        self._service.close()


def build_credentials() -> Optional[service_account.Credentials]:
    """Service-account credentials from settings, or None when not configured."""
    if not settings.GOOGLE_SERVICE_ACCOUNT_EMAIL or not settings.GOOGLE_PRIVATE_KEY:
        return None
    return service_account.Credentials.from_service_account_info(
        {
            "client_email": settings.GOOGLE_SERVICE_ACCOUNT_EMAIL,
            "private_key": settings.GOOGLE_PRIVATE_KEY,
            "token_uri": settings.GOOGLE_TOKEN_URI,
        },
        scopes=settings.GOOGLE_SCOPES.split(" "),
    )


# Almacenamos el cliente globalmente (equivalente al pool de conexiones)
_sheets_client: Optional[SheetsClient] = None

async def connect_to_sheets():
    """Inicializa el cliente de Sheets al inicio de la aplicación (startup)."""
    global _sheets_client
    if _sheets_client:
        return
    if not settings.GOOGLE_SPREADSHEET_ID:
        logger.error("GOOGLE_SPREADSHEET_ID environment variable is not set")
        return
    try:
        credentials = build_credentials()
    except ValueError as e:
        logger.error(f"Credenciales de service account inválidas: {e}")
        return
    if credentials is None:
        logger.error("Missing GOOGLE_SERVICE_ACCOUNT_EMAIL / GOOGLE_PRIVATE_KEY")
        return

    _sheets_client = SheetsClient(
        settings.GOOGLE_SPREADSHEET_ID,
        credentials=credentials,
        timeout=settings.SHEETS_TIMEOUT_SECONDS,
    )
    logger.info(f"Cliente de Sheets listo para {settings.GOOGLE_SPREADSHEET_ID[:10]}...")

async def close_sheets_connection():
    """Cierra el cliente HTTP al apagado de la aplicación (shutdown)."""
    global _sheets_client
    if _sheets_client:
        logger.info("Cerrando cliente de Sheets.")
        await _sheets_client.close()
        _sheets_client = None

def current_sheets_client() -> Optional[SheetsClient]:
    """Cliente compartido, o None si el startup no lo configuró."""
    return _sheets_client

def require_sheets_client(client: Optional[SheetsClient]) -> SheetsClient:
    if not client:
        # Startup no configuró credenciales o aún no corre
        raise StoreUnavailable("Missing spreadsheet configuration. Check GOOGLE_* environment variables.")
    return client

def get_sheets_client(client: Optional[SheetsClient] = Depends(current_sheets_client)) -> SheetsClient:
    """Dependencia de FastAPI para obtener el cliente compartido."""
    return require_sheets_client(client)
