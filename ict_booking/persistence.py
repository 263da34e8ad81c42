# persistence.py
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from ict_booking.config import BACKEND_DATABASE, BACKEND_MEMORY, BACKEND_SHEET, Settings
from ict_booking.data_models import DEFAULT_TIMEZONE, Booking, BookingStatus
from ict_booking.database import create_database, create_tables
from ict_booking.errors import SyncError
from ict_booking.models import bookings

logger = logging.getLogger(__name__)


class PersistenceAdapter:
    """
    Contract for a remote booking record store. Adapters load the full
    snapshot at startup and receive fire-and-forget writes afterwards; every
    failure is raised as SyncError.
    """

    async def connect(self):
        pass

    async def close(self):
        pass

    async def fetch_all(self) -> List[Booking]:
        raise NotImplementedError

    async def create(self, booking: Booking):
        raise NotImplementedError

    async def update_status(
        self,
        booking_id: str,
        status: BookingStatus,
        approved_by: Optional[str] = None,
        returned_at: Optional[str] = None,
    ):
        raise NotImplementedError

    async def delete(self, booking_id: str):
        raise NotImplementedError


def bookings_from_records(records: Any, timezone: str = DEFAULT_TIMEZONE) -> List[Booking]:
    if not isinstance(records, list):
        logger.warning("Expected a list of booking records, got %s", type(records).__name__)
        return []
    loaded = []
    for record in records:
        if not isinstance(record, dict):
            logger.warning("Skipping malformed booking record: %r", record)
            continue
        booking = Booking.from_record(record, timezone)
        if booking is not None:
            loaded.append(booking)
    return loaded


class InMemoryPersistenceAdapter(PersistenceAdapter):
    """Keeps records in process memory. Nothing survives a restart."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self.records: Dict[str, Dict[str, Any]] = {}
        for record in records or []:
            self.records[str(record.get("id"))] = dict(record)

    async def fetch_all(self) -> List[Booking]:
        return bookings_from_records(list(self.records.values()))

    async def create(self, booking: Booking):
        self.records[booking.id] = booking.to_record()

    async def update_status(self, booking_id, status, approved_by=None, returned_at=None):
        record = self.records.get(booking_id)
        if record is None:
            return
        record["status"] = BookingStatus(status).value
        if approved_by is not None:
            record["approvedBy"] = approved_by
        if returned_at is not None:
            record["returnedAt"] = returned_at

    async def delete(self, booking_id: str):
        self.records.pop(booking_id, None)


class SheetPersistenceAdapter(PersistenceAdapter):
    """Google Apps Script web app in front of the booking spreadsheet."""

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        timezone: str = DEFAULT_TIMEZONE,
    ):
        self.api_url = api_url
        self.timeout = timeout
        self.timezone = timezone
        # Apps Script answers POSTs with a redirect to the result page
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def close(self):
        await self._client.aclose()

    async def fetch_all(self) -> List[Booking]:
        try:
            response = await self._client.get(self.api_url)
            response.raise_for_status()
            records = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SyncError("fetch_all", f"Could not load bookings from sheet: {e}") from e
        return bookings_from_records(records, self.timezone)

    async def create(self, booking: Booking):
        await self._post("create", booking.id, {"action": "CREATE", **booking.to_record()})

    async def update_status(self, booking_id, status, approved_by=None, returned_at=None):
        await self._post("update_status", booking_id, {
            "action": "UPDATE",
            "id": booking_id,
            "status": BookingStatus(status).value,
            "approvedBy": approved_by or "",
            "returnedAt": returned_at or "",
        })

    async def delete(self, booking_id: str):
        await self._post("delete", booking_id, {"action": "DELETE", "id": booking_id})

    async def _post(self, operation: str, booking_id: str, payload: Dict[str, Any]):
        try:
            # Sent as text/plain, the way Apps Script web apps accept it
            response = await self._client.post(self.api_url, content=json.dumps(payload))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            error_text = e.response.text[:200] if e.response.text else ""
            raise SyncError(operation, f"Sheet returned HTTP {status_code}: {error_text}", booking_id) from e
        except httpx.HTTPError as e:
            raise SyncError(operation, f"Sheet request failed: {e}", booking_id) from e


class DatabasePersistenceAdapter(PersistenceAdapter):
    """SQL backend: the `bookings` table through databases + SQLAlchemy Core."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.database = create_database(database_url)

    async def connect(self):
        create_tables(self.database_url)
        await self.database.connect()

    async def close(self):
        await self.database.disconnect()

    async def fetch_all(self) -> List[Booking]:
        try:
            rows = await self.database.fetch_all(bookings.select())
        except Exception as e:
            raise SyncError("fetch_all", f"Could not load bookings from database: {e}") from e
        return bookings_from_records([_row_to_record(row) for row in rows])

    async def create(self, booking: Booking):
        values = booking.to_dict()
        await self._execute("create", booking.id, bookings.insert().values(**values))

    async def update_status(self, booking_id, status, approved_by=None, returned_at=None):
        values = {"status": BookingStatus(status).value}
        if approved_by is not None:
            values["approved_by"] = approved_by
        if returned_at is not None:
            values["returned_at"] = returned_at
        query = bookings.update().where(bookings.c.id == booking_id).values(**values)
        await self._execute("update_status", booking_id, query)

    async def delete(self, booking_id: str):
        await self._execute("delete", booking_id, bookings.delete().where(bookings.c.id == booking_id))

    async def _execute(self, operation: str, booking_id: str, query):
        try:
            await self.database.execute(query)
        except Exception as e:
            raise SyncError(operation, f"Database write failed: {e}", booking_id) from e


def _row_to_record(row) -> Dict[str, Any]:
    row = dict(row._mapping) if hasattr(row, "_mapping") else dict(row)
    codes = row.get("asset_codes")
    if isinstance(codes, str):
        try:
            codes = json.loads(codes)
        except ValueError:
            pass
    return {
        "id": row.get("id"),
        "studentName": row.get("student_name"),
        "className": row.get("class_name"),
        "location": row.get("location"),
        "purpose": row.get("purpose"),
        "date": row.get("date"),
        "day": row.get("day"),
        "startTime": row.get("start_time"),
        "endTime": row.get("end_time"),
        "equipmentId": row.get("equipment_id"),
        "quantity": row.get("quantity"),
        "assetCodes": codes,
        "status": row.get("status"),
        "timestamp": row.get("timestamp"),
        "approvedBy": row.get("approved_by"),
        "returnedAt": row.get("returned_at"),
    }


def build_adapter(settings: Settings) -> PersistenceAdapter:
    backend = settings.persistence_backend
    if backend == BACKEND_DATABASE:
        return DatabasePersistenceAdapter(settings.database_url)
    if backend == BACKEND_SHEET and settings.sheet_api_url:
        return SheetPersistenceAdapter(
            settings.sheet_api_url, timeout=settings.http_timeout_seconds, timezone=settings.timezone
        )
    if backend == BACKEND_SHEET:
        logger.warning("SHEET_API_URL is not set; bookings are kept in memory only.")
    elif backend != BACKEND_MEMORY:
        logger.warning("Unknown PERSISTENCE_BACKEND %r; bookings are kept in memory only.", backend)
    return InMemoryPersistenceAdapter()
