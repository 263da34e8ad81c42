# main.py
import json
import logging
from datetime import date
from typing import List, Optional

import fastapi
from fastapi import Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from ict_booking.availability import AvailabilityQuery
from ict_booking.catalog import CLASS_LIST, LOCATION_LIST, asset_codes
from ict_booking.config import Settings, configure_logging, get_settings
from ict_booking.controller import BookingController, BookingForm
from ict_booking.errors import BookingNotFoundError, SyncError, ValidationError
from ict_booking.persistence import build_adapter
from ict_booking.sync import SyncQueue

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# FastAPI Setup
app = fastapi.FastAPI(title="ICT Equipment Booking")


# Request Models
class BookingCreate(BaseModel):
    student_name: str
    date: str
    start_time: str = "08:00"
    end_time: str = "10:00"
    class_name: str = ""
    location: str = ""
    purpose: str = ""
    equipment_id: str
    asset_codes: List[str] = Field(default_factory=list)


class ApprovalRequest(BaseModel):
    admin_name: str


class SelectionToggle(BaseModel):
    equipment_id: str
    selected: List[str] = Field(default_factory=list)
    code: str


class ConnectionManager:
    def __init__(self):
        self.active_connections: List[fastapi.WebSocket] = []

    async def connect(self, websocket: fastapi.WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: fastapi.WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, message: str):
        for connection in list(self.active_connections):
            try:
                await connection.send_text(message)
            except Exception:
                logger.warning("Dropping websocket that could not receive a broadcast")
                self.disconnect(connection)


manager = ConnectionManager()


async def notify_sync_failure(error: SyncError):
    await manager.broadcast(json.dumps({"type": "sync_failed", "data": error.as_dict()}))


def build_controller(settings: Settings) -> BookingController:
    return BookingController(
        adapter=build_adapter(settings),
        sync_queue=SyncQueue(on_failure=notify_sync_failure, history=settings.sync_failure_history),
        timezone=settings.timezone,
    )


def get_controller(request: Request) -> BookingController:
    return request.app.state.controller


async def broadcast_bookings_updated(booking_id: Optional[str] = None):
    await manager.broadcast(json.dumps({"type": "bookings_updated", "data": {"booking_id": booking_id}}))


# Equipment & Availability Endpoints

@app.get("/api/equipment")
async def list_equipment(controller: BookingController = Depends(get_controller)):
    """Catalog with unit codes and how many units are not out on approved bookings."""
    remaining = {entry["equipment_id"]: entry["remaining"] for entry in controller.stock()}
    return [
        {**equipment.to_dict(), "asset_codes": asset_codes(equipment), "remaining": remaining[equipment.id]}
        for equipment in controller.catalog
    ]


@app.get("/api/options")
async def form_options():
    return {"classes": CLASS_LIST, "locations": LOCATION_LIST}


@app.get("/api/availability")
async def check_availability(
    equipment_id: Optional[str] = None,
    date: Optional[date] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    controller: BookingController = Depends(get_controller),
):
    query = AvailabilityQuery(equipment_id=equipment_id, date=date, start_time=start_time, end_time=end_time)
    try:
        return controller.check_availability(query).to_dict()
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@app.post("/api/selection/toggle")
async def toggle_selection(toggle: SelectionToggle, controller: BookingController = Depends(get_controller)):
    try:
        selected = controller.toggle_asset_code(toggle.equipment_id, toggle.selected, toggle.code)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"selected": list(selected), "quantity": len(selected)}


# Booking Endpoints

@app.get("/api/bookings")
async def list_bookings(
    search: str = "",
    status_filter: str = fastapi.Query("ALL", alias="status"),
    controller: BookingController = Depends(get_controller),
):
    return [booking.to_dict() for booking in controller.bookings(search, status_filter)]


@app.post("/api/bookings", status_code=status.HTTP_201_CREATED)
async def submit_booking(booking: BookingCreate, controller: BookingController = Depends(get_controller)):
    try:
        created = controller.submit(BookingForm(**booking.model_dump()))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await broadcast_bookings_updated(created.id)
    return created.to_dict()


@app.post("/api/bookings/draft", status_code=status.HTTP_201_CREATED)
async def save_draft(booking: BookingCreate, controller: BookingController = Depends(get_controller)):
    try:
        created = controller.save_draft(BookingForm(**booking.model_dump()))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await broadcast_bookings_updated(created.id)
    return created.to_dict()


@app.post("/api/bookings/refresh")
async def refresh_bookings(controller: BookingController = Depends(get_controller)):
    """Reloads the full snapshot from the record store, dropping any local divergence."""
    count = await controller.load()
    await broadcast_bookings_updated()
    return {"count": count}


@app.post("/api/bookings/{booking_id}/submit")
async def submit_draft(booking_id: str, controller: BookingController = Depends(get_controller)):
    return await _transition(booking_id, lambda: controller.submit_draft(booking_id))


@app.post("/api/bookings/{booking_id}/approve")
async def approve_booking(
    booking_id: str, approval: ApprovalRequest, controller: BookingController = Depends(get_controller)
):
    return await _transition(booking_id, lambda: controller.approve(booking_id, approval.admin_name))


@app.post("/api/bookings/{booking_id}/reject")
async def reject_booking(booking_id: str, controller: BookingController = Depends(get_controller)):
    return await _transition(booking_id, lambda: controller.reject(booking_id))


@app.post("/api/bookings/{booking_id}/return")
async def return_booking(booking_id: str, controller: BookingController = Depends(get_controller)):
    return await _transition(booking_id, lambda: controller.mark_returned(booking_id))


@app.delete("/api/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(booking_id: str, controller: BookingController = Depends(get_controller)):
    try:
        controller.delete(booking_id)
    except BookingNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    await broadcast_bookings_updated(booking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def _transition(booking_id: str, action):
    try:
        updated = action()
    except BookingNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await broadcast_bookings_updated(booking_id)
    return updated.to_dict()


# Admin & Dashboard Endpoints

@app.get("/api/admin/bookings")
async def admin_bookings(controller: BookingController = Depends(get_controller)):
    return controller.admin_view().to_dict()


@app.get("/api/dashboard")
async def dashboard(year: Optional[int] = None, controller: BookingController = Depends(get_controller)):
    return controller.dashboard(year)


@app.get("/api/sync/failures")
async def sync_failures(controller: BookingController = Depends(get_controller)):
    return {"pending": controller.sync.pending, "failures": controller.sync.failures()}


@app.websocket("/ws")
async def websocket_endpoint(websocket: fastapi.WebSocket):
    """Pushes change events; clients re-fetch the lists they show."""
    await manager.connect(websocket)
    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except ValueError:
                await websocket.send_text(json.dumps({"type": "error", "data": "Invalid message."}))
                continue
            if not isinstance(message, dict):
                await websocket.send_text(json.dumps({"type": "error", "data": "Invalid message."}))
                continue
            if message.get("type") == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
    except fastapi.WebSocketDisconnect:
        manager.disconnect(websocket)


@app.on_event("startup")
async def startup():
    app.state.controller = build_controller(settings)
    await app.state.controller.start()


@app.on_event("shutdown")
async def shutdown():
    await app.state.controller.shutdown()
