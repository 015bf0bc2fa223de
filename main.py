import asyncio
import contextlib
import logging
from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.responses import JSONResponse
from uuid import UUID
from datetime import datetime, timedelta
from typing import List, Optional
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import ValidationError as PydanticValidationError

from api.schemas import (
    # Room
    CreateRoomRequest, UpdateRoomRequest, MaintenanceNoteRequest, RoomResponse,
    RoomCapacitySchema, RoomFeaturesSchema, StaffNoteResponse,
    # Booking
    CreateBookingRequest, UpdateBookingRequest, CancelRequest, BookingResponse,
    BookingListResponse, BookingStatsResponse, PaymentResultSchema, RefundResponse,
    # Reservation
    CreateReservationRequest, ConfirmReservationRequest, ReservationResponse, ConversionResponse,
    # Document
    RegisterDocumentRequest, DocumentResponse,
    # Auth
    Token, UserResponse
)

from api.dependencies import get_current_active_user, get_principal, fake_users_db, get_user
from infrastructure.config import get_settings
from infrastructure.logging_config import setup_logging
from infrastructure.security import verify_password, create_access_token
from domain.auth import User, Principal

from application.availability import AvailabilityService
from application.expiry_worker import expire_reservations_worker
from application.services import (
    RoomService, RoomStateManager, BookingService, ReservationService, DocumentService
)
from infrastructure.repositories.in_memory_repositories import (
    InMemoryRoomRepository, InMemoryBookingRepository,
    InMemoryReservationRepository, InMemoryDocumentRepository
)
from domain.entities import validation_error_from
from domain.enums import (
    RoomType, RoomStatus, BookingStatus, ReservationStatus, PaymentMethod, UserRole
)
from domain.exceptions import DomainError, AuthorizationError
from domain.value_objects import PaymentResult, StayPeriod

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Room booking and deposit-secured reservation lifecycle API",
    version=settings.app_version
)

# Initialize repositories
room_repo = InMemoryRoomRepository()
booking_repo = InMemoryBookingRepository()
reservation_repo = InMemoryReservationRepository()
document_repo = InMemoryDocumentRepository()

# Shared across requests: the availability service owns the per-room locks
availability_service = AvailabilityService(booking_repo, reservation_repo)
room_state_manager = RoomStateManager(room_repo, booking_repo)

# Dependency injection
def get_availability_service() -> AvailabilityService:
    return availability_service

def get_room_service() -> RoomService:
    return RoomService(room_repo, booking_repo, reservation_repo, room_state_manager)

def get_booking_service() -> BookingService:
    return BookingService(booking_repo, room_repo, availability_service, room_state_manager)

def get_reservation_service() -> ReservationService:
    return ReservationService(
        reservation_repo, booking_repo, room_repo, document_repo, availability_service, room_state_manager
    )

def get_document_service() -> DocumentService:
    return DocumentService(document_repo)

# ============================================================================
# LIFECYCLE & ERROR HANDLING
# ============================================================================

@app.on_event("startup")
async def start_expiry_sweep():
    interval = settings.reservation_sweep_interval_seconds
    if interval > 0:
        app.state.expiry_task = asyncio.create_task(
            expire_reservations_worker(get_reservation_service(), interval)
        )
        logger.info("Reservation expiry sweep running every %ss", interval)

@app.on_event("shutdown")
async def stop_expiry_sweep():
    task = getattr(app.state, "expiry_task", None)
    if task is not None:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        app.state.expiry_task = None

@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.error_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/room-type", tags=["Enum Reference"])
async def get_room_types():
    return {"values": [item.value for item in RoomType]}

@app.get("/api/enums/room-status", tags=["Enum Reference"])
async def get_room_statuses():
    return {
        "values": [item.value for item in RoomStatus],
        "description": "Advisory display status; availability is decided from booking and reservation dates"
    }

@app.get("/api/enums/booking-status", tags=["Enum Reference"])
async def get_booking_statuses():
    return {"values": [item.value for item in BookingStatus]}

@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    return {"values": [item.value for item in ReservationStatus]}

@app.get("/api/enums/payment-method", tags=["Enum Reference"])
async def get_payment_methods():
    return {"values": [item.value for item in PaymentMethod]}

@app.get("/api/enums/user-role", tags=["Enum Reference"])
async def get_user_roles():
    return {"values": [item.value for item in UserRole]}

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.warning("Failed login for %s", form_data.username)
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=settings.access_token_expire_minutes)
    access_token = create_access_token(
        data={"sub": user.username, "role": user.role.value}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@app.post("/api/rooms", response_model=RoomResponse, status_code=201, tags=["Rooms"])
async def create_room(
    request: CreateRoomRequest,
    service: RoomService = Depends(get_room_service),
    principal: Principal = Depends(get_principal)
):
    """Create a room (admin)"""
    room = await service.create_room(
        principal,
        number=request.number,
        room_type=request.type,
        price_per_night=request.price_per_night,
        capacity_adults=request.capacity.adults,
        capacity_children=request.capacity.children,
        description=request.description,
        amenities=request.amenities,
        size=request.size,
        floor=request.floor,
        features=request.features.model_dump()
    )
    return _room_to_response(room)

@app.get("/api/rooms", response_model=List[RoomResponse], tags=["Rooms"])
async def list_rooms(
    type: Optional[RoomType] = None,
    status: Optional[RoomStatus] = None,
    is_active: Optional[bool] = None,
    available_only: bool = False,
    service: RoomService = Depends(get_room_service)
):
    """Browse rooms"""
    rooms = await service.list_rooms(type, status, is_active, available_only)
    return [_room_to_response(r) for r in rooms]

@app.get("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def get_room(room_id: UUID, service: RoomService = Depends(get_room_service)):
    """Get room by ID"""
    return _room_to_response(await service.get_room(room_id))

@app.get("/api/rooms/{room_id}/availability", tags=["Rooms"])
async def check_room_availability(
    room_id: UUID,
    check_in: datetime,
    check_out: datetime,
    rooms: RoomService = Depends(get_room_service),
    availability: AvailabilityService = Depends(get_availability_service)
):
    """Whether the room is free for [check_in, check_out)"""
    await rooms.get_room(room_id)
    try:
        stay = StayPeriod(check_in=check_in, check_out=check_out)
    except PydanticValidationError as e:
        raise validation_error_from(e)

    conflicts = await availability.find_conflicts(room_id, stay)
    return {
        "room_id": str(room_id),
        "check_in": stay.check_in,
        "check_out": stay.check_out,
        "available": not conflicts,
        "conflicts": [{"kind": c.kind.value, "status": c.status} for c in conflicts],
    }

@app.patch("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def update_room(
    room_id: UUID,
    request: UpdateRoomRequest,
    service: RoomService = Depends(get_room_service),
    principal: Principal = Depends(get_principal)
):
    """Partially update a room (admin)"""
    room = await service.update_room(principal, room_id, request.model_dump(exclude_unset=True))
    return _room_to_response(room)

@app.post("/api/rooms/{room_id}/deactivate", response_model=RoomResponse, tags=["Rooms"])
async def deactivate_room(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    principal: Principal = Depends(get_principal)
):
    return _room_to_response(await service.deactivate_room(principal, room_id))

@app.delete("/api/rooms/{room_id}", status_code=204, tags=["Rooms"])
async def delete_room(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    principal: Principal = Depends(get_principal)
):
    """Delete a room that nothing references (admin)"""
    await service.delete_room(principal, room_id)

@app.post("/api/rooms/{room_id}/maintenance-notes", response_model=RoomResponse, tags=["Rooms"])
async def add_maintenance_note(
    room_id: UUID,
    request: MaintenanceNoteRequest,
    service: RoomService = Depends(get_room_service),
    principal: Principal = Depends(get_principal)
):
    return _room_to_response(await service.add_maintenance_note(principal, room_id, request.note))

@app.post("/api/rooms/{room_id}/recompute-status", response_model=RoomResponse, tags=["Rooms"])
async def recompute_room_status(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    principal: Principal = Depends(get_principal)
):
    """Rebuild the advisory room status from current bookings"""
    return _room_to_response(await service.recompute_room_status(principal, room_id))

# ============================================================================
# BOOKING ENDPOINTS
# ============================================================================

@app.post("/api/bookings", response_model=BookingResponse, status_code=201, tags=["Bookings"])
async def create_booking(
    request: CreateBookingRequest,
    service: BookingService = Depends(get_booking_service),
    principal: Principal = Depends(get_principal)
):
    """Create new booking"""
    booking = await service.create_booking(
        principal,
        room_id=request.room_id,
        check_in=request.check_in,
        check_out=request.check_out,
        adults=request.adults,
        children=request.children,
        total_price=request.total_price,
        special_requests=request.special_requests
    )
    return _booking_to_response(booking)

@app.get("/api/bookings", response_model=BookingListResponse, tags=["Bookings"])
async def list_bookings(
    status: Optional[BookingStatus] = None,
    room_id: Optional[UUID] = None,
    check_in_from: Optional[datetime] = None,
    check_out_until: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    service: BookingService = Depends(get_booking_service),
    principal: Principal = Depends(get_principal)
):
    """List bookings; guests only see their own"""
    bookings, total = await service.list_bookings(
        principal, status, room_id, check_in_from, check_out_until, page, limit, sort_by, sort_order
    )
    return BookingListResponse(
        items=[_booking_to_response(b) for b in bookings],
        total=total,
        page=page,
        limit=limit,
        pages=(total + limit - 1) // limit
    )

@app.get("/api/bookings/stats", response_model=BookingStatsResponse, tags=["Bookings"])
async def booking_stats(
    service: BookingService = Depends(get_booking_service),
    principal: Principal = Depends(get_principal)
):
    return await service.booking_stats(principal)

@app.get("/api/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
async def get_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    principal: Principal = Depends(get_principal)
):
    """Get booking by ID"""
    return _booking_to_response(await service.get_booking(principal, booking_id))

@app.patch("/api/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
async def update_booking(
    booking_id: UUID,
    request: UpdateBookingRequest,
    service: BookingService = Depends(get_booking_service),
    principal: Principal = Depends(get_principal)
):
    """Staff update: status, payment, special requests, internal notes"""
    payment_result = PaymentResult(**request.payment_result.model_dump()) if request.payment_result else None
    booking = await service.update_booking(
        principal,
        booking_id,
        status=request.status,
        cancellation_reason=request.cancellation_reason,
        is_paid=request.is_paid,
        payment_method=request.payment_method,
        payment_reference=request.payment_reference,
        payment_result=payment_result,
        special_requests=request.special_requests,
        internal_note=request.internal_note
    )
    return _booking_to_response(booking)

@app.post("/api/bookings/{booking_id}/confirm", response_model=BookingResponse, tags=["Bookings"])
async def confirm_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    principal: Principal = Depends(get_principal)
):
    """Confirm a pending booking"""
    return _booking_to_response(await service.confirm_booking(principal, booking_id))

@app.post("/api/bookings/{booking_id}/check-in", response_model=BookingResponse, tags=["Bookings"])
async def check_in_guest(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    principal: Principal = Depends(get_principal)
):
    """Check in guest"""
    return _booking_to_response(await service.check_in_guest(principal, booking_id))

@app.post("/api/bookings/{booking_id}/check-out", response_model=BookingResponse, tags=["Bookings"])
async def check_out_guest(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    principal: Principal = Depends(get_principal)
):
    """Check out guest"""
    return _booking_to_response(await service.check_out_guest(principal, booking_id))

@app.post("/api/bookings/{booking_id}/cancel", response_model=RefundResponse, tags=["Bookings"])
async def cancel_booking(
    booking_id: UUID,
    request: CancelRequest,
    service: BookingService = Depends(get_booking_service),
    principal: Principal = Depends(get_principal)
):
    """Cancel own booking; refund depends on notice given"""
    booking, refund = await service.cancel_booking(principal, booking_id, request.reason)
    return RefundResponse(
        id=booking.booking_id,
        status=booking.status.value,
        refund_amount=refund,
        message="Booking cancelled successfully"
    )

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    principal: Principal = Depends(get_principal)
):
    """Create new reservation held for 48 hours pending deposit"""
    reservation = await service.create_reservation(
        principal,
        room_id=request.room_id,
        check_in=request.check_in,
        check_out=request.check_out,
        guest_count=request.guest_count,
        total_price=request.total_price,
        identification_document_id=request.identification_document_id,
        special_requests=request.special_requests,
        payment_method=request.payment_method,
        payment_reference=request.payment_reference
    )
    return _reservation_to_response(reservation)

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def list_reservations(
    status: Optional[ReservationStatus] = None,
    service: ReservationService = Depends(get_reservation_service),
    principal: Principal = Depends(get_principal)
):
    """List reservations; guests only see their own"""
    reservations = await service.list_reservations(principal, status)
    return [_reservation_to_response(r) for r in reservations]

@app.post("/api/reservations/expire", tags=["Reservations"])
async def expire_stale_reservations(
    service: ReservationService = Depends(get_reservation_service),
    principal: Principal = Depends(get_principal)
):
    """Run the expiry sweep now (staff)"""
    if not principal.is_staff:
        raise AuthorizationError("Not authorized to expire reservations")
    expired = await service.expire_stale_reservations()
    return {"expired": [str(i) for i in expired], "count": len(expired)}

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    principal: Principal = Depends(get_principal)
):
    """Get reservation by ID"""
    return _reservation_to_response(await service.get_reservation(principal, reservation_id))

@app.post("/api/reservations/{reservation_id}/confirm", response_model=ReservationResponse, tags=["Reservations"])
async def confirm_reservation(
    reservation_id: UUID,
    request: ConfirmReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    principal: Principal = Depends(get_principal)
):
    """Confirm reservation after deposit payment"""
    reservation = await service.confirm_reservation(
        principal,
        reservation_id,
        payment_method=request.payment_method,
        payment_reference=request.payment_reference
    )
    return _reservation_to_response(reservation)

@app.post("/api/reservations/{reservation_id}/cancel", response_model=RefundResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: UUID,
    request: CancelRequest,
    service: ReservationService = Depends(get_reservation_service),
    principal: Principal = Depends(get_principal)
):
    """Cancel own reservation; a paid deposit is refunded"""
    reservation, refund = await service.cancel_reservation(principal, reservation_id, request.reason)
    return RefundResponse(
        id=reservation.reservation_id,
        status=reservation.status.value,
        refund_amount=refund,
        message="Reservation cancelled successfully"
    )

@app.post("/api/reservations/{reservation_id}/convert", response_model=ConversionResponse, tags=["Reservations"])
async def convert_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    principal: Principal = Depends(get_principal)
):
    """Convert a confirmed reservation into a booking (staff)"""
    reservation, booking = await service.convert_to_booking(principal, reservation_id)
    return ConversionResponse(
        reservation=_reservation_to_response(reservation),
        booking=_booking_to_response(booking)
    )

@app.delete("/api/reservations/{reservation_id}", status_code=204, tags=["Reservations"])
async def delete_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    principal: Principal = Depends(get_principal)
):
    await service.delete_reservation(principal, reservation_id)

# ============================================================================
# DOCUMENT ENDPOINTS
# ============================================================================

@app.post("/api/documents", response_model=DocumentResponse, status_code=201, tags=["Documents"])
async def register_document(
    request: RegisterDocumentRequest,
    service: DocumentService = Depends(get_document_service),
    principal: Principal = Depends(get_principal)
):
    """Register an uploaded identification document"""
    document = await service.register_document(
        principal,
        filename=request.filename,
        mimetype=request.mimetype,
        size=request.size,
        original_name=request.original_name
    )
    return DocumentResponse(**document.model_dump())

@app.get("/api/documents/{document_id}", response_model=DocumentResponse, tags=["Documents"])
async def get_document(
    document_id: UUID,
    service: DocumentService = Depends(get_document_service),
    principal: Principal = Depends(get_principal)
):
    document = await service.get_document(principal, document_id)
    return DocumentResponse(**document.model_dump())

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _notes_to_response(notes) -> List[StaffNoteResponse]:
    return [StaffNoteResponse(note=n.note, date=n.date, staff=n.staff) for n in notes]

def _room_to_response(room) -> RoomResponse:
    """Convert Room entity to RoomResponse"""
    return RoomResponse(
        room_id=room.room_id,
        number=room.number,
        type=room.type.value,
        price_per_night=room.price_per_night,
        capacity=RoomCapacitySchema(adults=room.capacity.adults, children=room.capacity.children),
        total_capacity=room.total_capacity,
        status=room.status.value,
        is_active=room.is_active,
        is_available=room.is_available,
        description=room.description,
        amenities=room.amenities,
        size=room.size,
        floor=room.floor,
        features=RoomFeaturesSchema(**room.features.model_dump()),
        maintenance_notes=_notes_to_response(room.maintenance_notes),
        created_at=room.created_at,
        modified_at=room.modified_at,
        version=room.version
    )

def _booking_to_response(booking) -> BookingResponse:
    """Convert Booking entity to BookingResponse"""
    return BookingResponse(
        booking_id=booking.booking_id,
        room_id=booking.room_id,
        guest_id=booking.guest_id,
        identification_document_id=booking.identification_document_id,
        source_reservation_id=booking.source_reservation_id,
        check_in=booking.stay.check_in,
        check_out=booking.stay.check_out,
        adults=booking.guests.adults,
        children=booking.guests.children,
        total_guests=booking.total_guests,
        number_of_nights=booking.number_of_nights,
        total_price=booking.total_price,
        status=booking.status.value,
        special_requests=booking.special_requests,
        cancellation_reason=booking.cancellation_reason,
        cancelled_at=booking.cancelled_at,
        is_paid=booking.is_paid,
        paid_at=booking.paid_at,
        payment_method=booking.payment_method.value if booking.payment_method else None,
        payment_reference=booking.payment_reference,
        payment_result=PaymentResultSchema(**booking.payment_result.model_dump()) if booking.payment_result else None,
        checked_in_at=booking.checked_in_at,
        checked_out_at=booking.checked_out_at,
        internal_notes=_notes_to_response(booking.internal_notes),
        created_at=booking.created_at,
        modified_at=booking.modified_at,
        version=booking.version
    )

def _reservation_to_response(reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        room_id=reservation.room_id,
        guest_id=reservation.guest_id,
        identification_document_id=reservation.identification_document_id,
        converted_to_booking_id=reservation.converted_to_booking_id,
        check_in=reservation.stay.check_in,
        check_out=reservation.stay.check_out,
        guest_count=reservation.guest_count,
        number_of_nights=reservation.number_of_nights,
        total_price=reservation.total_price,
        status=reservation.status.value,
        special_requests=reservation.special_requests,
        deposit_amount=reservation.deposit_amount,
        deposit_paid=reservation.deposit_paid,
        deposit_paid_at=reservation.deposit_paid_at,
        payment_method=reservation.payment_method.value if reservation.payment_method else None,
        payment_reference=reservation.payment_reference,
        expires_at=reservation.expires_at,
        confirmed_at=reservation.confirmed_at,
        cancellation_reason=reservation.cancellation_reason,
        cancelled_at=reservation.cancelled_at,
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        version=reservation.version
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
