import logging
from typing import Optional

import uvicorn
from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .booking.appointment_repository import AppointmentRepository
from .booking.config import AppConfig
from .booking.errors import BookingError, NotFound
from .booking.models import BookingRequest, StatusUpdateRequest
from .booking.notifications import NotificationDispatcher
from .booking.validation import check_booking
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_repository(request: Request) -> AppointmentRepository:
    """Record store attached to the app."""
    return request.app.state.repository


def get_dispatcher(request: Request) -> NotificationDispatcher:
    """Notification dispatcher attached to the app."""
    return request.app.state.dispatcher


def envelope(success: bool, message: str, status_code: int = 200, **payload) -> JSONResponse:
    """JSON response in the {success, message, ...payload} shape every endpoint uses."""
    return JSONResponse(status_code=status_code,
                        content={"success": success, "message": message, **payload})


@router.get("/health")
def health_check():
    """Liveness probe."""
    return {"success": True, "message": "Server is running", "status": "ok"}


@router.post("/appointments", status_code=201)
def book_appointment(
    payload: BookingRequest,
    background_tasks: BackgroundTasks,
    repo: AppointmentRepository = Depends(get_repository),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Validate and store a booking, then email the patient and admin in the background."""
    fields = payload.model_dump()
    check_booking(fields)
    appointment = repo.create(fields)

    # Mail runs after the response; its outcome never changes the booking result
    background_tasks.add_task(dispatcher.notify_booking, appointment)

    return envelope(True, "Appointment booked successfully!", status_code=201,
                    appointment=appointment.to_document())


@router.get("/appointments")
def list_appointments(repo: AppointmentRepository = Depends(get_repository)):
    """All appointments, most recent first."""
    appointments = repo.list_all()
    return envelope(True, "Appointments retrieved", count=len(appointments),
                    appointments=[appt.to_document() for appt in appointments])


@router.get("/appointments/status/{status}")
def list_appointments_by_status(status: str, repo: AppointmentRepository = Depends(get_repository)):
    """Appointments with one status."""
    appointments = repo.list_by_status(status)
    return envelope(True, f"Appointments with status {status} retrieved", count=len(appointments),
                    appointments=[appt.to_document() for appt in appointments])


@router.get("/appointments/{appointment_id}")
def get_appointment(appointment_id: str, repo: AppointmentRepository = Depends(get_repository)):
    """Get a single appointment."""
    appointment = repo.get(appointment_id)
    return envelope(True, "Appointment retrieved", appointment=appointment.to_document())


@router.put("/appointments/{appointment_id}")
def update_appointment_status(
    appointment_id: str,
    update: StatusUpdateRequest,
    repo: AppointmentRepository = Depends(get_repository),
):
    """Change an appointment's status; the body carries the new status."""
    appointment = repo.update_status(appointment_id, update.status)
    return envelope(True, "Appointment updated successfully", appointment=appointment.to_document())


@router.delete("/appointments/{appointment_id}")
def delete_appointment(appointment_id: str, repo: AppointmentRepository = Depends(get_repository)):
    """Delete an appointment."""
    if not repo.delete(appointment_id):
        raise NotFound()
    return envelope(True, "Appointment deleted successfully")


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Map booking errors to their HTTP status in the standard envelope."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return envelope(False, exc.message, status_code=exc.status_code, error=exc.code)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return envelope(False, str(exc.detail), status_code=exc.status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies as 400 instead of FastAPI's default 422."""
    logger.warning("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return envelope(False, "Invalid request body", status_code=400)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return envelope(False, "Server error", status_code=500)


def create_app(
    config: Optional[AppConfig] = None,
    repository: Optional[AppointmentRepository] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    """Build the booking API around explicit configuration and collaborators."""
    config = config or AppConfig()

    app = FastAPI(
        title="Clinic Booking API",
        description="Clinic appointment booking backend",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.repository = repository or AppointmentRepository(config.store)
    app.state.dispatcher = dispatcher or NotificationDispatcher(config.mail)

    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(router)
    return app


settings = AppConfig.from_env()
app = create_app(settings)


def main() -> None:
    setup_logging(settings.server.log_level)
    if not settings.mail.enabled:
        logger.warning("SMTP is not configured; booking emails will only be logged")
    logger.info("Starting clinic booking server on http://%s:%s",
                settings.server.host, settings.server.port)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
