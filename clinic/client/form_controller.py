#!/usr/bin/env python3
"""
Booking form client.

Collects appointment fields, runs the same validation the server enforces,
posts the booking and renders the outcome as a banner. Also carries the small
admin helpers (list, confirm, cancel, delete) used against the booking API.
"""

import argparse
import asyncio
import logging
import sys
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import aiohttp
from pydantic import BaseModel
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from ..booking.config import ClientConfig
from ..booking.models import Appointment, AppointmentStatus, REQUIRED_FIELDS
from ..booking.validation import validate_booking

logger = logging.getLogger(__name__)

TRIMMED_FIELDS = {"name", "email", "phone", "reason"}
CONNECTION_ERROR_MESSAGE = "Could not connect to server. Please check your internet connection."


class BannerKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    CONNECTION_ERROR = "connection_error"


class Banner(BaseModel):
    kind: BannerKind
    title: str
    message: str


class BookingFormController:
    def __init__(self, config: Optional[ClientConfig] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 console: Optional[Console] = None):
        self.config = config or ClientConfig()
        self.session = session
        self.console = console or Console()
        self.fields: Dict[str, str] = {}
        self.submitting = False
        self.banner: Optional[Banner] = None
        self._dismiss_handle: Optional[asyncio.TimerHandle] = None

    @property
    def api_url(self) -> str:
        return self.config.api_url.rstrip("/")

    def collect(self, fields: Mapping[str, Any]) -> Dict[str, str]:
        """Copy the form fields, trimming the free-text ones."""
        collected = {}
        for name in REQUIRED_FIELDS:
            value = fields.get(name)
            value = "" if value is None else str(value)
            collected[name] = value.strip() if name in TRIMMED_FIELDS else value
        self.fields = collected
        return collected

    def reset_form(self) -> None:
        self.fields = {name: "" for name in REQUIRED_FIELDS}

    def show_banner(self, kind: BannerKind, title: str, message: str) -> Banner:
        self._cancel_dismiss()
        self.banner = Banner(kind=kind, title=title, message=message)
        self.render(self.banner)
        return self.banner

    def dismiss_banner(self) -> None:
        self.banner = None
        self._dismiss_handle = None

    def _cancel_dismiss(self) -> None:
        if self._dismiss_handle is not None:
            self._dismiss_handle.cancel()
            self._dismiss_handle = None

    def render(self, banner: Banner) -> None:
        border = "green" if banner.kind == BannerKind.SUCCESS else "red"
        self.console.print(Panel(banner.message, title=banner.title, border_style=border))

    def _new_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.config.request_timeout))

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send one request and decode the JSON envelope, whatever the HTTP status."""
        url = f"{self.api_url}{path}"
        if self.session is not None:
            async with self.session.request(method, url, **kwargs) as response:
                body = await response.json()
        else:
            async with self._new_session() as session:
                async with session.request(method, url, **kwargs) as response:
                    body = await response.json()
        # Anything but a JSON object is treated as an empty, unsuccessful envelope
        return body if isinstance(body, dict) else {}

    async def submit(self, fields: Mapping[str, Any]) -> Optional[Appointment]:
        """Validate and post a booking. Returns the stored appointment on success.

        While a booking is in flight further submits are ignored.
        """
        if self.submitting:
            logger.warning("Booking already in progress; ignoring submit")
            return None

        data = self.collect(fields)

        result = validate_booking(data)
        if not result.ok:
            self.show_banner(BannerKind.ERROR, "Error!", result.message)
            return None

        self.submitting = True
        try:
            body = await self._request("POST", "/appointments", json=data)

            if body.get("success") and isinstance(body.get("appointment"), dict):
                appointment = Appointment.model_validate(body["appointment"])
                self.show_banner(
                    BannerKind.SUCCESS,
                    "Success!",
                    "Your appointment has been booked successfully!\n"
                    f"A confirmation email has been sent to {data['email']}",
                )
                logger.info("Appointment booked: %s", appointment.id)
                self.reset_form()
                self._dismiss_handle = asyncio.get_running_loop().call_later(
                    self.config.success_banner_seconds, self.dismiss_banner
                )
                return appointment

            if body.get("success"):
                message = "Unexpected response from server"
            else:
                message = body.get("message") or "Booking failed"
            logger.error("Booking error: %s", message)
            self.show_banner(BannerKind.ERROR, "Error!", message)
            return None

        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error("Booking request failed: %s", e)
            self.show_banner(BannerKind.CONNECTION_ERROR, "Connection Error!", CONNECTION_ERROR_MESSAGE)
            return None
        finally:
            self.submitting = False

    async def check_backend(self) -> bool:
        try:
            body = await self._request("GET", "/health")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError):
            logger.warning("Backend not connected. Make sure server is running on %s", self.api_url)
            return False
        logger.info("Backend connected: %s", body.get("message"))
        return bool(body.get("success"))

    async def _fetch(self, method: str, path: str, key: Optional[str], **kwargs) -> Any:
        try:
            body = await self._request(method, path, **kwargs)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error("Error calling %s %s: %s", method, path, e)
            return None
        if not body.get("success"):
            logger.error("Error: %s", body.get("message"))
            return None
        return body.get(key) if key else True

    async def get_all_appointments(self) -> Optional[List[Appointment]]:
        docs = await self._fetch("GET", "/appointments", "appointments")
        return None if docs is None else [Appointment.model_validate(d) for d in docs]

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        doc = await self._fetch("GET", f"/appointments/{appointment_id}", "appointment")
        return None if doc is None else Appointment.model_validate(doc)

    async def update_status(self, appointment_id: str, status: str) -> Optional[Appointment]:
        doc = await self._fetch("PUT", f"/appointments/{appointment_id}", "appointment",
                                json={"status": status})
        return None if doc is None else Appointment.model_validate(doc)

    async def confirm(self, appointment_id: str) -> Optional[Appointment]:
        return await self.update_status(appointment_id, AppointmentStatus.CONFIRMED.value)

    async def cancel(self, appointment_id: str) -> Optional[Appointment]:
        return await self.update_status(appointment_id, AppointmentStatus.CANCELLED.value)

    async def delete(self, appointment_id: str) -> bool:
        return bool(await self._fetch("DELETE", f"/appointments/{appointment_id}", None))

    async def get_by_status(self, status: str) -> Optional[List[Appointment]]:
        docs = await self._fetch("GET", f"/appointments/status/{status}", "appointments")
        return None if docs is None else [Appointment.model_validate(d) for d in docs]

    def print_appointments(self, appointments: List[Appointment]) -> None:
        table = Table(title="Appointments")
        for column in ("ID", "Name", "Doctor", "Date", "Time", "Status"):
            table.add_column(column)
        for appt in appointments:
            table.add_row(appt.id, appt.name, appt.doctor_name, appt.date.isoformat(),
                          appt.time, appt.status.value)
        self.console.print(table)


async def run(args: argparse.Namespace) -> int:
    config = ClientConfig.from_env()
    if args.url:
        config.api_url = args.url
    controller = BookingFormController(config)

    if not await controller.check_backend():
        controller.console.print(f"[yellow]Backend not reachable at {controller.api_url}[/yellow]")

    if args.list or args.status:
        if args.status:
            appointments = await controller.get_by_status(args.status)
        else:
            appointments = await controller.get_all_appointments()
        if appointments is None:
            return 1
        controller.print_appointments(appointments)
        return 0

    fields = {}
    for name in REQUIRED_FIELDS:
        value = getattr(args, name)
        fields[name] = value if value is not None else Prompt.ask(name.capitalize())

    appointment = await controller.submit(fields)
    return 0 if appointment else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Book a clinic appointment")
    parser.add_argument("--url", help="API base URL, e.g. http://localhost:5000/api")
    parser.add_argument("--list", action="store_true", help="List all appointments")
    parser.add_argument("--status", help="List appointments with this status")
    for name in REQUIRED_FIELDS:
        parser.add_argument(f"--{name}")
    args = parser.parse_args()

    logging.basicConfig(level="INFO", format="%(message)s", handlers=[RichHandler()])

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        Console().print("\n[yellow]Booking interrupted by user[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    main()
