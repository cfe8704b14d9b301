"""
Booking email templates, rendered with Jinja2 (autoescaped).
"""

from datetime import date

from jinja2 import Environment

from .config import ClinicInfo
from .models import Appointment

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

PATIENT_CONFIRMATION = _env.from_string("""\
<div style="font-family: Arial, sans-serif; background-color: #f8fafb; padding: 20px;">
  <div style="background-color: white; border-radius: 10px; padding: 30px; max-width: 600px; margin: 0 auto;">
    <h1 style="color: #1a4d7a; text-align: center;">Appointment Confirmed</h1>
    <p>Dear <strong>{{ appointment.name }}</strong>,</p>
    <p>Your appointment has been successfully booked at <strong>{{ clinic.name }}</strong>.</p>
    <div style="background-color: #f0f4f8; border-left: 4px solid #00a870; padding: 20px; margin: 20px 0;">
      <p><strong>Appointment Details:</strong></p>
      <p>
        <strong>Doctor:</strong> {{ doctor_name }}<br>
        <strong>Date:</strong> {{ display_date }}<br>
        <strong>Time:</strong> {{ appointment.time }}<br>
        <strong>Reason:</strong> {{ appointment.reason }}
      </p>
    </div>
    <div style="background-color: #f0f4f8; border-left: 4px solid #2a7cb9; padding: 20px; margin: 20px 0;">
      <p><strong>Contact Information:</strong></p>
      <p>
        <strong>Phone:</strong> {{ clinic.phone }}<br>
        <strong>Email:</strong> {{ clinic.email }}<br>
        <strong>Address:</strong> {{ clinic.address }}
      </p>
    </div>
    <p><strong>Please arrive 10 minutes before your appointment time.</strong></p>
    <p>If you need to cancel or reschedule, please contact us at least 24 hours in advance.</p>
    <p style="color: #666; font-size: 12px; text-align: center; margin-top: 30px;">
      &copy; {{ year }} {{ clinic.name }}. All rights reserved.
    </p>
  </div>
</div>
""")

ADMIN_NOTICE = _env.from_string("""\
<h2>New Appointment Booking</h2>
<p><strong>Name:</strong> {{ appointment.name }}</p>
<p><strong>Email:</strong> {{ appointment.email }}</p>
<p><strong>Phone:</strong> {{ appointment.phone }}</p>
<p><strong>Doctor:</strong> {{ doctor_name }}</p>
<p><strong>Date:</strong> {{ display_date }}</p>
<p><strong>Time:</strong> {{ appointment.time }}</p>
<p><strong>Reason:</strong> {{ appointment.reason }}</p>
""")


def format_display_date(value: date) -> str:
    """Month/day/year without zero padding, e.g. 3/7/2026."""
    return f"{value.month}/{value.day}/{value.year}"


def _context(appointment: Appointment, clinic: ClinicInfo) -> dict:
    return {
        "appointment": appointment,
        "clinic": clinic,
        "doctor_name": appointment.doctor_name,
        "display_date": format_display_date(appointment.date),
        "year": appointment.created_at.year,
    }


def patient_confirmation_html(appointment: Appointment, clinic: ClinicInfo) -> str:
    return PATIENT_CONFIRMATION.render(**_context(appointment, clinic))


def patient_confirmation_text(appointment: Appointment, clinic: ClinicInfo) -> str:
    return (
        f"Dear {appointment.name},\n\n"
        f"Your appointment has been successfully booked at {clinic.name}.\n\n"
        f"Doctor: {appointment.doctor_name}\n"
        f"Date: {format_display_date(appointment.date)}\n"
        f"Time: {appointment.time}\n"
        f"Reason: {appointment.reason}\n\n"
        f"Please arrive 10 minutes before your appointment time.\n"
        f"Contact us at {clinic.phone} or {clinic.email}.\n"
    )


def admin_notice_html(appointment: Appointment, clinic: ClinicInfo) -> str:
    return ADMIN_NOTICE.render(**_context(appointment, clinic))


def admin_notice_text(appointment: Appointment) -> str:
    return "\n".join([
        "New Appointment Booking",
        f"Name: {appointment.name}",
        f"Email: {appointment.email}",
        f"Phone: {appointment.phone}",
        f"Doctor: {appointment.doctor_name}",
        f"Date: {format_display_date(appointment.date)}",
        f"Time: {appointment.time}",
        f"Reason: {appointment.reason}",
    ])
