"""
Free-slot computation for a doctor's working day.

The working window and slot length come from settings
(``CLINIC_WORKDAY_START_HOUR``, ``CLINIC_WORKDAY_END_HOUR``,
``CLINIC_SLOT_MINUTES``).  Every instant here is UTC: day boundaries,
booked times and "now" are all compared in that one frame, so a slot
label ``"10:00"`` always means 10:00 UTC.

The calculation is a read-only query and safe to call concurrently.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from typing import Iterator, Optional

from django.conf import settings
from django.utils import timezone

from clinic.exceptions import InvalidArgument
from clinic.models import Appointment
from clinic.services.lookups import get_doctor

_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def parse_date(value) -> date:
    """Parse ``YYYY-MM-DD`` or raise :class:`InvalidArgument`."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise InvalidArgument('Invalid date format. Use YYYY-MM-DD.')
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidArgument('Invalid date format. Use YYYY-MM-DD.') from None


def slot_label(moment: datetime) -> str:
    return moment.astimezone(dt_timezone.utc).strftime('%H:%M')


def iter_slot_starts(day: date) -> Iterator[datetime]:
    """Yield each slot start (aware, UTC) inside the working window of ``day``."""
    step = timedelta(minutes=settings.CLINIC_SLOT_MINUTES)
    midnight = datetime.combine(day, time.min, tzinfo=dt_timezone.utc)
    current = midnight + timedelta(hours=settings.CLINIC_WORKDAY_START_HOUR)
    window_end = midnight + timedelta(hours=settings.CLINIC_WORKDAY_END_HOUR)
    while current < window_end:
        yield current
        current += step


def booked_labels(doctor_id: int, day: date) -> set[str]:
    start = datetime.combine(day, time.min, tzinfo=dt_timezone.utc)
    times = (
        Appointment.objects
        .filter(doctor_id=doctor_id, appt_time__gte=start, appt_time__lt=start + timedelta(days=1))
        .exclude(status=Appointment.STATUS_CANCELLED)
        .values_list('appt_time', flat=True)
    )
    return {slot_label(t) for t in times}


def available_slots(doctor_id, day, *, now: Optional[datetime] = None) -> list[str]:
    """Return the ascending ``"HH:MM"`` labels still bookable for the doctor.

    ``day`` may be a :class:`date` or a ``YYYY-MM-DD`` string.  Days
    before today yield an empty list; on today, slots whose start has
    already passed are left out.
    """
    if not isinstance(day, date):
        day = parse_date(day)
    doctor = get_doctor(doctor_id)

    now = (now or timezone.now()).astimezone(dt_timezone.utc)
    if day < now.date():
        return []

    taken = booked_labels(doctor.id, day)
    return [
        slot_label(start)
        for start in iter_slot_starts(day)
        if start >= now and slot_label(start) not in taken
    ]
