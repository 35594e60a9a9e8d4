"""
Appointment scheduling: booking, the status state machine and reads.

State machine::

    scheduled -> completed
    scheduled -> cancelled
    cancelled -> scheduled   (administrators only)

``completed`` is terminal.  ``cancelled`` only leaves through an
administrator restoring it to ``scheduled``.

"No two live appointments share a doctor and instant": every write that
can occupy a slot locks the doctor row, then checks and saves inside the
same transaction.  Where the backend supports it, the partial unique
constraint on :class:`~clinic.models.Appointment` backs this up; its
violation is reported as a :class:`~clinic.exceptions.Conflict` too.  On
MySQL the constraint is not created and the doctor lock alone serialises
bookings.

Every function takes the acting user first and raises the service
exceptions from :mod:`clinic.exceptions`; views never see ORM errors.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from clinic import roles
from clinic.exceptions import Conflict, Forbidden, Internal, InvalidArgument, NotFound
from clinic.models import Appointment, Doctor, Patient
from clinic.services.audit import try_log_action
from clinic.services.lookups import (
    doctor_profile_for,
    get_doctor,
    get_patient,
    parse_id,
    patient_profile_for,
)

logger = logging.getLogger(__name__)

STATUSES = tuple(value for value, _ in Appointment.STATUS_CHOICES)

# (from, to) -> whether an administrator is required
TRANSITIONS = {
    (Appointment.STATUS_SCHEDULED, Appointment.STATUS_COMPLETED): False,
    (Appointment.STATUS_SCHEDULED, Appointment.STATUS_CANCELLED): False,
    (Appointment.STATUS_CANCELLED, Appointment.STATUS_SCHEDULED): True,
}


# ---------------------------------------------------------------------
# Parsing & guards
# ---------------------------------------------------------------------
def parse_appt_time(value) -> datetime:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""
    if isinstance(value, datetime):
        moment = value
    else:
        if not isinstance(value, str) or not value.strip():
            raise InvalidArgument('Invalid appointment time format')
        raw = value.strip()
        if raw.endswith('Z'):
            raw = raw[:-1] + '+00:00'
        try:
            moment = parse_datetime(raw)
        except ValueError:
            moment = None
        if moment is None:
            raise InvalidArgument('Invalid appointment time format')
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment, dt_timezone.utc)
    return moment.astimezone(dt_timezone.utc)


def parse_status(value) -> str:
    if value not in STATUSES:
        raise InvalidArgument(f"Invalid status. Allowed: {', '.join(STATUSES)}")
    return value


def check_transition(actor, current: str, target: str) -> None:
    """Raise unless ``actor`` may move an appointment from ``current`` to ``target``."""
    if (current, target) not in TRANSITIONS:
        raise Conflict(f'Cannot change status from {current} to {target}', code='invalid_state')
    if TRANSITIONS[(current, target)] and not roles.can_restore_cancelled(actor):
        raise Forbidden('Only administrators can restore a cancelled appointment')


def _base_queryset() -> QuerySet:
    return Appointment.objects.select_related('doctor__user', 'patient__user')


def visible_to(actor, qs: Optional[QuerySet] = None) -> QuerySet:
    """Restrict ``qs`` to what ``actor`` may read.

    Administrators see everything, patients their own bookings, doctors
    the bookings made with them.
    """
    qs = _base_queryset() if qs is None else qs
    if roles.is_administrator(actor):
        return qs
    if roles.is_patient(actor):
        return qs.filter(patient__user_id=actor.id)
    if roles.is_doctor(actor):
        return qs.filter(doctor__user_id=actor.id)
    return qs.none()


def _load(appointment_id, *, for_update: bool = False) -> Appointment:
    pk = parse_id(appointment_id, 'appointment id')
    qs = _base_queryset()
    if for_update:
        qs = qs.select_for_update()
    appt = qs.filter(pk=pk).first()
    if appt is None:
        raise NotFound('Appointment not found')
    return appt


def _ensure_slot_free(doctor_id: int, when: datetime, *, exclude_id: Optional[int] = None) -> None:
    qs = Appointment.objects.filter(doctor_id=doctor_id, appt_time=when).exclude(status=Appointment.STATUS_CANCELLED)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        logger.info('slot taken: doctor=%s time=%s', doctor_id, when.isoformat())
        raise Conflict('The selected time is already booked for this doctor')


def _lock_doctor(doctor_id: int) -> Doctor:
    """Row-lock the doctor; bookings against one calendar then run one at a time.

    Must be called inside ``transaction.atomic()``.
    """
    return Doctor.objects.select_for_update().get(pk=doctor_id)


def _save_or_conflict(appt: Appointment, **kwargs) -> None:
    try:
        with transaction.atomic():
            appt.save(**kwargs)
    except IntegrityError:
        logger.info('slot taken (constraint): doctor=%s time=%s', appt.doctor_id, appt.appt_time.isoformat())
        raise Conflict('The selected time is already booked for this doctor') from None
    except DatabaseError:
        logger.exception('could not save appointment %s', appt.pk)
        raise Internal('Could not save the appointment') from None


def link_doctor_and_patient(doctor: Doctor, patient: Patient) -> bool:
    """Remember the doctor/patient relationship formed by a booking.

    Idempotent and best effort: failures are logged and reported as
    ``False`` but never raised, because the booking itself already
    succeeded.
    """
    try:
        with transaction.atomic():
            doctor.assigned_patients.add(patient)
    except Exception:
        logger.warning('could not link doctor=%s and patient=%s', doctor.pk, patient.pk, exc_info=True)
        return False
    return True


def _resolve_patient(actor, patient_id) -> Patient:
    if roles.is_patient(actor):
        own = patient_profile_for(actor)
        if patient_id in (None, ''):
            if own is None:
                raise NotFound('Patient profile for the current user not found')
            return own
        pk = parse_id(patient_id, 'patient id')
        if own is None or own.pk != pk:
            raise Forbidden('Patients can only book appointments for themselves')
        return own
    if roles.can_book_for_any_patient(actor):
        if patient_id in (None, ''):
            raise InvalidArgument('patientId is required')
        return get_patient(patient_id)
    raise Forbidden('Only patients and administrators can book appointments')


# ---------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------
def create_appointment(actor, *, doctor_id, appt_time, patient_id=None) -> Appointment:
    if not roles.can_book(actor):
        raise Forbidden('Only patients and administrators can book appointments')
    if doctor_id in (None, '') or appt_time in (None, ''):
        raise InvalidArgument('doctorId and apptTime are required')
    parse_id(doctor_id, 'doctor id')
    when = parse_appt_time(appt_time)
    doctor = get_doctor(doctor_id)
    patient = _resolve_patient(actor, patient_id)

    with transaction.atomic():
        _lock_doctor(doctor.id)
        _ensure_slot_free(doctor.id, when)
        appt = Appointment(doctor=doctor, patient=patient, appt_time=when, status=Appointment.STATUS_SCHEDULED)
        _save_or_conflict(appt)
    logger.info('appointment %s booked: doctor=%s patient=%s time=%s', appt.pk, doctor.pk, patient.pk, when.isoformat())

    link_doctor_and_patient(doctor, patient)
    try_log_action(user=actor, action='appointment_create', object_type='appointment', object_id=appt.pk,
                   detail={'doctorId': doctor.pk, 'patientId': patient.pk, 'apptTime': when.isoformat()})
    return appt


def cancel_appointment(actor, appointment_id) -> Appointment:
    appt = _load(appointment_id)
    if not roles.can_cancel(actor, patient_user_id=appt.patient.user_id):
        raise Forbidden('Not allowed to cancel this appointment')

    with transaction.atomic():
        locked = _load(appt.pk, for_update=True)
        if locked.status != Appointment.STATUS_SCHEDULED:
            raise Conflict(f'Appointment is already {locked.status} and cannot be cancelled', code='invalid_state')
        locked.status = Appointment.STATUS_CANCELLED
        locked.save(update_fields=['status', 'updated_at'])

    try_log_action(user=actor, action='appointment_cancel', object_type='appointment', object_id=locked.pk)
    return locked


def update_status(actor, appointment_id, new_status) -> Appointment:
    pk = parse_id(appointment_id, 'appointment id')
    target = parse_status(new_status)
    appt = _load(pk)
    if not roles.can_update_status(actor, doctor_user_id=appt.doctor.user_id):
        raise Forbidden('Not allowed to change the status of this appointment')

    with transaction.atomic():
        _lock_doctor(appt.doctor_id)
        locked = _load(pk, for_update=True)
        previous = locked.status
        check_transition(actor, previous, target)
        if target != Appointment.STATUS_CANCELLED:
            _ensure_slot_free(locked.doctor_id, locked.appt_time, exclude_id=locked.pk)
        locked.status = target
        _save_or_conflict(locked, update_fields=['status', 'updated_at'])

    try_log_action(user=actor, action='appointment_status', object_type='appointment', object_id=locked.pk,
                   detail={'from': previous, 'to': target})
    return locked


def update_appointment(actor, appointment_id, *, doctor_id, patient_id, appt_time, status=None) -> Appointment:
    """Administrator re-assignment of doctor, patient and time (and optionally status)."""
    if not roles.can_reassign(actor):
        raise Forbidden('Only administrators can edit appointments')
    pk = parse_id(appointment_id, 'appointment id')
    if doctor_id in (None, '') or patient_id in (None, '') or appt_time in (None, ''):
        raise InvalidArgument('doctorId, patientId and apptTime are required')
    parse_id(doctor_id, 'doctor id')
    parse_id(patient_id, 'patient id')
    when = parse_appt_time(appt_time)
    target = parse_status(status) if status not in (None, '') else None

    appt = _load(pk)
    doctor = get_doctor(doctor_id)
    patient = get_patient(patient_id)

    with transaction.atomic():
        _lock_doctor(doctor.id)
        locked = _load(appt.pk, for_update=True)
        if target is not None and target != locked.status:
            check_transition(actor, locked.status, target)
            locked.status = target
        if locked.status != Appointment.STATUS_CANCELLED:
            _ensure_slot_free(doctor.id, when, exclude_id=locked.pk)
        locked.doctor = doctor
        locked.patient = patient
        locked.appt_time = when
        _save_or_conflict(locked)

    link_doctor_and_patient(doctor, patient)
    try_log_action(user=actor, action='appointment_update', object_type='appointment', object_id=locked.pk,
                   detail={'doctorId': doctor.pk, 'patientId': patient.pk, 'apptTime': when.isoformat(),
                           'status': locked.status})
    return locked


def delete_appointment(actor, appointment_id) -> None:
    """Hard delete; an administrator data-cleanup override."""
    if not roles.can_delete(actor):
        raise Forbidden('Only administrators can delete appointments')
    appt = _load(appointment_id)
    appt_pk = appt.pk
    appt.delete()
    logger.info('appointment %s deleted by user %s', appt_pk, getattr(actor, 'id', None))
    try_log_action(user=actor, action='appointment_delete', object_type='appointment', object_id=appt_pk)


# ---------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------
def get_appointment(actor, appointment_id) -> Appointment:
    appt = _load(appointment_id)
    if not roles.can_view(actor, doctor_user_id=appt.doctor.user_id, patient_user_id=appt.patient.user_id):
        raise Forbidden('Not allowed to view this appointment')
    return appt


def list_all(actor) -> QuerySet:
    if not roles.is_administrator(actor):
        raise Forbidden('Only administrators can list all appointments')
    return _base_queryset().order_by('-appt_time')


def list_own_as_patient(actor) -> QuerySet:
    if not roles.is_patient(actor):
        raise Forbidden('This listing is for patients only')
    profile = patient_profile_for(actor)
    if profile is None:
        raise NotFound('Patient profile for the current user not found')
    return visible_to(actor).filter(patient=profile).order_by('appt_time')


def list_own_as_doctor(actor) -> QuerySet:
    if not roles.is_doctor(actor):
        raise Forbidden('This listing is for doctors only')
    profile = doctor_profile_for(actor)
    if profile is None:
        raise NotFound('Doctor profile for the current user not found')
    return visible_to(actor).filter(doctor=profile).order_by('appt_time')


def list_for_doctor(actor, doctor_id) -> QuerySet:
    doctor = get_doctor(doctor_id)
    if not (roles.is_administrator(actor) or (roles.is_doctor(actor) and doctor.user_id == actor.id)):
        raise Forbidden("Not allowed to view this doctor's appointments")
    return visible_to(actor).filter(doctor=doctor).order_by('appt_time')


def list_for_patient(actor, patient_id) -> QuerySet:
    patient = get_patient(patient_id)
    if roles.is_patient(actor) and patient.user_id != actor.id:
        raise Forbidden("Not allowed to view this patient's appointments")
    return visible_to(actor).filter(patient=patient).order_by('appt_time')


def assigned_patients(actor, doctor_id) -> QuerySet:
    doctor = get_doctor(doctor_id)
    if not (roles.is_administrator(actor) or (roles.is_doctor(actor) and doctor.user_id == actor.id)):
        raise Forbidden("Not allowed to view this doctor's patients")
    return doctor.assigned_patients.select_related('user').order_by('last_name', 'first_name', 'id')


def assigned_doctors(actor, patient_id) -> QuerySet:
    """Doctors linked to the patient through bookings (the reverse of :func:`assigned_patients`)."""
    patient = get_patient(patient_id)
    if not (roles.is_administrator(actor) or (roles.is_patient(actor) and patient.user_id == actor.id)):
        raise Forbidden("Not allowed to view this patient's doctors")
    return patient.assigned_doctors.select_related('user').order_by('last_name', 'first_name', 'id')
