"""Id parsing and profile lookups shared by the scheduling services."""
from typing import Optional

from django.contrib.auth import get_user_model

from clinic.exceptions import InvalidArgument, NotFound
from clinic.models import Doctor, Patient

User = get_user_model()


def parse_id(value, label: str = 'id') -> int:
    """Return ``value`` as a positive integer id or raise :class:`InvalidArgument`."""
    if isinstance(value, bool):
        raise InvalidArgument(f'Invalid {label}')
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidArgument(f'Invalid {label}') from None
    if parsed < 1:
        raise InvalidArgument(f'Invalid {label}')
    return parsed


def get_doctor(doctor_id) -> Doctor:
    pk = parse_id(doctor_id, 'doctor id')
    doctor = Doctor.objects.select_related('user').filter(pk=pk).first()
    if doctor is None:
        raise NotFound(f'Doctor {pk} not found')
    return doctor


def get_patient(patient_id) -> Patient:
    pk = parse_id(patient_id, 'patient id')
    patient = Patient.objects.select_related('user').filter(pk=pk).first()
    if patient is None:
        raise NotFound(f'Patient {pk} not found')
    return patient


def get_user(user_id) -> User:
    pk = parse_id(user_id, 'user id')
    user = User.objects.filter(pk=pk).first()
    if user is None:
        raise NotFound(f'User {pk} not found')
    return user


def patient_profile_for(user) -> Optional[Patient]:
    return Patient.objects.filter(user_id=getattr(user, 'id', None)).first()


def doctor_profile_for(user) -> Optional[Doctor]:
    return Doctor.objects.filter(user_id=getattr(user, 'id', None)).first()
