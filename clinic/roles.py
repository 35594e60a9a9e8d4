"""
Roles and the capability matrix for appointments.

Every permission decision about an appointment goes through one of the
predicates below so the whole matrix can be read (and tested) in one
place.  Predicates receive the acting user plus the *user ids* owning the
appointment's doctor and patient profiles; callers resolve those links
before asking.
"""
from __future__ import annotations

from typing import Optional

from django.db import models


class Role(models.TextChoices):
    PATIENT = 'Patient', 'Patient'
    DOCTOR = 'Doctor', 'Doctor'
    ADMIN = 'Admin', 'Administrator'
    SUPER_ADMIN = 'SuperAdmin', 'Super administrator'


ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


def role_of(user) -> Optional[Role]:
    """Return the user's :class:`Role` or ``None`` for unknown/anonymous users."""
    if not (user and getattr(user, 'is_authenticated', False)):
        return None
    try:
        return Role(getattr(user, 'role', None))
    except ValueError:
        return None


def is_administrator(user) -> bool:
    return role_of(user) in ADMIN_ROLES


def is_doctor(user) -> bool:
    return role_of(user) == Role.DOCTOR


def is_patient(user) -> bool:
    return role_of(user) == Role.PATIENT


def can_book_for_any_patient(user) -> bool:
    return is_administrator(user)


def can_book(user) -> bool:
    return is_administrator(user) or is_patient(user)


def can_view(user, *, doctor_user_id, patient_user_id) -> bool:
    if is_administrator(user):
        return True
    if is_patient(user):
        return patient_user_id == user.id
    if is_doctor(user):
        return doctor_user_id == user.id
    return False


def can_cancel(user, *, patient_user_id) -> bool:
    if is_administrator(user):
        return True
    return is_patient(user) and patient_user_id == user.id


def can_update_status(user, *, doctor_user_id) -> bool:
    if is_administrator(user):
        return True
    return is_doctor(user) and doctor_user_id == user.id


def can_restore_cancelled(user) -> bool:
    return is_administrator(user)


def can_reassign(user) -> bool:
    return is_administrator(user)


def can_delete(user) -> bool:
    return is_administrator(user)
