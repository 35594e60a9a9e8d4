"""
Route-level permission classes built on the role predicates.

Object-level decisions (who owns an appointment) are made in the service
layer, see :mod:`clinic.roles`.
"""
from rest_framework.permissions import BasePermission

from . import roles


class IsDoctorRole(BasePermission):
    """Allow access only to users with the doctor role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return roles.is_doctor(getattr(request, "user", None))


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return roles.is_patient(getattr(request, "user", None))


class IsDoctorOrAdministrator(BasePermission):
    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        return roles.is_doctor(user) or roles.is_administrator(user)
