import pytest
from django.contrib.auth.models import AnonymousUser

from clinic import roles
from clinic.models import User
from clinic.roles import Role


def user(role, pk=1):
    return User(id=pk, username=f'u{pk}', role=role)


PATIENT, OTHER_PATIENT = user(Role.PATIENT, 1), user(Role.PATIENT, 2)
DOCTOR, OTHER_DOCTOR = user(Role.DOCTOR, 3), user(Role.DOCTOR, 4)
ADMIN, SUPER = user(Role.ADMIN, 5), user(Role.SUPER_ADMIN, 6)


def test_role_of_unknown_values():
    assert roles.role_of(AnonymousUser()) is None
    assert roles.role_of(None) is None
    assert roles.role_of(user('Nurse')) is None


@pytest.mark.parametrize('actor,expected', [
    (PATIENT, True), (DOCTOR, False), (ADMIN, True), (SUPER, True), (AnonymousUser(), False),
])
def test_can_book(actor, expected):
    assert roles.can_book(actor) is expected


def test_only_administrators_book_for_anyone():
    assert roles.can_book_for_any_patient(ADMIN)
    assert roles.can_book_for_any_patient(SUPER)
    assert not roles.can_book_for_any_patient(PATIENT)
    assert not roles.can_book_for_any_patient(DOCTOR)


@pytest.mark.parametrize('actor,expected', [
    (PATIENT, True), (OTHER_PATIENT, False), (DOCTOR, True), (OTHER_DOCTOR, False), (ADMIN, True), (SUPER, True),
])
def test_can_view(actor, expected):
    assert roles.can_view(actor, doctor_user_id=DOCTOR.id, patient_user_id=PATIENT.id) is expected


@pytest.mark.parametrize('actor,expected', [
    (PATIENT, True), (OTHER_PATIENT, False), (DOCTOR, False), (ADMIN, True),
])
def test_can_cancel(actor, expected):
    assert roles.can_cancel(actor, patient_user_id=PATIENT.id) is expected


@pytest.mark.parametrize('actor,expected', [
    (PATIENT, False), (DOCTOR, True), (OTHER_DOCTOR, False), (ADMIN, True), (SUPER, True),
])
def test_can_update_status(actor, expected):
    assert roles.can_update_status(actor, doctor_user_id=DOCTOR.id) is expected


@pytest.mark.parametrize('predicate', [roles.can_restore_cancelled, roles.can_reassign, roles.can_delete])
def test_administrator_only_actions(predicate):
    assert predicate(ADMIN) and predicate(SUPER)
    assert not predicate(PATIENT)
    assert not predicate(DOCTOR)
