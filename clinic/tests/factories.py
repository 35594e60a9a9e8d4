from clinic.models import Doctor, Patient, User
from clinic.roles import Role


def make_doctor(username='doc', first_name='Dana', last_name='Doe', specialty='Cardiology') -> Doctor:
    user = User.objects.create_user(username=username, password='P@ssw0rd1', role=Role.DOCTOR)
    return Doctor.objects.create(user=user, first_name=first_name, last_name=last_name, specialty=specialty)


def make_patient(username='pat', first_name='Pat', last_name='Lee') -> Patient:
    user = User.objects.create_user(username=username, password='P@ssw0rd1', role=Role.PATIENT)
    return Patient.objects.create(user=user, first_name=first_name, last_name=last_name)


def make_admin(username='admin', role=Role.ADMIN) -> User:
    return User.objects.create_user(username=username, password='P@ssw0rd1', role=role)
