"""
Management command to populate the database with sample clinic data.

Creates one account per role, doctor and patient profiles and a couple
of upcoming appointments, then prints an access token for every sample
user so the chat socket can be tried from a browser console.
"""
from datetime import datetime, time, timedelta, timezone as dt_timezone

from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.utils import timezone
from rest_framework_simplejwt.tokens import AccessToken

from clinic.models import Appointment, Doctor, Patient, User
from clinic.roles import Role


class Command(BaseCommand):
    help = 'Populate database with sample accounts, profiles and appointments (idempotent)'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='123456', help='Password for every sample account')

    def handle(self, *args, **options):
        password = options['password']
        self.stdout.write('Creating sample data...')

        staff = self.create_staff(password)
        doctors = self.create_doctors(password)
        patients = self.create_patients(password)
        self.create_appointments(doctors, patients)

        self.stdout.write(self.style.SUCCESS('Sample data ready. Access tokens:'))
        for user in staff + [d.user for d in doctors] + [p.user for p in patients]:
            self.stdout.write(f'{user.username:<10} {user.role:<10} {AccessToken.for_user(user)}')

    def _ensure_user(self, username, role, password, **extra):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={'role': role, 'password': make_password(password), 'is_active': True, **extra},
        )
        if not created and user.role != role:
            user.role = role
            user.save(update_fields=['role'])
        return user

    def create_staff(self, password):
        users = [
            self._ensure_user('admin1', Role.ADMIN, password, email='admin1@clinic.test'),
            self._ensure_user('super', Role.SUPER_ADMIN, password, email='super@clinic.test', is_staff=True, is_superuser=True),
        ]
        for user in users:
            self.stdout.write(f'Staff: {user.username} ({user.role})')
        return users

    def create_doctors(self, password):
        doctors_data = [
            {'username': 'doctor1', 'first_name': 'Gregory', 'last_name': 'House', 'specialty': 'Diagnostics'},
            {'username': 'doctor2', 'first_name': 'Meredith', 'last_name': 'Grey', 'specialty': 'General Surgery'},
        ]
        doctors = []
        for data in doctors_data:
            user = self._ensure_user(data['username'], Role.DOCTOR, password, email=f"{data['username']}@clinic.test")
            doctor, _ = Doctor.objects.get_or_create(
                user=user,
                defaults={k: data[k] for k in ('first_name', 'last_name', 'specialty')},
            )
            doctors.append(doctor)
            self.stdout.write(f'Doctor: {user.username} ({doctor.specialty})')
        return doctors

    def create_patients(self, password):
        patients_data = [
            {'username': 'patient1', 'first_name': 'Alice', 'last_name': 'Smith'},
            {'username': 'patient2', 'first_name': 'Bob', 'last_name': 'Jones'},
            {'username': 'patient3', 'first_name': 'Carol', 'last_name': 'White'},
        ]
        patients = []
        for data in patients_data:
            user = self._ensure_user(data['username'], Role.PATIENT, password, email=f"{data['username']}@example.com")
            patient, _ = Patient.objects.get_or_create(
                user=user,
                defaults={'first_name': data['first_name'], 'last_name': data['last_name']},
            )
            patients.append(patient)
            self.stdout.write(f'Patient: {user.username}')
        return patients

    def create_appointments(self, doctors, patients):
        tomorrow = timezone.now().astimezone(dt_timezone.utc).date() + timedelta(days=1)
        opening = datetime.combine(tomorrow, time(settings.CLINIC_WORKDAY_START_HOUR), tzinfo=dt_timezone.utc)
        slot = timedelta(minutes=settings.CLINIC_SLOT_MINUTES)
        for i, patient in enumerate(patients):
            doctor = doctors[i % len(doctors)]
            when = opening + slot * i
            appt, created = Appointment.objects.get_or_create(
                doctor=doctor,
                appt_time=when,
                status=Appointment.STATUS_SCHEDULED,
                defaults={'patient': patient},
            )
            doctor.assigned_patients.add(appt.patient)
            if created:
                self.stdout.write(f'Appointment: {doctor.last_name} / {patient.user.username} at {when.isoformat()}')
