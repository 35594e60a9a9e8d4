"""
Database models for the clinic backend.

Users authenticate and carry a role; doctors and patients are profile
records linked one-to-one with a user.  Appointments reference profiles
(not users), so every ownership check resolves profile -> user.  Chat
messages reference users directly.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q

from .roles import Role


class User(AbstractUser):
    """Account with a single role.

    Roles mirror the front-end roles: 'Patient', 'Doctor', 'Admin' and
    'SuperAdmin'.
    """
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.PATIENT, db_index=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Doctor(models.Model):
    """Doctor profile.

    ``assigned_patients`` remembers every patient that booked at least
    one appointment with this doctor; the reverse accessor on
    :class:`Patient` is ``assigned_doctors``.
    """
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor_profile')
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    specialty = models.CharField(max_length=100)
    assigned_patients = models.ManyToManyField('Patient', blank=True, related_name='assigned_doctors')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Dr. {self.first_name} {self.last_name} ({self.specialty})"


class Patient(models.Model):
    """Patient profile linked to exactly one user."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    first_name = models.CharField(max_length=100, blank=True, default='')
    last_name = models.CharField(max_length=100, blank=True, default='')
    date_of_birth = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.user.username


class Appointment(models.Model):
    """A booked visit of one patient with one doctor at an exact instant."""
    STATUS_SCHEDULED = 'scheduled'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_SCHEDULED, 'scheduled'),
        (STATUS_COMPLETED, 'completed'),
        (STATUS_CANCELLED, 'cancelled'),
    )

    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='appointments')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    appt_time = models.DateTimeField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['doctor', 'appt_time'], name='clinic_appt_doctor_time_idx'),
            models.Index(fields=['patient', 'appt_time'], name='clinic_appt_patient_time_idx'),
        ]
        constraints = [
            # At most one live (non-cancelled) booking per doctor and instant.
            models.UniqueConstraint(
                fields=['doctor', 'appt_time'],
                condition=~Q(status='cancelled'),
                name='uniq_live_appointment_per_doctor_time',
            ),
        ]

    def __str__(self) -> str:
        return f"appt {self.id} d={self.doctor_id} p={self.patient_id} @ {self.appt_time:%F %H:%M} [{self.status}]"


class ChatMessage(models.Model):
    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name='sent_messages')
    receiver = models.ForeignKey(User, on_delete=models.CASCADE, related_name='received_messages')
    message = models.TextField()
    timestamp = models.DateTimeField()
    read = models.BooleanField(default=False)
    conversation_id = models.CharField(max_length=64, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=['conversation_id', 'timestamp'], name='clinic_msg_conv_ts_idx')]

    def __str__(self):
        return f"msg {self.id} conv={self.conversation_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='clinic_audit_action_ts_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='clinic_audit_object_idx'),
        ]
