"""
Django admin registrations for the clinic models.

Lets superusers inspect bookings, profiles and chat traffic under
``/admin/`` during development.
"""

from django.contrib import admin

from .models import Appointment, AuditEvent, ChatMessage, Doctor, Patient, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('id', 'username', 'role', 'is_staff', 'is_superuser', 'is_active')
    list_filter = ('role', 'is_active')
    search_fields = ('username', 'first_name', 'last_name', 'email')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'first_name', 'last_name', 'specialty')
    list_filter = ('specialty',)
    search_fields = ('user__username', 'first_name', 'last_name', 'specialty')
    filter_horizontal = ('assigned_patients',)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'first_name', 'last_name', 'date_of_birth')
    search_fields = ('user__username', 'first_name', 'last_name')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'patient', 'appt_time', 'status', 'created_at')
    list_filter = ('status', 'doctor')
    search_fields = ('doctor__last_name', 'patient__last_name', 'patient__user__username')
    date_hierarchy = 'appt_time'


@admin.register(ChatMessage)
class ChatMessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'sender', 'receiver', 'conversation_id', 'read', 'timestamp')
    list_filter = ('read',)
    search_fields = ('sender__username', 'receiver__username', 'conversation_id')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'action', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')
