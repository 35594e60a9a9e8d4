"""
URL mappings for the clinic API.

Trailing slashes are omitted.  Ids are captured as plain strings and
validated by the services so a malformed id answers 400 rather than 404.
"""
from django.urls import include, path

from .views import appointments, chat, doctors, health, patients

urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Appointments
    path('api/appointments', appointments.appointments_collection),
    path('api/appointments/my', appointments.my_appointments),
    path('api/appointments/doctor/me', appointments.my_doctor_appointments),
    path('api/appointments/<str:appointment_id>/status', appointments.appointment_status),
    path('api/appointments/<str:appointment_id>/cancel', appointments.appointment_cancel),
    path('api/appointments/<str:appointment_id>', appointments.appointment_detail),
    # Doctors / patients
    path('api/doctors/<str:doctor_id>/availability', doctors.doctor_availability),
    path('api/doctors/<str:doctor_id>/appointments', doctors.doctor_appointments),
    path('api/doctors/<str:doctor_id>/patients', doctors.doctor_patients),
    path('api/patients/<str:patient_id>/appointments', patients.patient_appointments),
    path('api/patients/<str:patient_id>/doctors', patients.patient_doctors),
    # Chat
    path('api/chat/history/<str:user_id>', chat.chat_history),
    path('api/chat/read', chat.chat_read),
]
