"""
Appointment endpoints.

Views only validate request shape and serialise results; ownership,
state transitions and conflict detection live in
:mod:`clinic.services.appointments`.  Service errors propagate to the
project exception handler, which turns them into the unified error body
with the matching status code.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic import roles
from clinic.exceptions import Forbidden
from clinic.permissions import IsDoctorRole, IsPatientRole
from clinic.serializers.appointments import (
    AppointmentCreateSerializer,
    AppointmentSerializer,
    AppointmentStatusSerializer,
    AppointmentUpdateSerializer,
)
from clinic.services import appointments as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments_collection(request):
    """POST books an appointment; GET lists every appointment (administrators)."""
    if request.method == 'GET':
        qs = svc.list_all(request.user)
        return Response(AppointmentSerializer(qs, many=True).data)

    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = svc.create_appointment(
        request.user,
        doctor_id=s.validated_data['doctorId'],
        patient_id=s.validated_data.get('patientId'),
        appt_time=s.validated_data['apptTime'],
    )
    return Response(AppointmentSerializer(appt).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def my_appointments(request):
    """Appointments of the calling patient, soonest first."""
    qs = svc.list_own_as_patient(request.user)
    return Response(AppointmentSerializer(qs, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def my_doctor_appointments(request):
    """Schedule of the calling doctor, soonest first."""
    qs = svc.list_own_as_doctor(request.user)
    return Response(AppointmentSerializer(qs, many=True).data)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, appointment_id: str):
    if request.method == 'GET':
        appt = svc.get_appointment(request.user, appointment_id)
        return Response(AppointmentSerializer(appt).data)

    if request.method == 'DELETE':
        svc.delete_appointment(request.user, appointment_id)
        return Response({'ok': True, 'message': 'Appointment deleted'})

    if not roles.can_reassign(request.user):
        raise Forbidden('Only administrators can edit appointments')
    s = AppointmentUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = svc.update_appointment(
        request.user,
        appointment_id,
        doctor_id=s.validated_data['doctorId'],
        patient_id=s.validated_data['patientId'],
        appt_time=s.validated_data['apptTime'],
        status=s.validated_data.get('status'),
    )
    return Response(AppointmentSerializer(appt).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def appointment_status(request, appointment_id: str):
    s = AppointmentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = svc.update_status(request.user, appointment_id, s.validated_data['status'])
    return Response(AppointmentSerializer(appt).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def appointment_cancel(request, appointment_id: str):
    appt = svc.cancel_appointment(request.user, appointment_id)
    return Response(AppointmentSerializer(appt).data)
