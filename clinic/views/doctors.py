from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsDoctorOrAdministrator
from clinic.serializers.appointments import (
    AppointmentSerializer,
    AvailabilityQuerySerializer,
    PatientSummarySerializer,
)
from clinic.services import appointments as svc
from clinic.services.availability import available_slots


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_availability(request, doctor_id: str):
    """Free ``HH:MM`` (UTC) slot labels for ``?date=YYYY-MM-DD``."""
    q = AvailabilityQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response(available_slots(doctor_id, q.validated_data['date']))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorOrAdministrator])
def doctor_appointments(request, doctor_id: str):
    qs = svc.list_for_doctor(request.user, doctor_id)
    return Response(AppointmentSerializer(qs, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorOrAdministrator])
def doctor_patients(request, doctor_id: str):
    """Patients linked to the doctor through past bookings."""
    qs = svc.assigned_patients(request.user, doctor_id)
    return Response(PatientSummarySerializer(qs, many=True).data)
