from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.serializers.appointments import AppointmentSerializer, DoctorSummarySerializer
from clinic.services import appointments as svc


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_appointments(request, patient_id: str):
    qs = svc.list_for_patient(request.user, patient_id)
    return Response(AppointmentSerializer(qs, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_doctors(request, patient_id: str):
    """Doctors the patient has booked with."""
    qs = svc.assigned_doctors(request.user, patient_id)
    return Response(DoctorSummarySerializer(qs, many=True).data)
