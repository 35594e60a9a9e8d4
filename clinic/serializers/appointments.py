from rest_framework import serializers

from clinic.models import Appointment, Doctor, Patient


class AppointmentCreateSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1)
    patientId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    apptTime = serializers.DateTimeField()


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES])


class AppointmentUpdateSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1)
    patientId = serializers.IntegerField(min_value=1)
    apptTime = serializers.DateTimeField()
    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES], required=False)


class AvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.CharField(max_length=10)


class DoctorSummarySerializer(serializers.ModelSerializer):
    firstName = serializers.CharField(source='first_name')
    lastName = serializers.CharField(source='last_name')
    userId = serializers.IntegerField(source='user_id')

    class Meta:
        model = Doctor
        fields = ['id', 'userId', 'firstName', 'lastName', 'specialty']


class PatientSummarySerializer(serializers.ModelSerializer):
    firstName = serializers.CharField(source='first_name')
    lastName = serializers.CharField(source='last_name')
    userId = serializers.IntegerField(source='user_id')

    class Meta:
        model = Patient
        fields = ['id', 'userId', 'firstName', 'lastName']


class AppointmentSerializer(serializers.ModelSerializer):
    doctor = DoctorSummarySerializer(read_only=True)
    patient = PatientSummarySerializer(read_only=True)
    apptTime = serializers.DateTimeField(source='appt_time', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Appointment
        fields = ['id', 'doctor', 'patient', 'apptTime', 'status', 'createdAt', 'updatedAt']
