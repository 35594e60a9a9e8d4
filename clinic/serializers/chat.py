from rest_framework import serializers


class ChatHistoryQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=100, required=False)


class ChatReadSerializer(serializers.Serializer):
    userId = serializers.IntegerField(min_value=1)
    upToMessageId = serializers.IntegerField(min_value=1, required=False)
