from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.serializers.chat import ChatHistoryQuerySerializer, ChatReadSerializer
from clinic.services.chat import list_history, mark_read


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def chat_history(request, user_id: str):
    q = ChatHistoryQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page = q.validated_data.get('page', 1)
    page_size = q.validated_data.get('pageSize', 50)
    items, total = list_history(request.user, user_id, page=page, page_size=page_size)
    return Response({'ok': True, 'data': items, 'pagination': {'total': total, 'page': page, 'pageSize': page_size}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def chat_read(request):
    s = ChatReadSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    n = mark_read(request.user, s.validated_data['userId'], s.validated_data.get('upToMessageId'))
    return Response({'ok': True, 'updated': n})
