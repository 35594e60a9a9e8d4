"""
Chat tests: conversation ids, the socket's presence/delivery behaviour
and the history endpoints.

Socket tests drive :class:`ChatConsumer` through
``channels.testing.WebsocketCommunicator`` and need a transactional
database because the consumer reads it from worker threads.
"""
import pytest
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from clinic.models import ChatMessage, User
from clinic.realtime.chat_consumers import (
    CLOSE_SUPERSEDED,
    CLOSE_TOKEN_INVALID,
    CLOSE_TOKEN_MISSING,
    CLOSE_USER_NOT_FOUND,
)
from clinic.realtime.presence import registry
from clinic.realtime.routing import websocket_urlpatterns
from clinic.roles import Role
from clinic.services.chat import conversation_id, store_message

application = URLRouter(websocket_urlpatterns)


def test_conversation_id_is_symmetric():
    assert conversation_id(3, 12) == conversation_id(12, 3) == '12_3'
    assert conversation_id(7, 7) == '7_7'


@pytest.fixture
def alice(transactional_db):
    return User.objects.create_user(username='alice', password='P@ssw0rd1', role=Role.PATIENT)


@pytest.fixture
def bob(transactional_db):
    return User.objects.create_user(username='bob', password='P@ssw0rd1', role=Role.DOCTOR)


def socket_for(user) -> WebsocketCommunicator:
    return WebsocketCommunicator(application, f'/ws/chat?token={AccessToken.for_user(user)}')


async def open_socket(user) -> WebsocketCommunicator:
    """Connect ``user`` and consume the greeting frames."""
    comm = socket_for(user)
    connected, _ = await comm.connect()
    assert connected
    roster = await comm.receive_json_from()
    assert roster['type'] == 'activeUserList'
    info = await comm.receive_json_from()
    assert info['type'] == 'info'
    return comm


async def expect_close(comm: WebsocketCommunicator, code: int):
    output = await comm.receive_output()
    assert output['type'] == 'websocket.close'
    assert output['code'] == code


# ----------------------------------------------------------------------
# handshake
# ----------------------------------------------------------------------
@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_missing_token_closes_4002():
    comm = WebsocketCommunicator(application, '/ws/chat')
    connected, _ = await comm.connect()
    assert connected
    await expect_close(comm, CLOSE_TOKEN_MISSING)
    await comm.disconnect()
    assert len(registry) == 0


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_garbage_token_closes_4003():
    comm = WebsocketCommunicator(application, '/ws/chat?token=not-a-jwt')
    await comm.connect()
    await expect_close(comm, CLOSE_TOKEN_INVALID)
    await comm.disconnect()


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_token_for_deleted_user_closes_4004(alice):
    token = AccessToken.for_user(alice)
    await User.objects.filter(pk=alice.pk).adelete()
    comm = WebsocketCommunicator(application, f'/ws/chat?token={token}')
    await comm.connect()
    await expect_close(comm, CLOSE_USER_NOT_FOUND)
    await comm.disconnect()


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_connect_registers_and_announces(alice, bob):
    a = await open_socket(alice)
    b = socket_for(bob)
    await b.connect()
    roster = await b.receive_json_from()
    assert roster == {'type': 'activeUserList', 'payload': [
        {'id': alice.id, 'username': 'alice'}, {'id': bob.id, 'username': 'bob'},
    ]}
    joined = await a.receive_json_from()
    assert joined == {'type': 'userJoined', 'payload': {'id': bob.id, 'username': 'bob'}}
    await a.disconnect()
    await b.disconnect()


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_second_connection_supersedes_first(alice):
    first = await open_socket(alice)
    second = socket_for(alice)
    await second.connect()
    await expect_close(first, CLOSE_SUPERSEDED)

    roster = await second.receive_json_from()
    assert roster['payload'] == [{'id': alice.id, 'username': 'alice'}]
    # the old socket going away must not take the user offline
    await first.disconnect()
    assert registry.roster() == [{'id': alice.id, 'username': 'alice'}]
    await second.disconnect()
    assert len(registry) == 0


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_disconnect_broadcasts_left_and_roster(alice, bob):
    a = await open_socket(alice)
    b = await open_socket(bob)
    await a.receive_json_from()  # userJoined(bob)
    await b.disconnect()
    left = await a.receive_json_from()
    assert left == {'type': 'userLeft', 'payload': {'userId': bob.id}}
    roster = await a.receive_json_from()
    assert roster == {'type': 'activeUserList', 'payload': [{'id': alice.id, 'username': 'alice'}]}
    await a.disconnect()


# ----------------------------------------------------------------------
# messages
# ----------------------------------------------------------------------
@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_message_to_online_user_is_pushed_and_echoed(alice, bob):
    a = await open_socket(alice)
    b = await open_socket(bob)
    await a.receive_json_from()  # userJoined(bob)

    await a.send_json_to({'receiverId': bob.id, 'text': 'Hello doctor'})
    echo = await a.receive_json_from()
    pushed = await b.receive_json_from()
    assert echo == pushed
    assert echo['type'] == 'newMessage'
    payload = echo['payload']
    assert payload['message'] == 'Hello doctor'
    assert payload['sender'] == {'id': alice.id, 'username': 'alice'}
    assert payload['receiver'] == {'id': bob.id, 'username': 'bob'}
    assert payload['conversationId'] == conversation_id(alice.id, bob.id)
    assert payload['read'] is False
    await a.disconnect()
    await b.disconnect()


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_message_to_offline_user_is_stored(alice, bob):
    a = await open_socket(alice)
    await a.send_json_to({'receiverId': bob.id, 'text': 'see you tomorrow'})
    echo = await a.receive_json_from()
    assert echo['type'] == 'newMessage'
    assert await a.receive_nothing()
    assert await ChatMessage.objects.filter(sender=alice, receiver=bob, read=False).acount() == 1
    await a.disconnect()


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_message_to_self_is_echoed_once(alice):
    a = await open_socket(alice)
    await a.send_json_to({'receiverId': alice.id, 'text': 'note to self'})
    echo = await a.receive_json_from()
    assert echo['payload']['conversationId'] == f'{alice.id}_{alice.id}'
    assert await a.receive_nothing()
    await a.disconnect()


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
@pytest.mark.parametrize('frame,error', [
    ({'text': 'hi'}, 'receiverId and text are required'),
    ({'receiverId': 424242, 'text': 'hi'}, 'Receiver not found'),
    ({'receiverId': 'abc', 'text': 'hi'}, 'Invalid user id'),
])
async def test_bad_frames_get_error_and_socket_stays_open(alice, frame, error):
    a = await open_socket(alice)
    await a.send_json_to(frame)
    assert await a.receive_json_from() == {'type': 'error', 'payload': error}
    # still usable afterwards
    await a.send_json_to({'receiverId': alice.id, 'text': 'ping'})
    assert (await a.receive_json_from())['type'] == 'newMessage'
    await a.disconnect()


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_invalid_json_gets_error(alice):
    a = await open_socket(alice)
    await a.send_to(text_data='{not json')
    assert await a.receive_json_from() == {'type': 'error', 'payload': 'invalid JSON'}
    await a.disconnect()


# ----------------------------------------------------------------------
# history endpoints
# ----------------------------------------------------------------------
@pytest.mark.django_db
def test_history_and_mark_read():
    alice = User.objects.create_user(username='alice', password='P@ssw0rd1', role=Role.PATIENT)
    bob = User.objects.create_user(username='bob', password='P@ssw0rd1', role=Role.DOCTOR)
    for i in range(3):
        store_message(alice, bob.id, f'msg {i}')
    store_message(bob, alice.id, 'reply')

    client = APIClient()
    client.force_authenticate(user=bob)
    r = client.get(f'/api/chat/history/{alice.id}', {'page': 1, 'pageSize': 2})
    assert r.status_code == 200
    assert r.data['pagination'] == {'total': 4, 'page': 1, 'pageSize': 2}
    assert [m['message'] for m in r.data['data']] == ['msg 2', 'reply']

    r = client.post('/api/chat/read', {'userId': alice.id}, format='json')
    assert r.status_code == 200
    assert r.data['updated'] == 3
    assert not ChatMessage.objects.filter(receiver=bob, read=False).exists()
    # bob's own message to alice is untouched
    assert ChatMessage.objects.filter(receiver=alice, read=False).count() == 1


@pytest.mark.django_db
def test_store_message_sanitises_markup():
    alice = User.objects.create_user(username='alice', password='P@ssw0rd1')
    bob = User.objects.create_user(username='bob', password='P@ssw0rd1')
    msg = store_message(alice, bob.id, '<script>x</script>hello')
    assert '<script>' not in msg.message
    assert msg.conversation_id == conversation_id(alice.id, bob.id)
