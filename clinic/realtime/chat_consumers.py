"""
Point-to-point chat over a single WebSocket per user.

Connect with ``ws/chat?token=<jwt>``.  Frames are JSON text:

server -> client
    ``{"type": "activeUserList", "payload": [{"id", "username"}, ...]}``
    ``{"type": "userJoined", "payload": {"id", "username"}}``
    ``{"type": "userLeft", "payload": {"userId"}}``
    ``{"type": "newMessage", "payload": {...}}``
    ``{"type": "error", "payload": "<message>"}``
    ``{"type": "info", "payload": "<message>"}``

client -> server
    ``{"receiverId": <user id>, "text": "<message>"}``

Authentication failures close the socket with the codes below; anything
that goes wrong after that is answered with an ``error`` frame and the
socket stays open.
"""
import json
import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from clinic.authentication import TokenRejected, UnknownUser, user_for_token
from clinic.exceptions import ServiceError
from clinic.realtime.presence import registry
from clinic.services.chat import serialize_message, store_message

logger = logging.getLogger(__name__)

PRESENCE_GROUP = "chat.presence"

CLOSE_SUPERSEDED = 4001
CLOSE_TOKEN_MISSING = 4002
CLOSE_TOKEN_INVALID = 4003
CLOSE_USER_NOT_FOUND = 4004
CLOSE_SERVER_ERROR = 1011


def _query_token(scope) -> str:
    raw = scope.get("query_string", b"")
    if isinstance(raw, bytes):
        raw = raw.decode("latin-1")
    values = parse_qs(raw).get("token") or [""]
    return values[0].strip()


def _store_and_serialize(sender, receiver_id, text) -> dict:
    return serialize_message(store_message(sender, receiver_id, text))


class ChatConsumer(AsyncWebsocketConsumer):
    user = None
    user_id = None

    async def _send_frame(self, kind: str, payload):
        await self.send(json.dumps({"type": kind, "payload": payload}))

    async def connect(self):
        # Accept first so a rejected client still sees a meaningful close code.
        await self.accept()

        token = _query_token(self.scope)
        if not token:
            logger.warning("chat connection rejected: token missing")
            await self.close(code=CLOSE_TOKEN_MISSING)
            return
        try:
            user = await database_sync_to_async(user_for_token)(token)
        except TokenRejected as exc:
            logger.warning("chat connection rejected: %s", exc)
            await self.close(code=CLOSE_TOKEN_INVALID)
            return
        except UnknownUser as exc:
            logger.warning("chat connection rejected: %s", exc)
            await self.close(code=CLOSE_USER_NOT_FOUND)
            return
        except Exception:
            logger.exception("chat connection setup failed")
            await self.close(code=CLOSE_SERVER_ERROR)
            return

        self.user, self.user_id = user, user.id

        # Swap the connection of record before yielding to the event loop so
        # the old socket's close can never evict this one.
        superseded = registry.register(user.id, user.username, self.channel_name)
        if superseded:
            logger.info("user %s reconnected; closing %s", user.id, superseded)
            await self.channel_layer.send(superseded, {"type": "chat.superseded"})
        await self.channel_layer.group_add(PRESENCE_GROUP, self.channel_name)

        await self._send_frame("activeUserList", registry.roster())
        await self._send_frame("info", "Successfully connected and authenticated!")
        await self.channel_layer.group_send(PRESENCE_GROUP, {
            "type": "chat.joined",
            "user": {"id": user.id, "username": user.username},
            "exclude": self.channel_name,
        })
        logger.info("user %s connected to chat (%d online)", user.id, len(registry))

    async def disconnect(self, close_code):
        if self.user_id is None:
            return
        await self.channel_layer.group_discard(PRESENCE_GROUP, self.channel_name)
        if not registry.unregister(self.user_id, self.channel_name):
            # A newer connection owns this user; it stays online.
            return
        logger.info("user %s left chat (code=%s)", self.user_id, close_code)
        await self.channel_layer.group_send(PRESENCE_GROUP, {"type": "chat.left", "userId": self.user_id})
        await self.channel_layer.group_send(PRESENCE_GROUP, {"type": "chat.roster", "roster": registry.roster()})

    async def receive(self, text_data=None, bytes_data=None):
        if self.user_id is None or not registry.is_current(self.user_id, self.channel_name):
            await self._send_frame("error", "connection is not active")
            return
        if not text_data:
            return

        try:
            data = json.loads(text_data)
        except ValueError:
            await self._send_frame("error", "invalid JSON")
            return
        if not isinstance(data, dict):
            await self._send_frame("error", "invalid payload")
            return

        try:
            message = await database_sync_to_async(_store_and_serialize)(
                self.user, data.get("receiverId"), data.get("text"),
            )
        except ServiceError as exc:
            await self._send_frame("error", exc.message)
            return
        except Exception:
            logger.exception("failed to store chat message from user %s", self.user_id)
            await self._send_frame("error", "Failed to process message")
            return

        frame = {"type": "newMessage", "payload": message}
        receiver_channel = registry.channel_for(message["receiver"]["id"])
        if receiver_channel and receiver_channel != self.channel_name:
            await self.channel_layer.send(receiver_channel, {"type": "chat.message", "frame": frame})
        # The echo doubles as the sender's delivery confirmation.
        await self.send(json.dumps(frame))

    # ------------------------------------------------------------------
    # channel layer event handlers
    # ------------------------------------------------------------------
    async def chat_message(self, event):
        await self.send(json.dumps(event["frame"]))

    async def chat_joined(self, event):
        if event.get("exclude") == self.channel_name or event["user"]["id"] == self.user_id:
            return
        await self._send_frame("userJoined", event["user"])

    async def chat_left(self, event):
        await self._send_frame("userLeft", {"userId": event["userId"]})

    async def chat_roster(self, event):
        await self._send_frame("activeUserList", event["roster"])

    async def chat_superseded(self, event):
        await self.channel_layer.group_discard(PRESENCE_GROUP, self.channel_name)
        await self.close(code=CLOSE_SUPERSEDED)
