"""
JWT authentication for HTTP requests and the chat socket.

Tokens are issued by the account service in front of this backend; this
module only verifies them.  HTTP requests send ``Authorization: Bearer
<token>``.  WebSocket clients cannot set headers from a browser, so the
chat consumer passes the ``token`` query parameter to
:func:`user_for_token`, which reports *why* a token was rejected so the
socket can be closed with a meaningful code.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.settings import api_settings


class TokenRejected(Exception):
    """The token is malformed, has a bad signature or is expired."""


class UnknownUser(Exception):
    """The token is valid but its user no longer exists (or is inactive)."""


class BearerJWTAuthentication(JWTAuthentication):
    """Stable import path for the project's DRF configuration.

    Behaves like simplejwt's ``JWTAuthentication``; kept as a subclass so
    later customisation does not require touching settings.
    """

    www_authenticate_realm = 'clinic'


def user_for_token(raw_token: str):
    """Return the active user identified by ``raw_token``.

    Raises :class:`TokenRejected` or :class:`UnknownUser`.
    """
    if not raw_token:
        raise TokenRejected('token required')
    auth = BearerJWTAuthentication()
    try:
        validated = auth.get_validated_token(raw_token)
    except (InvalidToken, TokenError) as exc:
        raise TokenRejected(str(exc)) from exc

    user_id = validated.get(api_settings.USER_ID_CLAIM)
    if user_id is None:
        raise TokenRejected('token carries no user id')

    User = get_user_model()
    user = User.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).first()
    if user is None or not user.is_active:
        raise UnknownUser(f'user {user_id} not found')
    return user
