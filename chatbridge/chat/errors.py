from __future__ import annotations


class ChatError(Exception):
    """Base error for Google Chat failures."""


class AuthError(ChatError):
    """Credentials could not be parsed or the API client could not be built."""


class SubscriptionError(ChatError):
    """The initial watch on a space could not be established."""


class DeliveryError(ChatError):
    pass
