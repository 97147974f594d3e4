from __future__ import annotations


class CompletionError(Exception):
    """Base error for completion failures."""


class CompletionRateLimitError(CompletionError):
    pass


class CompletionAuthError(CompletionError):
    pass


class CompletionNotFoundError(CompletionError):
    pass


class CompletionConnectionError(CompletionError):
    pass


class EmptyCompletionError(CompletionError):
    """The provider answered with zero candidates."""


def _classify(error: Exception) -> type[CompletionError]:
    s, t = str(error), type(error).__name__
    if "429" in s or t == "RateLimitError":
        return CompletionRateLimitError
    if "401" in s or "Unauthorized" in s or t == "AuthenticationError":
        return CompletionAuthError
    if "404" in s or t in ("NotFound", "NotFoundError"):
        return CompletionNotFoundError
    if "Connection" in t or "Timeout" in t or "ECONNREFUSED" in s or "ETIMEDOUT" in s:
        return CompletionConnectionError
    return CompletionError


def to_completion_error(error: Exception) -> CompletionError:
    """
    Wrap a raw provider exception in the matching CompletionError subclass.
    CompletionErrors pass through unchanged.
    """
    if isinstance(error, CompletionError):
        return error
    return _classify(error)(f"failed to process question: {error}")


def parse_error_message(error: Exception) -> str:
    """
    Map exceptions into short, human-readable messages for the logs.
    """
    if isinstance(error, EmptyCompletionError):
        return "Empty Response: The provider returned no candidates."
    kind = error if isinstance(error, CompletionError) else to_completion_error(error)
    cause = error.__cause__ or error
    if isinstance(kind, CompletionRateLimitError):
        return "Rate Limited: API provider is temporarily rate-limited."
    if isinstance(kind, CompletionAuthError):
        return "Authentication Error: Invalid API key or credentials."
    if isinstance(kind, CompletionNotFoundError):
        return "Not Found: The requested model or resource was not found."
    if isinstance(kind, CompletionConnectionError):
        return "Connection Error: Unable to connect to the API provider."
    s = str(cause)
    return f"{type(cause).__name__}: {s.split(chr(10))[0][:100]}"
