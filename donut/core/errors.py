"""Error taxonomy shared by the session, calendar and display layers.

Every error carries a short ``title`` and a user-facing ``message``; commands
print the message and exit non-zero.
"""
from __future__ import annotations

from typing import Optional


class DonutError(Exception):
    title = "Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    default_message = "Something went wrong."


class AuthenticationError(DonutError):
    title = "Not Authenticated"
    default_message = (
        "You need to sign in to access this feature. "
        "Please authenticate with your Google account."
    )


class NetworkError(DonutError):
    title = "Network Error"
    default_message = (
        "Unable to connect to Google Calendar. "
        "Please check your internet connection and try again."
    )


class TokenStoreError(DonutError):
    title = "Token Store Error"
    default_message = "Failed to access the local token store."


def calendar_status_message(status: int) -> str:
    if status == 401:
        return "Unauthorized - Invalid or expired access token"
    if status == 403:
        return "Forbidden - Insufficient permissions"
    if status == 429:
        return "Rate limit exceeded - Too many requests"
    if 500 <= status <= 599:
        return f"Server error (HTTP {status})"
    return f"HTTP {status}"


class CalendarAPIError(DonutError):
    title = "Calendar API Error"

    def __init__(self, status: int, details: Optional[str] = None):
        self.status = status
        self.details = details or calendar_status_message(status)
        super().__init__(f"Failed to fetch calendar data: {self.details}")
