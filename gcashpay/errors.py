from __future__ import annotations


class IntakeError(Exception):
    """Base class for every error the payment workflows report to a caller.

    ``message`` is safe to show to the person at the other end of the chat.
    """

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(IntakeError):
    default_message = "Invalid input."


class AccountNotFound(IntakeError):
    default_message = "Account number not found. Please check and try again."


class DirectoryLookupError(IntakeError):
    default_message = "Error verifying account. Please try again."


class SessionExpired(IntakeError):
    default_message = "Session expired. Please start over."


class DuplicateReference(IntakeError):
    default_message = "This reference number has already been submitted."


class StorageError(IntakeError):
    default_message = "Payment records are unavailable right now."


class ExternalApiError(IntakeError):
    default_message = "Failed to create payment in UISP."


class ConfigError(IntakeError):
    default_message = "Configuration error. Please contact support."
