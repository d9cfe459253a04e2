# ducky: Error taxonomy shared by the resolver, store, client and session.

from typing import Optional


class DuckyError(RuntimeError):
    """Base class for every failure ducky reports to the user."""

    exit_code = 1


class ConfigError(DuckyError):
    """Invalid configuration or an unsatisfiable request (e.g. a local conversation outside a repository)."""

    exit_code = 2


class StoreError(DuckyError):
    """Reading or writing a conversation record failed."""

    def __init__(self, message: str, path: Optional[object] = None) -> None:
        super().__init__(message)
        self.path = path


class HistoryNotSavedError(StoreError):
    """The model answered but the conversation could not be persisted."""

    def __init__(self, message: str, reply: str, path: Optional[object] = None) -> None:
        super().__init__(message, path)
        self.reply = reply


class ApiError(DuckyError):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"API error {status}: {message}")
        self.status = status
        self.message = message
