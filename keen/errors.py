from typing import Optional

from keen.constants import (
    EXIT_CODE_DELIVERY_FAILED,
    EXIT_CODE_FAILURE,
    EXIT_CODE_INVALID_CONFIG,
    EXIT_CODE_MISSING_CREDENTIAL,
    EXIT_CODE_QUEUE_FULL,
)


class KeenError(Exception):
    """
    Generic keen client error.

    Args:
        message (str): The error message.
    """
    def __init__(self, message: str = "An error occurred while talking to the Keen API."):
        self.message = message
        super().__init__(self.message)

    def get_exit_code(self) -> int:
        """
        Get the exit code associated with this error.

        Returns:
            int: The exit code.
        """
        return EXIT_CODE_FAILURE


class ConfigError(KeenError):
    """
    Error raised when the client configuration cannot be used.
    """

    def get_exit_code(self) -> int:
        return EXIT_CODE_INVALID_CONFIG


class ConfigValidationError(ConfigError):
    """
    Error raised when a configuration value is malformed or out of bounds.

    Args:
        setting (str): The offending setting.
        reason (str): Why the value was rejected.
    """
    def __init__(self, setting: str, reason: str,
                 message: str = "Invalid value for '{setting}': {reason}"):
        self.setting = setting
        self.reason = reason
        self.message = message.format(setting=setting, reason=reason)
        super().__init__(self.message)


class MissingCredentialError(ConfigError):
    """
    Error raised when a key required by an access level is not configured.

    Args:
        credential (str): Human name of the missing credential.
    """
    def __init__(self, credential: str,
                 message: str = "{credential} required. Set it in config.ini or "
                                "the matching KEEN_* environment variable."):
        self.credential = credential
        self.message = message.format(credential=credential)
        super().__init__(self.message)

    def get_exit_code(self) -> int:
        return EXIT_CODE_MISSING_CREDENTIAL


class CapacityExceededError(KeenError):
    """
    Error raised when a collection's local queue is full and the event is not queued.

    Args:
        project_id (str): The project the event belongs to.
        collection (str): The full collection.
        limit (int): The configured per-collection capacity.
    """
    def __init__(self, project_id: str, collection: str, limit: int):
        self.project_id = project_id
        self.collection = collection
        self.limit = limit
        self.message = (
            f"Queue for collection '{collection}' in project '{project_id}' "
            f"is full ({limit} events). The event was not queued."
        )
        super().__init__(self.message)

    def get_exit_code(self) -> int:
        return EXIT_CODE_QUEUE_FULL


class EventNotFoundError(KeenError):
    """
    Error raised when a queued event handle is no longer present.

    Args:
        handle (int): The missing handle.
    """
    def __init__(self, handle: int):
        self.handle = handle
        self.message = f"No queued event for handle {handle}"
        super().__init__(self.message)


class DeliveryError(KeenError):
    """
    Base error for requests that did not reach a successful response.
    """

    def get_exit_code(self) -> int:
        return EXIT_CODE_DELIVERY_FAILED


class TransportError(DeliveryError):
    """
    Error raised when a request fails below HTTP (connection error, timeout).

    Args:
        reason (Optional[str]): The underlying failure.
    """
    def __init__(self, reason: Optional[str] = None,
                 message: str = "Network error: unable to reach the Keen API."):
        self.reason = reason
        self.message = message
        if reason:
            self.message += f"\nDetails: {reason}"
        super().__init__(self.message)


class HttpError(DeliveryError):
    """
    Error raised when the Keen API answers with a non-2xx status.

    Args:
        status_code (int): The HTTP status.
        body (str): The response body.
    """
    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        self.message = f"Keen API responded with HTTP {status_code}"
        if body:
            self.message += f": {body}"
        super().__init__(self.message)
