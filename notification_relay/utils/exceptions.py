"""Custom exceptions for the notification relay.

This module defines the exception hierarchy for the delivery pipeline:
- Base exception for all relay errors
- Transient I/O errors (ledger store, read-state backend, local delivery)
- Feed subscription errors

All exceptions inherit from RelayError to allow catching all relay-related
errors in a single except block when needed. None of them are fatal: the
component that issued the failing call logs it and carries on.
"""


class RelayError(Exception):
    """Base exception for all relay errors

    Use this to catch any error raised by a relay collaborator:
    ```python
    try:
        await backend.mark_read(notification_id)
    except RelayError as e:
        logger.error("mark_read_failed", error=str(e))
    ```
    """

    pass


class TransientIOError(RelayError):
    """I/O against a collaborator failed for this attempt

    The operation is abandoned and naturally retried by the next feed
    snapshot or user action. Never surfaced to the end user.
    """

    pass


class LedgerStoreError(TransientIOError):
    """Durable key-value store read/write failed

    Raised when:
    - The store backend is unavailable or locked
    - A persisted ledger payload cannot be decoded
    """

    pass


class ReadStateError(TransientIOError):
    """Read-state backend rejected or failed a mark-as-read call"""

    def __init__(self, message: str, notification_id: str | None = None) -> None:
        super().__init__(message)
        self.notification_id = notification_id


class DeliveryError(TransientIOError):
    """Local delivery sink failed to present an alert"""

    pass


class FeedSubscriptionError(RelayError):
    """Live feed subscription reported an error

    The processing guard is released so later snapshots still flow.
    Resubscription is the caller's job on the next sign-in.
    """

    pass
