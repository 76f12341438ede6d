"""
Error taxonomy for checkout fulfillment.

MissingColumnError is recovered locally by the resolver, as "no match".
NotYetAvailable and RecipientUnknown are raised by the orchestrator and mapped
to the Pending and MissingRecipient outcomes; everything else becomes Error.
"""


class GiftyError(Exception):
    """Base class for fulfillment errors."""


class NotYetAvailable(GiftyError):
    """Payment is not confirmed complete yet; retrying later may succeed."""


class RecipientUnknown(GiftyError):
    """Payment is confirmed but no deliverable email exists anywhere."""


class UpstreamFailure(GiftyError):
    """The record store or the payment processor failed."""


class DeliveryFailure(UpstreamFailure):
    """The email API rejected or failed to accept a message."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class RecordStoreError(UpstreamFailure):
    """A record store query failed."""


class MissingColumnError(RecordStoreError):
    """A probe referenced a column this deployment's table does not have."""

    def __init__(self, table: str, column: str):
        super().__init__(f"Column {column!r} does not exist on table {table!r}")
        self.table = table
        self.column = column
