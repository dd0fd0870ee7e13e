"""Exceptions raised by the zone store and the repair planner."""

from zonefix.models.enums import IssueCode


class StoreError(Exception):
    """Base class for failures talking to the zone store."""

    def __init__(self, message: str, record_id: str | None = None):
        super().__init__(message)
        self.record_id = record_id


class ConflictError(StoreError):
    """The stored record changed since it was fetched."""


class StoreConnectionError(StoreError):
    """The zone store could not be reached."""


class RecordNotFoundError(StoreError):
    """No zone exists with the requested id."""


class RepairImpossible(Exception):
    """A classified shape has no deterministic repair.

    Attributes:
        reason: Why no repair applies
        code: Issue code the validator reports it as
    """

    def __init__(self, reason: str, code: IssueCode = IssueCode.UNSUPPORTED_FORMAT):
        super().__init__(reason)
        self.reason = reason
        self.code = code
