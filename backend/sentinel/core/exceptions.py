# backend/sentinel/core/exceptions.py
from typing import Optional


class ScalewayAPIError(RuntimeError):
    """
    Raised for any failed call to the Scaleway API (transport error or
    non-success HTTP status). `status_code` is None for transport errors.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ScalewayAuthError(ScalewayAPIError):
    """401 / 403 from the Scaleway API."""


class IngestionError(RuntimeError):
    """An ingest cycle could not fetch its feeds."""


class AlertValidationError(ValueError):
    """An alert references events that are not in the event store."""


class RemediationError(RuntimeError):
    """A remediation action failed at the provider. The attempt has been logged."""

    def __init__(self, message: str, action_type: str, subject: str) -> None:
        super().__init__(message)
        self.action_type = action_type
        self.subject = subject
