"""Error taxonomy and tagged results shared by the orchestration services.

Services return an :class:`Outcome` instead of raising for expected
conditions (a missing schedule, an address with no match). Clients of the
external collaborators raise :class:`ItineraryError` subclasses, which the
services capture into failed outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    SERVICE_ERROR = "service_error"
    CORRUPT_STATE = "corrupt_state"


class ItineraryError(Exception):
    """Base error carrying its kind and enough context for a user-facing message."""

    kind: ErrorKind = ErrorKind.SERVICE_ERROR

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        worker_id: Optional[str] = None,
        address: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.worker_id = worker_id
        self.address = address
        self.context = dict(context or {})

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.operation:
            payload["operation"] = self.operation
        if self.worker_id:
            payload["worker_id"] = self.worker_id
        if self.address:
            payload["address"] = self.address
        if self.context:
            payload["context"] = self.context
        return payload


class NotFoundError(ItineraryError):
    kind = ErrorKind.NOT_FOUND


class InvalidInputError(ItineraryError):
    kind = ErrorKind.INVALID_INPUT


class ServiceError(ItineraryError):
    kind = ErrorKind.SERVICE_ERROR


class CorruptStateError(ItineraryError):
    kind = ErrorKind.CORRUPT_STATE


class BatchGeocodingError(ItineraryError):
    """One or more addresses in a batch failed; the batch fails as a unit."""

    def __init__(self, failures: list[tuple[str, ItineraryError]]) -> None:
        summary = "; ".join(f"'{address}': {error.message}" for address, error in failures)
        super().__init__(
            f"Failed to geocode {len(failures)} address(es): {summary}",
            operation="geocode_batch",
            context={"failed_addresses": [address for address, _ in failures]},
        )
        self.failures = failures
        if all(error.kind is ErrorKind.NOT_FOUND for _, error in failures):
            self.kind = ErrorKind.NOT_FOUND

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["failures"] = [
            {"address": address, **error.to_dict()} for address, error in self.failures
        ]
        return payload


@dataclass(slots=True)
class Outcome(Generic[T]):
    """Result of one named stage: a value or an error, plus non-fatal warnings."""

    stage: str
    value: Optional[T] = None
    error: Optional[ItineraryError] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, stage: str, value: T, warnings: Optional[list[str]] = None) -> "Outcome[T]":
        return cls(stage=stage, value=value, warnings=list(warnings or []))

    @classmethod
    def failure(
        cls, stage: str, error: ItineraryError, warnings: Optional[list[str]] = None
    ) -> "Outcome[T]":
        return cls(stage=stage, error=error, warnings=list(warnings or []))

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
