"""Custom exceptions for triton-machine-driver."""

from __future__ import annotations

from typing import List, Optional

from triton_driver.models import LifecycleState


class DriverError(RuntimeError):
    """Raised on unrecoverable configuration or runtime errors."""


class ConfigurationError(DriverError):
    """A required option is missing or malformed."""


class ConnectivityError(DriverError):
    """Credentials could not be loaded or the CloudAPI could not be reached."""


class ResolutionError(DriverError):
    """An image or package reference could not be turned into an exact id."""

    def __init__(self, reference: str, message: str) -> None:
        super().__init__(message)
        self.reference = reference


class ImageNotFoundError(ResolutionError):
    def __init__(self, reference: str, message: Optional[str] = None) -> None:
        super().__init__(reference, message or f"image {reference!r} not found")


class AmbiguousImageError(ResolutionError):
    def __init__(self, reference: str, candidates: List[str]) -> None:
        super().__init__(
            reference,
            f"image {reference!r} is an ambiguous short id (matches {', '.join(candidates)})",
        )
        self.candidates = candidates


class PackageNotFoundError(ResolutionError):
    def __init__(self, reference: str, message: Optional[str] = None) -> None:
        super().__init__(reference, message or f"package {reference!r} not found")


class TimestampParseError(ResolutionError):
    def __init__(self, reference: str, value: str) -> None:
        super().__init__(reference, f"cannot parse published_at {value!r} while resolving image {reference!r}")
        self.value = value


class RemoteOperationError(DriverError):
    """The CloudAPI rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class UnknownStateError(DriverError):
    """The CloudAPI reported an instance state outside the known vocabulary."""

    def __init__(self, state_string: str) -> None:
        super().__init__(f"unknown Triton instance state: {state_string}")
        self.state_string = state_string
        self.state = LifecycleState.ERROR


class AddressTimeoutError(DriverError):
    def __init__(self, attempts: int) -> None:
        super().__init__(f"Maximum number of retries ({attempts}) exceeded waiting for an IP address")
        self.attempts = attempts
