"""Exceptions raised by the IK core."""

from typing import Iterable, Tuple, Union


class IKError(Exception):
    """Base class for IK exceptions."""


class DimensionMismatchError(IKError, ValueError):
    """Exception raised when a vector's length disagrees with the model's n_q."""

    def __init__(self, what: str, expected: int, actual: Union[int, Tuple[int, ...]]):
        self.expected = expected
        self.actual = actual
        if isinstance(actual, tuple):
            # Anything that is not a flat vector is reported by its shape
            found = f"shape {actual}"
        else:
            found = f"length {actual}"
        super().__init__(f"{what} has {found}, expected length {expected}.")


class LinkNotFoundError(IKError, KeyError):
    """Exception raised when a link name is not found in the robot model."""

    def __init__(self, link_name: str, available_links: Iterable[str]):
        self.link_name = link_name
        message = (
            f"Link '{link_name}' does not exist in the model. "
            f"Available link names: {sorted(available_links)}"
        )
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class InvalidModelError(IKError):
    """Exception raised when a robot description cannot form a kinematic tree."""
