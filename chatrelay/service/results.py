from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful collaborator call."""

    value: T
    ok: bool = True


@dataclass(frozen=True)
class Err:
    """Failed collaborator call.

    ``source`` tags which collaborator failed (``auth``, ``store``,
    ``completion``); ``detail`` keeps the provider's structured error, if any.
    """

    source: str
    message: str
    detail: Optional[Any] = None
    ok: bool = False


Result = Union[Ok[T], Err]


__all__ = ["Ok", "Err", "Result"]
