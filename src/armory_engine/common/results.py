"""Typed success/failure values returned by engine operations."""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from armory_engine.common.exceptions import ArmoryError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: ArmoryError

    @property
    def ok(self) -> bool:
        return False

    @property
    def code(self) -> str:
        return self.error.code

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]
