"""Typed result wrapper handed to presentation callers.

External API failures never escape the engine as exceptions; every engine
operation that touches the network returns an ApiResult instead:

    ApiResult(ok=True,  data=<value>, error=None)
    ApiResult(ok=False, data=None,    error=<AppError>)

The caller decides whether to retry; the error keeps its code and message
for display.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from src.au_common.errors import AppError

T = TypeVar("T")


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    ok: bool
    data: T | None = None
    error: AppError | None = None

    @property
    def code(self) -> int:
        return 0 if self.error is None else self.error.code

    @property
    def message(self) -> str:
        return "success" if self.error is None else self.error.message


def success_result(data: T) -> ApiResult[T]:
    return ApiResult(ok=True, data=data)


def failure_result(error: AppError) -> ApiResult:
    return ApiResult(ok=False, error=error)
