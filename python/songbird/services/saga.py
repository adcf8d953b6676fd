"""Saga runner and settle-all fan-out.

A saga is a linear sequence of tagged steps against independent remote
services. Each step may register a compensation; when a later step fails,
the compensations of the steps that already completed run in reverse order
and the failure is reported as a SagaResult. Nothing raised inside a step
escapes run().

Usage:
    saga = Saga("upload_song", compensations={UploadStep.UPLOAD_AUDIO: remove_audio})
    result = saga.run([
        (UploadStep.AUTH_CHECK, check_auth),
        (UploadStep.UPLOAD_AUDIO, upload_audio),
    ])
"""

from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from songbird.errors import ApiError, ApiErrorCode
from songbird.logging import get_logger

logger = get_logger(__name__)

StepAction = Callable[[dict[str, Any]], Any]
Compensation = Callable[[dict[str, Any]], None]


@dataclass
class SagaResult:
    """Outcome of a saga invocation.

    Attributes:
        ok: True on success.
        data: Payload returned to the caller on success.
        code: Error code on failure.
        message: Human-readable failure message.
        failed_step: Tag of the step that failed, if any.
        compensated: Tags of steps whose compensation succeeded, in execution order.
        compensation_failed: Tags of steps whose compensation raised.
    """

    ok: bool
    data: Any = None
    code: ApiErrorCode | None = None
    message: str | None = None
    failed_step: str | None = None
    compensated: list[str] = field(default_factory=list)
    compensation_failed: list[str] = field(default_factory=list)

    @classmethod
    def success(cls, data: Any = None) -> "SagaResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(
        cls,
        error: ApiError,
        failed_step: str | None = None,
        compensated: list[str] | None = None,
        compensation_failed: list[str] | None = None,
    ) -> "SagaResult":
        return cls(
            ok=False,
            code=error.code,
            message=error.message,
            failed_step=failed_step,
            compensated=compensated or [],
            compensation_failed=compensation_failed or [],
        )

    def to_error(self) -> ApiError:
        """Rebuild the failure as an ApiError for the HTTP layer."""
        if self.ok:
            raise ValueError("Cannot convert a successful SagaResult to an error")
        return ApiError(self.code or ApiErrorCode.E_INTERNAL, self.message or "Operation failed")


class Saga:
    """Sequential step runner with a compensation table.

    Args:
        name: Saga name used in log events.
        compensations: Mapping of step tag -> compensation. A compensation
            receives the shared context dict and must not raise; failures are
            logged and the remaining compensations still run.
    """

    def __init__(self, name: str, compensations: dict[Enum, Compensation] | None = None):
        self.name = name
        self.compensations = compensations or {}

    def run(
        self,
        steps: Sequence[tuple[Enum, StepAction]],
        context: dict[str, Any] | None = None,
    ) -> SagaResult:
        """Run steps in order, compensating on the first failure.

        The value returned by the last step becomes SagaResult.data.
        """
        ctx: dict[str, Any] = context if context is not None else {}
        completed: list[Enum] = []
        data: Any = None

        for tag, action in steps:
            try:
                data = action(ctx)
            except ApiError as e:
                logger.warning(
                    "saga_step_failed",
                    saga=self.name,
                    step=tag.value,
                    code=e.code.value,
                    error=e.message,
                )
                compensated, failed = self._compensate(completed, ctx)
                return SagaResult.failure(
                    e, failed_step=tag.value, compensated=compensated, compensation_failed=failed
                )
            except Exception:
                logger.exception("saga_step_crashed", saga=self.name, step=tag.value)
                compensated, failed = self._compensate(completed, ctx)
                return SagaResult.failure(
                    ApiError(ApiErrorCode.E_INTERNAL, "Something went wrong"),
                    failed_step=tag.value,
                    compensated=compensated,
                    compensation_failed=failed,
                )
            completed.append(tag)

        return SagaResult.success(data)

    def _compensate(
        self, completed: list[Enum], ctx: dict[str, Any]
    ) -> tuple[list[str], list[str]]:
        """Run compensations in reverse; returns (succeeded, failed) step tags."""
        ran: list[str] = []
        failed: list[str] = []
        for tag in reversed(completed):
            compensation = self.compensations.get(tag)
            if compensation is None:
                continue
            try:
                compensation(ctx)
            except Exception as e:
                logger.warning(
                    "saga_compensation_failed",
                    saga=self.name,
                    step=tag.value,
                    error=str(e),
                )
                failed.append(tag.value)
                continue
            ran.append(tag.value)
        return ran, failed


@dataclass(frozen=True)
class Settled:
    """Result of one task in a settle_all fan-out."""

    ok: bool
    value: Any = None
    error: BaseException | None = None


def settle_all(tasks: Iterable[Callable[[], Any]], max_workers: int = 2) -> list[Settled]:
    """Run tasks concurrently and wait for every one of them to settle.

    Never raises: each task's exception is captured in its Settled entry, so
    one failure cannot block or cancel the others. Results keep task order.
    """
    task_list = list(tasks)
    if not task_list:
        return []

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(task_list)))) as executor:
        futures = [executor.submit(task) for task in task_list]
        settled = []
        for future in futures:
            try:
                settled.append(Settled(ok=True, value=future.result()))
            except Exception as e:
                settled.append(Settled(ok=False, error=e))
    return settled
