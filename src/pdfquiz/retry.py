"""Bounded retry and polling helpers shared by the embedding client, indexer and retriever."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Tuple, Type, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
Sleep = Callable[[float], None]


@dataclass(slots=True)
class PollOutcome(Generic[T]):
    """Result of :func:`poll_until`."""

    value: T | None
    satisfied: bool
    attempts: int
    last_error: BaseException | None = None


def call_with_retry(
    func: Callable[[], T],
    *,
    max_attempts: int,
    delay: float,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Sleep = time.sleep,
    description: str = "operation",
) -> T:
    """Call ``func`` until it succeeds, retrying ``retry_on`` errors with a fixed delay.

    The last error is re-raised once ``max_attempts`` calls have failed.
    """

    def _log_retry(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        LOGGER.warning(
            "%s failed (attempt %s/%s): %s", description, state.attempt_number, max_attempts, error
        )

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception_type(retry_on),
        sleep=sleep,
        before_sleep=_log_retry,
        reraise=True,
    )
    return retrying(func)


def poll_until(
    probe: Callable[[], T],
    is_done: Callable[[T], bool],
    *,
    max_attempts: int,
    delay: float,
    sleep: Sleep = time.sleep,
    description: str = "probe",
) -> PollOutcome[T]:
    """Call ``probe`` up to ``max_attempts`` times until ``is_done`` accepts its value.

    Probe errors count as unsuccessful attempts. Never raises on exhaustion.
    """

    attempts = 0
    last_value: T | None = None
    last_error: BaseException | None = None

    def _attempt() -> bool:
        nonlocal attempts, last_value, last_error
        attempts += 1
        last_value = probe()
        last_error = None
        return is_done(last_value)

    def _log_retry(state: RetryCallState) -> None:
        nonlocal last_error
        if state.outcome is not None and state.outcome.failed:
            last_error = state.outcome.exception()
            LOGGER.info(
                "%s raised on attempt %s/%s: %s", description, state.attempt_number, max_attempts, last_error
            )
        else:
            LOGGER.debug("%s not satisfied on attempt %s/%s", description, state.attempt_number, max_attempts)

    def _give_up(state: RetryCallState) -> bool:
        nonlocal last_error
        if state.outcome is not None and state.outcome.failed:
            last_error = state.outcome.exception()
        return False

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception_type(Exception) | retry_if_result(lambda done: not done),
        sleep=sleep,
        before_sleep=_log_retry,
        retry_error_callback=_give_up,
    )
    satisfied = bool(retrying(_attempt))
    return PollOutcome(
        value=last_value,
        satisfied=satisfied,
        attempts=attempts,
        last_error=None if satisfied else last_error,
    )


__all__ = ["PollOutcome", "call_with_retry", "poll_until"]
