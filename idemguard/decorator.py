"""Main idempotent decorator implementation."""

import functools
import inspect
from collections.abc import Callable
from typing import TypeVar

from .coordinator import AsyncIdempotencyCoordinator, IdempotencyCoordinator
from .key import fingerprint as payload_fingerprint

F = TypeVar("F", bound=Callable)


def idempotent(
    coordinator: IdempotencyCoordinator | AsyncIdempotencyCoordinator,
    key: Callable[..., str],
    payload: Callable[..., object] | None = None,
) -> Callable[[F], F]:
    """Decorator to run a function through an idempotency coordinator.

    Args:
        coordinator: Coordinator to execute through. Coroutine functions
            need an AsyncIdempotencyCoordinator.
        key: Function receiving the call's arguments and returning the
            caller-supplied idempotency key
        payload: Function receiving the call's arguments and returning the
            part of them that identifies the request, for fingerprinting.
            Defaults to all arguments.

    When the coordinator's config has verify_payload set, a fingerprint of
    the payload is checked against the one cached with the result. Use
    payload= for methods, so that self is left out.

    Example:
        @idempotent(coordinator, key=lambda request: request.idempotency_key)
        def create_transaction(request):
            return service.process_payment(request.amount, request.currency)
    """

    def decorator(func: F) -> F:
        is_async = inspect.iscoroutinefunction(func)

        if is_async != isinstance(coordinator, AsyncIdempotencyCoordinator):
            kind = "coroutine" if is_async else "regular"
            raise TypeError(
                f"{func.__qualname__} is a {kind} function but got "
                f"{type(coordinator).__name__}"
            )

        def _fingerprint(
            args: tuple[object, ...], kwargs: dict[str, object]
        ) -> str | None:
            if not coordinator.config.verify_payload:
                return None
            if payload is not None:
                return payload_fingerprint(payload(*args, **kwargs))
            return payload_fingerprint(*args, **kwargs)

        if is_async:

            @functools.wraps(func)
            async def async_wrapper(*args: object, **kwargs: object) -> object:
                execution = await coordinator.execute(  # type: ignore[misc]
                    key(*args, **kwargs),
                    lambda: func(*args, **kwargs),
                    fingerprint=_fingerprint(args, kwargs),
                )
                return execution.value

            async_wrapper.coordinator = coordinator  # type: ignore[attr-defined]
            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: object, **kwargs: object) -> object:
            execution = coordinator.execute(
                key(*args, **kwargs),
                lambda: func(*args, **kwargs),
                fingerprint=_fingerprint(args, kwargs),
            )
            return execution.value  # type: ignore[union-attr]

        wrapper.coordinator = coordinator  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator
