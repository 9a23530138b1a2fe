"""Give every handler calling convention the same async contract."""

import asyncio
import inspect
from enum import Enum
from functools import wraps
from typing import Any, Awaitable, Callable, Optional

AsyncHandler = Callable[..., Awaitable[Any]]

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class CallingConvention(Enum):
    """How a handler reports its outcome."""

    # Returns a value or an awaitable
    RETURN_BASED = "return"
    # Takes a trailing ``callback(error, result)``
    CALLBACK_BASED = "callback"


def declared_arity(handler: Callable) -> int:
    """Count the positional parameters a handler requires."""
    signature = inspect.signature(handler)
    return sum(
        1
        for parameter in signature.parameters.values()
        if parameter.kind in _POSITIONAL and parameter.default is parameter.empty
    )


def calling_convention(handler: Callable) -> CallingConvention:
    """Pick the calling convention from the handler's declared arity."""
    if declared_arity(handler) > 1:
        return CallingConvention.CALLBACK_BASED
    return CallingConvention.RETURN_BASED


def normalize_handler(handler: Callable) -> AsyncHandler:
    """Return an async view of ``handler`` that returns or raises its outcome."""
    if calling_convention(handler) is CallingConvention.CALLBACK_BASED:
        return promisify_handler(handler)
    return asyncify_handler(handler)


def asyncify_handler(handler: Callable) -> AsyncHandler:
    """Wrap a handler that returns a value or an awaitable."""

    @wraps(handler)
    async def _handler(*args):
        result = handler(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    return _handler


def promisify_handler(handler: Callable) -> AsyncHandler:
    """
    Wrap a handler that takes a trailing completion callback.

    The handler may finish by calling the callback, by returning an awaitable
    (an ``async def`` handler that declares the callback but never calls it),
    or by raising. Whichever happens first decides the outcome.
    """

    @wraps(handler)
    async def _handler(*args):
        loop = asyncio.get_running_loop()
        outcome: asyncio.Future = loop.create_future()

        def settle(error: Any, result: Any = None) -> None:
            if outcome.done():
                return
            if error:
                outcome.set_exception(_as_exception(error))
            else:
                outcome.set_result(result)

        def callback(error: Any = None, result: Any = None) -> None:
            if _running_loop() is loop:
                settle(error, result)
            else:
                loop.call_soon_threadsafe(settle, error, result)

        def settle_from(task: asyncio.Future) -> None:
            if task.cancelled():
                if not outcome.done():
                    outcome.cancel()
                return
            # Always retrieve the exception, even when the callback already won
            error = task.exception()
            settle(error, None if error else task.result())

        try:
            returned = handler(*args, callback)
        except Exception as e:
            settle(e)
        else:
            if inspect.isawaitable(returned):
                asyncio.ensure_future(returned).add_done_callback(settle_from)

        return await outcome

    return _handler


def _as_exception(error: Any) -> BaseException:
    if isinstance(error, BaseException):
        return error
    return Exception(str(error))


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
