import asyncio
from typing import Coroutine, Iterable, TypeVar

T = TypeVar("T")


async def gather_all(coroutines: Iterable[Coroutine[None, None, T]]) -> list[T]:
    """Run coroutines concurrently and return their results in submission order.

    The first failure cancels the remaining tasks and is re-raised as is,
    not wrapped in an ExceptionGroup.
    """
    error = None
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coroutine) for coroutine in coroutines]
    except BaseExceptionGroup as group_error:
        error = group_error.exceptions[0]
    if error is not None:
        raise error
    return [task.result() for task in tasks]
