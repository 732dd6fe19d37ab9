from asyncio import Semaphore, Task, TaskGroup


class Throttler:
    """Limit the number of simultaneously running tasks in a TaskGroup.

    schedule() waits for a free permit before creating the task; the permit is
    returned when the task finishes, whatever its outcome.
    """

    def __init__(self, task_group: TaskGroup, concurrency: int):
        """
        Args:
            task_group: The TaskGroup to which tasks will be added
            concurrency: Maximum number of tasks that can run concurrently
        """
        self._task_group = task_group
        self._semaphore = Semaphore(concurrency)

    async def schedule(self, coro, name=None) -> Task:
        """Schedule a coroutine once a permit is available."""
        try:
            await self._semaphore.acquire()
        except BaseException:
            coro.close()
            raise

        async def wrapper():
            try:
                return await coro
            finally:
                self._semaphore.release()

        try:
            return self._task_group.create_task(wrapper(), name=name)
        except BaseException:
            self._semaphore.release()
            coro.close()
            raise
