import logging

from time import monotonic, sleep
from typing import Callable
from threading import Thread

from .fetch_task import FetchTask


_logger = logging.getLogger(__name__)

class FetchHandle:
  def __init__(self, task: FetchTask, thread: Thread | None = None) -> None:
    self._task: FetchTask = task
    self._thread: Thread | None = thread

  @property
  def task(self) -> FetchTask:
    return self._task

  def cancel(self) -> None:
    self._task.request_cancel()

  def is_done(self) -> bool:
    return self._task.has_finished()

  # waits for the completion callback too, unlike await_termination
  def join(self, timeout: float | None = None) -> None:
    if self._thread is not None:
      self._thread.join(timeout)

  # a task blocked on a read can outlive the timeout; it is never interrupted
  def await_termination(self, timeout: float = 1.0, poll_interval: float = 0.1) -> bool:
    deadline = monotonic() + timeout
    while not self._task.has_finished():
      remaining = deadline - monotonic()
      if remaining <= 0.0:
        return False
      sleep(min(poll_interval, remaining))
    return True

def run_in_background(
      task: FetchTask,
      on_finished: Callable[[FetchTask], None] | None = None,
      name: str | None = None,
      daemon: bool = False,
    ) -> FetchHandle:

  def run_task() -> None:
    task.start()
    if on_finished is not None:
      try:
        on_finished(task)
      except Exception:
        _logger.exception("completion callback of %s failed", task.locator)

  # a daemon thread dies at interpreter exit and skips the cleanup phase
  thread = Thread(
    target=run_task,
    name=name or f"fetch-{task.destination_path.name}",
    daemon=daemon,
  )
  thread.start()
  return FetchHandle(task, thread)