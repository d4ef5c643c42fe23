import os
import logging

from pathlib import Path
from typing import BinaryIO, Callable
from threading import Condition

from .config import ArtifactConfig
from .fetch_task import FetchTask, FetchState
from .runner import FetchHandle, run_in_background
from .source import SourceOpener, open_source
from .utils import list_safe_remove


Scheduler = Callable[[FetchTask, Callable[[FetchTask], None] | None], FetchHandle]

class ArtifactService:
  """Keeps a local copy of a remote artifact and hands out read handles.

  Host lifecycle: load() once, then enable(); disable() on shutdown. A missing
  artifact is fetched in the background and the service turns ready when the
  fetch succeeds. disable() cancels an in-flight fetch, waits at most
  config.shutdown_timeout seconds for it, then closes every handle still open.

  A fetch that outlives disable() stays tracked until its completion callback
  runs: the artifact it is writing is never reported ready by a later
  enable(). If the service was re-enabled by the time such a fetch ends
  cancelled, a fresh fetch is scheduled.
  """

  def __init__(
        self,
        config: ArtifactConfig,
        open_source: SourceOpener = open_source,
        scheduler: Scheduler = run_in_background,
        logger: logging.Logger | None = None,
      ) -> None:

    self._config: ArtifactConfig = config
    self._open_source: SourceOpener = open_source
    self._scheduler: Scheduler = scheduler
    self._logger: logging.Logger = logger or logging.getLogger(__name__)

    self._condition: Condition = Condition()
    self._directory_usable: bool = False
    self._enabled: bool = False
    self._ready: bool = False
    self._handles: list[BinaryIO] = []
    self._fetch: FetchHandle | None = None
    # set before scheduling, cleared by the completion callback
    self._fetching: FetchTask | None = None

  @property
  def artifact_path(self) -> Path:
    return self._config.artifact_path

  def load(self) -> bool:
    data_dir = self._config.data_dir
    try:
      data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as error:
      self._logger.error("Failed to create data directory %s", data_dir, exc_info=error)
      return False

    if not data_dir.is_dir():
      self._logger.error("Data directory %s is not a directory", data_dir)
      return False
    if not os.access(data_dir, os.R_OK | os.W_OK | os.X_OK):
      self._logger.error("Data directory %s is not readable and writable", data_dir)
      return False

    self._directory_usable = True
    return True

  def enable(self) -> None:
    with self._condition:
      self._enabled = True
      fetching = self._fetching is not None

    # problems were reported by load()
    if not self._directory_usable:
      return

    # the artifact may exist but still be written; the callback decides
    if fetching:
      self._logger.info("Artifact fetch still in progress")
      return

    artifact_path = self.artifact_path
    if not artifact_path.exists():
      self._logger.info("Artifact %s not found", artifact_path)
      self._schedule_fetch()
      return

    if not artifact_path.is_file():
      self._logger.error("Artifact %s is not a file", artifact_path)
      return
    if not os.access(artifact_path, os.R_OK):
      self._logger.error("Artifact %s is not readable", artifact_path)
      return

    self._set_ready()

  def disable(self) -> None:
    with self._condition:
      self._enabled = False
      fetch = self._fetch if self._fetching is not None else None

    if fetch is not None:
      fetch.cancel()
      timeout = self._config.shutdown_timeout
      if fetch.await_termination(timeout):
        # the completion callback logs the recorded errors
        fetch.join(timeout)
      else:
        self._logger.warning("Artifact fetch task hasn't terminated in time")

    with self._condition:
      handles = self._handles
      self._handles = []
      self._ready = False
      self._condition.notify_all()

    for handle in handles:
      self._close_handle(handle)

  def is_ready(self) -> bool:
    with self._condition:
      return self._ready

  def wait_till_ready(self, timeout_millis: int) -> bool:
    with self._condition:
      return self._condition.wait_for(
        predicate=lambda: self._ready,
        timeout=max(timeout_millis, 0) / 1000.0,
      )

  def open_artifact(self) -> BinaryIO | None:
    with self._condition:
      if not self._ready:
        return None
      try:
        handle = open(self.artifact_path, "rb")
      except OSError as error:
        self._logger.warning("Failed to open artifact %s: %s", self.artifact_path, error)
        return None
      self._handles.append(handle)
      return handle

  def close_artifact(self, handle: BinaryIO) -> None:
    with self._condition:
      tracked = list_safe_remove(self._handles, handle)
    if tracked:
      self._close_handle(handle)

  def _schedule_fetch(self) -> None:
    config = self._config
    task = FetchTask(
      destination_path=config.artifact_path,
      locator=config.url,
      decompress=config.decompress,
      chunk_size=config.chunk_size,
      open_source=self._open_source,
      http_options=config.http_options,
    )
    with self._condition:
      if self._fetching is not None:
        return
      self._fetching = task
      self._logger.info("Fetching artifact from %s", config.url)
      self._fetch = self._scheduler(task, self._on_fetch_finished)

  def _on_fetch_finished(self, task: FetchTask) -> None:
    with self._condition:
      if self._fetching is task:
        self._fetching = None
      enabled = self._enabled

    state = task.state
    if state == FetchState.SUCCEEDED:
      self._logger.info("Artifact fetched into %s", task.destination_path)
      self._set_ready()
      return

    self._log_errors(task)
    # cancelled by disable(), then enabled again before it stopped
    if state == FetchState.CANCELLED and enabled and self._directory_usable:
      self._logger.info("Artifact %s not found", task.destination_path)
      self._schedule_fetch()

  def _set_ready(self) -> None:
    with self._condition:
      if not self._enabled:
        return
      self._ready = True
      self._condition.notify_all()

  def _log_errors(self, task: FetchTask) -> None:
    for error in task.get_errors() or []:
      self._logger.error("Artifact fetch error: %s", error, exc_info=error)

  def _close_handle(self, handle: BinaryIO) -> None:
    try:
      handle.close()
    except OSError as error:
      self._logger.warning("Failed to close artifact handle: %s", error)
