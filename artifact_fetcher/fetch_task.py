import logging

from pathlib import Path
from enum import Enum
from typing import BinaryIO, Callable
from threading import Lock

from .common import SEGMENT_SIZE, HTTPOptions
from .errors import (
  InterruptionError,
  DestinationOpenError,
  SourceOpenError,
  TransferError,
  CleanupError,
)
from .source import SourceOpener, open_source, open_stream


_logger = logging.getLogger(__name__)

class FetchState(Enum):
  PENDING = 0
  RUNNING = 1
  SUCCEEDED = 2
  FAILED = 3
  CANCELLED = 4

  @property
  def is_terminal(self) -> bool:
    return self in (FetchState.SUCCEEDED, FetchState.FAILED, FetchState.CANCELLED)

class _Status:
  def __init__(self) -> None:
    self.state: FetchState = FetchState.PENDING
    self.did_start: bool = False
    self.did_cancel: bool = False
    # the first failure or cancellation decides the outcome
    self.outcome: FetchState | None = None
    # once settled, the outcome is frozen and cleanup follows it
    self.settled: FetchState | None = None
    self.errors: list[Exception] = []

  @property
  def done(self) -> bool:
    return self.state.is_terminal

class FetchTask:
  """Copies a remote resource into a local file on the thread calling start().

  Cancellation is cooperative: request_cancel() is honored before the next
  chunk is read, so at most one more chunk is copied after the request.
  A failed or cancelled task leaves the destination absent or empty.
  """

  def __init__(
        self,
        destination_path: Path,
        locator: str,
        decompress: bool = False,
        chunk_size: int = SEGMENT_SIZE,
        open_source: SourceOpener = open_source,
        http_options: HTTPOptions | None = None,
      ) -> None:

    assert chunk_size > 0, "chunk size must be greater than zero"

    self._destination_path: Path = Path(destination_path)
    self._locator: str = locator
    self._decompress: bool = decompress
    self._chunk_size: int = chunk_size
    self._open_source: SourceOpener = open_source
    self._http_options: HTTPOptions | None = http_options

    self._lock: Lock = Lock()
    self._status: _Status = _Status()

  @property
  def destination_path(self) -> Path:
    return self._destination_path

  @property
  def locator(self) -> str:
    return self._locator

  @property
  def decompress(self) -> bool:
    return self._decompress

  @property
  def state(self) -> FetchState:
    with self._lock:
      return self._status.state

  def start(self) -> None:
    with self._lock:
      if self._status.did_start:
        raise RuntimeError("fetch task can only be started once")
      self._status.did_start = True
      if self._status.outcome is None:
        self._status.state = FetchState.RUNNING

    destination: BinaryIO | None = None
    source: BinaryIO | None = None

    if not self._should_stop():
      destination, source = self._acquire()
      if destination is not None and source is not None:
        self._copy(source, destination)

    self._cleanup(source, destination)

  def request_cancel(self) -> None:
    with self._lock:
      status = self._status
      if status.done or status.settled is not None or status.did_cancel:
        return
      status.did_cancel = True
      status.errors.append(InterruptionError())
      if status.outcome is None:
        status.outcome = FetchState.CANCELLED

  def has_finished(self) -> bool:
    with self._lock:
      return self._status.done

  def has_failed(self) -> bool:
    with self._lock:
      outcome = self._status.settled or self._status.outcome
      return outcome in (FetchState.FAILED, FetchState.CANCELLED)

  def get_errors(self) -> list[Exception] | None:
    with self._lock:
      if not self._status.done:
        return None
      return list(self._status.errors)

  def _acquire(self) -> tuple[BinaryIO | None, BinaryIO | None]:
    try:
      # unbuffered, so a short write is visible to _write_fully
      destination = open(self._destination_path, "wb", buffering=0)
    except OSError as error:
      self._fail(DestinationOpenError(f"cannot open {self._destination_path}", error))
      return None, None

    try:
      source = open_stream(
        locator=self._locator,
        decompress=self._decompress,
        opener=self._open_source,
        http_options=self._http_options,
      )
    except Exception as error:
      self._fail(SourceOpenError(f"cannot open {self._locator}", error))
      return destination, None

    _logger.debug("fetching %s into %s", self._locator, self._destination_path)
    return destination, source

  def _copy(self, source: BinaryIO, destination: BinaryIO) -> None:
    while True:
      if self._should_stop():
        return
      try:
        chunk = source.read(self._chunk_size)
        if not chunk:
          return
        self._write_fully(destination, chunk)

      except Exception as error:
        self._fail(TransferError(f"transfer from {self._locator} failed", error))
        return

  def _write_fully(self, destination: BinaryIO, chunk: bytes) -> None:
    view = memoryview(chunk)
    while view:
      written = destination.write(view)
      view = view[written:]

  def _cleanup(self, source: BinaryIO | None, destination: BinaryIO | None) -> None:
    with self._lock:
      outcome = self._status.outcome or FetchState.SUCCEEDED
      self._status.settled = outcome

    if outcome != FetchState.SUCCEEDED:
      if destination is not None:
        self._attempt(f"truncate {self._destination_path}", lambda: destination.truncate(0))
      self._attempt(
        f"delete {self._destination_path}",
        lambda: self._destination_path.unlink(missing_ok=True),
      )

    if source is not None:
      self._attempt(f"close {self._locator}", source.close)
    if destination is not None:
      self._attempt(f"close {self._destination_path}", destination.close)

    with self._lock:
      self._status.state = outcome

    if outcome == FetchState.SUCCEEDED:
      _logger.debug("fetched %s into %s", self._locator, self._destination_path)
    else:
      _logger.debug("fetch of %s ended as %s", self._locator, outcome.name)

  def _attempt(self, action: str, operation: Callable[[], object]) -> None:
    try:
      operation()
    except Exception as error:
      _logger.warning("cannot %s: %s", action, error)
      with self._lock:
        self._status.errors.append(CleanupError(f"cannot {action}", error))

  def _should_stop(self) -> bool:
    with self._lock:
      return self._status.outcome is not None

  def _fail(self, error: Exception) -> None:
    _logger.warning("%s", error)
    with self._lock:
      self._status.errors.append(error)
      if self._status.outcome is None:
        self._status.outcome = FetchState.FAILED
