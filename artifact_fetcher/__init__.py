from .common import SEGMENT_SIZE, HTTPOptions
from .config import ArtifactConfig
from .errors import (
  InterruptionError,
  FetchError,
  DestinationOpenError,
  SourceOpenError,
  TransferError,
  CleanupError,
)
from .fetch_task import FetchTask, FetchState
from .runner import FetchHandle, run_in_background
from .service import ArtifactService
from .source import SourceOpener, open_source, open_stream
