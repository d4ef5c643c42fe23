import sys
import logging
import argparse

from pathlib import Path
from time import sleep

from .common import SEGMENT_SIZE, HTTPOptions
from .fetch_task import FetchTask, FetchState
from .runner import FetchHandle, run_in_background
from .source import open_source


_logger = logging.getLogger("artifact_fetcher")

def main(argv: list[str] | None = None) -> int:
  parser = argparse.ArgumentParser(
    prog="artifact_fetcher",
    description="Fetch a remote resource into a local file. Ctrl-C cancels.",
  )
  parser.add_argument("url", help="http(s):// or file:// locator of the resource")
  parser.add_argument("destination", type=Path, help="local file to write")
  parser.add_argument("--gunzip", action="store_true", help="decompress a gzip resource")
  parser.add_argument("--chunk-size", type=int, default=SEGMENT_SIZE, help="bytes copied per chunk")
  parser.add_argument("--timeout", type=float, default=30.0, help="HTTP connect/read timeout in seconds")
  parser.add_argument("--grace", type=float, default=1.0, help="seconds to wait after cancelling")
  parser.add_argument("-v", "--verbose", action="store_true")
  args = parser.parse_args(argv)
  if args.chunk_size <= 0:
    parser.error("--chunk-size must be greater than zero")

  logging.basicConfig(
    level=logging.DEBUG if args.verbose else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
  )

  task = FetchTask(
    destination_path=args.destination,
    locator=args.url,
    decompress=args.gunzip,
    chunk_size=args.chunk_size,
    open_source=open_source,
    http_options=HTTPOptions(timeout=args.timeout),
  )
  handle = run_in_background(task)
  try:
    while not handle.is_done():
      sleep(0.1)
  except KeyboardInterrupt:
    _logger.info("Cancelling fetch of %s", args.url)
    handle.cancel()
    if not _await_cancelled(handle, args.grace):
      return 1

  for error in task.get_errors() or []:
    _logger.error("%s", error, exc_info=error)

  if task.state != FetchState.SUCCEEDED:
    _logger.error("Fetch of %s %s", args.url, task.state.name.lower())
    return 1

  _logger.info("Saved %s", args.destination)
  return 0

# the task stops at its next chunk boundary; a blocked read is bounded by the
# HTTP timeout, so keep waiting past the grace period instead of exiting
def _await_cancelled(handle: FetchHandle, grace: float) -> bool:
  try:
    if handle.await_termination(grace):
      return True
    _logger.warning("Fetch task hasn't terminated in time, waiting for it to stop")
    handle.join()
    return True

  except KeyboardInterrupt:
    _logger.warning("Fetch task hasn't terminated in time")
    return False

if __name__ == "__main__":
  sys.exit(main())
