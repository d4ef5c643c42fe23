import shutil
import unittest
import requests

from pathlib import Path

from tests.fakes import payload
from tests.start_flask import FlaskServer, PLAIN_LENGTH
from artifact_fetcher.common import HTTPOptions
from artifact_fetcher.fetch_task import FetchTask, FetchState
from artifact_fetcher.errors import SourceOpenError, TransferError


_TEMP_PATH = Path(__file__).parent / "temp" / "http_fetch"

class TestHTTPFetch(unittest.TestCase):

  @classmethod
  def setUpClass(cls):
    cls.server = FlaskServer().start()
    shutil.rmtree(_TEMP_PATH, ignore_errors=True)

  @classmethod
  def tearDownClass(cls):
    cls.server.stop()

  def test_fetch_plain(self):
    destination = self._temp_path("test_fetch_plain") / "plain.bin"
    task = self._create_task("/files/plain.bin", destination, decompress=False)
    task.start()

    self.assertEqual(task.state, FetchState.SUCCEEDED)
    self.assertListEqual(task.get_errors(), [])
    self.assertEqual(destination.stat().st_size, PLAIN_LENGTH)
    self.assertEqual(destination.read_bytes(), payload(PLAIN_LENGTH))

  def test_fetch_gzip(self):
    destination = self._temp_path("test_fetch_gzip") / "plain.bin"
    task = self._create_task("/files/plain.bin.gz", destination, decompress=True)
    task.start()

    self.assertEqual(task.state, FetchState.SUCCEEDED)
    self.assertEqual(destination.read_bytes(), payload(PLAIN_LENGTH))

  def test_fetch_missing_resource(self):
    destination = self._temp_path("test_fetch_missing_resource") / "plain.bin"
    task = self._create_task("/files/missing.bin", destination, decompress=False)
    task.start()

    self.assertEqual(task.state, FetchState.FAILED)
    self.assertFalse(destination.exists())
    errors = task.get_errors()
    assert errors is not None
    self.assertEqual(len(errors), 1)
    self.assertIsInstance(errors[0], SourceOpenError)
    self.assertIsInstance(errors[0].cause_error, requests.HTTPError)

  def test_fetch_reset_connection(self):
    destination = self._temp_path("test_fetch_reset_connection") / "plain.bin"
    task = self._create_task("/files/reset.bin?after=1000000", destination, decompress=False, timeout=2.0)
    task.start()

    self.assertEqual(task.state, FetchState.FAILED)
    if destination.exists():
      self.assertEqual(destination.stat().st_size, 0)
    errors = task.get_errors()
    assert errors is not None
    self.assertEqual(len(errors), 1)
    self.assertIsInstance(errors[0], TransferError)

  def _create_task(self, path: str, destination: Path, decompress: bool, timeout: float = 5.0) -> FetchTask:
    return FetchTask(
      destination_path=destination,
      locator=self.server.url(path),
      decompress=decompress,
      chunk_size=256 * 1024,
      http_options=HTTPOptions(timeout=timeout),
    )

  def _temp_path(self, name: str) -> Path:
    path = _TEMP_PATH / name
    path.mkdir(parents=True, exist_ok=True)
    return path
