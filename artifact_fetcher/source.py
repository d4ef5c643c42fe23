import gzip
import requests

from pathlib import Path
from typing import BinaryIO, Callable
from urllib.parse import urlparse
from urllib.request import url2pathname

from .common import HTTPOptions, HTTP_SCHEMES


SourceOpener = Callable[[str, HTTPOptions | None], BinaryIO]

def open_source(locator: str, http_options: HTTPOptions | None = None) -> BinaryIO:
  parsed = urlparse(locator)
  scheme = parsed.scheme.lower()

  if scheme in HTTP_SCHEMES:
    return _open_http(locator, http_options or HTTPOptions())
  elif scheme == "file":
    return open(url2pathname(parsed.path), "rb")
  elif scheme == "" or _is_drive_letter(scheme):
    return open(Path(locator), "rb")
  else:
    raise ValueError(f"unsupported locator scheme: {parsed.scheme}")

def open_stream(
      locator: str,
      decompress: bool,
      opener: SourceOpener = open_source,
      http_options: HTTPOptions | None = None,
    ) -> BinaryIO:

  stream = opener(locator, http_options)
  if not decompress:
    return stream
  try:
    return _GzipSource(stream)
  except Exception as error:
    stream.close()
    raise error

def _open_http(url: str, http_options: HTTPOptions) -> BinaryIO:
  resp = requests.get(
    url=url,
    stream=True,
    headers=http_options.headers,
    cookies=http_options.cookies,
    timeout=http_options.timeout,
  )
  try:
    resp.raise_for_status()
  except Exception as error:
    resp.close()
    raise error

  raw = resp.raw
  # undo transport Content-Encoding, never the payload's own gzip
  raw.decode_content = True
  return raw

def _is_drive_letter(scheme: str) -> bool:
  return len(scheme) == 1 and scheme.isalpha()

# GzipFile leaves a fileobj it was handed open on close
class _GzipSource(gzip.GzipFile):
  def __init__(self, stream: BinaryIO) -> None:
    self._stream: BinaryIO = stream
    super().__init__(fileobj=stream, mode="rb")

  def close(self) -> None:
    try:
      super().close()
    finally:
      self._stream.close()
