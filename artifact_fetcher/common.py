from dataclasses import dataclass
from typing import Mapping, MutableMapping


SEGMENT_SIZE = 2048 * 1000
HTTP_SCHEMES = ("http", "https")

@dataclass
class HTTPOptions:
  timeout: float = 30.0
  headers: Mapping[str, str | bytes | None] | None = None
  cookies: MutableMapping[str, str] | None = None
