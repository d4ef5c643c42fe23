import os

from pathlib import Path
from dataclasses import dataclass, field
from typing import Mapping

from .common import SEGMENT_SIZE, HTTPOptions


DEFAULT_FILE_NAME = "geolite2.mmdb"
DEFAULT_URL = "http://geolite.maxmind.com/download/geoip/database/GeoLite2-Country.mmdb.gz"
ENV_PREFIX = "ARTIFACT_FETCHER_"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")

@dataclass
class ArtifactConfig:
  data_dir: Path
  file_name: str = DEFAULT_FILE_NAME
  url: str = DEFAULT_URL
  decompress: bool = True
  chunk_size: int = SEGMENT_SIZE
  shutdown_timeout: float = 1.0
  http_options: HTTPOptions = field(default_factory=HTTPOptions)

  def __post_init__(self) -> None:
    self.data_dir = Path(self.data_dir)
    if self.chunk_size <= 0:
      raise ValueError("chunk_size must be greater than zero")
    if self.shutdown_timeout < 0:
      raise ValueError("shutdown_timeout must not be negative")
    if not self.file_name or Path(self.file_name).name != self.file_name:
      raise ValueError(f"file_name must be a bare file name: {self.file_name!r}")

  @property
  def artifact_path(self) -> Path:
    return self.data_dir / self.file_name

  @classmethod
  def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        environ: Mapping[str, str] | None = None,
        data_dir: Path | None = None,
      ) -> "ArtifactConfig":

    env = os.environ if environ is None else environ

    def get(name: str) -> str | None:
      value = env.get(f"{prefix}{name}")
      if value is None or value.strip() == "":
        return None
      return value.strip()

    env_data_dir = get("DATA_DIR")
    if env_data_dir is not None:
      data_dir = Path(env_data_dir)
    if data_dir is None:
      raise ValueError(f"{prefix}DATA_DIR is not set")

    kwargs: dict = {"data_dir": data_dir}
    file_name = get("FILE_NAME")
    if file_name is not None:
      kwargs["file_name"] = file_name
    url = get("URL")
    if url is not None:
      kwargs["url"] = url
    decompress = get("DECOMPRESS")
    if decompress is not None:
      kwargs["decompress"] = _parse_bool(f"{prefix}DECOMPRESS", decompress)
    chunk_size = get("CHUNK_SIZE")
    if chunk_size is not None:
      kwargs["chunk_size"] = int(chunk_size)
    shutdown_timeout = get("SHUTDOWN_TIMEOUT")
    if shutdown_timeout is not None:
      kwargs["shutdown_timeout"] = float(shutdown_timeout)
    timeout = get("TIMEOUT")
    if timeout is not None:
      kwargs["http_options"] = HTTPOptions(timeout=float(timeout))

    return cls(**kwargs)

def _parse_bool(name: str, value: str) -> bool:
  lowered = value.lower()
  if lowered in _TRUE_VALUES:
    return True
  if lowered in _FALSE_VALUES:
    return False
  raise ValueError(f"{name} must be a boolean, got {value!r}")
