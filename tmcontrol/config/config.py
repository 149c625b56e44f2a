import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

LOG_FROM_STRING = {
  "IO": 5,
  "DEBUG": logging.DEBUG,
  "INFO": logging.INFO,
  "WARNING": logging.WARNING,
  "ERROR": logging.ERROR,
  "CRITICAL": logging.CRITICAL,
}

LOG_TO_STRING = {v: k for k, v in LOG_FROM_STRING.items()}


@dataclass
class Config:
  """Package configuration, read from `tmcontrol.ini` or `tmcontrol.json`.

  Sections missing from a file keep their defaults, unknown sections or keys are an error.
  """

  @dataclass
  class Logging:
    level: int = logging.INFO
    log_dir: Optional[Path] = None

  @dataclass
  class Connection:
    """Serial line and timing defaults for new controller sessions, times in milliseconds."""

    baudrate: int = 115200
    pre_flush_sleep: int = 50
    post_flush_sleep: int = 50
    channel_enable_sleep: int = 100
    response_timeout: int = 1000

  logging: Logging = field(default_factory=Logging)
  connection: Connection = field(default_factory=Connection)

  @classmethod
  def from_dict(cls, d: Dict[str, Dict[str, Any]]) -> "Config":
    unknown = set(d) - {"logging", "connection"}
    if unknown:
      raise ValueError(f"Unknown config sections: {sorted(unknown)}")
    return cls(
      logging=_logging_from_dict(d.get("logging", {})),
      connection=_connection_from_dict(d.get("connection", {})),
    )

  @property
  def as_dict(self) -> Dict[str, Dict[str, Any]]:
    return {
      "logging": {
        "level": LOG_TO_STRING.get(self.logging.level, self.logging.level),
        "log_dir": str(self.logging.log_dir) if self.logging.log_dir is not None else None,
      },
      "connection": asdict(self.connection),
    }


def _logging_from_dict(d: Dict[str, Any]) -> Config.Logging:
  unknown = set(d) - {"level", "log_dir"}
  if unknown:
    raise ValueError(f"Unknown logging options: {sorted(unknown)}")
  level = d.get("level", "INFO")
  if isinstance(level, str) and not level.isdigit():
    if level.upper() not in LOG_FROM_STRING:
      raise ValueError(f"Unknown log level: {level}")
    level = LOG_FROM_STRING[level.upper()]
  log_dir = d.get("log_dir")
  return Config.Logging(level=int(level), log_dir=Path(log_dir) if log_dir else None)


def _connection_from_dict(d: Dict[str, Any]) -> Config.Connection:
  names = {f.name for f in fields(Config.Connection)}
  unknown = set(d) - names
  if unknown:
    raise ValueError(f"Unknown connection options: {sorted(unknown)}")
  try:
    return Config.Connection(**{k: int(v) for k, v in d.items()})
  except ValueError as e:
    raise ValueError(f"Connection options must be integers: {e}") from e
