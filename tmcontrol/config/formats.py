"""Config file formats, picked by file extension."""

import configparser
import io
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict

from tmcontrol.config.config import Config


class ConfigFormat(ABC):
  """Converts a Config object from and to the text of a config file."""

  extension: str

  @abstractmethod
  def loads(self, text: str) -> Config:
    """Parse a Config object. Raises `ValueError` on malformed input."""

  @abstractmethod
  def dumps(self, cfg: Config) -> str:
    pass


class IniFormat(ConfigFormat):
  extension = "ini"

  def loads(self, text: str) -> Config:
    parser = configparser.ConfigParser()
    try:
      parser.read_string(text)
    except configparser.Error as e:
      raise ValueError(f"Invalid INI config: {e}") from e
    return Config.from_dict({name: dict(parser[name]) for name in parser.sections()})

  def dumps(self, cfg: Config) -> str:
    parser = configparser.ConfigParser()
    for section, options in cfg.as_dict.items():
      parser[section] = {k: str(v) for k, v in options.items() if v is not None}
    out = io.StringIO()
    parser.write(out)
    return out.getvalue()


class JsonFormat(ConfigFormat):
  extension = "json"

  def loads(self, text: str) -> Config:
    try:
      data = json.loads(text)
    except json.JSONDecodeError as e:
      raise ValueError(f"Invalid JSON config: {e}") from e
    if not isinstance(data, dict):
      raise ValueError("A JSON config must be an object")
    return Config.from_dict(data)

  def dumps(self, cfg: Config) -> str:
    return json.dumps(cfg.as_dict, indent=2) + "\n"


# in search order
FORMATS: Dict[str, ConfigFormat] = {fmt.extension: fmt for fmt in (IniFormat(), JsonFormat())}


def format_for(path: Path) -> ConfigFormat:
  try:
    return FORMATS[path.suffix.lstrip(".")]
  except KeyError:
    raise ValueError(f"Unsupported config file type: {path}") from None
