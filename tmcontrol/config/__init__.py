"""
Package-level configuration. `load_config` looks for a `<name>.ini` or `<name>.json` file in the
given directory and then in each of its parents. Without a file the defaults of `Config` apply.
"""

from pathlib import Path
from typing import Optional, Union

from tmcontrol.config.config import Config
from tmcontrol.config.formats import FORMATS, format_for

PathLike = Union[str, Path]


def find_config_file(base_name: str, cur_dir: Optional[PathLike] = None) -> Optional[Path]:
  """The nearest config file named `base_name`, searching `cur_dir` (default: the working
  directory) and then its parents. `None` if there is none."""
  start = Path(cur_dir) if cur_dir is not None else Path.cwd()
  for directory in (start, *start.parents):
    for extension in FORMATS:
      candidate = directory / f"{base_name}.{extension}"
      if candidate.is_file():
        return candidate
  return None


def read_config(path: PathLike) -> Config:
  path = Path(path)
  return format_for(path).loads(path.read_text(encoding="utf-8"))


def write_config(path: PathLike, cfg: Config):
  path = Path(path)
  path.write_text(format_for(path).dumps(cfg), encoding="utf-8")


def load_config(
  base_file_name: str,
  create_default: bool = False,
  cur_dir: Optional[PathLike] = None,
) -> Config:
  """Load the nearest config file.

  Args:
    base_file_name: file name without extension.
    create_default: write a default INI file to `cur_dir` (or the working directory) if no file is
      found.
    cur_dir: the directory to start searching in.
  """
  config_path = find_config_file(base_file_name, cur_dir=cur_dir)
  if config_path is not None:
    return read_config(config_path)

  cfg = Config()
  if create_default:
    create_dir = Path(cur_dir) if cur_dir is not None else Path.cwd()
    write_config(create_dir / f"{base_file_name}.ini", cfg)
  return cfg


__all__ = ["Config", "find_config_file", "load_config", "read_config", "write_config"]
