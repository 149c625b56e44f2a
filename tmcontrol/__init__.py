import datetime
import logging
from pathlib import Path
from typing import Optional, Union

from tmcontrol.__version__ import __version__
from tmcontrol.config import Config, load_config
from tmcontrol.io import end_validation, start_capture, stop_capture, validate

CONFIG_FILE_NAME = "tmcontrol"

CONFIG = load_config(CONFIG_FILE_NAME, create_default=False)


def project_root() -> Path:
  """The directory that holds the `tmcontrol` package."""
  return Path(__file__).parent.parent


def setup_logger(log_dir: Optional[Union[Path, str]], level: int):
  """Set up the `tmcontrol` logger.

  Args:
    log_dir: directory for the daily log file, created if missing. `None` logs to no file.
    level: the logging level.
  """
  logger = logging.getLogger("tmcontrol")
  logger.setLevel(level)
  for handler in list(logger.handlers):
    if isinstance(handler, logging.FileHandler):
      handler.close()
    logger.removeHandler(handler)

  if log_dir is None:
    return

  log_dir = Path(log_dir)
  log_dir.mkdir(parents=True, exist_ok=True)
  today = datetime.datetime.now().strftime("%Y%m%d")
  fh = logging.FileHandler(log_dir / f"tmcontrol-{today}.log")
  fh.setLevel(logging.NOTSET)  # the logger level filters
  fh.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
  logger.addHandler(fh)


def configure(cfg: Config):
  """Configure tmcontrol from a loaded config."""
  setup_logger(cfg.logging.log_dir, cfg.logging.level)


configure(CONFIG)
