"""Record every transport action to a JSON file, and read such files back for validation.

File layout: `{"version": <tmcontrol version>, "commands": [<Command as dict>, ...]}`.
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional, Union

from tmcontrol.__version__ import __version__
from tmcontrol.io.errors import ValidationError

logger = logging.getLogger(__name__)

# set while capturing or validating; no new transport may be created then
_capture_or_validation_active = False


def get_capture_or_validation_active() -> bool:
  return _capture_or_validation_active


def _set_capture_or_validation_active(active: bool):
  global _capture_or_validation_active
  _capture_or_validation_active = active


@dataclass
class Command:
  """One recorded transport action.

  `data` holds the action's argument (hex for byte payloads) and `result` the raw code the
  transport returned, so a replay reproduces failures as well as successes.
  """

  module: str
  device_id: str
  action: str
  data: str = ""
  result: int = 0


class CaptureWriter:
  """Collects recorded commands and writes them out when the capture stops."""

  def __init__(self):
    self._path: Optional[Path] = None
    self._commands: Optional[List[dict]] = None

  @property
  def capture_active(self) -> bool:
    return self._commands is not None

  def start(self, path: Path):
    if self.capture_active:
      raise RuntimeError("io capture already active")
    self._path = path
    self._commands = []
    _set_capture_or_validation_active(True)

  def record(self, command: Command):
    if self._commands is not None:
      self._commands.append(asdict(command))

  def stop(self):
    if self._path is None or self._commands is None:
      raise RuntimeError("io capture not active. Call start() first.")

    with open(self._path, "w", encoding="utf-8") as f:
      json.dump({"version": __version__, "commands": self._commands}, f, indent=2)
      f.write("\n")
    logger.info("Captured %d commands to %s", len(self._commands), self._path)

    self._path = None
    self._commands = None
    _set_capture_or_validation_active(False)


class CaptureReader:
  """Hands out the commands of a capture file in order."""

  def __init__(self, path: Union[str, Path]):
    self.path = path
    with open(path, "r", encoding="utf-8") as f:
      data = json.load(f)
    if data.get("version") != __version__:
      logger.warning("%s was captured with tmcontrol %s", path, data.get("version"))
    self.commands: List[dict] = list(data["commands"])
    self._command_idx = 0

  @property
  def remaining(self) -> int:
    return len(self.commands) - self._command_idx

  def start(self):
    _set_capture_or_validation_active(True)

  def next_command(self) -> dict:
    if self.remaining == 0:
      raise ValidationError("Capture file exhausted, but more IO was performed.")
    command = self.commands[self._command_idx]
    self._command_idx += 1
    return command

  def done(self):
    if self.remaining > 0:
      raise ValidationError(
        f"{self.remaining} captured commands were not replayed, "
        f"next: {self.commands[self._command_idx]}"
      )
    logger.info("Validation successful!")
    self.reset()

  def reset(self):
    self._command_idx = 0
    _set_capture_or_validation_active(False)


capturer = CaptureWriter()


def start_capture(fp: Union[Path, str] = Path("./validation.json")):
  """Start recording the IO of every transport to `fp`."""
  fp = Path(fp)
  if fp.is_dir():
    raise ValueError("Path is a directory, please provide a file path.")
  capturer.start(fp)


def stop_capture():
  """Stop recording and write the capture file."""
  capturer.stop()
