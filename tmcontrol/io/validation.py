"""Replay a capture file in place of the device.

Usage:
  backend = ThorlabsKPZ101Backend(...)
  validate("capture.json")
  ...  # run the same protocol that was captured
  end_validation()
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Type, Union

from tmcontrol.io.capture import CaptureReader, capturer
from tmcontrol.io.ftdi import FTDI, FTDIValidator
from tmcontrol.io.io import IOBase
from tmcontrol.machines.backend import MachineBackend

logger = logging.getLogger(__name__)

VALIDATORS: Dict[Type[IOBase], Type[FTDIValidator]] = {FTDI: FTDIValidator}

cr: Optional[CaptureReader] = None


def _install_validator(owner, reader: CaptureReader):
  transport = owner.io
  if isinstance(transport, FTDIValidator):
    transport.cr = reader
    return
  validator_type = VALIDATORS.get(type(transport))
  if validator_type is None:
    raise RuntimeError(f"Cannot validate IO of transport {transport!r}")
  owner.io = validator_type(cr=reader, **transport.serialize())


def validate(capture_file: Union[str, Path]):
  """Swap the transport of every live backend for a validator replaying `capture_file`.

  Backends without a transport are skipped.

  Args:
    capture_file: a file written by `start_capture` / `stop_capture`.
  """

  if capturer.capture_active:
    raise RuntimeError("Cannot validate while capture is active")

  global cr
  cr = CaptureReader(path=capture_file)

  for backend in MachineBackend.get_all_instances():
    owner = backend.io_owner()
    if owner is None:
      logger.debug("%s does no IO, skipping", backend.__class__.__name__)
      continue
    _install_validator(owner, cr)

  cr.start()


def end_validation():
  """Check that the whole capture file was replayed."""
  if cr is None:
    raise RuntimeError("Validation not started")
  cr.done()
