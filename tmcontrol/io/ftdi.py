import asyncio
import ctypes
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Tuple

try:
  from pylibftdi import USB_PID_LIST, USB_VID_LIST, Device, FtdiError

  HAS_PYLIBFTDI = True
except ImportError as e:
  HAS_PYLIBFTDI = False
  _FTDI_IMPORT_ERROR = e

from tmcontrol.io.capture import (
  CaptureReader,
  Command,
  capturer,
  get_capture_or_validation_active,
)
from tmcontrol.io.errors import ValidationError
from tmcontrol.io.io import IOBase
from tmcontrol.io.validation_utils import LOG_LEVEL_IO, align_sequences

logger = logging.getLogger(__name__)

# libftdi has no error code for failures that only surface as a pylibftdi exception message
FTDI_UNKNOWN_ERROR = -1


def _error_code(error: Exception) -> int:
  """Extract the libftdi return value pylibftdi embeds in its exception messages ("msg (-3)")."""
  match = re.search(r"\((-?\d+)\)", str(error))
  if match is None:
    return FTDI_UNKNOWN_ERROR
  return int(match.group(1))


class FTDICommand(Command):
  def __init__(self, device_id: str, action: str, data: str = "", result: int = 0):
    super().__init__(module="ftdi", device_id=device_id, action=action, data=data, result=result)


class FTDI(IOBase):
  """Thin wrapper around pylibftdi returning raw libftdi codes, with IO logging and capture.

  The libftdi calls block, so they run on a single worker thread.
  """

  def __init__(self, device_id: Optional[str] = None):
    self._dev: Optional["Device"] = None
    self._device_id = device_id or "None"  # for io
    self._executor: Optional[ThreadPoolExecutor] = None
    if get_capture_or_validation_active():
      raise RuntimeError("Cannot create a new FTDI object while capture or validation is active")

  async def _run(self, fn: Callable[[], int]) -> int:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(self._executor, fn)

  def _record(self, action: str, data: str, result: int):
    logger.log(LOG_LEVEL_IO, "[%s] %s %s -> %s", self._device_id, action, data, result)
    capturer.record(FTDICommand(device_id=self._device_id, action=action, data=data, result=result))

  async def open(self, vendor: int, product: int, serial: str) -> int:
    if not HAS_PYLIBFTDI:
      raise RuntimeError(f"pylibftdi not installed. Import error: {_FTDI_IMPORT_ERROR}")

    # pylibftdi only searches the ids in these lists
    if vendor not in USB_VID_LIST:
      USB_VID_LIST.append(vendor)
    if product not in USB_PID_LIST:
      USB_PID_LIST.append(product)

    if self._executor is None:
      self._executor = ThreadPoolExecutor(max_workers=1)
    self._dev = Device(device_id=serial or None, lazy_open=True)

    def _open() -> int:
      assert self._dev is not None
      try:
        self._dev.open()
      except FtdiError as e:
        logger.debug("[%s] open failed: %s", self._device_id, e)
        return _error_code(e)
      return 0

    rv = await self._run(_open)
    self._record("open", f"{vendor:04x},{product:04x},{serial}", rv)
    return rv

  async def close(self) -> int:
    if self._dev is None:
      return 0

    def _close() -> int:
      assert self._dev is not None
      try:
        self._dev.close()
      except FtdiError as e:
        return _error_code(e)
      return 0

    rv = await self._run(_close)
    self._record("close", "", rv)
    if rv == 0:
      self._dev = None
      if self._executor is not None:
        self._executor.shutdown(wait=True)
        self._executor = None
    return rv

  @property
  def _fn(self):
    if self._dev is None:
      raise RuntimeError("FTDI device is not open. Call open() first.")
    return self._dev.ftdi_fn

  async def write(self, data: bytes) -> int:
    """Write data to the device. Returns the number of bytes written."""
    payload = bytes(data)
    fn = self._fn
    rv = await self._run(lambda: fn.ftdi_write_data(payload, len(payload)))
    self._record("write", payload.hex(), rv)
    return rv

  async def read(self, buffer: memoryview) -> int:
    fn = self._fn
    size = len(buffer)
    c_buf = (ctypes.c_ubyte * size).from_buffer(buffer)
    rv = await self._run(lambda: fn.ftdi_read_data(c_buf, size))
    self._record("read", bytes(buffer[:rv]).hex() if rv > 0 else "", rv)
    return rv

  async def read_chip_id(self) -> Tuple[int, int]:
    fn = self._fn
    chip_id = ctypes.c_uint(0)
    rv = await self._run(lambda: fn.ftdi_read_chipid(ctypes.byref(chip_id)))
    self._record("read_chip_id", str(chip_id.value), rv)
    return rv, chip_id.value

  async def set_baudrate(self, baudrate: int) -> int:
    fn = self._fn
    rv = await self._run(lambda: fn.ftdi_set_baudrate(baudrate))
    self._record("set_baudrate", str(baudrate), rv)
    return rv

  async def set_line_property(self, bits: int, stopbits: int, parity: int) -> int:
    fn = self._fn
    rv = await self._run(lambda: fn.ftdi_set_line_property(bits, stopbits, parity))
    self._record("set_line_property", f"{bits},{stopbits},{parity}", rv)
    return rv

  async def tcioflush(self) -> int:
    fn = self._fn
    rv = await self._run(lambda: fn.ftdi_tcioflush())
    self._record("tcioflush", "", rv)
    return rv

  async def usb_reset(self) -> int:
    fn = self._fn
    rv = await self._run(lambda: fn.ftdi_usb_reset())
    self._record("usb_reset", "", rv)
    return rv

  async def set_flowctrl(self, flowctrl: int) -> int:
    fn = self._fn
    rv = await self._run(lambda: fn.ftdi_setflowctrl(flowctrl))
    self._record("set_flowctrl", str(flowctrl), rv)
    return rv

  async def set_rts(self, level: bool) -> int:
    fn = self._fn
    rv = await self._run(lambda: fn.ftdi_setrts(int(level)))
    self._record("set_rts", str(level), rv)
    return rv

  async def sleep(self, duration_ms: int) -> int:
    await asyncio.sleep(duration_ms / 1000)
    return 0

  def serialize(self) -> dict:
    return {"device_id": self._device_id}


class FTDIValidator(FTDI):
  """Replays a capture file instead of talking to a device.

  Configuration calls and writes are checked against the recorded commands; reads return the
  recorded bytes. Every call returns the recorded raw code.
  """

  def __init__(self, cr: CaptureReader, device_id: str):
    super().__init__(device_id=device_id)
    self.cr = cr

  def _next(self, action: str, data: Optional[str] = None) -> FTDICommand:
    next_command = FTDICommand(**{k: v for k, v in self.cr.next_command().items() if k != "module"})
    if not (next_command.device_id == self._device_id and next_command.action == action):
      raise ValidationError(
        f"Next line is {next_command}, expected FTDI {action} {self._device_id}"
      )
    if data is not None and next_command.data != data:
      if action == "write":
        align_sequences(expected=next_command.data, actual=data)
        raise ValidationError("Data mismatch: difference was written to stdout.")
      raise ValidationError(f"Next line is {next_command}, expected FTDI {action} {data}")
    return next_command

  async def open(self, vendor: int, product: int, serial: str) -> int:
    return self._next("open", f"{vendor:04x},{product:04x},{serial}").result

  async def close(self) -> int:
    return self._next("close").result

  async def write(self, data: bytes) -> int:
    return self._next("write", bytes(data).hex()).result

  async def read(self, buffer: memoryview) -> int:
    next_command = self._next("read")
    data = bytes.fromhex(next_command.data)
    if len(data) > len(buffer):
      raise ValidationError(
        f"Recorded read of {len(data)} bytes does not fit in a buffer of {len(buffer)} bytes"
      )
    buffer[: len(data)] = data
    return next_command.result

  async def read_chip_id(self) -> Tuple[int, int]:
    next_command = self._next("read_chip_id")
    return next_command.result, int(next_command.data)

  async def set_baudrate(self, baudrate: int) -> int:
    return self._next("set_baudrate", str(baudrate)).result

  async def set_line_property(self, bits: int, stopbits: int, parity: int) -> int:
    return self._next("set_line_property", f"{bits},{stopbits},{parity}").result

  async def tcioflush(self) -> int:
    return self._next("tcioflush").result

  async def usb_reset(self) -> int:
    return self._next("usb_reset").result

  async def set_flowctrl(self, flowctrl: int) -> int:
    return self._next("set_flowctrl", str(flowctrl)).result

  async def set_rts(self, level: bool) -> int:
    return self._next("set_rts", str(level)).result

  async def sleep(self, duration_ms: int) -> int:
    return 0
