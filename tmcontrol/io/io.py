from abc import ABC, abstractmethod
from typing import Tuple


class IOBase(ABC):
  """Byte channel to a device behind a USB-serial bridge.

  Every method reports the outcome of the underlying bridge call the way libftdi does: `0` (or a
  byte count for `read`/`write`) on success, a negative raw error code on failure. Callers decide
  how to classify those codes.
  """

  @abstractmethod
  async def open(self, vendor: int, product: int, serial: str) -> int:
    """Find the device by USB ids and serial number and open it."""

  @abstractmethod
  async def close(self) -> int:
    pass

  @abstractmethod
  async def write(self, data: bytes) -> int:
    """Write `data`. Returns the number of bytes written."""

  @abstractmethod
  async def read(self, buffer: memoryview) -> int:
    """Read at most `len(buffer)` bytes into `buffer`.

    Returns the number of bytes read. `0` means no data arrived before the bridge's read timeout.
    """

  @abstractmethod
  async def read_chip_id(self) -> Tuple[int, int]:
    """Returns `(code, chip_id)`."""

  @abstractmethod
  async def set_baudrate(self, baudrate: int) -> int:
    pass

  @abstractmethod
  async def set_line_property(self, bits: int, stopbits: int, parity: int) -> int:
    pass

  @abstractmethod
  async def tcioflush(self) -> int:
    """Flush both the receive and the transmit buffer."""

  @abstractmethod
  async def usb_reset(self) -> int:
    pass

  @abstractmethod
  async def set_flowctrl(self, flowctrl: int) -> int:
    pass

  @abstractmethod
  async def set_rts(self, level: bool) -> int:
    pass

  @abstractmethod
  async def sleep(self, duration_ms: int) -> int:
    """Sleep for `duration_ms` milliseconds. Returns nonzero if the delay did not complete."""

  def serialize(self) -> dict:
    return {}
