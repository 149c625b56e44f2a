"""Connection lifecycle and message IO for a Thorlabs APT controller behind an FTDI bridge.

Error handling: every method returns an int. `0` is success, negative values are the layered codes
documented in `errors.py`. Nothing here raises for device or transport failures.

Not thread safe, and not safe to share between concurrently running tasks: the scratch buffers,
the state and the transport belong to one session. Serialize access externally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from tmcontrol.config import Config
from tmcontrol.io.ftdi import FTDI
from tmcontrol.io.io import IOBase

from . import errors
from .commands import CommandSpec
from .constants import (
  BUFFER_SIZE,
  DEFAULT_BAUDRATE,
  DEFAULT_CHANNEL_ENABLE_SLEEP,
  DEFAULT_POST_FLUSH_SLEEP,
  DEFAULT_PRE_FLUSH_SLEEP,
  DEFAULT_PRODUCT_ID,
  DEFAULT_RESPONSE_TIMEOUT,
  DEFAULT_VENDOR_ID,
  LINE_BITS_8,
  LINE_PARITY_NONE,
  LINE_STOP_BIT_1,
  READ_POLL_INTERVAL,
  SIO_RTS_CTS_HS,
)
from .enums import ConnectionState
from .errors import ErrorReporter, LoggingErrorReporter, SilentErrorReporter
from .protocol import decode_response, encode_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionConfig:
  """Identification and timing parameters of a session. Sleeps are in milliseconds.

  Attributes:
    vendor: USB vendor id.
    product: USB product id.
    serial: USB serial number. Empty opens the first matching device.
    baudrate: serial baud rate.
    pre_flush_sleep: sleep before flushing during `connect`.
    post_flush_sleep: sleep after flushing during `connect`.
    channel_enable_sleep: sleep after changing the channel enable state, before draining the
      device's late acknowledgement.
    response_timeout: how long a response may take to arrive completely.
  """

  vendor: int = DEFAULT_VENDOR_ID
  product: int = DEFAULT_PRODUCT_ID
  serial: str = ""
  baudrate: int = DEFAULT_BAUDRATE
  pre_flush_sleep: int = DEFAULT_PRE_FLUSH_SLEEP
  post_flush_sleep: int = DEFAULT_POST_FLUSH_SLEEP
  channel_enable_sleep: int = DEFAULT_CHANNEL_ENABLE_SLEEP
  response_timeout: int = DEFAULT_RESPONSE_TIMEOUT

  @classmethod
  def from_config(
    cls,
    connection: Config.Connection,
    vendor: int = DEFAULT_VENDOR_ID,
    product: int = DEFAULT_PRODUCT_ID,
    serial: str = "",
  ) -> "ConnectionConfig":
    return cls(
      vendor=vendor,
      product=product,
      serial=serial,
      baudrate=connection.baudrate,
      pre_flush_sleep=connection.pre_flush_sleep,
      post_flush_sleep=connection.post_flush_sleep,
      channel_enable_sleep=connection.channel_enable_sleep,
      response_timeout=connection.response_timeout,
    )

  def serialize(self) -> dict:
    return {
      "vendor": self.vendor,
      "product": self.product,
      "serial": self.serial,
      "baudrate": self.baudrate,
      "pre_flush_sleep": self.pre_flush_sleep,
      "post_flush_sleep": self.post_flush_sleep,
      "channel_enable_sleep": self.channel_enable_sleep,
      "response_timeout": self.response_timeout,
    }


class APTSession:
  """Open/connect/close state machine plus fixed-length message IO.

  Attributes:
    io: the transport.
    config: identification and timing parameters. Immutable, so they cannot change while the
      session is connected.
  """

  def __init__(
    self,
    config: Optional[ConnectionConfig] = None,
    io: Optional[IOBase] = None,
    error_reporter: Optional[ErrorReporter] = None,
    report_errors: bool = True,
  ):
    self.config = config or ConnectionConfig()
    self.io: IOBase = io if io is not None else FTDI(device_id=self.config.serial or None)
    if not report_errors:
      self.reporter: ErrorReporter = SilentErrorReporter()
    else:
      self.reporter = error_reporter or LoggingErrorReporter()

    self._state = ConnectionState.CLOSED
    self._chip_id: Optional[int] = None

    self._sndbuf = bytearray(BUFFER_SIZE)
    self._rdbuf = bytearray(BUFFER_SIZE)
    self._rdlen = 0

  @property
  def state(self) -> ConnectionState:
    return self._state

  @property
  def opened(self) -> bool:
    return self._state is not ConnectionState.CLOSED

  @property
  def connected(self) -> bool:
    return self._state is ConnectionState.CONNECTED

  @property
  def chip_id(self) -> Optional[int]:
    """The FTDI chip id, read during `connect`. `None` unless connected."""
    return self._chip_id if self.connected else None

  async def open(self) -> int:
    """Find the device by vendor, product and serial number and open it.

    Returns:
      0 on success or if already open, otherwise the transport's raw code.
    """
    if self.opened:
      return errors.SUCCESS

    rv = await self.io.open(self.config.vendor, self.config.product, self.config.serial)
    if rv < 0:
      self.reporter.transport_error("open", "unable to open ftdi device", rv)
      return rv

    self._state = ConnectionState.OPENED
    logger.debug("opened %04x:%04x %s", self.config.vendor, self.config.product, self.config.serial)
    return errors.SUCCESS

  async def close(self) -> int:
    """Close the device.

    Returns:
      0 on success (including when not open), otherwise the transport's raw code. After a failed
      close the session state is not reliable.
    """
    if not self.opened:
      return errors.SUCCESS

    rv = await self.io.close()
    if rv < 0:
      self.reporter.transport_error("close", "unable to close device", rv)
      return rv

    self._state = ConnectionState.CLOSED
    self._chip_id = None
    logger.debug("closed")
    return errors.SUCCESS

  async def connect(self) -> int:
    """Open the device if needed, then configure the bridge for APT communication.

    Steps, in order: read the chip id, set the baud rate, set the line to 8N1, sleep, flush, sleep,
    reset the device, enable RTS/CTS flow control, assert RTS. The first failing step ends the
    sequence and the session stays merely open.

    Returns:
      0 on success, otherwise the raw `open` code or the layered code of the failing step.
    """
    if not self.opened:
      rv = await self.open()
      if rv < 0:
        self.reporter.other_error("connect", "open failed")
        return rv

    # a repeated connect must not report CONNECTED while the sequence is running
    self._state = ConnectionState.OPENED
    io = self.io

    rv, chip_id = await io.read_chip_id()
    if rv < 0:
      self.reporter.transport_error("connect", "unable to read chip id", rv)
      return errors.offset(errors.CONNECT_CHIP_ID_OFFSET, rv)

    rv = await io.set_baudrate(self.config.baudrate)
    if rv < 0:
      self.reporter.transport_error("connect", "unable to set baud rate", rv)
      return errors.offset(errors.CONNECT_BAUDRATE_OFFSET, rv)

    rv = await io.set_line_property(LINE_BITS_8, LINE_STOP_BIT_1, LINE_PARITY_NONE)
    if rv < 0:
      self.reporter.transport_error("connect", "unable to set line property", rv)
      return errors.offset(errors.CONNECT_LINE_PROPERTY_OFFSET, rv)

    if await io.sleep(self.config.pre_flush_sleep) != 0:
      self.reporter.other_error("connect", "pre-flush sleep did not complete")
      return errors.CONNECT_PRE_FLUSH_SLEEP

    rv = await io.tcioflush()
    if rv < 0:
      self.reporter.transport_error("connect", "unable to tcio flush", rv)
      return errors.offset(errors.CONNECT_FLUSH_OFFSET, rv)

    if await io.sleep(self.config.post_flush_sleep) != 0:
      self.reporter.other_error("connect", "post-flush sleep did not complete")
      return errors.CONNECT_POST_FLUSH_SLEEP

    rv = await io.usb_reset()
    if rv < 0:
      self.reporter.transport_error("connect", "unable to reset device", rv)
      return errors.offset(errors.CONNECT_RESET_OFFSET, rv)

    rv = await io.set_flowctrl(SIO_RTS_CTS_HS)
    if rv < 0:
      self.reporter.transport_error("connect", "unable to set flow control", rv)
      return errors.offset(errors.CONNECT_FLOW_CONTROL_OFFSET, rv)

    rv = await io.set_rts(True)
    if rv < 0:
      self.reporter.transport_error("connect", "unable to set RTS", rv)
      return errors.offset(errors.CONNECT_RTS_OFFSET, rv)

    self._chip_id = chip_id
    self._state = ConnectionState.CONNECTED
    logger.info("connected, chip id 0x%08x", chip_id)
    return errors.SUCCESS

  async def ensure_connected(self, source: str) -> int:
    """Connect once if not connected yet. A failure is returned as-is, without retrying."""
    if self.connected:
      return errors.SUCCESS
    rv = await self.connect()
    if rv < 0:
      self.reporter.other_error(source, "connect failed")
    return rv

  async def write_fixed(
    self,
    spec: CommandSpec,
    values: Optional[Mapping[str, Any]] = None,
    param2: int = 0,
  ) -> int:
    """Encode `spec` into the send buffer and write it.

    Returns:
      0 on success, -100 + raw on a write failure, or -666 if the device is unavailable.
    """
    length = encode_request(spec, self._sndbuf, values, param2=param2)
    rv = await self.io.write(memoryview(self._sndbuf)[:length])
    if rv < 0:
      self.reporter.transport_error(spec.name, "unable to write data", rv)
      return errors.offset(errors.WRITE_OFFSET, rv)
    return errors.SUCCESS

  async def read_fixed(self, spec: CommandSpec) -> int:
    """Read the fixed-length response of `spec` into the receive buffer.

    Reads into the tail of the buffer until the expected byte count is reached, a read fails, or
    `config.response_timeout` ms of polling pass without the response completing. A read returning
    no data means nothing has arrived yet; the session sleeps `READ_POLL_INTERVAL` ms and reads
    again. A zero expected length reads once and discards the result.

    Returns:
      0 on success, -200 + raw on a read failure, -666 if the device is unavailable, or -300 if the
      response did not have the expected length.
    """
    expected = spec.response_length or 0
    self._rdlen = 0
    view = memoryview(self._rdbuf)

    if expected == 0:
      rv = await self.io.read(view)
      if rv < 0:
        self.reporter.transport_error(spec.name, "unable to read data", rv)
        return errors.offset(errors.READ_OFFSET, rv)
      if rv > 0:
        logger.debug("%s: drained %d bytes", spec.name, rv)
      return errors.SUCCESS

    total = 0
    waited = 0
    while total < expected:
      rv = await self.io.read(view[total:])
      if rv < 0:
        self.reporter.transport_error(spec.name, "unable to read data", rv)
        return errors.offset(errors.READ_OFFSET, rv)
      if rv > 0:
        total += rv
        continue
      if waited >= self.config.response_timeout:
        break
      if await self.io.sleep(READ_POLL_INTERVAL) != 0:
        break
      waited += READ_POLL_INTERVAL

    if total != expected:
      self.reporter.other_error(spec.name, f"did not read correct amount of data, got {total}")
      return errors.LENGTH_MISMATCH

    self._rdlen = total
    return errors.SUCCESS

  def decode(self, spec: CommandSpec) -> Dict[str, Any]:
    """Decode the fields of the last complete response."""
    if self._rdlen != spec.response_length:
      raise RuntimeError(f"No complete {spec.name} response to decode")
    return decode_response(spec, memoryview(self._rdbuf)[: self._rdlen])

  async def request(
    self, spec: CommandSpec, values: Optional[Mapping[str, Any]] = None, param2: int = 0
  ) -> int:
    """Connect if needed, write `spec` and, if it has one, read its response."""
    rv = await self.ensure_connected(spec.name)
    if rv < 0:
      return rv
    rv = await self.write_fixed(spec, values, param2=param2)
    if rv < 0:
      return rv
    if spec.expects_response and spec.response_length:
      return await self.read_fixed(spec)
    return errors.SUCCESS

  async def __aenter__(self):
    rv = await self.connect()
    if rv < 0:
      raise errors.error_from_code(rv, "Unable to connect")
    return self

  async def __aexit__(self, exc_type, exc_value, traceback):
    await self.close()

  def serialize(self) -> dict:
    return {"config": self.config.serialize(), "io": self.io.serialize()}
