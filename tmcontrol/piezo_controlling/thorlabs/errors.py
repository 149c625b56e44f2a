"""Thorlabs APT error codes, their classification, and the matching exceptions.

The controller core reports every outcome as an integer. `0` is success. Negative values are
layered so that the failing step can be read off the number:

  raw code          open() / close() failures, passed through from libftdi
  -20 + raw         connect: reading the chip id failed
  -30 + raw         connect: setting the baud rate failed
  -40 + raw         connect: setting the line properties failed
  -49               connect: pre-flush sleep failed
  -50 + raw         connect: flushing failed
  -59               connect: post-flush sleep failed
  -60 + raw         connect: resetting the device failed
  -70 + raw         connect: setting flow control failed
  -80 + raw         connect: asserting RTS failed
  -100 + raw        writing a command failed
  -200 + raw        reading a response failed
  -300              the response had the wrong length
  -666              the device is unavailable (never offset)
  -700              sleeping before the channel-enable drain failed
  -980              a caller-supplied value is out of range
  -1000             an enumerator is invalid (caller-supplied or decoded)
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Type

logger = logging.getLogger(__name__)

SUCCESS = 0

CONNECT_CHIP_ID_OFFSET = -20
CONNECT_BAUDRATE_OFFSET = -30
CONNECT_LINE_PROPERTY_OFFSET = -40
CONNECT_PRE_FLUSH_SLEEP = -49
CONNECT_FLUSH_OFFSET = -50
CONNECT_POST_FLUSH_SLEEP = -59
CONNECT_RESET_OFFSET = -60
CONNECT_FLOW_CONTROL_OFFSET = -70
CONNECT_RTS_OFFSET = -80

WRITE_OFFSET = -100
READ_OFFSET = -200
LENGTH_MISMATCH = -300
DEVICE_UNAVAILABLE = -666
CHANNEL_ENABLE_SLEEP = -700
VALUE_OUT_OF_RANGE = -980
INVALID_ENUMERATOR = -1000


def offset(base: int, raw: int) -> int:
  """Layer a raw libftdi code onto a step's base code, keeping the unavailable sentinel as-is."""
  if raw == DEVICE_UNAVAILABLE:
    return raw
  return base + raw


class ErrorCategory(enum.Enum):
  SUCCESS = "success"
  TRANSPORT = "transport"
  PROTOCOL = "protocol"
  VALIDATION = "validation"
  UNAVAILABLE = "unavailable"
  TIMING = "timing"


def classify(code: int) -> ErrorCategory:
  if code == SUCCESS:
    return ErrorCategory.SUCCESS
  if code == DEVICE_UNAVAILABLE:
    return ErrorCategory.UNAVAILABLE
  if code == LENGTH_MISMATCH:
    return ErrorCategory.PROTOCOL
  if code in (VALUE_OUT_OF_RANGE, INVALID_ENUMERATOR):
    return ErrorCategory.VALIDATION
  if code in (CONNECT_PRE_FLUSH_SLEEP, CONNECT_POST_FLUSH_SLEEP, CHANNEL_ENABLE_SLEEP):
    return ErrorCategory.TIMING
  if code > 0:
    raise ValueError(f"{code} is not an error code")
  return ErrorCategory.TRANSPORT


_CONNECT_STEPS = [
  (CONNECT_RTS_OFFSET, "connect: set RTS"),
  (CONNECT_FLOW_CONTROL_OFFSET, "connect: set flow control"),
  (CONNECT_RESET_OFFSET, "connect: reset device"),
  (CONNECT_FLUSH_OFFSET, "connect: flush"),
  (CONNECT_LINE_PROPERTY_OFFSET, "connect: set line property"),
  (CONNECT_BAUDRATE_OFFSET, "connect: set baud rate"),
  (CONNECT_CHIP_ID_OFFSET, "connect: read chip id"),
]


def failed_step(code: int) -> Optional[str]:
  """Name the step a code points to, or `None` for success.

  Offset codes are attributed by decade. libftdi codes are small negative numbers, so a raw code
  of -10 or below makes the attribution ambiguous.
  """
  fixed = {
    SUCCESS: None,
    DEVICE_UNAVAILABLE: "device unavailable",
    LENGTH_MISMATCH: "response length",
    CHANNEL_ENABLE_SLEEP: "channel enable: sleep",
    VALUE_OUT_OF_RANGE: "value range check",
    INVALID_ENUMERATOR: "enumerator check",
    CONNECT_PRE_FLUSH_SLEEP: "connect: pre-flush sleep",
    CONNECT_POST_FLUSH_SLEEP: "connect: post-flush sleep",
  }
  if code in fixed:
    return fixed[code]
  if code <= READ_OFFSET:
    return "read response"
  if code <= WRITE_OFFSET:
    return "write command"
  for base, name in _CONNECT_STEPS:
    if code < base:
      return name
  return "open/close"


class TMCError(Exception):
  """Base class for errors reported by a Thorlabs motion controller session.

  Attributes:
    code: the layered integer code the core reported.
  """

  category = ErrorCategory.TRANSPORT

  def __init__(self, message: str, code: int):
    super().__init__(f"{message} [{code}]")
    self.code = code

  @property
  def step(self) -> Optional[str]:
    return failed_step(self.code)


class TransportError(TMCError):
  """The USB-serial bridge reported an error."""


class ProtocolError(TMCError):
  """The device answered with a response of the wrong length."""

  category = ErrorCategory.PROTOCOL


class ValidationError(TMCError):
  """A value was outside the command's legal domain."""

  category = ErrorCategory.VALIDATION


class UnavailableError(TransportError):
  """The device is physically gone."""

  category = ErrorCategory.UNAVAILABLE


class TimingError(TMCError):
  """A delay did not complete."""

  category = ErrorCategory.TIMING


_ERROR_TYPES: Dict[ErrorCategory, Type[TMCError]] = {
  ErrorCategory.TRANSPORT: TransportError,
  ErrorCategory.PROTOCOL: ProtocolError,
  ErrorCategory.VALIDATION: ValidationError,
  ErrorCategory.UNAVAILABLE: UnavailableError,
  ErrorCategory.TIMING: TimingError,
}


def error_from_code(code: int, message: str) -> TMCError:
  """Build the exception for a nonzero code."""
  category = classify(code)
  if category is ErrorCategory.SUCCESS:
    raise ValueError("0 is not an error code")
  return _ERROR_TYPES[category](message, code)


class ErrorReporter(ABC):
  """Formats and emits error messages on behalf of a session.

  The session calls `transport_error` when a transport call failed and `other_error` for everything
  else. Implement both to route messages elsewhere.
  """

  @abstractmethod
  def transport_error(self, source: str, message: str, code: int):
    pass

  @abstractmethod
  def other_error(self, source: str, message: str):
    pass


class LoggingErrorReporter(ErrorReporter):
  def transport_error(self, source: str, message: str, code: int):
    logger.error("%s: %s [%d]", source, message, code)

  def other_error(self, source: str, message: str):
    logger.error("%s: %s", source, message)


class SilentErrorReporter(ErrorReporter):
  def transport_error(self, source: str, message: str, code: int):
    pass

  def other_error(self, source: str, message: str):
    pass
