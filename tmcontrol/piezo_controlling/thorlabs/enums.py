"""Thorlabs APT enumerations with an explicit INVALID member for unknown wire values."""

import enum
from typing import Any, Type, TypeVar

_E = TypeVar("_E", bound="WireEnum")


class WireEnum(enum.IntEnum):
  """An enumeration carried in a wire field. Unknown values map to `INVALID` (-1)."""

  @classmethod
  def from_wire(cls: Type[_E], value: int) -> _E:
    try:
      member = cls(value)
    except ValueError:
      return cls(-1)
    return member

  @classmethod
  def from_value(cls: Type[_E], value: Any) -> _E:
    """Like `from_wire` for caller-supplied values: anything but a member or a plain int, bools
    included, is `INVALID`."""
    if isinstance(value, cls):
      return value
    if isinstance(value, bool) or not isinstance(value, int):
      return cls(-1)
    return cls.from_wire(value)


class ChannelEnableState(WireEnum):
  """Channel enable state as sent in MGMSG_MOD_SET_CHANENABLESTATE."""

  INVALID = -1
  ENABLED = 0x01
  DISABLED = 0x02


class VoltageLimit(WireEnum):
  """Maximum output voltage of a TPZ/KPZ piezo driver."""

  INVALID = -1
  V75 = 1
  V100 = 2
  V150 = 3

  @property
  def volts(self) -> int:
    return {VoltageLimit.V75: 75, VoltageLimit.V100: 100, VoltageLimit.V150: 150}.get(self, 0)


class ConnectionState(enum.Enum):
  CLOSED = "closed"
  OPENED = "opened"
  CONNECTED = "connected"
