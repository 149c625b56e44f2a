"""The Thorlabs APT command catalog.

Each supported message is described once by a `CommandSpec`: its opcode, fixed request and
response lengths, and the offsets of its fields. The codec in `protocol.py` and the session's
`write_fixed` / `read_fixed` helpers are driven entirely by these descriptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .constants import (
  CHANNEL_1,
  HEADER_SIZE,
  MGMSG_HW_REQ_INFO,
  MGMSG_HW_STOP_UPDATEMSGS,
  MGMSG_MOD_IDENTIFY,
  MGMSG_MOD_REQ_CHANENABLESTATE,
  MGMSG_MOD_SET_CHANENABLESTATE,
  MGMSG_PZ_REQ_KPCUBEMMIPARAMS,
  MGMSG_PZ_REQ_OUTPUTVOLTS,
  MGMSG_PZ_REQ_PZSTATUSUPDATE,
  MGMSG_PZ_REQ_TPZ_DISPSETTINGS,
  MGMSG_PZ_REQ_TPZ_IOSETTINGS,
  MGMSG_PZ_SET_KPCUBEMMIPARAMS,
  MGMSG_PZ_SET_OUTPUTVOLTS,
  MGMSG_PZ_SET_TPZ_DISPSETTINGS,
  MGMSG_PZ_SET_TPZ_IOSETTINGS,
)
from .helpers import struct_size


@dataclass(frozen=True)
class FieldSpec:
  """A little-endian field at a fixed byte offset of a message.

  `fmt` is a struct format without byte order, e.g. "H", "i" or "8s".
  """

  name: str
  offset: int
  fmt: str

  @property
  def size(self) -> int:
    return struct_size(self.fmt)


@dataclass(frozen=True)
class CommandSpec:
  """A fixed-layout APT message.

  Attributes:
    name: the APT message name, used in logs and error messages.
    opcode: the 16 bit message id.
    request_length: total bytes sent. Longer than the header means a payload follows.
    response_length: bytes expected back. `None` for fire-and-forget commands, `0` to drain and
      discard whatever the device sends.
    fields: payload fields for requests with a payload, response fields otherwise.
    param1: header parameter byte 1 of header-only requests.
    channel_prefixed: whether the payload starts with the channel identifier.
  """

  name: str
  opcode: int
  request_length: int = HEADER_SIZE
  response_length: Optional[int] = None
  fields: Tuple[FieldSpec, ...] = ()
  param1: int = 0
  channel_prefixed: bool = False

  def __post_init__(self):
    if self.request_length < HEADER_SIZE:
      raise ValueError(f"{self.name}: request shorter than the header")
    first = HEADER_SIZE + (2 if self.channel_prefixed else 0)
    end = self.request_length if self.has_payload else (self.response_length or 0)
    for f in self.fields:
      if f.offset < (first if self.has_payload else 0) or f.offset + f.size > end:
        raise ValueError(f"{self.name}: field {f.name} does not fit in the message")

  @property
  def has_payload(self) -> bool:
    return self.request_length > HEADER_SIZE

  @property
  def payload_length(self) -> int:
    return self.request_length - HEADER_SIZE

  @property
  def expects_response(self) -> bool:
    return self.response_length is not None


HWINFO_FIELDS = (
  FieldSpec("serial_number", 6, "I"),
  FieldSpec("model_number", 10, "8s"),
  FieldSpec("type", 18, "H"),
  FieldSpec("fw_minor", 20, "B"),
  FieldSpec("fw_interim", 21, "B"),
  FieldSpec("fw_major", 22, "B"),
  FieldSpec("hw_version", 84, "H"),
  FieldSpec("hw_mod_state", 86, "H"),
  FieldSpec("channel_count", 88, "H"),
)

STATUS_FIELDS = (
  FieldSpec("voltage", 8, "h"),
  FieldSpec("position", 10, "h"),
  FieldSpec("status_bits", 12, "I"),
)

VOLTAGE_FIELDS = (FieldSpec("voltage", 8, "h"),)

DISPLAY_FIELDS = (FieldSpec("intensity", 6, "H"),)

IO_FIELDS = (
  FieldSpec("voltage_limit", 8, "H"),
  FieldSpec("hub_analog_input", 10, "H"),
)

UI_FIELDS = (
  FieldSpec("js_mode", 8, "H"),
  FieldSpec("js_volt_gearbox", 10, "H"),
  FieldSpec("js_volt_step", 12, "i"),
  FieldSpec("dir_sense", 16, "H"),
  FieldSpec("preset_volt1", 18, "i"),
  FieldSpec("preset_volt2", 22, "i"),
  FieldSpec("disp_brightness", 26, "H"),
  FieldSpec("disp_timeout", 28, "H"),
  FieldSpec("disp_dim_level", 30, "H"),
)

MOD_IDENTIFY = CommandSpec("MGMSG_MOD_IDENTIFY", MGMSG_MOD_IDENTIFY)

HW_STOP_UPDATEMSGS = CommandSpec("MGMSG_HW_STOP_UPDATEMSGS", MGMSG_HW_STOP_UPDATEMSGS)

HW_REQ_INFO = CommandSpec(
  "MGMSG_HW_REQ_INFO", MGMSG_HW_REQ_INFO, response_length=90, fields=HWINFO_FIELDS
)

# the device may send a late, undocumented acknowledgement, drained with a zero length response
MOD_SET_CHANENABLESTATE = CommandSpec(
  "MGMSG_MOD_SET_CHANENABLESTATE",
  MGMSG_MOD_SET_CHANENABLESTATE,
  response_length=0,
  param1=CHANNEL_1,
)

MOD_REQ_CHANENABLESTATE = CommandSpec(
  "MGMSG_MOD_REQ_CHANENABLESTATE",
  MGMSG_MOD_REQ_CHANENABLESTATE,
  response_length=6,
  fields=(FieldSpec("state", 3, "B"),),
  param1=CHANNEL_1,
)

PZ_SET_OUTPUTVOLTS = CommandSpec(
  "MGMSG_PZ_SET_OUTPUTVOLTS",
  MGMSG_PZ_SET_OUTPUTVOLTS,
  request_length=10,
  fields=VOLTAGE_FIELDS,
  channel_prefixed=True,
)

PZ_REQ_OUTPUTVOLTS = CommandSpec(
  "MGMSG_PZ_REQ_OUTPUTVOLTS",
  MGMSG_PZ_REQ_OUTPUTVOLTS,
  response_length=10,
  fields=VOLTAGE_FIELDS,
  param1=CHANNEL_1,
)

PZ_REQ_PZSTATUSUPDATE = CommandSpec(
  "MGMSG_PZ_REQ_PZSTATUSUPDATE",
  MGMSG_PZ_REQ_PZSTATUSUPDATE,
  response_length=16,
  fields=STATUS_FIELDS,
  param1=CHANNEL_1,
)

PZ_SET_TPZ_DISPSETTINGS = CommandSpec(
  "MGMSG_PZ_SET_TPZ_DISPSETTINGS",
  MGMSG_PZ_SET_TPZ_DISPSETTINGS,
  request_length=8,
  fields=DISPLAY_FIELDS,
)

PZ_REQ_TPZ_DISPSETTINGS = CommandSpec(
  "MGMSG_PZ_REQ_TPZ_DISPSETTINGS",
  MGMSG_PZ_REQ_TPZ_DISPSETTINGS,
  response_length=8,
  fields=DISPLAY_FIELDS,
  param1=CHANNEL_1,
)

PZ_SET_TPZ_IOSETTINGS = CommandSpec(
  "MGMSG_PZ_SET_TPZ_IOSETTINGS",
  MGMSG_PZ_SET_TPZ_IOSETTINGS,
  request_length=16,
  fields=IO_FIELDS,
  channel_prefixed=True,
)

PZ_REQ_TPZ_IOSETTINGS = CommandSpec(
  "MGMSG_PZ_REQ_TPZ_IOSETTINGS",
  MGMSG_PZ_REQ_TPZ_IOSETTINGS,
  response_length=16,
  fields=IO_FIELDS,
  param1=CHANNEL_1,
)

PZ_SET_KPCUBEMMIPARAMS = CommandSpec(
  "MGMSG_PZ_SET_KPCUBEMMIPARAMS",
  MGMSG_PZ_SET_KPCUBEMMIPARAMS,
  request_length=40,
  fields=UI_FIELDS,
  channel_prefixed=True,
)

PZ_REQ_KPCUBEMMIPARAMS = CommandSpec(
  "MGMSG_PZ_REQ_KPCUBEMMIPARAMS",
  MGMSG_PZ_REQ_KPCUBEMMIPARAMS,
  response_length=40,
  fields=UI_FIELDS,
  param1=CHANNEL_1,
)

CATALOG: Dict[int, CommandSpec] = {
  spec.opcode: spec
  for spec in (
    MOD_IDENTIFY,
    HW_STOP_UPDATEMSGS,
    HW_REQ_INFO,
    MOD_SET_CHANENABLESTATE,
    MOD_REQ_CHANENABLESTATE,
    PZ_SET_OUTPUTVOLTS,
    PZ_REQ_OUTPUTVOLTS,
    PZ_REQ_PZSTATUSUPDATE,
    PZ_SET_TPZ_DISPSETTINGS,
    PZ_REQ_TPZ_DISPSETTINGS,
    PZ_SET_TPZ_IOSETTINGS,
    PZ_REQ_TPZ_IOSETTINGS,
    PZ_SET_KPCUBEMMIPARAMS,
    PZ_REQ_KPCUBEMMIPARAMS,
  )
}
