"""Thorlabs APT message framing.

Every message starts with a 6 byte header:
  [0-1]: opcode (little-endian)
  [2]:   param1, or payload length low byte
  [3]:   param2, or payload length high byte
  [4]:   destination, OR'ed with 0x80 when a payload follows
  [5]:   source

A payload, when present, starts at offset 6. Channel-addressed payloads begin with the two byte
channel identifier. Fields are little-endian and packed without gaps; unused payload bytes are
zero.

The codec packs into and unpacks from caller-owned buffers so that a session can reuse its
scratch buffers for every message.
"""

from __future__ import annotations

import struct
from typing import Any, Dict, Mapping, NamedTuple, Optional, Union

from .commands import CommandSpec
from .constants import (
  CHANNEL_IDENT,
  DEST_GENERIC_USB,
  HEADER_SIZE,
  PAYLOAD_FLAG,
  SOURCE_HOST,
)
from .helpers import decode_ascii, fits

Buffer = Union[bytearray, memoryview]

_HEADER = struct.Struct("<HBBBB")


class Header(NamedTuple):
  opcode: int
  param1: int
  param2: int
  destination: int
  source: int

  @property
  def has_payload(self) -> bool:
    return bool(self.destination & PAYLOAD_FLAG)

  @property
  def payload_length(self) -> int:
    return self.param1 | (self.param2 << 8) if self.has_payload else 0


def pack_header(
  buffer: Buffer,
  opcode: int,
  param1: int = 0,
  param2: int = 0,
  has_payload: bool = False,
  destination: int = DEST_GENERIC_USB,
  source: int = SOURCE_HOST,
):
  dest = destination | PAYLOAD_FLAG if has_payload else destination
  _HEADER.pack_into(buffer, 0, opcode, param1, param2, dest, source)


def parse_header(buffer: Buffer) -> Header:
  return Header(*_HEADER.unpack_from(buffer, 0))


def invalid_field(spec: CommandSpec, values: Mapping[str, Any]) -> Optional[str]:
  """Name of the first field whose value is missing or does not fit its wire type."""
  for f in spec.fields:
    if f.fmt.endswith("s"):
      continue
    if f.name not in values or not fits(f.fmt, values[f.name]):
      return f.name
  return None


def encode_request(
  spec: CommandSpec,
  buffer: Buffer,
  values: Optional[Mapping[str, Any]] = None,
  param2: int = 0,
) -> int:
  """Pack the request for `spec` into the start of `buffer`.

  Args:
    spec: the command to encode.
    buffer: destination, at least `spec.request_length` bytes long.
    values: payload field values by name, for requests with a payload.
    param2: header parameter byte 2, for header-only requests.

  Returns:
    The number of bytes to send.
  """
  if spec.has_payload:
    length = spec.payload_length
    pack_header(buffer, spec.opcode, length & 0xFF, (length >> 8) & 0xFF, has_payload=True)
    buffer[HEADER_SIZE : spec.request_length] = bytes(length)
    if spec.channel_prefixed:
      buffer[HEADER_SIZE : HEADER_SIZE + len(CHANNEL_IDENT)] = CHANNEL_IDENT
    values = values or {}
    for f in spec.fields:
      struct.pack_into("<" + f.fmt, buffer, f.offset, values[f.name])
  else:
    pack_header(buffer, spec.opcode, spec.param1, param2)
  return spec.request_length


def build_request(
  spec: CommandSpec, values: Optional[Mapping[str, Any]] = None, param2: int = 0
) -> bytes:
  """Encode a request into a new bytes object."""
  buffer = bytearray(spec.request_length)
  encode_request(spec, buffer, values, param2=param2)
  return bytes(buffer)


def decode_response(spec: CommandSpec, buffer: Buffer) -> Dict[str, Any]:
  """Unpack the fields of a complete `spec.response_length` byte response."""
  fields: Dict[str, Any] = {}
  for f in spec.fields:
    (value,) = struct.unpack_from("<" + f.fmt, buffer, f.offset)
    fields[f.name] = decode_ascii(value) if isinstance(value, bytes) else value
  return fields
