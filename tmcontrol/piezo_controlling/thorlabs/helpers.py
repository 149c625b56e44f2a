"""Scaling, range checking and bitfield helpers for Thorlabs APT fields."""

from __future__ import annotations

import math
import struct
from typing import Dict, Optional

from .constants import VOLTAGE_FULL_SCALE_NEGATIVE, VOLTAGE_FULL_SCALE_POSITIVE

_INT_RANGES = {
  "B": (0, 0xFF),
  "H": (0, 0xFFFF),
  "h": (-0x8000, 0x7FFF),
  "I": (0, 0xFFFFFFFF),
  "i": (-0x80000000, 0x7FFFFFFF),
}


def encode_voltage(fraction: float) -> Optional[int]:
  """Encode a fraction of the maximum output voltage as a signed 16 bit wire value.

  Full scale is asymmetric: positive values scale by 32767, zero and negative values by 32768.

  Returns:
    The wire value, or `None` if `fraction` is outside [-1.0, 1.0].
  """
  if math.isnan(fraction) or abs(fraction) > 1.0:
    return None
  if fraction > 0:
    return round(fraction * VOLTAGE_FULL_SCALE_POSITIVE)
  return round(fraction * VOLTAGE_FULL_SCALE_NEGATIVE)


def decode_voltage(raw: int) -> float:
  """Inverse of `encode_voltage`."""
  if raw > 0:
    return raw / float(VOLTAGE_FULL_SCALE_POSITIVE)
  return raw / float(VOLTAGE_FULL_SCALE_NEGATIVE)


def fits(fmt: str, value: int) -> bool:
  """Whether `value` can be packed with the single-integer struct format `fmt`."""
  code = fmt.lstrip("<>=!@")
  if code not in _INT_RANGES:
    raise ValueError(f"Not an integer format: {fmt}")
  lo, hi = _INT_RANGES[code]
  return isinstance(value, int) and lo <= value <= hi


def decode_bits(value: int, masks: Dict[str, int]) -> Dict[str, bool]:
  """Split a bitfield into named flags."""
  return {name: bool(value & mask) for name, mask in masks.items()}


def encode_bits(flags: Dict[str, bool], masks: Dict[str, int]) -> int:
  value = 0
  for name, is_set in flags.items():
    if is_set:
      value |= masks[name]
  return value


def decode_ascii(raw: bytes) -> str:
  """Decode a fixed-width, NUL-terminated ASCII field, dropping trailing blanks."""
  return raw.split(b"\x00", 1)[0].decode("ascii", errors="replace").rstrip()


def struct_size(fmt: str) -> int:
  return struct.calcsize("<" + fmt.lstrip("<>=!@"))
