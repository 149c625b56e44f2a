"""Typed records decoded from Thorlabs APT responses.

Records are plain values created fresh for every call. They never reference the session's
receive buffer.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .constants import (
  STATUS_ACTUATOR_CONNECTED,
  STATUS_POSITION_CONTROL_MODE,
  STATUS_STRAIN_GAUGE_CONNECTED,
  STATUS_ZEROED,
  STATUS_ZEROING,
)
from .enums import VoltageLimit
from .helpers import decode_bits, decode_voltage, encode_bits

STATUS_MASKS = {
  "connected": STATUS_ACTUATOR_CONNECTED,
  "zeroed": STATUS_ZEROED,
  "zeroing": STATUS_ZEROING,
  "sg_connected": STATUS_STRAIN_GAUGE_CONNECTED,
  "pc_mode": STATUS_POSITION_CONTROL_MODE,
}


@dataclass
class HardwareInfo:
  """Hardware information returned by MGMSG_HW_GET_INFO."""

  serial_number: int = 0
  model_number: str = ""
  type: int = 0
  fw_minor: int = 0
  fw_interim: int = 0
  fw_major: int = 0
  hw_version: int = 0
  hw_mod_state: int = 0
  channel_count: int = 0

  @property
  def firmware_version(self) -> str:
    return f"{self.fw_major}.{self.fw_interim}.{self.fw_minor}"

  def __str__(self) -> str:
    return (
      "Connected to: \n"
      f"      Model: {self.model_number}\n"
      f"       Type: {self.type}\n"
      f"    Ser Num: {self.serial_number}\n"
      f"     HW Ver: {self.hw_version}\n"
      f"     HW Mod: {self.hw_mod_state}\n"
      f"   Num. Ch.: {self.channel_count}\n"
      f"   F/W Ver.: {self.firmware_version}\n"
    )


@dataclass
class ActuatorStatus:
  """Piezo status returned by MGMSG_PZ_GET_PZSTATUSUPDATE.

  Attributes:
    voltage: output voltage, -32768 to 32767 for -100% to 100% of the voltage limit.
    position: actuator position, 0 to 32767 for 0 to 100% of the travel.
    connected: whether the actuator is connected.
    zeroed: whether the actuator has been zeroed.
    zeroing: whether the actuator is being zeroed.
    sg_connected: whether a strain gauge is connected.
    pc_mode: position control mode, `False` for open loop and `True` for closed loop.
    status_time: `time.time()` when the status was decoded.
  """

  voltage: int = 0
  position: int = 0
  connected: bool = False
  zeroed: bool = False
  zeroing: bool = False
  sg_connected: bool = False
  pc_mode: bool = False
  status_time: float = field(default_factory=time.time)

  @classmethod
  def from_status_bits(cls, voltage: int, position: int, status_bits: int) -> "ActuatorStatus":
    return cls(voltage=voltage, position=position, **decode_bits(status_bits, STATUS_MASKS))

  @property
  def status_bits(self) -> int:
    return encode_bits({name: getattr(self, name) for name in STATUS_MASKS}, STATUS_MASKS)

  @property
  def voltage_fraction(self) -> float:
    return decode_voltage(self.voltage)

  def age(self) -> float:
    """Seconds since this status was decoded."""
    return time.time() - self.status_time

  def __str__(self) -> str:
    return (
      "PZ Status: \n"
      f"    Voltage: {self.voltage}\n"
      f"   Position: {self.position}\n"
      f"  Connected: {int(self.connected)}\n"
      f"     Zeroed: {int(self.zeroed)}\n"
      f"    Zeroing: {int(self.zeroing)}\n"
      f"   SG Conn.: {int(self.sg_connected)}\n"
      f"  P.C. Mode: {int(self.pc_mode)}\n"
      f"        Age: {self.age():.3f} sec\n"
    )


@dataclass
class OutputIOSettings:
  """Output voltage limit and hub analog input routing (MGMSG_PZ_*_TPZ_IOSETTINGS)."""

  voltage_limit: VoltageLimit = VoltageLimit.V75
  hub_analog_input: int = 1

  def __post_init__(self):
    self.voltage_limit = VoltageLimit.from_value(self.voltage_limit)

  def __str__(self) -> str:
    return (
      "IO Settings: \n"
      f"  Volt. Limit: {VoltageLimit.from_value(self.voltage_limit).volts} V\n"
      f"  Hub Analog In: {self.hub_analog_input}\n"
    )


@dataclass
class UIParameters:
  """K-Cube top panel and joystick settings (MGMSG_PZ_*_KPCUBEMMIPARAMS)."""

  js_mode: int = 1
  js_volt_gearbox: int = 1
  js_volt_step: int = 0
  dir_sense: int = 0
  preset_volt1: int = 0
  preset_volt2: int = 0
  disp_brightness: int = 0
  disp_timeout: int = 0
  disp_dim_level: int = 0

  def __str__(self) -> str:
    return (
      "UI Params: \n"
      f"      JS Mode: {self.js_mode}\n"
      f"  JS Gear Box: {self.js_volt_gearbox}\n"
      f"      JS Step: {self.js_volt_step}\n"
      f"    Dir Sense: {self.dir_sense}\n"
      f"     Preset 1: {self.preset_volt1}\n"
      f"     Preset 2: {self.preset_volt2}\n"
      f"   Brightness: {self.disp_brightness}\n"
      f"      Timeout: {self.disp_timeout}\n"
      f"    Dim Level: {self.disp_dim_level}\n"
    )
