"""APT command set of the Thorlabs KPZ101 K-Cube (and TPZ001 T-Cube) piezo driver.

Page numbers refer to issue 37 of the APT communications protocol manual. Every method connects
first if the session is not connected, and returns the layered codes of `errors.py`; queries return
`(code, value)` tuples where `value` is `None` unless something was decoded.
"""

from __future__ import annotations

import dataclasses
from typing import Optional, Tuple, Union

from . import commands, errors
from .enums import ChannelEnableState, VoltageLimit
from .helpers import decode_voltage, encode_voltage
from .protocol import invalid_field
from .records import ActuatorStatus, HardwareInfo, OutputIOSettings, UIParameters
from .session import APTSession


class KPZ101Controller(APTSession):
  """Host side of the APT protocol for a single channel piezo driver."""

  async def identify(self) -> int:
    """Flash the front panel LEDs (MGMSG_MOD_IDENTIFY, p. 46)."""
    return await self.request(commands.MOD_IDENTIFY)

  async def stop_update_messages(self) -> int:
    """Stop automatic status updates from the controller (MGMSG_HW_STOP_UPDATEMSGS, p. 51)."""
    return await self.request(commands.HW_STOP_UPDATEMSGS)

  async def get_hardware_info(self) -> Tuple[int, Optional[HardwareInfo]]:
    """MGMSG_HW_REQ_INFO, p. 52."""
    rv = await self.request(commands.HW_REQ_INFO)
    if rv < 0:
      return rv, None
    return errors.SUCCESS, HardwareInfo(**self.decode(commands.HW_REQ_INFO))

  async def set_channel_enable_state(self, state: Union[ChannelEnableState, int]) -> int:
    """Enable or disable the output channel (MGMSG_MOD_SET_CHANENABLESTATE, p. 47).

    The device may answer with an undocumented acknowledgement some time later. After the write
    this sleeps for `config.channel_enable_sleep` ms and drains whatever arrived, unvalidated.
    """
    state = ChannelEnableState.from_value(state)
    if state is ChannelEnableState.INVALID:
      self.reporter.other_error(commands.MOD_SET_CHANENABLESTATE.name, "invalid enable state")
      return errors.INVALID_ENUMERATOR

    spec = commands.MOD_SET_CHANENABLESTATE
    rv = await self.ensure_connected(spec.name)
    if rv < 0:
      return rv
    rv = await self.write_fixed(spec, param2=int(state))
    if rv < 0:
      return rv

    if await self.io.sleep(self.config.channel_enable_sleep) != 0:
      self.reporter.other_error(spec.name, "sleep before drain did not complete")
      return errors.CHANNEL_ENABLE_SLEEP

    return await self.read_fixed(spec)

  async def enable_channel(self) -> int:
    return await self.set_channel_enable_state(ChannelEnableState.ENABLED)

  async def disable_channel(self) -> int:
    return await self.set_channel_enable_state(ChannelEnableState.DISABLED)

  async def get_channel_enable_state(self) -> Tuple[int, Optional[ChannelEnableState]]:
    """MGMSG_MOD_REQ_CHANENABLESTATE, p. 48.

    An unknown state byte decodes to `ChannelEnableState.INVALID` and returns -1000.
    """
    spec = commands.MOD_REQ_CHANENABLESTATE
    rv = await self.request(spec)
    if rv < 0:
      return rv, None
    state = ChannelEnableState.from_wire(self.decode(spec)["state"])
    if state is ChannelEnableState.INVALID:
      self.reporter.other_error(spec.name, "device sent an invalid enable state")
      return errors.INVALID_ENUMERATOR, state
    return errors.SUCCESS, state

  async def set_output_voltage(self, fraction: float) -> int:
    """Set the output voltage as a fraction of the voltage limit, -1.0 to 1.0
    (MGMSG_PZ_SET_OUTPUTVOLTS, p. 193)."""
    spec = commands.PZ_SET_OUTPUTVOLTS
    raw = encode_voltage(fraction)
    if raw is None:
      self.reporter.other_error(spec.name, f"voltage {fraction} outside [-1, 1]")
      return errors.VALUE_OUT_OF_RANGE
    return await self.request(spec, {"voltage": raw})

  async def get_output_voltage(self) -> Tuple[int, Optional[float]]:
    """The output voltage as a fraction of the voltage limit (MGMSG_PZ_REQ_OUTPUTVOLTS, p. 194)."""
    spec = commands.PZ_REQ_OUTPUTVOLTS
    rv = await self.request(spec)
    if rv < 0:
      return rv, None
    return errors.SUCCESS, decode_voltage(self.decode(spec)["voltage"])

  async def get_status(self) -> Tuple[int, Optional[ActuatorStatus]]:
    """MGMSG_PZ_REQ_PZSTATUSUPDATE, p. 205."""
    spec = commands.PZ_REQ_PZSTATUSUPDATE
    rv = await self.request(spec)
    if rv < 0:
      return rv, None
    return errors.SUCCESS, ActuatorStatus.from_status_bits(**self.decode(spec))

  async def set_display_intensity(self, intensity: int) -> int:
    """Front panel display intensity (MGMSG_PZ_SET_TPZ_DISPSETTINGS, p. 223).

    The manual allows 0 to 255; tested devices accept a narrower range.
    """
    spec = commands.PZ_SET_TPZ_DISPSETTINGS
    values = {"intensity": intensity}
    if invalid_field(spec, values) is not None:
      self.reporter.other_error(spec.name, f"intensity {intensity} out of range")
      return errors.VALUE_OUT_OF_RANGE
    return await self.request(spec, values)

  async def get_display_intensity(self) -> Tuple[int, Optional[int]]:
    """MGMSG_PZ_REQ_TPZ_DISPSETTINGS, p. 223."""
    spec = commands.PZ_REQ_TPZ_DISPSETTINGS
    rv = await self.request(spec)
    if rv < 0:
      return rv, None
    return errors.SUCCESS, self.decode(spec)["intensity"]

  async def set_io_settings(self, settings: OutputIOSettings) -> int:
    """Voltage limit and hub analog input routing (MGMSG_PZ_SET_TPZ_IOSETTINGS, p. 226)."""
    spec = commands.PZ_SET_TPZ_IOSETTINGS
    limit = VoltageLimit.from_value(settings.voltage_limit)
    if limit is VoltageLimit.INVALID:
      self.reporter.other_error(spec.name, "invalid voltage limit")
      return errors.INVALID_ENUMERATOR
    values = {
      "voltage_limit": int(limit),
      "hub_analog_input": settings.hub_analog_input,
    }
    field = invalid_field(spec, values)
    if field is not None:
      self.reporter.other_error(spec.name, f"{field} out of range")
      return errors.VALUE_OUT_OF_RANGE
    return await self.request(spec, values)

  async def get_io_settings(self) -> Tuple[int, Optional[OutputIOSettings]]:
    """MGMSG_PZ_REQ_TPZ_IOSETTINGS, p. 227.

    An unknown voltage limit decodes to `VoltageLimit.INVALID` and returns -1000.
    """
    spec = commands.PZ_REQ_TPZ_IOSETTINGS
    rv = await self.request(spec)
    if rv < 0:
      return rv, None
    fields = self.decode(spec)
    settings = OutputIOSettings(
      voltage_limit=VoltageLimit.from_wire(fields["voltage_limit"]),
      hub_analog_input=fields["hub_analog_input"],
    )
    if settings.voltage_limit is VoltageLimit.INVALID:
      self.reporter.other_error(spec.name, "device sent an invalid voltage limit")
      return errors.INVALID_ENUMERATOR, settings
    return errors.SUCCESS, settings

  async def set_ui_parameters(self, params: UIParameters) -> int:
    """Joystick and display settings of the K-Cube (MGMSG_PZ_SET_KPCUBEMMIPARAMS, p. 233)."""
    spec = commands.PZ_SET_KPCUBEMMIPARAMS
    values = dataclasses.asdict(params)
    field = invalid_field(spec, values)
    if field is not None:
      self.reporter.other_error(spec.name, f"{field} out of range")
      return errors.VALUE_OUT_OF_RANGE
    return await self.request(spec, values)

  async def get_ui_parameters(self) -> Tuple[int, Optional[UIParameters]]:
    """MGMSG_PZ_REQ_KPCUBEMMIPARAMS, p. 234."""
    spec = commands.PZ_REQ_KPCUBEMMIPARAMS
    rv = await self.request(spec)
    if rv < 0:
      return rv, None
    return errors.SUCCESS, UIParameters(**self.decode(spec))
