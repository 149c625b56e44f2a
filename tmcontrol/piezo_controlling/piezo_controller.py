import dataclasses
import math

from tmcontrol.machines.machine import Machine, need_setup_finished
from tmcontrol.piezo_controlling.backend import PiezoControllerBackend
from tmcontrol.piezo_controlling.thorlabs.enums import VoltageLimit
from tmcontrol.piezo_controlling.thorlabs.records import (
  ActuatorStatus,
  HardwareInfo,
  OutputIOSettings,
  UIParameters,
)


class PiezoController(Machine):
  """Frontend for a single channel piezo controller.

  Example:
    >>> from tmcontrol.piezo_controlling import PiezoController, ThorlabsKPZ101Backend
    >>> async with PiezoController(backend=ThorlabsKPZ101Backend(serial="29252712")) as pc:
    ...   await pc.enable_output()
    ...   await pc.set_output_voltage(0.5)
  """

  def __init__(self, backend: PiezoControllerBackend):
    super().__init__(backend=backend)
    self.backend: PiezoControllerBackend = backend  # fix type

  @need_setup_finished
  async def identify(self):
    """Flash the display of the device."""
    await self.backend.identify()

  @need_setup_finished
  async def get_hardware_info(self) -> HardwareInfo:
    return await self.backend.get_hardware_info()

  @need_setup_finished
  async def enable_output(self):
    await self.backend.set_channel_enabled(True)

  @need_setup_finished
  async def disable_output(self):
    await self.backend.set_channel_enabled(False)

  @need_setup_finished
  async def is_output_enabled(self) -> bool:
    return await self.backend.get_channel_enabled()

  @need_setup_finished
  async def set_output_voltage(self, fraction: float):
    """Set the output voltage.

    Args:
      fraction: fraction of the voltage limit, -1.0 to 1.0.
    """
    if math.isnan(fraction) or not -1.0 <= fraction <= 1.0:
      raise ValueError(f"Voltage fraction must be between -1.0 and 1.0, got {fraction}")
    await self.backend.set_output_voltage(fraction)

  @need_setup_finished
  async def get_output_voltage(self) -> float:
    """The output voltage as a fraction of the voltage limit."""
    return await self.backend.get_output_voltage()

  @need_setup_finished
  async def set_output_volts(self, volts: float):
    """Set the output voltage in volts, relative to the voltage limit read from the device."""
    limit = (await self.backend.get_io_settings()).voltage_limit
    if limit is VoltageLimit.INVALID:
      raise RuntimeError("Device reports an unknown voltage limit")
    if not -limit.volts <= volts <= limit.volts:
      raise ValueError(f"{volts} V is outside the voltage limit of {limit.volts} V")
    await self.backend.set_output_voltage(volts / limit.volts)

  @need_setup_finished
  async def get_status(self) -> ActuatorStatus:
    return await self.backend.get_status()

  @need_setup_finished
  async def set_display_intensity(self, intensity: int):
    if intensity < 0:
      raise ValueError("Display intensity must not be negative")
    await self.backend.set_display_intensity(intensity)

  @need_setup_finished
  async def get_display_intensity(self) -> int:
    return await self.backend.get_display_intensity()

  @need_setup_finished
  async def set_voltage_limit(self, limit: VoltageLimit):
    """Set the maximum output voltage, keeping the other IO settings."""
    if VoltageLimit.from_value(limit) is VoltageLimit.INVALID:
      raise ValueError(f"Cannot set an invalid voltage limit: {limit!r}")
    settings = await self.backend.get_io_settings()
    await self.backend.set_io_settings(dataclasses.replace(settings, voltage_limit=limit))

  @need_setup_finished
  async def set_io_settings(self, settings: OutputIOSettings):
    await self.backend.set_io_settings(settings)

  @need_setup_finished
  async def get_io_settings(self) -> OutputIOSettings:
    return await self.backend.get_io_settings()

  @need_setup_finished
  async def set_ui_parameters(self, params: UIParameters):
    await self.backend.set_ui_parameters(params)

  @need_setup_finished
  async def get_ui_parameters(self) -> UIParameters:
    return await self.backend.get_ui_parameters()
