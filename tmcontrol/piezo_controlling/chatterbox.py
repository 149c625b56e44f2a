import dataclasses

from tmcontrol.piezo_controlling.backend import PiezoControllerBackend
from tmcontrol.piezo_controlling.thorlabs.helpers import encode_voltage
from tmcontrol.piezo_controlling.thorlabs.records import (
  ActuatorStatus,
  HardwareInfo,
  OutputIOSettings,
  UIParameters,
)


class PiezoControllerChatterboxBackend(PiezoControllerBackend):
  """Chatter box backend for device-free testing. Prints out all operations."""

  def __init__(self):
    super().__init__()
    self._enabled = False
    self._voltage = 0.0
    self._intensity = 60
    self._io_settings = OutputIOSettings()
    self._ui_parameters = UIParameters()

  async def setup(self):
    print("Setting up the piezo controller.")

  async def stop(self):
    print("Stopping the piezo controller.")

  async def identify(self):
    print("Identifying the piezo controller.")

  async def get_hardware_info(self) -> HardwareInfo:
    print("Getting hardware info.")
    return HardwareInfo(model_number="CHATTER", channel_count=1)

  async def set_channel_enabled(self, enabled: bool):
    print(f"{'Enabling' if enabled else 'Disabling'} the output channel.")
    self._enabled = enabled

  async def get_channel_enabled(self) -> bool:
    print("Getting the channel enable state.")
    return self._enabled

  async def set_output_voltage(self, fraction: float):
    print(f"Setting the output voltage to {fraction:.4f} of the limit.")
    self._voltage = fraction

  async def get_output_voltage(self) -> float:
    print("Getting the output voltage.")
    return self._voltage

  async def get_status(self) -> ActuatorStatus:
    print("Getting the piezo status.")
    return ActuatorStatus(voltage=encode_voltage(self._voltage) or 0, connected=True)

  async def set_display_intensity(self, intensity: int):
    print(f"Setting the display intensity to {intensity}.")
    self._intensity = intensity

  async def get_display_intensity(self) -> int:
    print("Getting the display intensity.")
    return self._intensity

  async def set_io_settings(self, settings: OutputIOSettings):
    self._io_settings = dataclasses.replace(settings)
    print(f"Setting the voltage limit to {self._io_settings.voltage_limit.volts} V.")

  async def get_io_settings(self) -> OutputIOSettings:
    print("Getting the IO settings.")
    return dataclasses.replace(self._io_settings)

  async def set_ui_parameters(self, params: UIParameters):
    print("Setting the UI parameters.")
    self._ui_parameters = dataclasses.replace(params)

  async def get_ui_parameters(self) -> UIParameters:
    print("Getting the UI parameters.")
    return dataclasses.replace(self._ui_parameters)
