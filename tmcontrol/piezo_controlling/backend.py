from abc import ABCMeta, abstractmethod

from tmcontrol.machines.backend import MachineBackend
from tmcontrol.piezo_controlling.thorlabs.records import (
  ActuatorStatus,
  HardwareInfo,
  OutputIOSettings,
  UIParameters,
)


class PiezoControllerBackend(MachineBackend, metaclass=ABCMeta):
  """Abstract base class for single channel piezo controller backends.

  Voltages are fractions of the configured voltage limit, -1.0 to 1.0. Backends raise on any
  device or validation failure.
  """

  @abstractmethod
  async def identify(self):
    """Make the device identify itself, usually by flashing its display."""

  @abstractmethod
  async def get_hardware_info(self) -> HardwareInfo:
    pass

  @abstractmethod
  async def set_channel_enabled(self, enabled: bool):
    pass

  @abstractmethod
  async def get_channel_enabled(self) -> bool:
    pass

  @abstractmethod
  async def set_output_voltage(self, fraction: float):
    pass

  @abstractmethod
  async def get_output_voltage(self) -> float:
    pass

  @abstractmethod
  async def get_status(self) -> ActuatorStatus:
    pass

  @abstractmethod
  async def set_display_intensity(self, intensity: int):
    pass

  @abstractmethod
  async def get_display_intensity(self) -> int:
    pass

  @abstractmethod
  async def set_io_settings(self, settings: OutputIOSettings):
    pass

  @abstractmethod
  async def get_io_settings(self) -> OutputIOSettings:
    pass

  @abstractmethod
  async def set_ui_parameters(self, params: UIParameters):
    pass

  @abstractmethod
  async def get_ui_parameters(self) -> UIParameters:
    pass
