import dataclasses
import logging
from typing import Optional

from tmcontrol import CONFIG
from tmcontrol.io.io import IOBase
from tmcontrol.piezo_controlling.backend import PiezoControllerBackend
from tmcontrol.piezo_controlling.thorlabs.constants import DEFAULT_PRODUCT_ID, DEFAULT_VENDOR_ID
from tmcontrol.piezo_controlling.thorlabs.enums import ChannelEnableState
from tmcontrol.piezo_controlling.thorlabs.errors import ErrorReporter, error_from_code
from tmcontrol.piezo_controlling.thorlabs.kpz101 import KPZ101Controller
from tmcontrol.piezo_controlling.thorlabs.records import (
  ActuatorStatus,
  HardwareInfo,
  OutputIOSettings,
  UIParameters,
)
from tmcontrol.piezo_controlling.thorlabs.session import ConnectionConfig

logger = logging.getLogger(__name__)


class ThorlabsKPZ101Backend(PiezoControllerBackend):
  """Backend for the Thorlabs KPZ101 K-Cube and TPZ001 T-Cube piezo drivers.

  Timing parameters that are not given are taken from the `connection` section of the package
  config. Every nonzero result code of the controller is raised as the matching `TMCError`.
  """

  def __init__(
    self,
    serial: str = "",
    vendor: int = DEFAULT_VENDOR_ID,
    product: int = DEFAULT_PRODUCT_ID,
    baudrate: Optional[int] = None,
    pre_flush_sleep: Optional[int] = None,
    post_flush_sleep: Optional[int] = None,
    channel_enable_sleep: Optional[int] = None,
    response_timeout: Optional[int] = None,
    io: Optional[IOBase] = None,
    error_reporter: Optional[ErrorReporter] = None,
  ):
    super().__init__()
    overrides = {
      "baudrate": baudrate,
      "pre_flush_sleep": pre_flush_sleep,
      "post_flush_sleep": post_flush_sleep,
      "channel_enable_sleep": channel_enable_sleep,
      "response_timeout": response_timeout,
    }
    self.config = dataclasses.replace(
      ConnectionConfig.from_config(
        CONFIG.connection, vendor=vendor, product=product, serial=serial
      ),
      **{k: v for k, v in overrides.items() if v is not None},
    )
    self.controller = KPZ101Controller(config=self.config, io=io, error_reporter=error_reporter)
    self.hardware_info: Optional[HardwareInfo] = None

  @staticmethod
  def _check(rv: int, what: str):
    if rv != 0:
      raise error_from_code(rv, f"Unable to {what}")

  async def setup(self):
    self._check(await self.controller.connect(), "connect")
    rv, self.hardware_info = await self.controller.get_hardware_info()
    self._check(rv, "read hardware info")
    logger.info(
      "Connected to %s, serial %s, firmware %s",
      self.hardware_info.model_number,
      self.hardware_info.serial_number,
      self.hardware_info.firmware_version,
    )

  async def stop(self):
    self._check(await self.controller.close(), "close")
    self.hardware_info = None

  def io_owner(self) -> KPZ101Controller:
    return self.controller

  def serialize(self) -> dict:
    return {
      **super().serialize(),
      "serial": self.config.serial,
      "vendor": self.config.vendor,
      "product": self.config.product,
      "baudrate": self.config.baudrate,
      "pre_flush_sleep": self.config.pre_flush_sleep,
      "post_flush_sleep": self.config.post_flush_sleep,
      "channel_enable_sleep": self.config.channel_enable_sleep,
      "response_timeout": self.config.response_timeout,
    }

  async def identify(self):
    self._check(await self.controller.identify(), "identify")

  async def stop_update_messages(self):
    self._check(await self.controller.stop_update_messages(), "stop update messages")

  async def get_hardware_info(self) -> HardwareInfo:
    rv, info = await self.controller.get_hardware_info()
    self._check(rv, "read hardware info")
    assert info is not None
    return info

  async def set_channel_enabled(self, enabled: bool):
    state = ChannelEnableState.ENABLED if enabled else ChannelEnableState.DISABLED
    self._check(await self.controller.set_channel_enable_state(state), "set channel enable state")

  async def get_channel_enabled(self) -> bool:
    rv, state = await self.controller.get_channel_enable_state()
    self._check(rv, "read channel enable state")
    return state is ChannelEnableState.ENABLED

  async def set_output_voltage(self, fraction: float):
    self._check(await self.controller.set_output_voltage(fraction), "set output voltage")

  async def get_output_voltage(self) -> float:
    rv, fraction = await self.controller.get_output_voltage()
    self._check(rv, "read output voltage")
    assert fraction is not None
    return fraction

  async def get_status(self) -> ActuatorStatus:
    rv, status = await self.controller.get_status()
    self._check(rv, "read status")
    assert status is not None
    return status

  async def set_display_intensity(self, intensity: int):
    self._check(await self.controller.set_display_intensity(intensity), "set display intensity")

  async def get_display_intensity(self) -> int:
    rv, intensity = await self.controller.get_display_intensity()
    self._check(rv, "read display intensity")
    assert intensity is not None
    return intensity

  async def set_io_settings(self, settings: OutputIOSettings):
    self._check(await self.controller.set_io_settings(settings), "set IO settings")

  async def get_io_settings(self) -> OutputIOSettings:
    rv, settings = await self.controller.get_io_settings()
    self._check(rv, "read IO settings")
    assert settings is not None
    return settings

  async def set_ui_parameters(self, params: UIParameters):
    self._check(await self.controller.set_ui_parameters(params), "set UI parameters")

  async def get_ui_parameters(self) -> UIParameters:
    rv, params = await self.controller.get_ui_parameters()
    self._check(rv, "read UI parameters")
    assert params is not None
    return params
