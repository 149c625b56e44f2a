import struct
import unittest

from tmcontrol.machines.backend import MachineBackend
from tmcontrol.piezo_controlling.thorlabs.enums import VoltageLimit
from tmcontrol.piezo_controlling.thorlabs.errors import (
  ProtocolError,
  TransportError,
  ValidationError,
)
from tmcontrol.piezo_controlling.thorlabs.kpz101_backend import ThorlabsKPZ101Backend
from tmcontrol.piezo_controlling.thorlabs.mock_tests import MockFTDI
from tmcontrol.piezo_controlling.thorlabs.protocol_tests import hardware_info_fixture


class TestThorlabsKPZ101Backend(unittest.IsolatedAsyncioTestCase):
  async def asyncSetUp(self):
    self.io = MockFTDI()
    self.backend = ThorlabsKPZ101Backend(serial="29252712", io=self.io)
    self.io.queue_read(hardware_info_fixture())
    await self.backend.setup()
    self.io.calls.clear()

  async def test_setup_reads_hardware_info(self):
    assert self.backend.hardware_info is not None
    self.assertEqual(self.backend.hardware_info.model_number, "KPZ101")
    self.assertTrue(self.backend.controller.connected)

  async def test_stop(self):
    await self.backend.stop()
    self.assertFalse(self.backend.controller.opened)
    self.assertIsNone(self.backend.hardware_info)

  async def test_setup_failure_raises(self):
    io = MockFTDI()
    io.fail("set_rts", -3)
    backend = ThorlabsKPZ101Backend(io=io)
    with self.assertRaises(TransportError) as ctx:
      await backend.setup()
    self.assertEqual(ctx.exception.code, -83)

  async def test_output_voltage(self):
    await self.backend.set_output_voltage(0.5)
    self.assertEqual(self.io.written[-1][8:10], struct.pack("<h", 16384))
    self.io.queue_read(struct.pack("<8xh", 16384))
    self.assertAlmostEqual(await self.backend.get_output_voltage(), 16384 / 32767)

  async def test_out_of_range_raises_validation_error(self):
    with self.assertRaises(ValidationError) as ctx:
      await self.backend.set_output_voltage(1.5)
    self.assertEqual(ctx.exception.code, -980)

  async def test_short_response_raises_protocol_error(self):
    self.io.queue_read(bytes(10))
    with self.assertRaises(ProtocolError):
      await self.backend.get_status()

  async def test_channel_enabled(self):
    await self.backend.set_channel_enabled(True)
    self.assertEqual(self.io.written[-1], bytes.fromhex("100201015001"))
    self.io.queue_read(bytes([0x11, 0x02, 0x01, 0x02, 0x01, 0x50]))
    self.assertFalse(await self.backend.get_channel_enabled())

  async def test_io_settings(self):
    self.io.queue_read(struct.pack("<8xHH4x", 3, 1))
    settings = await self.backend.get_io_settings()
    self.assertIs(settings.voltage_limit, VoltageLimit.V150)

  async def test_serialize(self):
    self.assertEqual(
      self.backend.serialize(),
      {
        "type": "ThorlabsKPZ101Backend",
        "serial": "29252712",
        "vendor": 0x0403,
        "product": 0xFAF0,
        "baudrate": 115200,
        "pre_flush_sleep": 50,
        "post_flush_sleep": 50,
        "channel_enable_sleep": 100,
        "response_timeout": 1000,
      },
    )

  def test_deserialize(self):
    data = self.backend.serialize()
    data["channel_enable_sleep"] = 200
    backend = MachineBackend.deserialize(data)
    assert isinstance(backend, ThorlabsKPZ101Backend)
    self.assertEqual(backend.config.serial, "29252712")
    self.assertEqual(backend.config.channel_enable_sleep, 200)
