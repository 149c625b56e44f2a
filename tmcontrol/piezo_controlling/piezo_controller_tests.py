import contextlib
import io
import unittest

from tmcontrol.piezo_controlling import (
  PiezoController,
  PiezoControllerChatterboxBackend,
  ThorlabsKPZ101Backend,
)
from tmcontrol.piezo_controlling.thorlabs.enums import VoltageLimit
from tmcontrol.piezo_controlling.thorlabs.mock_tests import MockFTDI
from tmcontrol.piezo_controlling.thorlabs.protocol_tests import hardware_info_fixture
from tmcontrol.piezo_controlling.thorlabs.records import OutputIOSettings


class TestPiezoController(unittest.IsolatedAsyncioTestCase):
  async def asyncSetUp(self):
    self.backend = PiezoControllerChatterboxBackend()
    self.pc = PiezoController(backend=self.backend)
    with contextlib.redirect_stdout(io.StringIO()):
      await self.pc.setup()

  async def asyncTearDown(self):
    if self.pc.setup_finished:
      with contextlib.redirect_stdout(io.StringIO()):
        await self.pc.stop()

  async def test_needs_setup(self):
    pc = PiezoController(backend=PiezoControllerChatterboxBackend())
    with self.assertRaises(RuntimeError):
      await pc.enable_output()

  async def test_output(self):
    with contextlib.redirect_stdout(io.StringIO()) as out:
      await self.pc.enable_output()
      self.assertTrue(await self.pc.is_output_enabled())
      await self.pc.set_output_voltage(0.25)
      self.assertEqual(await self.pc.get_output_voltage(), 0.25)
      await self.pc.disable_output()
      self.assertFalse(await self.pc.is_output_enabled())
    self.assertIn("Enabling the output channel.", out.getvalue())

  async def test_voltage_range(self):
    with self.assertRaises(ValueError):
      await self.pc.set_output_voltage(1.5)
    with self.assertRaises(ValueError):
      await self.pc.set_output_voltage(float("nan"))

  async def test_output_volts(self):
    with contextlib.redirect_stdout(io.StringIO()):
      await self.pc.set_voltage_limit(VoltageLimit.V100)
      await self.pc.set_output_volts(25)
      self.assertEqual(await self.pc.get_output_voltage(), 0.25)
      with self.assertRaises(ValueError):
        await self.pc.set_output_volts(120)

  async def test_voltage_limit(self):
    with contextlib.redirect_stdout(io.StringIO()):
      await self.pc.set_io_settings(OutputIOSettings(hub_analog_input=3))
      await self.pc.set_voltage_limit(VoltageLimit.V150)
      settings = await self.pc.get_io_settings()
    self.assertEqual(
      settings, OutputIOSettings(voltage_limit=VoltageLimit.V150, hub_analog_input=3)
    )
    with self.assertRaises(ValueError):
      await self.pc.set_voltage_limit(VoltageLimit.INVALID)
    with self.assertRaises(ValueError):
      await self.pc.set_voltage_limit(True)

  async def test_io_settings_with_plain_int_limit(self):
    with contextlib.redirect_stdout(io.StringIO()) as out:
      await self.pc.set_io_settings(OutputIOSettings(voltage_limit=3))
      settings = await self.pc.get_io_settings()
    self.assertIn("150 V", out.getvalue())
    self.assertIs(settings.voltage_limit, VoltageLimit.V150)

  async def test_display_intensity(self):
    with self.assertRaises(ValueError):
      await self.pc.set_display_intensity(-1)
    with contextlib.redirect_stdout(io.StringIO()):
      await self.pc.set_display_intensity(30)
      self.assertEqual(await self.pc.get_display_intensity(), 30)

  async def test_context_manager(self):
    pc = PiezoController(backend=PiezoControllerChatterboxBackend())
    with contextlib.redirect_stdout(io.StringIO()):
      async with pc:
        self.assertTrue(pc.setup_finished)
    self.assertFalse(pc.setup_finished)

  def test_serialize(self):
    self.assertEqual(
      self.pc.serialize(),
      {"type": "PiezoController", "backend": {"type": "PiezoControllerChatterboxBackend"}},
    )
    pc = PiezoController.deserialize(self.pc.serialize())
    self.assertIsInstance(pc.backend, PiezoControllerChatterboxBackend)


class TestPiezoControllerKPZ101(unittest.IsolatedAsyncioTestCase):
  async def test_status(self):
    mock = MockFTDI()
    mock.queue_read(hardware_info_fixture())
    async with PiezoController(backend=ThorlabsKPZ101Backend(io=mock)) as pc:
      mock.queue_read(bytes(8) + bytes([0x00, 0x40, 0x00, 0x00, 0x01, 0x00, 0x00, 0x00]))
      status = await pc.get_status()
    self.assertTrue(status.connected)
    self.assertEqual(status.voltage, 0x4000)
    self.assertEqual(mock.actions[-1], "close")
