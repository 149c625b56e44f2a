import math
import struct
import unittest

from tmcontrol.piezo_controlling.thorlabs.enums import ChannelEnableState, VoltageLimit
from tmcontrol.piezo_controlling.thorlabs.kpz101 import KPZ101Controller
from tmcontrol.piezo_controlling.thorlabs.mock_tests import MockFTDI
from tmcontrol.piezo_controlling.thorlabs.protocol_tests import hardware_info_fixture
from tmcontrol.piezo_controlling.thorlabs.records import OutputIOSettings, UIParameters
from tmcontrol.piezo_controlling.thorlabs.session import ConnectionConfig


def response(length: int, fmt: str = "", *values, offset: int = 8) -> bytes:
  buf = bytearray(length)
  if fmt:
    struct.pack_into("<" + fmt, buf, offset, *values)
  return bytes(buf)


class KPZ101TestCase(unittest.IsolatedAsyncioTestCase):
  async def asyncSetUp(self):
    self.io = MockFTDI()
    self.controller = KPZ101Controller(
      config=ConnectionConfig(channel_enable_sleep=120), io=self.io, report_errors=False
    )
    self.assertEqual(await self.controller.connect(), 0)
    self.io.calls.clear()
    self.io.sleeps.clear()


class TestQueries(KPZ101TestCase):
  async def test_identify(self):
    self.assertEqual(await self.controller.identify(), 0)
    self.assertEqual(self.io.written, [bytes.fromhex("230200005001")])
    self.assertEqual(self.io.actions, ["write"])

  async def test_stop_update_messages(self):
    self.assertEqual(await self.controller.stop_update_messages(), 0)
    self.assertEqual(self.io.written, [bytes.fromhex("120000005001")])

  async def test_hardware_info(self):
    self.io.queue_read(hardware_info_fixture())
    rv, info = await self.controller.get_hardware_info()
    self.assertEqual(rv, 0)
    assert info is not None
    self.assertEqual(info.model_number, "KPZ101")
    self.assertEqual(info.serial_number, 29252712)
    self.assertEqual(info.firmware_version, "3.2.1")
    self.assertIn("KPZ101", str(info))

  async def test_hardware_info_after_empty_read(self):
    self.io.queue_read(b"", hardware_info_fixture())
    rv, info = await self.controller.get_hardware_info()
    self.assertEqual(rv, 0)
    assert info is not None
    self.assertEqual(info.serial_number, 29252712)

  async def test_hardware_info_short(self):
    self.io.queue_read(hardware_info_fixture()[:89])
    rv, info = await self.controller.get_hardware_info()
    self.assertEqual(rv, -300)
    self.assertIsNone(info)

  async def test_status(self):
    self.io.queue_read(response(16, "hhI", 16384, 1200, 0x0501))
    rv, status = await self.controller.get_status()
    self.assertEqual(rv, 0)
    assert status is not None
    self.assertEqual(status.voltage, 16384)
    self.assertEqual(status.position, 1200)
    self.assertTrue(status.connected)
    self.assertFalse(status.zeroed)
    self.assertFalse(status.zeroing)
    self.assertTrue(status.sg_connected)
    self.assertTrue(status.pc_mode)
    self.assertAlmostEqual(status.voltage_fraction, 16384 / 32767)
    self.assertEqual(status.status_bits, 0x0501)
    self.assertGreaterEqual(status.age(), 0)

  async def test_status_bits(self):
    self.io.queue_read(response(16, "hhI", 0, 0, 0x0431))
    _, status = await self.controller.get_status()
    assert status is not None
    self.assertTrue(status.connected)
    self.assertTrue(status.zeroed)
    self.assertTrue(status.zeroing)
    self.assertFalse(status.sg_connected)
    self.assertTrue(status.pc_mode)

  async def test_get_output_voltage(self):
    self.io.queue_read(response(10, "h", -16384))
    rv, fraction = await self.controller.get_output_voltage()
    self.assertEqual(rv, 0)
    self.assertEqual(fraction, -0.5)
    self.assertEqual(self.io.written, [bytes.fromhex("440601005001")])

  async def test_display_intensity(self):
    self.io.queue_read(response(8, "H", 60, offset=6))
    rv, intensity = await self.controller.get_display_intensity()
    self.assertEqual((rv, intensity), (0, 60))

  async def test_read_failure(self):
    self.io.fail("read", -4)
    rv, intensity = await self.controller.get_display_intensity()
    self.assertEqual(rv, -204)
    self.assertIsNone(intensity)


class TestChannelEnable(KPZ101TestCase):
  async def test_get(self):
    self.io.queue_read(bytes([0x11, 0x02, 0x01, 0x01, 0x01, 0x50]))
    rv, state = await self.controller.get_channel_enable_state()
    self.assertEqual((rv, state), (0, ChannelEnableState.ENABLED))

  async def test_get_invalid(self):
    self.io.queue_read(bytes([0x11, 0x02, 0x01, 0x03, 0x01, 0x50]))
    rv, state = await self.controller.get_channel_enable_state()
    self.assertEqual((rv, state), (-1000, ChannelEnableState.INVALID))

  async def test_set_sleeps_then_drains(self):
    self.assertEqual(await self.controller.enable_channel(), 0)
    self.assertEqual(self.io.actions, ["write", "sleep", "read"])
    self.assertEqual(self.io.written, [bytes.fromhex("100201015001")])
    self.assertEqual(self.io.sleeps, [120])

  async def test_set_ignores_acknowledgement(self):
    self.io.queue_read(bytes(6))
    self.assertEqual(await self.controller.disable_channel(), 0)
    self.assertEqual(self.io.written, [bytes.fromhex("100201025001")])

  async def test_set_invalid(self):
    self.assertEqual(
      await self.controller.set_channel_enable_state(ChannelEnableState.INVALID), -1000
    )
    self.assertEqual(await self.controller.set_channel_enable_state(7), -1000)
    self.assertEqual(self.io.calls, [])

  async def test_set_rejects_non_integer_states(self):
    for state in (True, 1.7, "1", None):
      with self.subTest(state=state):
        self.assertEqual(await self.controller.set_channel_enable_state(state), -1000)
    self.assertEqual(self.io.calls, [])

  async def test_sleep_failure(self):
    self.io.fail("sleep", 1)
    self.assertEqual(await self.controller.enable_channel(), -700)
    self.assertEqual(self.io.actions, ["write", "sleep"])

  async def test_drain_failure(self):
    self.io.fail("read", -2)
    self.assertEqual(await self.controller.enable_channel(), -202)

  async def test_write_failure(self):
    self.io.fail("write", -1)
    self.assertEqual(await self.controller.enable_channel(), -101)
    self.assertEqual(self.io.sleeps, [])


class TestSetters(KPZ101TestCase):
  async def test_output_voltage(self):
    self.assertEqual(await self.controller.set_output_voltage(1.0), 0)
    self.assertEqual(self.io.written, [bytes.fromhex("43060400d0010100ff7f")])
    self.assertEqual(self.io.actions, ["write"])

  async def test_output_voltage_out_of_range(self):
    for v in (1.01, -1.5, math.nan):
      with self.subTest(v=v):
        self.assertEqual(await self.controller.set_output_voltage(v), -980)
    self.assertEqual(self.io.calls, [])

  async def test_output_voltage_does_not_connect_when_invalid(self):
    io = MockFTDI()
    controller = KPZ101Controller(io=io, report_errors=False)
    self.assertEqual(await controller.set_output_voltage(2.0), -980)
    self.assertEqual(io.calls, [])

  async def test_display_intensity(self):
    self.assertEqual(await self.controller.set_display_intensity(60), 0)
    self.assertEqual(self.io.written, [bytes.fromhex("d1070200d0013c00")])
    self.assertEqual(await self.controller.set_display_intensity(70000), -980)
    self.assertEqual(await self.controller.set_display_intensity(-1), -980)
    self.assertEqual(len(self.io.written), 1)

  async def test_io_settings(self):
    settings = OutputIOSettings(voltage_limit=VoltageLimit.V150, hub_analog_input=2)
    self.assertEqual(await self.controller.set_io_settings(settings), 0)
    self.assertEqual(self.io.written[0][6:12], bytes.fromhex("010003000200"))

  async def test_io_settings_invalid_limit(self):
    settings = OutputIOSettings(voltage_limit=VoltageLimit.INVALID)
    self.assertEqual(await self.controller.set_io_settings(settings), -1000)
    self.assertEqual(self.io.calls, [])

  async def test_io_settings_plain_int_limit(self):
    settings = OutputIOSettings(voltage_limit=2)
    self.assertIs(settings.voltage_limit, VoltageLimit.V100)
    self.assertIn("100 V", str(settings))
    self.assertEqual(await self.controller.set_io_settings(settings), 0)
    self.assertEqual(self.io.written[0][8:10], bytes.fromhex("0200"))

  async def test_io_settings_unknown_or_bool_limit(self):
    for limit in (9, True):
      with self.subTest(limit=limit):
        settings = OutputIOSettings(voltage_limit=limit)
        self.assertIs(settings.voltage_limit, VoltageLimit.INVALID)
        self.assertIn("0 V", str(settings))
        self.assertEqual(await self.controller.set_io_settings(settings), -1000)
    self.assertEqual(self.io.calls, [])

  async def test_io_settings_limit_assigned_after_construction(self):
    settings = OutputIOSettings()
    settings.voltage_limit = 3
    self.assertIn("150 V", str(settings))
    self.assertEqual(await self.controller.set_io_settings(settings), 0)
    self.assertEqual(self.io.written[0][8:10], bytes.fromhex("0300"))

  async def test_io_settings_out_of_range(self):
    settings = OutputIOSettings(hub_analog_input=-1)
    self.assertEqual(await self.controller.set_io_settings(settings), -980)
    self.assertEqual(self.io.calls, [])

  async def test_get_io_settings(self):
    self.io.queue_read(response(16, "HH", 2, 3))
    rv, settings = await self.controller.get_io_settings()
    self.assertEqual(rv, 0)
    self.assertEqual(
      settings, OutputIOSettings(voltage_limit=VoltageLimit.V100, hub_analog_input=3)
    )

  async def test_get_io_settings_invalid_limit(self):
    self.io.queue_read(response(16, "HH", 9, 1))
    rv, settings = await self.controller.get_io_settings()
    self.assertEqual(rv, -1000)
    assert settings is not None
    self.assertIs(settings.voltage_limit, VoltageLimit.INVALID)

  async def test_ui_parameters(self):
    params = UIParameters(js_volt_step=-50, preset_volt1=100, disp_brightness=40)
    self.assertEqual(await self.controller.set_ui_parameters(params), 0)
    (written,) = self.io.written
    self.assertEqual(len(written), 40)
    self.assertEqual(struct.unpack_from("<i", written, 12), (-50,))

  async def test_ui_parameters_out_of_range(self):
    params = UIParameters(disp_timeout=0x10000)
    self.assertEqual(await self.controller.set_ui_parameters(params), -980)
    self.assertEqual(self.io.calls, [])

  async def test_get_ui_parameters(self):
    self.io.queue_read(response(40, "HHiHiiHHH", 2, 1, 10, 1, -20, 30, 50, 5, 2))
    rv, params = await self.controller.get_ui_parameters()
    self.assertEqual(rv, 0)
    self.assertEqual(
      params,
      UIParameters(
        js_mode=2,
        js_volt_gearbox=1,
        js_volt_step=10,
        dir_sense=1,
        preset_volt1=-20,
        preset_volt2=30,
        disp_brightness=50,
        disp_timeout=5,
        disp_dim_level=2,
      ),
    )
