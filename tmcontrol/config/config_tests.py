import logging
import tempfile
import unittest
from pathlib import Path

from tmcontrol.config import find_config_file, load_config, read_config, write_config
from tmcontrol.config.config import Config
from tmcontrol.config.formats import IniFormat, JsonFormat, format_for


class ConfigTests(unittest.TestCase):
  def setUp(self):
    self.tmp_path = Path(tempfile.mkdtemp())

  def test_write_then_read(self):
    fake_config = Config(
      logging=Config.Logging(level=5, log_dir=self.tmp_path / "logs"),
      connection=Config.Connection(
        baudrate=9600, channel_enable_sleep=250, response_timeout=2500
      ),
    )
    for fp in ("fake_config.ini", "fake_config.json"):
      with self.subTest(fp=fp):
        write_config(self.tmp_path / fp, fake_config)
        self.assertEqual(read_config(self.tmp_path / fp), fake_config)

  def test_ini_level_written_by_name(self):
    text = IniFormat().dumps(Config(logging=Config.Logging(level=logging.DEBUG)))
    self.assertIn("level = DEBUG", text)
    self.assertNotIn("log_dir", text)

  def test_partial_file_uses_defaults(self):
    cfg = IniFormat().loads("[connection]\npre_flush_sleep = 80\n")
    self.assertEqual(cfg.connection.pre_flush_sleep, 80)
    self.assertEqual(cfg.connection.baudrate, 115200)
    self.assertEqual(cfg.logging.level, logging.INFO)

  def test_json_level_names(self):
    cfg = JsonFormat().loads('{"logging": {"level": "io"}}')
    self.assertEqual(cfg.logging.level, 5)

  def test_malformed_files(self):
    cases = (
      (IniFormat(), "not a config"),
      (IniFormat(), "[logging]\nlevel = LOUD\n"),
      (IniFormat(), "[connection]\nbaudrate = fast\n"),
      (IniFormat(), "[connection]\nparity = odd\n"),
      (IniFormat(), "[network]\nhost = x\n"),
      (JsonFormat(), "{"),
      (JsonFormat(), "[1, 2]"),
    )
    for fmt, text in cases:
      with self.subTest(text=text):
        with self.assertRaises(ValueError):
          fmt.loads(text)

  def test_format_for(self):
    self.assertIsInstance(format_for(Path("a.ini")), IniFormat)
    self.assertIsInstance(format_for(Path("a.json")), JsonFormat)
    with self.assertRaises(ValueError):
      format_for(Path("a.yaml"))

  def test_load_config_creates_default(self):
    test_path = self.tmp_path / "test_config.ini"
    cfg = load_config("test_config", create_default=True, cur_dir=self.tmp_path)
    self.assertTrue(test_path.exists())
    self.assertEqual(cfg, Config())
    self.assertEqual(read_config(test_path), Config())

  def test_load_config_without_file(self):
    self.assertEqual(load_config("no_such_config", cur_dir=self.tmp_path), Config())
    self.assertFalse((self.tmp_path / "no_such_config.ini").exists())

  def test_config_found_in_parent(self):
    write_config(
      self.tmp_path / "parent_config.json", Config(connection=Config.Connection(baudrate=57600))
    )
    child = self.tmp_path / "a" / "b"
    child.mkdir(parents=True)
    self.assertEqual(find_config_file("parent_config", child), self.tmp_path / "parent_config.json")
    self.assertEqual(load_config("parent_config", cur_dir=child).connection.baudrate, 57600)

  def test_ini_preferred_over_json(self):
    write_config(self.tmp_path / "both.json", Config(connection=Config.Connection(baudrate=1)))
    write_config(self.tmp_path / "both.ini", Config(connection=Config.Connection(baudrate=2)))
    self.assertEqual(load_config("both", cur_dir=self.tmp_path).connection.baudrate, 2)
