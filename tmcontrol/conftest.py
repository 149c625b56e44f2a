import pytest

from tmcontrol import Config, configure, project_root

# test runs log to <repo>/test_logs
TEST_CONFIG = Config(logging=Config.Logging(log_dir=project_root() / "test_logs"))


@pytest.fixture(autouse=True)
def setup_test_config():
  configure(TEST_CONFIG)
  yield
  configure(Config(logging=Config.Logging(log_dir=None)))
