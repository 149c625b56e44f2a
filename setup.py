from setuptools import setup, find_packages

from tmcontrol.__version__ import __version__

with open("README.md", "r", encoding="utf-8") as f:
  long_description = f.read()


extras_ftdi = [
  "pylibftdi",
]

extras_dev = extras_ftdi + [
  "pytest",
  "pytest-timeout",
  "pylint",
  "mypy",
]

extras_all = extras_dev

setup(
  name="TMControl",
  version=__version__,
  packages=find_packages(),
  description="Host-side driver for Thorlabs APT piezo controllers behind an FTDI USB bridge",
  long_description=long_description,
  long_description_content_type="text/markdown",
  install_requires=["typing_extensions"],
  package_data={"tmcontrol": ["version.txt"]},
  extras_require={
    "ftdi": extras_ftdi,
    "dev": extras_dev,
    "all": extras_all,
  },
)
