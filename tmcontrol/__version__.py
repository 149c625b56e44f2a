"""The tmcontrol version, kept in `version.txt` next to this file so setup.py can read it too."""

from pathlib import Path

__version__ = (Path(__file__).parent / "version.txt").read_text(encoding="utf-8").strip()
