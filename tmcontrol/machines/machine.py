from __future__ import annotations

import functools
import sys
from abc import ABC
from typing import Any, Awaitable, Callable, TypeVar

from tmcontrol.machines.backend import MachineBackend

if sys.version_info < (3, 10):
  from typing_extensions import ParamSpec
else:
  from typing import ParamSpec

_P = ParamSpec("_P")
_R = TypeVar("_R", bound=Awaitable[Any])


def need_setup_finished(func: Callable[_P, _R]) -> Callable[_P, _R]:
  """Decorator for frontend methods that talk to the device.

  Raises:
    RuntimeError: If `setup` has not finished, or `stop` was called since.
  """

  @functools.wraps(func)
  async def wrapper(*args, **kwargs):
    machine = args[0]
    assert isinstance(machine, Machine), "need_setup_finished only decorates Machine methods."
    if not machine.setup_finished:
      raise RuntimeError(f"{machine.__class__.__name__} is not set up. Call `setup` first.")
    return await func(*args, **kwargs)

  return wrapper


class Machine(ABC):
  """Frontend for a device. Delegates the device communication to a `MachineBackend`."""

  def __init__(self, backend: MachineBackend):
    self.backend = backend
    self._setup_finished = False

  @property
  def setup_finished(self) -> bool:
    return self._setup_finished

  async def setup(self, **backend_kwargs):
    await self.backend.setup(**backend_kwargs)
    self._setup_finished = True

  @need_setup_finished
  async def stop(self):
    await self.backend.stop()
    self._setup_finished = False

  async def __aenter__(self):
    await self.setup()
    return self

  async def __aexit__(self, exc_type, exc_value, traceback):
    await self.stop()

  def serialize(self) -> dict:
    return {"type": self.__class__.__name__, "backend": self.backend.serialize()}

  @classmethod
  def deserialize(cls, data: dict):
    data = data.copy()
    data.pop("type", None)
    data["backend"] = MachineBackend.deserialize(data.pop("backend"))
    return cls(**data)
