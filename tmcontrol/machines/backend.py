import inspect
import weakref
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Type, TypeVar

T = TypeVar("T")


def find_subclass(class_name: str, cls: Type[T]) -> Optional[Type[T]]:
  """Find `cls` or a (transitive) subclass of it by class name.

  Returns:
    The first class named `class_name` in depth-first order, or `None`.
  """

  stack: List[type] = [cls]
  while stack:
    candidate = stack.pop()
    if candidate.__name__ == class_name:
      return candidate
    stack.extend(reversed(candidate.__subclasses__()))
  return None


class MachineBackend(ABC):
  """Device side of a machine.

  Live instances are tracked in a weak registry, which IO validation walks to swap transports.
  """

  _instances: "weakref.WeakSet[MachineBackend]" = weakref.WeakSet()

  def __init__(self):
    self._instances.add(self)

  @abstractmethod
  async def setup(self):
    pass

  @abstractmethod
  async def stop(self):
    pass

  def io_owner(self) -> Optional[Any]:
    """The object whose `io` attribute is this backend's transport. `None` for backends that do no
    IO."""
    return self if hasattr(self, "io") else None

  def serialize(self) -> dict:
    return {"type": self.__class__.__name__}

  @classmethod
  def deserialize(cls, data: dict):
    kwargs = dict(data)
    class_name = kwargs.pop("type")
    subclass = find_subclass(class_name, cls=cls)
    if subclass is None:
      raise ValueError(f"No backend class named {class_name!r}")
    if inspect.isabstract(subclass):
      raise ValueError(f"Backend class {class_name!r} is abstract")
    return subclass(**kwargs)

  @classmethod
  def get_all_instances(cls):
    return cls._instances
