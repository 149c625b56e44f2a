from .backend import MachineBackend, find_subclass
from .machine import Machine, need_setup_finished
