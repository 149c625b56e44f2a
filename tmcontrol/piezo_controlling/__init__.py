from .backend import PiezoControllerBackend
from .chatterbox import PiezoControllerChatterboxBackend
from .piezo_controller import PiezoController
from .thorlabs.kpz101_backend import ThorlabsKPZ101Backend
