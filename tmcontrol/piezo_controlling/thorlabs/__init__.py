from .commands import CATALOG, CommandSpec, FieldSpec
from .enums import ChannelEnableState, ConnectionState, VoltageLimit
from .errors import (
  ErrorCategory,
  ErrorReporter,
  LoggingErrorReporter,
  ProtocolError,
  SilentErrorReporter,
  TimingError,
  TMCError,
  TransportError,
  UnavailableError,
  ValidationError,
  classify,
  error_from_code,
  failed_step,
)
from .kpz101 import KPZ101Controller
from .records import ActuatorStatus, HardwareInfo, OutputIOSettings, UIParameters
from .session import APTSession, ConnectionConfig
