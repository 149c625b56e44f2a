from .capture import start_capture, stop_capture
from .ftdi import FTDI, FTDIValidator
from .io import IOBase
from .validation import end_validation, validate
