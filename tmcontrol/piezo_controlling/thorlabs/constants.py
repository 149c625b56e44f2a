"""Thorlabs APT protocol constants.

Wire-level values come from the Thorlabs Motion Controllers Host-Controller Communications
Protocol manual (issue 37). USB and line defaults match the KPZ101 / TPZ001 T-Cube and K-Cube
piezo drivers.
"""

# USB identification
DEFAULT_VENDOR_ID = 0x0403  # FTDI
DEFAULT_PRODUCT_ID = 0xFAF0  # Thorlabs APT controllers

# Serial line and timing defaults (sleeps in milliseconds)
DEFAULT_BAUDRATE = 115200
DEFAULT_PRE_FLUSH_SLEEP = 50
DEFAULT_POST_FLUSH_SLEEP = 50
DEFAULT_CHANNEL_ENABLE_SLEEP = 100
DEFAULT_RESPONSE_TIMEOUT = 1000

# libftdi reads return 0 until the response arrives; the session polls at this interval
READ_POLL_INTERVAL = 10

# libftdi line properties: BITS_8, STOP_BIT_1, NONE
LINE_BITS_8 = 8
LINE_STOP_BIT_1 = 0
LINE_PARITY_NONE = 0

# libftdi flow control: SIO_RTS_CTS_HS
SIO_RTS_CTS_HS = 0x1 << 8

# Session scratch buffer capacity
BUFFER_SIZE = 256

# Message framing
HEADER_SIZE = 6
DEST_GENERIC_USB = 0x50
SOURCE_HOST = 0x01
PAYLOAD_FLAG = 0x80
CHANNEL_1 = 0x01
CHANNEL_IDENT = bytes([CHANNEL_1, 0x00])

# Opcodes
MGMSG_HW_REQ_INFO = 0x0005
MGMSG_HW_STOP_UPDATEMSGS = 0x0012
MGMSG_MOD_SET_CHANENABLESTATE = 0x0210
MGMSG_MOD_REQ_CHANENABLESTATE = 0x0211
MGMSG_MOD_IDENTIFY = 0x0223
MGMSG_PZ_SET_OUTPUTVOLTS = 0x0643
MGMSG_PZ_REQ_OUTPUTVOLTS = 0x0644
MGMSG_PZ_REQ_PZSTATUSUPDATE = 0x0660
MGMSG_PZ_SET_TPZ_DISPSETTINGS = 0x07D1
MGMSG_PZ_REQ_TPZ_DISPSETTINGS = 0x07D2
MGMSG_PZ_SET_TPZ_IOSETTINGS = 0x07D4
MGMSG_PZ_REQ_TPZ_IOSETTINGS = 0x07D5
MGMSG_PZ_SET_KPCUBEMMIPARAMS = 0x07F0
MGMSG_PZ_REQ_KPCUBEMMIPARAMS = 0x07F1

# Piezo status bits (MGMSG_PZ_GET_PZSTATUSUPDATE)
STATUS_ACTUATOR_CONNECTED = 0x00000001
STATUS_ZEROED = 0x00000010
STATUS_ZEROING = 0x00000020
STATUS_STRAIN_GAUGE_CONNECTED = 0x00000100
STATUS_POSITION_CONTROL_MODE = 0x00000400

# Output voltage full scale, asymmetric around zero
VOLTAGE_FULL_SCALE_POSITIVE = 32767
VOLTAGE_FULL_SCALE_NEGATIVE = 32768
