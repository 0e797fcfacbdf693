"""
Telegram tables for the LMS1xx ASCII protocol.

Protocol framing: <STX>TTT NAME [ARG ...]<ETX>
Where:
  - STX is 0x02, ETX is 0x03
  - TTT is a 3-letter command type (sRN, sMN, ...)
  - NAME is the command name
  - fields are separated by a single space (0x20)
"""

# Command types sent to the device
READ_BY_NAME = "sRN"
WRITE_BY_NAME = "sWN"
METHOD_BY_NAME = "sMN"

# Command types sent back by the device
READ_ANSWER = "sRA"
WRITE_ANSWER = "sWA"
METHOD_ANSWER = "sAN"
ERROR_ANSWER = "sFA"

# Command names
LMC_START_MEAS = "LMCstartmeas"
LMC_STOP_MEAS = "LMCstopmeas"
SET_ACCESS_MODE = "SetAccessMode"
LMD_SCANDATA = "LMDscandata"
SET_SCAN_CFG = "mLMPsetscancfg"
DEVICE_STATE = "SCdevicestate"
DEVICE_TEMPERATURE = "OPcurtmpdev"
REBOOT = "mSCreboot"
