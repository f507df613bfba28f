"""Protocol and runtime constants for modbusbrowser."""

from __future__ import annotations

# Slots per register bank (Coils, DiscreteInputs, InputRegisters, HoldingRegisters)
BANK_SIZE = 10000

# Base address of each bank in the flat address space
COILS_BASE = 0
DISCRETE_INPUTS_BASE = 10000
INPUT_REGISTERS_BASE = 30000
HOLDING_REGISTERS_BASE = 40000

# Highest address representable in a Modbus request (uint16)
MAX_ADDRESS = 0xFFFF

# Registers per read request (Modbus FC 03/04 PDU ceiling)
MAX_BLOCK_LENGTH = 125

# Longest string a register config may request: two bytes per register of
# one full read request
MAX_STRING_LENGTH = 2 * MAX_BLOCK_LENGTH

# Fixed delay between reconnection attempts, seconds (no backoff, no cap)
RECONNECT_DELAY = 1.0

# Display sentinel for values that cannot be decoded
NOT_AVAILABLE = "N/A"

# Protocol client defaults
DEFAULT_MODBUS_PORT = 502
DEFAULT_TIMEOUT = 10.0
DEFAULT_UNIT_ID = 1

# Dashboard defaults
DEFAULT_HTTP_PORT = 8080
DEFAULT_POLL_RATE_MS = 1000
