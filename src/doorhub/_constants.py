"""Internal constants shared across the library."""

DEFAULT_HUB_HOST = "192.168.8.108"
DEFAULT_HUB_PORT = 12345

DEFAULT_MODULE_ID = "D1"
DEFAULT_TARGET = "D0"
DEFAULT_ACTION = "STATUS"

# Every command type shares the same reply window.
DEFAULT_COMMAND_TIMEOUT_MS = 5000
TIMEOUT_ERROR_MESSAGE = "no reply within window"

# ------------------------------------------------------------------
# Convergence polling after LOCK / UNLOCK acknowledgements
# ------------------------------------------------------------------

DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_POLL_ATTEMPTS = 20

# ------------------------------------------------------------------
# Wire protocol keywords
# ------------------------------------------------------------------

WIRE_COMMAND = "COMMAND"
WIRE_FEEDBACK = "FEEDBACK"
WIRE_EVENT = "EVENT"
WIRE_HEARTBEAT = "HEARTBEAT"
WIRE_HELLO = "HELLO"

STATUS_PREFIX = "STATUS_"
ACK_LOCK = "LOCK"
ACK_UNLOCK = "UNLOCK"
