"""SQS transport lifecycle states."""
from enum import Enum


class TransportState(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTED = "CONNECTED"
    CLOSED = "CLOSED"


# Must exceed the 20s maximum long-poll wait or idle receives time out client-side.
READ_TIMEOUT_SECONDS = 70
CONNECT_TIMEOUT_SECONDS = 3
MAX_CLIENT_ATTEMPTS = 6
