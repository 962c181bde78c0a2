from .contracts import (
    MAX_PORT_RETRIES,
    MSG_VIBRATE,
    NETWORK_PORTS,
    VIBRATE_FRAME,
    WS_PATH,
    WireMessage,
    encode_message,
    parse_message,
)

__all__ = [
    "MAX_PORT_RETRIES",
    "MSG_VIBRATE",
    "NETWORK_PORTS",
    "VIBRATE_FRAME",
    "WS_PATH",
    "WireMessage",
    "encode_message",
    "parse_message",
]
