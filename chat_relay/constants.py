# Inbound frame types
REGISTER = "register"
MESSAGE = "message"

# Outbound frame types
REGISTER_SUCCESS = "register-success"
MESSAGE_SENT = "message-sent"
NEW_MESSAGE = "new-message"
ERROR = "error"

DEFAULT_PORT = 3010

__all__ = [
    "REGISTER",
    "MESSAGE",
    "REGISTER_SUCCESS",
    "MESSAGE_SENT",
    "NEW_MESSAGE",
    "ERROR",
    "DEFAULT_PORT",
]
