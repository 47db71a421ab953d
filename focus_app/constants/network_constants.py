"""Network configuration constants for the focus session server."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 3000
# The active-question cell lives in process memory, so only one worker may serve a session.
API_WORKER_COUNT: int = 1
WEBSOCKET_PATH: str = "/ws"
