from .logger import (
    clear_session_id,
    get_logger,
    get_session_id,
    set_session_id,
    setup_logging,
)

__all__ = [
    "clear_session_id",
    "get_logger",
    "get_session_id",
    "set_session_id",
    "setup_logging",
]
