from path_router.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)

__all__ = ["format_exception_message", "log_exception_with_details"]
