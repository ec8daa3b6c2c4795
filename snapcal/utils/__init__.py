# Utility functions
from .logging_config import setup_logging
from .error_handlers import (
    ERROR_MESSAGES,
    SnapCalError,
    ImageParseError,
    APIError,
    UnsupportedFileError,
    EncodeError,
)
