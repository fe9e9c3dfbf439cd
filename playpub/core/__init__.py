"""Core types shared by the publisher and the CLI."""

from .config import PublisherConfig, load_publisher_config
from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    # config
    "PublisherConfig",
    "load_publisher_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
]
