"""Types and Enum definitions"""

from enum import Enum, auto

class LogLevel(str, Enum):
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    SUCCESS = "SUCCESS"
    INFO = "INFO"
    DEBUG = "DEBUG"
    TRACE = "TRACE"
    NOTSET = "NOTSET"

class PageBoundary(Enum):
    """How an Ogg packet ends: inside a page, closing a page or closing the stream."""
    def _generate_next_value_(name, start, count, last_values):
        # is used by 'auto()'
        return name

    NORMAL_PACKET = auto()
    END_PAGE = auto()
    END_STREAM = auto()

    def __str__(self):
        return self.value
