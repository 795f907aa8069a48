"""Logging of the nxopus package, built on loguru.

Every module gets its own `OptimizedLogger` through `get_module_logger(__file__)`.
The logger binds the module name into each record and replaces the methods of
disabled levels by a no-op, so that a `logger.trace(...)` call inside the
per-packet loop costs nothing unless TRACE is enabled for that module.

`LoggingManager` owns the loguru handlers. It reads the logging settings of
`Config` and installs

- a console handler (colored, optionally wrapped to
  `Config.terminal_log_max_line_length`) on stderr, and
- a file handler with rotation and compression if `Config.log_filepath` is set.

Changing a logging setting through `Config.set()` calls
`LoggingManager.reconfigure()`, which rebuilds the handlers and updates the
effective level of every logger handed out so far.

Usage
-----
    ```python
    from .logsetup import get_module_logger
    logger = get_module_logger(__file__)
    logger.debug("Header parsed")
    ```
"""

import pathlib
import sys
import textwrap
from typing import Dict, Optional, Callable
from loguru import logger as loguru_logger
from .packagetypes import LogLevel


class OptimizedLogger:
    """Module logger with no-op methods for disabled levels.

    Parameters
    ----------
    module_name : str
        Name bound into every record as `extra[module]`
    effective_level : LogLevel
        Lowest level this logger emits

    Attributes
    ----------
    module_name : str
        The module name bound to this logger
    effective_level : LogLevel
        Current effective log level for this logger
    """

    _LEVEL_METHODS = {
        'trace': LogLevel.TRACE,
        'debug': LogLevel.DEBUG,
        'info': LogLevel.INFO,
        'success': LogLevel.SUCCESS,
        'warning': LogLevel.WARNING,
        'error': LogLevel.ERROR,
        'critical': LogLevel.CRITICAL
    }

    def __init__(self, module_name: str, effective_level: LogLevel):
        self.module_name = module_name
        self.effective_level = effective_level
        self._setup_methods()

    def _null_method(self, *args, **kwargs):
        pass

    def _is_level_enabled(self, level: LogLevel) -> bool:
        from .config import Config
        if self.effective_level == LogLevel.NOTSET:
            return False
        return Config.log_level_priority(level) >= Config.log_level_priority(self.effective_level)

    def _setup_methods(self):
        """Bind a real or a no-op method for each level name."""
        for method_name, level in self._LEVEL_METHODS.items():
            if self._is_level_enabled(level):
                setattr(self, method_name, self._create_log_method(method_name))
            else:
                setattr(self, method_name, self._null_method)

    def _create_log_method(self, level_name: str) -> Callable:
        """Create a method forwarding to loguru with the module bound.

        `depth=1` makes loguru report the caller's source location instead of
        this wrapper.
        """
        def log_method(message, *args, **kwargs):
            loguru_method = getattr(loguru_logger.bind(module=self.module_name).opt(depth=1), level_name)
            return loguru_method(message, *args, **kwargs)

        return log_method

    def exception(self, message, *args, **kwargs):
        """Log at ERROR level including the traceback of the active exception."""
        if self._is_level_enabled(LogLevel.ERROR):
            return loguru_logger.bind(module=self.module_name).opt(depth=1).exception(message, *args, **kwargs)

    def update_level(self, new_effective_level: LogLevel):
        """Switch to another effective level and rebind all methods."""
        self.effective_level = new_effective_level
        self._setup_methods()


class LoggingManager:
    """Class-level owner of the loguru handlers and the logger registry.

    Attributes
    ----------
    _loggers : Dict[str, OptimizedLogger]
        All loggers handed out so far, by module name
    _handler_ids : Dict[str, int]
        loguru handler ids of the installed handlers, by handler name
    _current_config : Dict
        Logging settings the handlers were built from
    _initialized : bool
        Whether loguru's default handler was already replaced
    """

    _loggers: Dict[str, OptimizedLogger] = {}
    _handler_ids: Dict[str, int] = {}
    _current_config: Dict = {}
    _initialized = False

    # Width of "YYYY-MM-DD HH:mm:ss.SSS | LEVEL    | module          | "
    _CONSOLE_PREFIX_LENGTH = 23 + 3 + 8 + 3 + 15 + 3

    @classmethod
    def _loguru_level_name(cls, log_level: LogLevel) -> str:
        if log_level == LogLevel.NOTSET:
            return "CRITICAL"
        return log_level.value

    @classmethod
    def _wrap_console_message(cls, message: str) -> str:
        """Wrap a message to the configured terminal width.

        Continuation lines are indented to the start of the message column.
        """
        from .config import Config

        if Config.terminal_log_max_line_length is None:
            return message

        max_message_length = Config.terminal_log_max_line_length - cls._CONSOLE_PREFIX_LENGTH
        if max_message_length <= 0 or len(message) <= max_message_length:
            return message

        wrapped_lines = textwrap.wrap(message, width=max_message_length)
        if len(wrapped_lines) <= 1:
            return message

        indent = " " * cls._CONSOLE_PREFIX_LENGTH
        return wrapped_lines[0] + "\n" + "\n".join(indent + line for line in wrapped_lines[1:])

    @classmethod
    def _console_format_function(cls, record) -> str:
        # The message goes through record["extra"] because a format function's
        # return value is itself parsed as a format string.
        record["extra"]["wrapped_message"] = cls._wrap_console_message(record["message"])
        return (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[module]: <15}</cyan> | "
            "<level>{extra[wrapped_message]}</level>\n{exception}"
        )

    @classmethod
    def _create_file_format(cls) -> str:
        return (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{extra[module]: <15} | "
            "{message}"
        )

    @classmethod
    def _setup_console_handler(cls, log_level: LogLevel):
        handler_id = loguru_logger.add(
            sys.stderr,
            format=cls._console_format_function,
            level=cls._loguru_level_name(log_level),
            colorize=None
        )
        cls._handler_ids["console"] = handler_id

    @classmethod
    def _setup_file_handler(cls, log_filepath: pathlib.Path, log_level: LogLevel):
        """Install the rotating file handler.

        A log file that can not be opened must not break a conversion, so the
        failure is reported on stderr and file logging stays off.
        """
        try:
            log_filepath.parent.mkdir(parents=True, exist_ok=True)
            handler_id = loguru_logger.add(
                str(log_filepath),
                format=cls._create_file_format(),
                level=cls._loguru_level_name(log_level),
                rotation="10 MB",
                retention="1 week",
                compression="zip",
                encoding="utf-8"
            )
            cls._handler_ids["file"] = handler_id
        except OSError as e:
            print(f"Warning: Could not setup file logging to {log_filepath}: {e}", file=sys.stderr)

    @classmethod
    def _validate_log_filepath(cls, log_filepath: Optional[pathlib.Path]) -> Optional[pathlib.Path]:
        """Normalize the log file path; a directory gets the default file name."""
        if log_filepath is None:
            return None
        log_filepath = pathlib.Path(log_filepath)
        if log_filepath.is_dir():
            log_filepath = log_filepath / "nxopus.log"
        return log_filepath

    @classmethod
    def _remove_handlers(cls):
        for handler_id in cls._handler_ids.values():
            try:
                loguru_logger.remove(handler_id)
            except ValueError:
                # Handler already removed
                pass
        cls._handler_ids.clear()

    @classmethod
    def configure(cls, force_reconfigure: bool = False):
        """Build the handlers from `Config` and update all registered loggers.

        Parameters
        ----------
        force_reconfigure : bool, optional
            Rebuild even if the logging settings did not change, by default False
        """
        from .config import Config  # Import here to avoid circular imports

        current_config = {
            'log_level': Config.log_level,
            'log_filepath': Config.log_filepath,
            'module_log_levels': Config.module_log_levels.copy(),
            'terminal_log_max_line_length': Config.terminal_log_max_line_length
        }

        if not force_reconfigure and cls._initialized and cls._current_config == current_config:
            return

        if cls._initialized:
            cls._remove_handlers()
        else:
            # On first initialization, remove loguru's default handler
            loguru_logger.remove()

        cls._current_config = current_config
        cls._initialized = True

        if Config.log_level != LogLevel.NOTSET:
            cls._setup_console_handler(Config.log_level)
            log_filepath = cls._validate_log_filepath(Config.log_filepath)
            if log_filepath:
                cls._setup_file_handler(log_filepath, Config.log_level)

        for module_name, logger_instance in cls._loggers.items():
            logger_instance.update_level(Config.get_effective_log_level(module_name))

    @classmethod
    def reconfigure(cls):
        """Rebuild handlers and logger levels from the current `Config`."""
        cls.configure(force_reconfigure=True)

    @classmethod
    def get_logger(cls, module_name: str) -> OptimizedLogger:
        """Return the registered logger of a module, creating it if needed."""
        if not cls._initialized:
            cls.configure()

        from .config import Config
        effective_level = Config.get_effective_log_level(module_name)

        if module_name in cls._loggers:
            cls._loggers[module_name].update_level(effective_level)
        else:
            cls._loggers[module_name] = OptimizedLogger(module_name, effective_level)

        return cls._loggers[module_name]


def get_module_logger(module_file: str) -> OptimizedLogger:
    """Create the logger of a module from its file path (typically `__file__`).

    The file stem becomes the module name in log records and is the key for
    `Config.set_module_log_level()`.

    Examples
    --------
        >>> from .logsetup import get_module_logger
        >>> logger = get_module_logger(__file__)
        >>> logger.info("Module initialized")
    """
    module_name = pathlib.Path(module_file).stem
    return LoggingManager.get_logger(module_name)
