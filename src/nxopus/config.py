"""Runtime configuration of the nxopus package with YAML import/export.

All settings live as typed class variables of `Config`, so they are visible to
IDEs and static checkers and can be read anywhere without instantiation.
Settings are changed through `Config.set()`, which validates names and types
and reconfigures the logging system whenever a logging-related value changes.

Configuration Categories
-----------------------
- **Configurable Parameters**: Listed in `_CONFIGURABLE_KEYS`. These can be
  modified at runtime and take part in YAML export/import.
- **Immutable Parameters**: Format constants of the converter (Ogg stream
  serial). `Config.set()` refuses to change them.

Usage Examples
--------------
Change the log level and enable a log file:
    ```python
    import pathlib
    from nxopus.config import Config
    from nxopus.packagetypes import LogLevel

    Config.set(log_level=LogLevel.DEBUG,
               log_filepath=pathlib.Path("nxopus.log"))
    ```

Persist and restore a configuration:
    ```python
    Config.export_to_yaml(pathlib.Path("nxopus.yaml"))
    Config.import_from_yaml(pathlib.Path("nxopus.yaml"))
    ```
"""

from __future__ import annotations # This has to be the first line of code.
import pathlib
import inspect
import re
import yaml
from datetime import datetime
from typing import get_type_hints, Dict, Optional, Any
from .packagetypes import LogLevel

class Config:
    """Central configuration of the converter.

    Attributes
    ----------
    log_level : LogLevel
        Global logging level, upper bound for all module loggers
    log_filepath : pathlib.Path or None
        File for log output, None disables file logging
    module_log_levels : Dict[str, LogLevel]
        Module-specific log level overrides (keyed by module file stem)
    terminal_log_max_line_length : int or None
        Wrap console messages at this width, None disables wrapping
    warn_on_length_mismatch : bool
        Log a warning if the data section's declared length differs from the
        number of bytes actually consumed by the packet framer
    """

    # configurable values
    # -------------------
    _CONFIGURABLE_KEYS = [  "log_level",
                            "log_filepath",
                            "module_log_levels",
                            "terminal_log_max_line_length",
                            "warn_on_length_mismatch",
                         ]

    log_level: LogLevel = LogLevel.WARNING  # Global logging level (acts as upper bound)
    log_filepath: pathlib.Path|None = None  # set a logging path if you want to write logging outputs
    module_log_levels: Dict[str, LogLevel] = {}  # Module-specific log levels
    terminal_log_max_line_length: int|None = 120  # Maximum line length for terminal output (None = no wrapping)
    warn_on_length_mismatch: bool = True  # Report declared vs. consumed data section length

    # immutable keys  (can not be changed during runtime; only changeable at this position)
    # --------------
    version = (1,0)                 # package version tuple; (Major, Minor, Patch)
    ogg_stream_serial = 0           # the single logical Ogg stream of every output file

    @classmethod
    def set_module_log_level(cls, module_name: str, log_level: LogLevel):
        """Set the log level of one module and reconfigure the logging system.

        Parameters
        ----------
        module_name : str
            Module file stem, e.g. "converter"
        log_level : LogLevel
            Level for this module; it can not be less restrictive than the
            global level
        """
        if not isinstance(log_level, LogLevel):
            raise TypeError(f"Module log level must be LogLevel, got {type(log_level).__name__}")
        cls.module_log_levels[module_name] = log_level
        from .logsetup import LoggingManager
        LoggingManager.reconfigure()

    @classmethod
    def get_effective_log_level(cls, module_name: str) -> LogLevel:
        """Return the level a module logs at, bounded by the global level."""
        module_level = cls.module_log_levels.get(module_name, cls.log_level)
        if cls.log_level_priority(cls.log_level) > cls.log_level_priority(module_level):
            return cls.log_level
        return module_level

    @staticmethod
    def log_level_priority(log_level: LogLevel) -> int:
        """Numeric priority of a log level; higher is more restrictive."""
        priority_mapping = {
            LogLevel.TRACE: 0,
            LogLevel.DEBUG: 1,
            LogLevel.INFO: 2,
            LogLevel.SUCCESS: 3,
            LogLevel.WARNING: 4,
            LogLevel.ERROR: 5,
            LogLevel.CRITICAL: 6,
            LogLevel.NOTSET: 999  # Most restrictive
        }
        return priority_mapping.get(log_level, 999)

    @classmethod
    def _serialize_value(cls, value: Any) -> Any:
        """Convert a configuration value into something yaml.dump() accepts."""
        if value is None:
            return None
        elif isinstance(value, pathlib.Path):
            return str(value)
        elif isinstance(value, LogLevel):
            return value.value
        elif isinstance(value, dict):
            return {k: cls._serialize_value(v) for k, v in value.items()}
        elif isinstance(value, (list, tuple)):
            return [cls._serialize_value(item) for item in value]
        else:
            return value

    @classmethod
    def _deserialize_value(cls, value: Any, expected_type: Any) -> Any:
        """Restore a YAML-loaded value to the Python type of its key.

        Raises
        ------
        ValueError
            If a log level name is unknown
        """
        if value is None:
            return None

        if expected_type in (pathlib.Path, Optional[pathlib.Path], pathlib.Path|None):
            if isinstance(value, str):
                return pathlib.Path(value)
            return value

        if expected_type == LogLevel:
            if isinstance(value, str):
                try:
                    return LogLevel(value.upper())
                except ValueError:
                    raise ValueError(f"Invalid LogLevel value: {value}")
            return value

        if isinstance(value, dict) and expected_type == Dict[str, LogLevel]:
            return {k: cls._deserialize_value(v, LogLevel) for k, v in value.items()}

        return value

    @classmethod
    def _extract_inline_comments(cls) -> Dict[str, str]:
        """Collect the inline comments of configurable class variables.

        Returns
        -------
        Dict[str, str]
            Mapping of variable names to their inline comments; empty if the
            source code is not available (e.g. frozen builds)
        """
        try:
            source = inspect.getsource(cls)
        except (OSError, TypeError):
            return {}

        comments = {}
        pattern = r'^\s*(\w+)\s*[:=].*?#\s*(.+)$'
        for line in source.split('\n'):
            match = re.match(pattern, line.strip())
            if match:
                var_name, comment = match.groups()
                if var_name in cls._CONFIGURABLE_KEYS:
                    comments[var_name] = comment.strip()
        return comments

    @classmethod
    def export_to_yaml(cls, filepath: pathlib.Path, include_metadata: bool = True):
        """Write all configurable values to a YAML file.

        Inline comments of the class variables are appended to their YAML
        lines so that the file documents itself.

        Parameters
        ----------
        filepath : pathlib.Path
            Target file; missing parent directories are created
        include_metadata : bool, optional
            Prepend a comment header with the export time, by default True
        """
        filepath = pathlib.Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        config_data = {key: cls._serialize_value(getattr(cls, key))
                       for key in cls._CONFIGURABLE_KEYS}
        comments = cls._extract_inline_comments()

        yaml_lines = []
        if include_metadata:
            yaml_lines.append(f"# nxopus configuration exported on {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
            yaml_lines.append("")

        yaml_content = yaml.dump(config_data, default_flow_style=False, sort_keys=False)
        for line in yaml_content.split('\n'):
            key_match = re.match(r'^(\w+):', line)
            if key_match and key_match.group(1) in comments:
                line = f"{line}  # {comments[key_match.group(1)]}"
            yaml_lines.append(line)

        with open(filepath, 'w', encoding='utf-8') as f:
            f.write('\n'.join(yaml_lines))

    @classmethod
    def import_from_yaml(cls, filepath: pathlib.Path):
        """Load configurable values from a YAML file and apply them via `set()`.

        Unknown keys in the file are ignored. Immutable keys are ignored as
        well; they only change in this source file.

        Raises
        ------
        FileNotFoundError
            If the file does not exist
        yaml.YAMLError
            If the file is not valid YAML
        ValueError
            If a value can not be converted to its expected type
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            yaml_data = yaml.safe_load(f)

        if not yaml_data:
            return

        type_hints = get_type_hints(cls)
        config_updates = {}
        for key, value in yaml_data.items():
            if key not in cls._CONFIGURABLE_KEYS:
                continue
            try:
                config_updates[key] = cls._deserialize_value(value, type_hints.get(key))
            except (ValueError, TypeError) as e:
                raise ValueError(f"Failed to convert '{key}' from YAML: {e}")

        cls.set(**config_updates)

    @classmethod
    def set(cls, **kwargs):
        """Set configuration parameters with validation.

        Parameters
        ----------
        **kwargs : dict
            Configuration parameters to update as keyword arguments

        Raises
        ------
        AttributeError
            If a parameter name is unknown or immutable
        TypeError
            If a parameter value has an incorrect type
        ValueError
            If a parameter value is out of range

        Examples
        --------
            >>> Config.set(log_level=LogLevel.INFO, terminal_log_max_line_length=100)
        """
        from .logsetup import LoggingManager  # Import here to avoid circular imports

        old_logging_state = cls._logging_state()

        for key, value in kwargs.items():
            if not hasattr(cls, key):
                raise AttributeError(f"Invalid config key: {key}. No such key.")
            if key not in cls._CONFIGURABLE_KEYS:
                raise AttributeError(f"Sorry, value of key '{key}' is immutable.")

            if key == "log_level":
                if isinstance(value, str) and not isinstance(value, LogLevel):
                    try:
                        value = LogLevel(value.upper())
                    except ValueError:
                        raise ValueError(
                            f"Invalid log_level: '{value}'. "
                            f"Must be one of: {[lvl.value for lvl in LogLevel]}"
                        )
                if not isinstance(value, LogLevel):
                    raise TypeError(f"Expected {key} to be LogLevel, got {type(value).__name__}")
            elif key == "log_filepath":
                if isinstance(value, str):
                    value = pathlib.Path(value)
                if value is not None and not isinstance(value, pathlib.Path):
                    raise TypeError(f"Expected {key} to be pathlib.Path or None, got {type(value).__name__}")
            elif key == "module_log_levels":
                if not isinstance(value, dict):
                    raise TypeError(f"Expected {key} to be dict, got {type(value).__name__}")
                for mod_name, mod_level in value.items():
                    if not isinstance(mod_level, LogLevel):
                        raise TypeError(f"Module log level for '{mod_name}' must be LogLevel, got {type(mod_level).__name__}")
                value = dict(value)
            elif key == "terminal_log_max_line_length":
                if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                    raise TypeError(f"Expected {key} to be int or None, got {type(value).__name__}")
                if value is not None and value <= 0:
                    raise ValueError(f"Expected {key} to be positive integer or None, got {value}")
            elif key == "warn_on_length_mismatch":
                if not isinstance(value, bool):
                    raise TypeError(f"Expected {key} to be bool, got {type(value).__name__}")

            setattr(cls, key, value)

        if cls._logging_state() != old_logging_state:
            LoggingManager.reconfigure()

    @classmethod
    def _logging_state(cls) -> tuple:
        return (cls.log_level,
                cls.log_filepath,
                tuple(sorted(cls.module_log_levels.items())),
                cls.terminal_log_max_line_length)
