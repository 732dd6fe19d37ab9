import os
from pathlib import Path

try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib  # pyright: ignore[reportMissingImports]


CONFIG_ENVIRONMENT_VARIABLE = 'DIRDUP_CONFIG'

SETTING_MIN_SIZE = 'scan.min_size'
SETTING_HEAD = 'scan.head'
SETTING_MIN_INTERSECTION = 'scan.min_intersection'
SETTING_EXCLUDE = 'scan.exclude'
SETTING_ABORT_ON_ERROR = 'scan.abort_on_error'
SETTING_JOBS = 'scan.jobs'
SETTING_LOGGING_PATH = 'logging.path'
SETTING_LOGGING_LEVEL = 'logging.level'


class Settings:
    """Read-only view of a TOML settings file.

    The class does not interpret values; callers validate what they read. A missing
    settings path yields an empty view where every get() returns its default.

    Example:
        settings = Settings(Path('~/.config/dirdup.toml').expanduser())
        min_size = settings.get(SETTING_MIN_SIZE, 1)
    """

    def __init__(self, settings_path: Path | None = None):
        """Load settings from ``settings_path``.

        Raises:
            FileNotFoundError: An explicit settings path does not exist
            tomllib.TOMLDecodeError: The file is not valid TOML
        """
        self._settings_path = settings_path
        self._settings = {}

        if settings_path is not None:
            with open(settings_path, 'rb') as f:
                self._settings = tomllib.load(f)

    @classmethod
    def locate(cls, explicit_path: str | os.PathLike | None = None) -> 'Settings':
        """Load settings from an explicit path, else from $DIRDUP_CONFIG, else none."""
        if explicit_path is None:
            explicit_path = os.environ.get(CONFIG_ENVIRONMENT_VARIABLE) or None
        return cls(Path(explicit_path) if explicit_path is not None else None)

    @property
    def path(self) -> Path | None:
        return self._settings_path

    def get(self, key: str, default=None):
        """Get a setting by dotted key path, e.g. ``scan.min_size``.

        Returns the default if any part of the path is missing or an intermediate value
        is not a table.
        """
        value = self._settings

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value
