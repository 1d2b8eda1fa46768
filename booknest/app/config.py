"""
Application Configuration
=========================
Configuration management for the reading tracker.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from booknest.reminders.notifier import DEFAULT_REMINDER_BODY, DEFAULT_REMINDER_TITLE

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class AppConfig:
    """
    Application configuration.

    Attributes:
        data_dir: Directory for application data (database, etc.)
        db_path: Path to SQLite database
        notifications_default: Notification preference before the user ever sets it
        allow_status_regression: Move Finished books back to Reading when progress drops
        reminder_title: Title of every due-date reminder
        reminder_body_template: Reminder body, formatted with {title}
        log_level: Logging level for the CLI
    """

    # Directories
    data_dir: Path = field(default_factory=lambda: Path("data"))

    # Database
    db_path: Optional[Path] = None

    # Reminders
    notifications_default: bool = False
    reminder_title: str = DEFAULT_REMINDER_TITLE
    reminder_body_template: str = DEFAULT_REMINDER_BODY

    # Progress
    allow_status_regression: bool = False

    # Logging
    log_level: str = "WARNING"

    def __post_init__(self):
        """Ensure directories exist and set defaults."""
        self.data_dir = Path(self.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        if self.db_path is None:
            self.db_path = self.data_dir / "booknest.db"
        else:
            self.db_path = Path(self.db_path)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "AppConfig":
        """
        Create config from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            AppConfig instance
        """
        path_fields = {"data_dir", "db_path"}
        processed = {}

        for key, value in config_dict.items():
            if key in path_fields and value is not None:
                processed[key] = Path(value)
            else:
                processed[key] = value

        return cls(**processed)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "AppConfig":
        """
        Create config from BOOKNEST_* environment variables.

        Unset variables keep their defaults.
        """
        environ = os.environ if environ is None else environ
        values = {}

        if environ.get("BOOKNEST_DATA_DIR"):
            values["data_dir"] = environ["BOOKNEST_DATA_DIR"]
        if environ.get("BOOKNEST_DB_PATH"):
            values["db_path"] = environ["BOOKNEST_DB_PATH"]
        if environ.get("BOOKNEST_ALLOW_STATUS_REGRESSION"):
            values["allow_status_regression"] = (
                environ["BOOKNEST_ALLOW_STATUS_REGRESSION"].strip().lower() in _TRUE_VALUES
            )
        if environ.get("BOOKNEST_LOG_LEVEL"):
            values["log_level"] = environ["BOOKNEST_LOG_LEVEL"].upper()

        return cls.from_dict(values)

    def to_dict(self) -> dict:
        """
        Convert config to dictionary.

        Returns:
            Configuration dictionary
        """
        return {
            "data_dir": str(self.data_dir),
            "db_path": str(self.db_path) if self.db_path else None,
            "notifications_default": self.notifications_default,
            "reminder_title": self.reminder_title,
            "reminder_body_template": self.reminder_body_template,
            "allow_status_regression": self.allow_status_regression,
            "log_level": self.log_level,
        }
