"""
System configuration helper functions for accessing the SystemConfig table.

Configuration values are stored as JSON so a key can hold any structure.

Known configuration keys:
- mcq_passing_percentage: number in [0, 100], the minimum assessment score to pass
"""
import logging
from numbers import Real
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.datetime_utils import utc_now
from portal.core.exceptions import SettingsUnavailableError
from portal.models.models import SystemConfig

logger = logging.getLogger(__name__)

PASSING_PERCENTAGE_KEY = "mcq_passing_percentage"


def get_config(db: Session, key: str, default: Any = None) -> Any:
    """
    Get a configuration value from the SystemConfig table.

    Args:
        db: Database session
        key: Configuration key to retrieve
        default: Default value to return if key doesn't exist

    Returns:
        The configuration value, or default if not found
    """
    config = db.query(SystemConfig).filter(SystemConfig.key == key).first()
    if config is None:
        return default
    return config.value


def set_config(db: Session, key: str, value: Any) -> SystemConfig:
    """
    Set a configuration value, creating the entry if needed.

    Args:
        db: Database session
        key: Configuration key to set
        value: Value to store (must be JSON-serializable)

    Returns:
        The SystemConfig instance (new or updated)
    """
    config = db.query(SystemConfig).filter(SystemConfig.key == key).first()

    if config is None:
        config = SystemConfig(key=key, value=value, updated_at=utc_now())
        db.add(config)
    else:
        config.value = value
        config.updated_at = utc_now()

    db.commit()
    db.refresh(config)
    return config


def read_passing_percentage(db: Session) -> Optional[float]:
    """
    Read the configured passing percentage without applying a fallback.

    Returns:
        The configured threshold, or None if the key is not set

    Raises:
        SettingsUnavailableError: If the store cannot be read or holds a
            value that is not a number between 0 and 100
    """
    try:
        value = get_config(db, PASSING_PERCENTAGE_KEY)
    except SQLAlchemyError as e:
        # Leave the session usable for the caller's own writes
        db.rollback()
        raise SettingsUnavailableError(PASSING_PERCENTAGE_KEY, str(e)) from e

    if value is None:
        return None
    # bool is a Real subclass; a stored true/false is not a threshold
    if isinstance(value, bool) or not isinstance(value, Real):
        raise SettingsUnavailableError(
            PASSING_PERCENTAGE_KEY, f"expected a number, got {value!r}"
        )
    if not 0 <= value <= 100:
        raise SettingsUnavailableError(
            PASSING_PERCENTAGE_KEY, f"{value} is outside 0-100"
        )
    return float(value)


def get_passing_percentage(db: Session) -> float:
    """
    Get the passing threshold used to decide pass/fail.

    Never fails: a missing key, an unreadable store or a malformed value all
    fall back to settings.DEFAULT_PASSING_PERCENTAGE. Store failures are logged.

    Args:
        db: Database session

    Returns:
        Passing percentage between 0 and 100
    """
    try:
        value = read_passing_percentage(db)
    except SettingsUnavailableError as e:
        logger.warning(
            "Failed to fetch passing percentage from settings, using default "
            f"{settings.DEFAULT_PASSING_PERCENTAGE}: {e.reason}"
        )
        return settings.DEFAULT_PASSING_PERCENTAGE

    if value is None:
        return settings.DEFAULT_PASSING_PERCENTAGE
    return value


def set_passing_percentage(db: Session, percentage: float) -> SystemConfig:
    """
    Set the passing threshold.

    Args:
        db: Database session
        percentage: Threshold between 0 and 100

    Returns:
        The SystemConfig instance

    Raises:
        ValueError: If percentage is outside 0-100
    """
    if not 0 <= percentage <= 100:
        raise ValueError(f"Passing percentage must be between 0 and 100, got {percentage}")
    return set_config(db, PASSING_PERCENTAGE_KEY, percentage)
