"""
helpers for converting values from one format to a different one
"""
from datetime import date, datetime, time as dt_time, timedelta

import uuid6

TIMESTAMP_FORMAT = '%Y-%m-%d_%H-%M-%S'
# Dump file names. Microseconds keep runs started in the same second apart.
DUMP_TIMESTAMP_FORMAT = '%Y-%m-%d_%H-%M-%S-%f'
DATE_FORMAT = '%Y-%m-%d'
# Stored in the catalog. Fixed width so that text comparison orders correctly.
DB_TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S.%f'


def format_timestamp(timestamp: datetime) -> str:
    """
    Convert the given datetime object to the string shown to users.
    :param timestamp: datetime object
    :return: formatted time
    """
    return timestamp.strftime(TIMESTAMP_FORMAT)


def format_dump_timestamp(timestamp: datetime) -> str:
    return timestamp.strftime(DUMP_TIMESTAMP_FORMAT)


def format_date(day: date) -> str:
    """
    Convert the given date to the name of the daily xtrabackup folder.
    :param day: date or datetime
    :return: formatted date
    """
    return day.strftime(DATE_FORMAT)


def to_db_timestamp(timestamp: datetime) -> str:
    return timestamp.strftime(DB_TIMESTAMP_FORMAT)


def from_db_timestamp(value: str) -> datetime:
    return datetime.strptime(value, DB_TIMESTAMP_FORMAT)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """
    Get the first moment of the given day and the first moment of the next one.
    :param day: date
    :return: 2-tuple (start, end), end is exclusive
    """
    start = datetime.combine(day, dt_time.min)
    return start, start + timedelta(days=1)


def new_id() -> str:
    """
    Create a new time-ordered identifier (UUID version 7).
    Ids created by this process are strictly increasing, also within the same
    millisecond. Sorting them lexicographically sorts them by creation time.
    :return: id as string
    """
    return str(uuid6.uuid7())
