# coding: utf-8

import datetime
import re

from . import _common

_re_iso_datetime = re.compile(
    r'^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})[T ]'  # year-month-dayT
    r'(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})'  # hour:minute:second
    r'(\.(?P<dsecond>\d+))?'  # decimal part of seconds
    r'(?P<tz>Z|z|[+-]\d{2}(:?\d{2})?)?$')  # timezone
_re_unixtime = re.compile(r'^(?P<second>\d+)(\.(?P<dsecond>\d+))?$')


def parse_tz(string):
    """Get :obj:`datetime.timezone` from an UTC offset string.

    | e.g., :samp:`Z`, :samp:`+09:00`, :samp:`-0300`, :samp:`+02`
    """
    if string in ("Z", "z"):
        return datetime.timezone.utc

    z = string.replace(":", "")
    if len(z) not in (3, 5) or z[0] not in "+-" or not z[1:].isdigit():
        raise ValueError("invalid UTC offset: {0}".format(string))
    hours = int(z[1:3])
    minutes = int(z[3:5] or 0)
    tzdelta = datetime.timedelta(hours=hours, minutes=minutes)
    if z.startswith("-"):
        tzdelta = -tzdelta
    return datetime.timezone(tzdelta)


def parse_microsecond(string):
    """Get microseconds from the decimal part of seconds.
    Digits smaller than microseconds are truncated.

    | e.g., :samp:`823864` -> 823864

    | e.g., :samp:`144534370` -> 144534

    | e.g., :samp:`5` -> 500000
    """
    return int(string[:6].ljust(6, "0"))


class TimeParser:
    """Parser for time items of parsed records.

    If time_format is given, the value is parsed
    with `datetime.datetime.strptime
    <https://docs.python.org/3/library/datetime.html#strftime-and-strptime-behavior>`_.
    Otherwise, following formats are accepted:

    * ISO 8601 (or RFC 3339) datetime with any digits of decimal seconds
      (e.g., :samp:`2022-05-24T14:08:25.144534370+02:00`)
    * unix time in seconds (e.g., :samp:`1653394105.144`)

    Timestamps without timezone are given default_tz.

    Args:
        time_format (str, optional): strptime format.
        default_tz (str, optional): UTC offset for timestamps
            without timezone.
    """

    def __init__(self, time_format=None, default_tz=None):
        self._format = time_format
        if default_tz is None:
            self._default_tz = None
        else:
            self._default_tz = parse_tz(default_tz)

    @property
    def time_format(self):
        return self._format

    def _set_default_tz(self, dt):
        if dt.tzinfo is None and self._default_tz is not None:
            return dt.replace(tzinfo=self._default_tz)
        return dt

    @staticmethod
    def _parse_iso(string):
        mo = _re_iso_datetime.match(string)
        if mo is None:
            return None
        d = {"year": int(mo.group("year")),
             "month": int(mo.group("month")),
             "day": int(mo.group("day")),
             "hour": int(mo.group("hour")),
             "minute": int(mo.group("minute")),
             "second": int(mo.group("second"))}
        if mo.group("dsecond") is not None:
            d["microsecond"] = parse_microsecond(mo.group("dsecond"))
        if mo.group("tz") is not None:
            d["tzinfo"] = parse_tz(mo.group("tz"))
        return datetime.datetime(**d)

    @staticmethod
    def _parse_unixtime(string):
        mo = _re_unixtime.match(string)
        if mo is None:
            return None
        dt = datetime.datetime.fromtimestamp(int(mo.group("second")),
                                             tz=datetime.timezone.utc)
        if mo.group("dsecond") is not None:
            dt = dt.replace(microsecond=parse_microsecond(mo.group("dsecond")))
        return dt

    def parse(self, value):
        """Parse a time item.

        Args:
            value (str or int): time item in a record.

        Returns:
            datetime.datetime

        Raises:
            TimeParseError: if value does not match the format.
        """
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str):
            msg = "time value must be a string, not {0}".format(type(value).__name__)
            raise _common.TimeParseError(msg)

        try:
            if self._format is not None:
                dt = datetime.datetime.strptime(value, self._format)
            else:
                dt = self._parse_iso(value)
                if dt is None:
                    dt = self._parse_unixtime(value)
        except (ValueError, OverflowError, OSError) as e:
            raise _common.TimeParseError("invalid time {0!r}: {1}".format(value, e))

        if dt is None:
            raise _common.TimeParseError("unknown time format: {0!r}".format(value))
        return self._set_default_tz(dt)
