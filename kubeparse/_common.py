# coding: utf-8

import datetime
import re
from collections import namedtuple
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

# keys in public
KEY_TIME = "time"
KEY_LEVEL = "level"
KEY_MESSAGE = "msg"
KEY_FILE = "file"
KEY_LINE = "line"
KEY_THREADID = "threadid"

# key-value part remaining after the header, internal only
KEY_TAIL = "kv"

_re_tz = re.compile(r'^(?P<sign>[+-])(?P<hour>\d{2}):?(?P<minute>\d{2})$')
_re_escaped = re.compile(r'\\(.)')


class ConfigError(Exception):
    """ConfigError is raised when :class:`ParserConfig`
    is given invalid values (e.g., a delimiter longer than one character).
    Parsing never starts with such a configuration.
    """
    pass


class ParserDefinitionError(Exception):
    """ParserDefinitionError is raised when the given header rules
    are inappropriate (e.g., having syntax errors).
    """
    pass


class TimeParseError(Exception):
    """TimeParseError is raised by :class:`~timestamp.TimeParser`
    when a time string does not match the expected format.

    :class:`LineParser` absorbs it; the timestamp of such lines
    falls back to the time given by the caller.
    """
    pass


def unescape(string):
    """Resolve backslash escapes: every ``\\X`` becomes ``X``."""
    return _re_escaped.sub(r'\1', string)


@dataclass(frozen=True)
class ParserConfig:
    """Options of :class:`LineParser`, fixed once the parser is built.

    Args:
        delimiter (str, optional): One character delimiter.
        default_tz (str, optional): UTC offset (like ``+02:00``) for
            timestamps without timezone, including all klog headers.
        force_year (int, optional): Year for klog headers,
            which do not record it. Defaults to the current year.
        keep_time_key (bool, optional): Leave the time field in the record
            after it is used for the timestamp.
        time_format (str, optional): strptime format of the time field.
            If not given, ISO 8601 strings and unix time are accepted.
        time_key (str, optional): Record key holding the time field.
    """
    delimiter: str = " "
    default_tz: str = "+00:00"
    force_year: Optional[int] = None
    keep_time_key: bool = False
    time_format: Optional[str] = None
    time_key: str = KEY_TIME

    def __post_init__(self):
        if self.delimiter is None or len(self.delimiter) != 1:
            msg = "delimiter must be a single character. {0!r} is not.".format(self.delimiter)
            raise ConfigError(msg)
        mo = _re_tz.match(self.default_tz or "")
        if mo is None or int(mo.group("hour")) > 23 or int(mo.group("minute")) > 59:
            msg = "default_tz must be an UTC offset like +00:00. {0!r} is not.".format(self.default_tz)
            raise ConfigError(msg)
        # klog headers use the offset as is: always in +hh:mm form
        object.__setattr__(self, "default_tz", "{0}{1}:{2}".format(
            mo.group("sign"), mo.group("hour"), mo.group("minute")))
        if self.force_year is not None:
            try:
                year = int(self.force_year)
            except (TypeError, ValueError):
                msg = "force_year must be an integer. {0!r} is not.".format(self.force_year)
                raise ConfigError(msg)
            # frozen: bypass __setattr__ to store the normalized value
            object.__setattr__(self, "force_year", year)
        if not self.time_key:
            raise ConfigError("time_key must not be empty")


ParseResult = namedtuple("ParseResult", ["timestamp", "record"])
ParseResult.__doc__ = """Parsed log line: a timestamp (or None) and a record dict (or None)."""


class LineParser:
    """Log parser object.

    LineParser in kubeparse consists of two different parsers:
    :class:`~header.HeaderParser` and :class:`~keyvalue.KeyValueParser`.

    A line is first tested with the header parsers.
    If one of them matches, its items are stored in the record,
    and the key-value part following the header (if any) is scanned
    with the KeyValueParser.
    If no header parser matches, the whole line is scanned
    as key-value pairs.
    Key-value pairs overwrite header items with the same name.

    Finally the timestamp is taken from the record item named
    :attr:`ParserConfig.time_key` ("time" in default).

    Example:
        >>> parser = kubeparse.init_parser(ParserConfig(force_year=2022, default_tz="+02:00"))
        >>> ts, record = parser.process_line(
        ...     'I0524 17:05:44.446677    1025 topology_manager.go:200] "Topology Admit Handler" pod="kube-system/dns"')
        >>> ts
        datetime.datetime(2022, 5, 24, 17, 5, 44, 446677, tzinfo=datetime.timezone(datetime.timedelta(seconds=7200)))
        >>> record
        {'level': 'info', 'threadid': 1025, 'file': 'topology_manager.go', 'line': 200, 'msg': 'Topology Admit Handler', 'pod': 'kube-system/dns'}

    You can specify multiple :class:`~header.HeaderParser` as input.
    If so, :class:`LineParser` try to parse a log message with them in order,
    and the first matched rule is used for the message.

    LineParser keeps no state between lines, so one instance
    can be shared by multiple threads.

    Args:
        header_parsers (:obj:`~header.HeaderParser` or list of it):
            one or multiple HeaderParser instance to use.
        kv_parser (:obj:`~keyvalue.KeyValueParser`):
            one KeyValueParser instance to use.
        config (:obj:`ParserConfig`, optional): parser options.
        time_parser (:obj:`~timestamp.TimeParser`, optional):
            parser for the time item. Generated from config if not given.
    """

    def __init__(self, header_parsers, kv_parser, config=None, time_parser=None):
        from .header import HeaderParser
        if isinstance(header_parsers, Iterable):
            self.header_parsers = list(header_parsers)
        elif isinstance(header_parsers, HeaderParser):
            self.header_parsers = [header_parsers]
        else:
            raise TypeError
        self.kv_parser = kv_parser
        self.config = config if config is not None else ParserConfig()
        if time_parser is None:
            from .timestamp import TimeParser
            time_parser = TimeParser(self.config.time_format,
                                     default_tz=self.config.default_tz)
        self.time_parser = time_parser

    def _header_defaults(self, now):
        if self.config.force_year is not None:
            year = self.config.force_year
        elif now is not None:
            year = now.year
        else:
            year = datetime.datetime.now().year
        return {"year": year, "tz": self.config.default_tz}

    def process_header(self, line, now=None, verbose=False):
        """Parse header part in a log message.

        This function uses all given HeaderParser rules.

        Args:
            line (str): A log message.
            now (datetime.datetime, optional): Current time,
                used for the year of headers without year.
            verbose (bool, optional): Show intermediate progress
                of applying header rules.

        Returns:
            dict: parsed header data, or None if no rules match.
        """
        defaults = self._header_defaults(now)
        for rule_id, p in enumerate(self.header_parsers):
            ret = p.process_line(line, defaults=defaults)
            if ret is None:
                if verbose:
                    print("header rule {0}: mismatch".format(rule_id))
            else:
                if verbose:
                    print("header rule {0}: match".format(rule_id))
                return ret
        return None

    def process_kv(self, text, verbose=False):
        """Parse key-value pairs.

        Args:
            text (str): Key-value part of a log message.
            verbose (bool, optional): Show intermediate progress.

        Returns:
            dict: decoded key-value pairs.
            See :meth:`keyvalue.KeyValueParser.process_line`.
        """
        return self.kv_parser.process_line(text, verbose)

    def process_timestamp(self, record, verbose=False):
        """Take a timestamp from the time item of a parsed record.

        The time item is removed from the record
        unless :attr:`ParserConfig.keep_time_key` is set.
        If the item cannot be parsed, it stays in the record.

        Args:
            record (dict): Parsed record, modified in place.
            verbose (bool, optional): Show failures of time parsing.

        Returns:
            datetime.datetime or None
        """
        key = self.config.time_key
        if key not in record:
            return None
        try:
            dt = self.time_parser.parse(record[key])
        except TimeParseError as e:
            if verbose:
                print("time item {0}: {1}".format(key, e))
            return None
        if not self.config.keep_time_key:
            del record[key]
        return dt

    def process_line(self, line: Optional[str],
                     now: Optional[datetime.datetime] = None,
                     verbose: bool = False) -> ParseResult:
        """Parse a log message (i.e., a line).

        Args:
            line (str): A log message. Line feed code will be removed.
            now (datetime.datetime, optional): Current time given by caller.
                It is used for the year of klog headers (if force_year
                is not configured), and as the timestamp of lines
                without available time item.
            verbose (bool, optional): Show intermediate progress
                of applying rules.

        Returns:
            ParseResult: timestamp and record.
            Both are None for empty lines.
        """
        if line is None:
            return ParseResult(None, None)
        line = line.rstrip("\r\n")
        if line == "":
            return ParseResult(None, None)

        record = {}
        header = self.process_header(line, now=now, verbose=verbose)
        if header is None:
            text = line
        else:
            text = header.pop(KEY_TAIL, None)
            record.update(header)

        if text is not None:
            record.update(self.process_kv(text, verbose))

        timestamp = self.process_timestamp(record, verbose)
        if timestamp is None:
            timestamp = now
        return ParseResult(timestamp, record)


def init_parser(config=None, header_parsers=None, kv_parser=None):
    """Generate :class:`LineParser` object.

    If no arguments are given,
    this function generates LineParser with default configurations.

    Args:
        config (:class:`ParserConfig`, optional): parser options.
        header_parsers (:class:`~header.HeaderParser` or list of it, optional):
            one or multiple HeaderParser instance to use.
            If not given, use :func:`preset.default_header_parsers`.
        kv_parser (:class:`~keyvalue.KeyValueParser`, optional):
            one KeyValueParser instance to use.
            If not given, use :func:`preset.default_kv_parser`.
    """

    if header_parsers is None:
        from . import preset
        header_parsers = preset.default_header_parsers()
    if kv_parser is None:
        from . import preset
        kv_parser = preset.default_kv_parser()
    return LineParser(header_parsers, kv_parser, config=config)
