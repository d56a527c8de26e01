# coding: utf-8

import copy
import datetime
import re
from abc import ABC, abstractmethod

from . import _common

_KEY_TIME = _common.KEY_TIME
_KEY_MESSAGE = _common.KEY_MESSAGE
_KEY_TAIL = _common.KEY_TAIL

# keys for internal processing
_KEY_YEAR = "year"
_KEY_MONTH = "month"
_KEY_DAY = "day"
_KEY_TZ = "tz"

# double-quoted string with backslash escapes (unrolled loop, no nested quantifier)
QUOTED_PATTERN = r'"(?P<{0}>[^"\\]*(?:\\.[^"\\]*)*)"'


class HeaderParser:
    """Parser for header parts in log messages.

    Header parts in log messages provides some items of meta-information.
    For example, klog (the logging library of Kubernetes components)
    records messages with a severity, date, time, thread id
    and source code location as header information.
    The key-value part following the message is left for
    :class:`~keyvalue.KeyValueParser`.

    A HeaderParser rule is represented with a list of :class:`Item`.
    Item is a component of regular expression patterns
    to parse corresponding variable item.
    HeaderParser automatically generates one regular expression pattern
    from the items, and tests that it matches the whole input log message.
    If matched, HeaderParser extracts variables for the items.

    Placement of the items is given with "full_format".
    It is a regular expression holed with Item replacers.
    For example, if full_format is r"<0><1><2> <3> <4> <5>:<6>\\]\\s<7>",
    <0> will be replaced with the first :class:`Item` in items
    (The number corrsponds to the index of given items).
    Spaces in full_format match one or more white spaces;
    use \\s for exactly one.
    The number of replacers must be equal to the length of items.
    Note that optional Items must be manually enclosed with "(" and ")?"
    in the full_format regular expression.

    If you want to reformat the timestamp (i.e., reformat_timestamp option),
    the items should include ones with value names "month", "day"
    and "time" (see :attr:`~Item.value_name`).
    "year" and "tz" are taken from the header if given as items,
    or from defaults otherwise.
    They are joined into an ISO 8601 string,
    and stored as "time" item
    (e.g., :samp:`2022-05-24T16:21:12.823864+02:00`).

    If the message item includes a named group "kv"
    (see :class:`KlogMessage`), the matched string is stored
    with the same key, to be parsed as key-value pairs.

    Args:
        items (list of :class:`Item`): header format rule.
        full_format (str): Place format of header part.
        defaults (dict, optional): Default values, used for
            missing values (for optional or missing items) in log messages.
        reformat_timestamp (bool, optional): Join time-related
            items into a timestamp string.
            Set false if log messages do not have timestamps.
    """

    _timestamp_keys = [_KEY_MONTH, _KEY_DAY, _KEY_TIME]

    def __init__(self, items, full_format, defaults=None,
                 reformat_timestamp=True):
        self._l_item = items
        self._defaults = defaults if defaults is not None else dict()
        self._reformat = reformat_timestamp

        self._items_to_pick = [item for item in items if not item.dummy]
        self._duplication_check(self._items_to_pick)
        if reformat_timestamp:
            self._timestamp_check(self._items_to_pick)

        restr = self.make_pattern_full_format(items, full_format)
        try:
            self._reobj = re.compile(restr)
        except re.error as e:
            msg = "Invalid full_format pattern: {0}".format(e)
            raise _common.ParserDefinitionError(msg)

    @property
    def pattern(self):
        return self._reobj

    @staticmethod
    def _duplication_check(items_to_pick):
        names = [item.match_name for item in items_to_pick]
        if len(names) > len(set(names)):
            msg = "Given items include duplicated match names"
            raise _common.ParserDefinitionError(msg)

    @classmethod
    def _timestamp_check(cls, items_to_pick):
        names = [item.value_name for item in items_to_pick]
        for key in cls._timestamp_keys:
            if key not in names:
                msg = ("{0} item is mandatory to reformat timestamp; "
                       "use reformat_timestamp=False for headers without timestamp")
                raise _common.ParserDefinitionError(msg.format(key))

    @staticmethod
    def make_pattern_full_format(items, full_format):
        tmp_format = re.sub(" +", r"\\s+", full_format)
        for i, item in reversed(list(enumerate(items))):
            replacer = "<" + str(i) + ">"
            item_regex = item.get_regex()
            if replacer not in tmp_format:
                msg = ("Invalid full_format pattern: "
                       "no replacer {0}".format(replacer))
                raise _common.ParserDefinitionError(msg)
            tmp_format = tmp_format.replace(replacer, item_regex, 1)

        return '^' + tmp_format + '$'

    def _reformat_timestamp(self, ret):
        year = ret.pop(_KEY_YEAR, None)
        if year is None:
            year = datetime.datetime.now().year
        month = ret.pop(_KEY_MONTH)
        day = ret.pop(_KEY_DAY)
        timestr = ret.pop(_KEY_TIME)
        tz = ret.pop(_KEY_TZ, "")
        ret[_KEY_TIME] = "{0}-{1:02d}-{2:02d}T{3}{4}".format(
            year, month, day, timestr, tz)
        return ret

    def process_line(self, line, defaults=None):
        """Parse header part of a log message (i.e., a line).

        Args:
            line (str): A log message without line feed code.
            defaults (dict, optional): Default values for this line,
                overriding the defaults given to the constructor.

        Returns:
            dict: Parsed items, or None if the header does not match.
        """
        d_items = copy.copy(self._defaults)
        if defaults is not None:
            d_items.update(defaults)
        mo = self._reobj.match(line)
        if mo is None:
            return None

        for item in self._items_to_pick:
            tmp = item.pick(mo)
            if tmp is not None:
                key, val = tmp
                d_items[key] = val
        tail = mo.groupdict().get(_KEY_TAIL)
        if tail is not None:
            d_items[_KEY_TAIL] = tail
        if self._reformat:
            d_items = self._reformat_timestamp(d_items)
        else:
            for key in (_KEY_YEAR, _KEY_TZ):
                d_items.pop(key, None)
        return d_items


class Item(ABC):
    """Base class of items, components of header parts.

    Args:
        optional (bool, optional): This item is optional.
            Not all inputs need this item in their header parts.
            If true, Item.pick() returns None if no corresponding part found.
        dummy (bool, optional): Dummy items do not extract any values.
            If true, kubeparse does not try extracting a value for this item,
            and Item.pick() will not be called for this item.
    """
    _match_name = "variable"
    _value_name = "variable"

    def __init__(self, optional=False, dummy=False):
        self._optional = optional
        self._dummy = dummy

    @property
    @abstractmethod
    def pattern(self):
        """str: Get regular expression pattern string for this *Item class*."""
        raise NotImplementedError

    @property
    def optional(self):
        return self._optional

    @property
    def dummy(self):
        return self._dummy

    @property
    def match_name(self):
        """str: Match name of this Item.

        Match name is used to distinguish the extracted values
        in `re <https://docs.python.org/3/library/re.html>`_
        MatchObject.
        Match name cannot be duplicated in a set of HeaderParser items.
        """
        return self._match_name

    @property
    def value_name(self):
        """str: Value name of this :class:`Item`.

        Value name is used as the keys of return value of :class:`HeaderParser`.
        Also, timestamps are reformatted with specific value names.
        """
        return self._value_name

    def test(self, string):
        """Test this Item will match the input string or not.
        Note that this function is only for debugging your parser script
        (because it generates internal re.Pattern for every call).

        Args:
            string: Input string to test matching.

        Returns:
            re.Match or None
        """
        pattern = re.compile(r'^' + self.get_regex() + r'$')
        return pattern.match(string)

    def get_regex(self):
        """Get regular expression pattern string of this :class:`Item` instance.
        """
        if self._dummy:
            return self.pattern
        else:
            return r'(?P<' + self.match_name + r'>' + self.pattern + ')'

    def pick(self, mo):
        """Get value name and the extracted values
        from `re <https://docs.python.org/3/library/re.html>`_
        MatchObject in appropriate format.

        Args:
            mo: MatchObject for combined pattern of :class:`HeaderParser`.

        Returns:
            tuple: :attr:`~Item.value_name` and the value
            extracted by :meth:`Item.pick_value`.
        """
        if mo[self.match_name] is None:
            if self.optional:
                return None
            msg = ("Unoptional item failed to get the corresponding value. "
                   "Enclose optional Item with \"()?\" in full_format "
                   "and set optional=True.")
            raise _common.ParserDefinitionError(msg)
        return self.value_name, self.pick_value(mo)

    def pick_value(self, mo):
        """Get a value from `re <https://docs.python.org/3/library/re.html>`_
        MatchObject in appropriate format.

        Args:
            mo: MatchObject for combined pattern of :class:`HeaderParser`.

        Returns:
            Extracted value for this :class:`Item`. Any type, depending on the class.
            If not specified, a matched string value is returned as is.
        """
        return mo[self.match_name]


class LogLevel(Item):
    """Item for one-letter severity of klog.

    | e.g., :samp:`I` for info, :samp:`W` for warn,
      :samp:`E` for error, :samp:`F` for fatal

    Other capital letters are stored as is.
    """
    _match_name = "log_level"
    _value_name = _common.KEY_LEVEL
    level_name = {"I": "info",
                  "W": "warn",
                  "E": "error",
                  "F": "fatal"}

    @property
    def pattern(self):
        return r'[A-Z]'

    def pick_value(self, mo):
        """Returns level name (e.g., "info")."""
        letter = mo[self.match_name]
        return self.level_name.get(letter, letter)


class ClockTime(Item):
    """Item for time of day with optional fractional seconds,
    kept as a string.

    | e.g., :samp:`16:21:12`

    | e.g., :samp:`16:21:12.823864`
    """
    _match_name = "clock"
    _value_name = _KEY_TIME

    @property
    def pattern(self):
        return r'\d{2}:\d{2}:\d{2}(?:\.\d+)?'


class KlogMessage(Item):
    """Item for the message of klog, placed at the end of a header rule.

    Structured logs quote the message and may continue
    with key-value pairs, which are matched as named group "kv".
    Other messages are taken as is until the end of line.

    | e.g., :samp:`"Topology Admit Handler" pod="kube-system/dns"`

    | e.g., :samp:`http: superfluous response.WriteHeader call`
    """
    _match_name = "message_body"
    _value_name = _KEY_MESSAGE
    _key_quoted = "quoted_msg"
    _key_greedy = "greedy_msg"

    @property
    def pattern(self):
        return (QUOTED_PATTERN.format(self._key_quoted) +  # "message"
                r'(?:\s+(?P<' + _KEY_TAIL + r'>.*))?'  # key-value part
                r'|(?P<' + self._key_greedy + r'>.*)')  # unquoted message

    def pick_value(self, mo):
        """Returns the message with backslash escapes resolved
        if quoted, or as is."""
        if mo[self._key_quoted] is not None:
            return _common.unescape(mo[self._key_quoted])
        return mo[self._key_greedy]


class NamedItem(Item, ABC):
    """A base class of namable items.
    Namable items requires an argument for the name.
    The name is used as match name and value name.
    The name should not be duplicated with match names of other items
    (including unnamable items) in one :class:`HeaderParser` rule.

    Args:
        name (string): name of :class:`Item` instance,
            used as match name and value name.
    """

    def __init__(self, name, **kwargs):
        super().__init__(**kwargs)
        self._name = name

    @property
    def match_name(self):
        return self._name

    @property
    def value_name(self):
        return self._name


class Digit(NamedItem):
    """:class:`NamedItem` for a digit value.

    Args:
        width (int, optional): Number of digits.
            If not given, one or more digits will match.
    """

    def __init__(self, name, width=None, **kwargs):
        super().__init__(name, **kwargs)
        if width is None:
            self._pattern = r'\d+'
        else:
            self._pattern = r'\d{' + str(width) + r'}'

    @property
    def pattern(self):
        return self._pattern

    def pick_value(self, mo):
        """Returns integer."""
        return int(mo[self._name])


class UserItem(NamedItem):
    """Customizable :class:`NamedItem`.

    The pattern is described in Python Regular Expression Syntax
    (`re <https://docs.python.org/3/library/re.html>`_).
    Some special characters are not allowed to use for this Item
    because HeaderParser generates a single re.Pattern
    by automatically combining the given set of items.

    * Optional parts, such as :regexp:`?`
    * :regexp:`^` and :regexp:`$`

    Args:
        name: same as NamedItem.
        pattern: regular expression pattern of this Item instance.
        strip (str, optional): specified characters will be stripped
            with str.strip() in the parsed object.
    """

    def __init__(self, name, pattern, strip=None, **kwargs):
        super().__init__(name, **kwargs)
        self._pattern = pattern
        self._strip = strip

    @property
    def pattern(self):
        return self._pattern

    def pick_value(self, mo):
        if self._strip is None:
            return mo[self.match_name]
        else:
            return mo[self.match_name].strip(self._strip)
