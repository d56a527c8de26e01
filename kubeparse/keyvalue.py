# coding: utf-8

import re

from . import _common
from .header import QUOTED_PATTERN

# bracketed list with backslash escapes, same form as QUOTED_PATTERN
_ARRAY_PATTERN = r'\[(?P<array>[^\]\\]*(?:\\.[^\]\\]*)*)\]'

_re_quote_escape = re.compile(r'(["\\])')
# white spaces and "=" never start a key
_re_key_gap = re.compile(r'[\s=]*')


class KeyValueParser:
    """Parser for key-value parts in log messages.

    Key-value parts are the structured context of log messages,
    such as :samp:`pod="kube-system/dns" nodeCondition=[DiskPressure]`
    (used by klog structured logging and by containerd).
    Tokens are searched from left to right, and each of them
    becomes one item.

    * :samp:`key="value"`: quoted string, backslash escapes are resolved
    * :samp:`key=[a, b]`: list of strings split with :attr:`separator`,
      elements are kept as written except surrounding white spaces
    * :samp:`key=value`: string until the next white space
    * :samp:`key` followed by a white space: skipped

    Text not in these forms is silently skipped.
    If a key appears twice, the later value is used.

    Example:
        >>> p = KeyValueParser()
        >>> p.process_line('msg="loading plugin \\\\"x\\\\"" nodeCondition=[DiskPressure, MemoryPressure] type=foo')
        {'msg': 'loading plugin "x"', 'nodeCondition': ['DiskPressure', 'MemoryPressure'], 'type': 'foo'}

    Args:
        separator (str, optional): Separator of list elements.
    """

    pattern = (r'(?P<key>[^\s=]+)'
               r'(?:\s|=(?P<value>' +
               QUOTED_PATTERN.format("quoted") +  # "value"
               r'|' + _ARRAY_PATTERN +  # [value, ...]
               r'|\S*))')  # value

    def __init__(self, separator=","):
        self._separator = separator
        self._reobj = re.compile(self.pattern)

    @property
    def separator(self):
        return self._separator

    def _split_array(self, string):
        l_elm = [elm.strip() for elm in string.split(self._separator)]
        # trailing empty elements are dropped, so that "[]" is an empty list
        while l_elm and l_elm[-1] == "":
            l_elm.pop()
        return l_elm

    def decode(self, mo):
        """Get a key and its decoded value from a match
        of :attr:`KeyValueParser.pattern`.

        Returns:
            tuple: key and value, or None for keys without values.
        """
        if mo.group("value") is None:
            return None
        if mo.group("quoted") is not None:
            value = _common.unescape(mo.group("quoted"))
        elif mo.group("array") is not None:
            value = self._split_array(mo.group("array"))
        else:
            value = mo.group("value")
        return mo.group("key"), value

    def process_line(self, text: str, verbose: bool = False):
        """Parse key-value part of a log message.

        Args:
            text (string): String of key-value part.
            verbose (bool, optional): Show skipped keys and text.

        Returns:
            dict: decoded values keyed with their names.
        """
        d = {}
        current = 0
        pos = 0
        while True:
            # a failed match means the key runs to the end of the text,
            # so no later position matches either
            pos = _re_key_gap.match(text, pos).end()
            mo = self._reobj.match(text, pos)
            if mo is None:
                break
            pos = mo.end()
            if verbose and text[current:mo.start()].strip():
                print("skip: {0!r}".format(text[current:mo.start()]))
            current = mo.end()
            tmp = self.decode(mo)
            if tmp is None:
                if verbose:
                    print("key without value: {0}".format(mo.group("key")))
                continue
            key, value = tmp
            d[key] = value
        if verbose and text[current:].strip():
            print("skip: {0!r}".format(text[current:]))
        return d

    def dumps(self, record):
        """Generate key-value text from a record.

        Strings are quoted, lists are bracketed,
        and other values are written as is.
        Parsing the output with :meth:`process_line` gives
        the same strings and lists, as far as list elements
        do not include the separator, "]", backslashes
        or surrounding white spaces.

        Args:
            record (dict): parsed record.

        Returns:
            str
        """
        l_buf = []
        for key, value in record.items():
            if isinstance(value, str):
                buf = '"' + _re_quote_escape.sub(r'\\\1', value) + '"'
            elif isinstance(value, (list, tuple)):
                buf = "[" + self._separator.join(str(elm) for elm in value) + "]"
            else:
                buf = str(value)
            l_buf.append("{0}={1}".format(key, buf))
        return " ".join(l_buf)
