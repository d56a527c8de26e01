# coding: utf-8

"""kubeparse.preset is a submodule to provide some settings
for frequently used log formats."""


from ._common import LineParser
from .header import *
from .keyvalue import *

klog_format = r"<0><1><2> <3> <4> <5>:<6>\]\s<7>"


def klog_header_parser(**kwargs):
    """Generate :class:`~kubeparse.header.HeaderParser` for klog headers.

    | e.g., ``I0524 16:21:12.823864    1025 log.go:195] http: superfluous response.WriteHeader call``

    | e.g., ``I0524 17:11:56.952306    1025 kubelet_volumes.go:160]
        "Cleaned up orphaned pod volumes dir" podUID=c50c3c96 path="/var/lib/kubelet/pods/c50c3c96/volumes"``

    The rule consists of following items.

    * level (:class:`~kubeparse.header.LogLevel`)
    * month (:class:`~kubeparse.header.Digit`, 2 digits)
    * day (:class:`~kubeparse.header.Digit`, 2 digits)
    * time (:class:`~kubeparse.header.ClockTime`)
    * threadid (:class:`~kubeparse.header.Digit`)
    * file (:class:`~kubeparse.header.UserItem`)
    * line (:class:`~kubeparse.header.Digit`)
    * msg (:class:`~kubeparse.header.KlogMessage`)

    Args:
        **kwargs: passed to :class:`~kubeparse.header.HeaderParser`.

    Returns:
        :class:`~kubeparse.header.HeaderParser`

    Reference:
        System Logs - Kubernetes: https://kubernetes.io/docs/concepts/cluster-administration/system-logs/
    """
    header_rule = [LogLevel(),
                   Digit("month", width=2),
                   Digit("day", width=2),
                   ClockTime(),
                   Digit("threadid"),
                   UserItem("file", r"\S+"),
                   Digit("line"),
                   KlogMessage()]
    return HeaderParser(header_rule, full_format=klog_format, **kwargs)


def default_header_parsers():
    """Generate list of :class:`~kubeparse.header.HeaderParser` with default settings.

    The default header parsers consists of 1 rule:
    :func:`klog_header_parser`.
    Lines not matching it (e.g., containerd logs)
    are parsed only as key-value pairs.

    Returns:
        list of :class:`~kubeparse.header.HeaderParser`
    """
    return [klog_header_parser()]


def default_kv_parser():
    """Generate :class:`~kubeparse.keyvalue.KeyValueParser`
    with default settings (list elements separated with :samp:`,`).

    Returns:
        :class:`~kubeparse.keyvalue.KeyValueParser`
    """
    return KeyValueParser(separator=",")


def default(config=None):
    """Generate :class:`~kubeparse.LineParser` of default settings.

    It consists of :func:`default_header_parsers`
    and :func:`default_kv_parser`.
    :func:`~kubeparse.init_parser` generates same instance.

    Args:
        config (:class:`~kubeparse.ParserConfig`, optional): parser options.

    Returns:
        :class:`~kubeparse.LineParser`
    """
    return LineParser(default_header_parsers(),
                      default_kv_parser(),
                      config=config)
