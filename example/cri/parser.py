#!/usr/bin/env python

# Parser for container logs written by CRI runtimes (e.g., containerd),
# where each line is prefixed with a timestamp, the stream name and a tag:
#   2022-05-24T16:21:12.823864513+02:00 stderr F I0524 16:21:12.823864 1 log.go:195] "msg" k=v

from kubeparse import LineParser, ParserConfig
from kubeparse import preset
from kubeparse.header import *


# klog message in container logs: CRI timestamp is ignored
header_rule1 = [
    UserItem("stream", r"stdout|stderr"),
    UserItem("logtag", r"[FP]"),
    LogLevel(),
    Digit("month", width=2),
    Digit("day", width=2),
    ClockTime(),
    Digit("threadid"),
    UserItem("file", r"\S+"),
    Digit("line"),
    KlogMessage()
]
full_format1 = r"\S+ <0> <1> <2><3><4> <5> <6> <7>:<8>\]\s<9>"

# other messages: CRI timestamp is used as time item,
# and the rest is parsed as key-value pairs
header_rule2 = [
    UserItem("time", r"\d{4}-\d{2}-\d{2}T\S+"),
    UserItem("stream", r"stdout|stderr"),
    UserItem("logtag", r"[FP]"),
    UserItem("kv", r".*")
]
full_format2 = r"<0> <1> <2> <3>"

header_parser1 = HeaderParser(header_rule1, full_format=full_format1)
header_parser2 = HeaderParser(header_rule2, full_format=full_format2,
                              reformat_timestamp=False)

kv_parser = preset.default_kv_parser()

parser = LineParser([header_parser1, header_parser2], kv_parser,
                    config=ParserConfig(default_tz="+00:00"))
