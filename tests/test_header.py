import unittest

from kubeparse import ParserDefinitionError
from kubeparse import header
from kubeparse import preset


class TestHeader(unittest.TestCase):

    defaults = {"year": 2022, "tz": "+02:00"}

    def test_klog_raw_message(self):
        line = "I0524 16:21:12.823864 1025 log.go:195] msg text here"
        hp = preset.klog_header_parser()
        ret = hp.process_line(line, defaults=self.defaults)
        assert ret == {"level": "info",
                       "threadid": 1025,
                       "file": "log.go",
                       "line": 195,
                       "msg": "msg text here",
                       "time": "2022-05-24T16:21:12.823864+02:00"}

    def test_klog_padded_threadid(self):
        line = ("W0627 12:09:57.042726  462622 empty_dir.go:519] "
                "Warning: Failed to clear quota on /var/lib/kubelet/pods/5d43adc3")
        hp = preset.klog_header_parser()
        ret = hp.process_line(line, defaults=self.defaults)
        assert ret["level"] == "warn"
        assert ret["threadid"] == 462622
        assert ret["line"] == 519
        assert ret["msg"] == "Warning: Failed to clear quota on /var/lib/kubelet/pods/5d43adc3"
        assert ret["time"] == "2022-06-27T12:09:57.042726+02:00"

    def test_klog_quoted_message(self):
        line = ('I0524 17:11:56.952306    1025 kubelet_volumes.go:160] '
                '"Cleaned up orphaned pod volumes dir" podUID=c50c3c96 path="/var/lib/kubelet"')
        hp = preset.klog_header_parser()
        ret = hp.process_line(line, defaults=self.defaults)
        assert ret["msg"] == "Cleaned up orphaned pod volumes dir"
        assert ret["kv"] == 'podUID=c50c3c96 path="/var/lib/kubelet"'
        for key in ("month", "day", "year", "tz", "log_level", "clock"):
            assert key not in ret

    def test_klog_quoted_message_without_kv(self):
        line = 'I0524 17:05:44.446677    1025 topology_manager.go:200] "Topology Admit Handler"'
        hp = preset.klog_header_parser()
        ret = hp.process_line(line, defaults=self.defaults)
        assert ret["msg"] == "Topology Admit Handler"
        assert "kv" not in ret

    def test_klog_escaped_message(self):
        line = r'E0524 17:05:44 1 a.go:1] "say \"hi\" to \\ everyone" pod="x"'
        hp = preset.klog_header_parser()
        ret = hp.process_line(line, defaults=self.defaults)
        assert ret["level"] == "error"
        assert ret["msg"] == 'say "hi" to \\ everyone'
        assert ret["kv"] == 'pod="x"'
        assert ret["time"] == "2022-05-24T17:05:44+02:00"

    def test_klog_broken_quote(self):
        # quoted part not followed by white space: whole text is the message
        line = 'F0524 17:05:44.1 1 a.go:1] "quoted"trailing k=v'
        hp = preset.klog_header_parser()
        ret = hp.process_line(line, defaults=self.defaults)
        assert ret["level"] == "fatal"
        assert ret["msg"] == '"quoted"trailing k=v'
        assert "kv" not in ret

    def test_mismatch(self):
        input_lines = [
            'time="2022-05-24T14:08:25.144534370+02:00" level=info msg="started"',
            "i0524 16:21:12.823864 1025 log.go:195] lower case level",
            "I524 16:21:12.823864 1025 log.go:195] short date",
            "I0524 16:21:12.823864 1025 log.go] no line number",
            "I0524 16:21 1025 log.go:195] short time",
        ]
        hp = preset.klog_header_parser()
        for line in input_lines:
            assert hp.process_line(line, defaults=self.defaults) is None

    def test_unknown_level(self):
        line = "D0524 16:21:12 1 log.go:1] debug"
        hp = preset.klog_header_parser()
        ret = hp.process_line(line, defaults=self.defaults)
        assert ret["level"] == "D"

    def test_without_defaults(self):
        import datetime
        line = "I0524 16:21:12 1 log.go:1] msg"
        hp = preset.klog_header_parser()
        ret = hp.process_line(line)
        year = datetime.datetime.now().year
        assert ret["time"] == "{0}-05-24T16:21:12".format(year)

    def test_no_timestamp(self):
        header_rule = [header.UserItem("host", r"[a-z0-9.-]+"),
                       header.UserItem("kv", r".*")]
        hp = header.HeaderParser(header_rule, full_format=r"<0>: <1>",
                                 reformat_timestamp=False)
        ret = hp.process_line("node1: a=1 b=2", defaults=self.defaults)
        assert ret == {"host": "node1", "kv": "a=1 b=2"}

    def test_optional_item(self):
        header_rule = [header.UserItem("host", r"[a-z0-9]+"),
                       header.Digit("pid", optional=True),
                       header.UserItem("kv", r".*")]
        hp = header.HeaderParser(header_rule, full_format=r"<0>(\[<1>\])?: <2>",
                                 reformat_timestamp=False)
        assert hp.process_line("node1[42]: a=1")["pid"] == 42
        assert "pid" not in hp.process_line("node1: a=1")

    def test_definition_error(self):
        with self.assertRaises(ParserDefinitionError):
            header.HeaderParser([header.Digit("a"), header.Digit("a")],
                                full_format="<0> <1>", reformat_timestamp=False)
        with self.assertRaises(ParserDefinitionError):
            header.HeaderParser([header.Digit("a"), header.Digit("b")],
                                full_format="<0>", reformat_timestamp=False)
        with self.assertRaises(ParserDefinitionError):
            header.HeaderParser([header.Digit("a")], full_format="<0>")
        with self.assertRaises(ParserDefinitionError):
            header.HeaderParser([header.Digit("a")], full_format="<0>(",
                                reformat_timestamp=False)

    def test_items(self):
        assert header.LogLevel().test("I") is not None
        assert header.LogLevel().test("i") is None
        assert header.LogLevel().test("IW") is None

        assert header.Digit("month", width=2).test("05") is not None
        assert header.Digit("month", width=2).test("5") is None
        assert header.Digit("threadid").test("462622") is not None

        assert header.ClockTime().test("16:21:12") is not None
        assert header.ClockTime().test("16:21:12.823864") is not None
        assert header.ClockTime().test("16:21:12.") is None

        mo = header.KlogMessage().test(r'"a \"b\"" c=d')
        assert mo.group("quoted_msg") == r'a \"b\"'
        assert mo.group("kv") == "c=d"
        mo = header.KlogMessage().test("plain text")
        assert mo.group("greedy_msg") == "plain text"

    def test_long_escaped_input(self):
        # quoted pattern must fail fast for unterminated strings
        line = 'I0524 16:21:12 1 a.go:1] "' + "\\a" * 20000 + " k=v"
        hp = preset.klog_header_parser()
        ret = hp.process_line(line, defaults=self.defaults)
        assert ret["msg"] == line.split("] ", 1)[1]
