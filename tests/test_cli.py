import json
import os.path
import unittest

from click.testing import CliRunner

from kubeparse.__main__ import main

EXAMPLE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)),
                           "..", "example")
KLOG_LINE = 'I0524 17:05:44.446677    1025 topology_manager.go:200] "Topology Admit Handler" pod="a/b"'


class TestCLI(unittest.TestCase):

    def test_json(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--type", "json", "--force-year", "2022",
                                      "--default-tz", "+02:00"],
                               input=KLOG_LINE + "\n\n")
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert len(lines) == 1
        d = json.loads(lines[0])
        assert d["timestamp"] == "2022-05-24T17:05:44.446677+02:00"
        assert d["record"] == {"level": "info", "threadid": 1025,
                               "file": "topology_manager.go", "line": 200,
                               "msg": "Topology Admit Handler", "pod": "a/b"}

    def test_kv(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--as-kv", "--type", "kv", "--show-input"],
                               input='time=2022-05-24T14:08:25Z level=info msg="a b"\n')
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == 'time=2022-05-24T14:08:25Z level=info msg="a b"'
        assert lines[1] == '2022-05-24T14:08:25+00:00 level="info" msg="a b"'

    def test_keep_time_key(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--type", "json", "--keep-time-key", "true"],
                               input="time=2022-05-24T14:08:25Z\n")
        assert result.exit_code == 0, result.output
        d = json.loads(result.output)
        assert d["record"] == {"time": "2022-05-24T14:08:25Z"}

    def test_files(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            import gzip
            with open("a.log", "w") as f:
                f.write(KLOG_LINE + "\n")
            with gzip.open("b.log.gz", "wt") as f:
                f.write("level=warn\n")
            result = runner.invoke(main, ["-t", "json", "-o", "out.json",
                                          "a.log", "b.log.gz"])
            assert result.exit_code == 0, result.output
            with open("out.json") as f:
                records = [json.loads(line)["record"] for line in f]
        assert records[0]["msg"] == "Topology Admit Handler"
        assert records[1] == {"level": "warn"}

    def test_parser_script(self):
        runner = CliRunner()
        fp = os.path.join(EXAMPLE_DIR, "cri", "parser.py")
        result = runner.invoke(main, ["--parser", fp, "--type", "json"],
                               input='2022-05-24T14:08:25Z stdout F level=info\n')
        assert result.exit_code == 0, result.output
        d = json.loads(result.output)
        assert d["timestamp"] == "2022-05-24T14:08:25+00:00"
        assert d["record"] == {"stream": "stdout", "logtag": "F", "level": "info"}

    def test_config_error(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--delimiter", "ab"], input="a=1\n")
        assert result.exit_code == 2
        assert "delimiter" in result.output

        result = runner.invoke(main, ["--default-tz", "+99:00"], input="a=1\n")
        assert result.exit_code == 2
        assert "default_tz" in result.output
