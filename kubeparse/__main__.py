#!/usr/bin/env python

import datetime
import json
import sys

import click


def text_postprocess(line):
    return line.rstrip("\r\n")


def iter_lines(files, encoding="utf-8"):
    if len(files) == 0:
        for line in sys.stdin:
            yield text_postprocess(line)
    else:
        for fp in files:
            if fp.endswith(".bz2"):
                import bz2
                with bz2.open(fp, 'rt', encoding=encoding) as f:
                    for line in f:
                        yield text_postprocess(line)
            elif fp.endswith(".gz"):
                import gzip
                with gzip.open(fp, 'rt', encoding=encoding) as f:
                    for line in f:
                        yield text_postprocess(line)
            else:
                with open(fp, 'rt', encoding=encoding) as f:
                    for line in f:
                        yield text_postprocess(line)


def _json_default(obj):
    if isinstance(obj, datetime.datetime):
        return obj.isoformat()
    raise TypeError("{0} is not JSON serializable".format(type(obj).__name__))


def format_parsed_line(result, format_type, kv_parser):
    if format_type == "object":
        return str(result)
    elif format_type == "json":
        return json.dumps({"timestamp": result.timestamp, "record": result.record},
                          default=_json_default)
    elif format_type == "kv":
        if result.timestamp is None:
            ts = "-"
        else:
            ts = result.timestamp.isoformat()
        return ts + " " + kv_parser.dumps(result.record)


def build_config(base, config, **kwargs):
    from kubeparse import ParserConfig, load_config
    if config:
        base = load_config(config)
    elif base is None:
        base = ParserConfig()
    d = {key: val for key, val in kwargs.items() if val is not None}
    if not d:
        return base
    import dataclasses
    return dataclasses.replace(base, **d)


@click.command()
@click.argument("files", nargs=-1)
@click.option("--parser", "-p", default=None,
              help="filename of parser script")
@click.option("--config", "-c", default=None,
              help="filename of parser config (ini format)")
@click.option("--default-tz", default=None,
              help="UTC offset of timestamps without timezone")
@click.option("--force-year", type=int, default=None,
              help="year of klog timestamps")
@click.option("--keep-time-key", type=bool, default=None,
              help="keep the time item in output records")
@click.option("--time-format", default=None,
              help="strptime format of the time item")
@click.option("--time-key", default=None,
              help="name of the time item")
@click.option("--delimiter", default=None,
              help="one character delimiter")
@click.option("--encoding", default="utf-8",
              help="encoding to load input data")
@click.option("--output", "-o", default=None,
              help="output filename")
@click.option("--type", "-t", "format_type", default="object",
              type=click.Choice(["object", "json", "kv"]),
              help="output format type")
@click.option("--show-input", "-i", "show_input", is_flag=True,
              help="additionally show the input string line as is")
@click.option("--as-kv", "-k", "as_kv", is_flag=True,
              help="consider input as key-value pairs (without header)")
@click.option("--verbose", "-v", is_flag=True,
              help="verbose output")
def main(files, parser, config, default_tz, force_year, keep_time_key,
         time_format, time_key, delimiter, encoding, output, format_type,
         show_input, as_kv, verbose):
    """Parse klog or key-value log lines given in FILES (or stdin if FILES not given)."""

    from kubeparse import ConfigError, LineParser, ParseResult, load_parser_script
    from kubeparse.preset import default

    try:
        if parser:
            lp = load_parser_script(parser)
            base = lp.config
        else:
            lp = None
            base = None
        conf = build_config(base, config, default_tz=default_tz, force_year=force_year,
                            keep_time_key=keep_time_key, time_format=time_format,
                            time_key=time_key, delimiter=delimiter)
        if lp is None:
            lp = default(conf)
        elif conf is not lp.config:
            lp = LineParser(lp.header_parsers, lp.kv_parser, config=conf)
    except ConfigError as e:
        raise click.UsageError(str(e))

    if output:
        f_output = open(output, "w")
    else:
        f_output = sys.stdout

    try:
        for line in iter_lines(files, encoding=encoding):
            if line == "":
                continue
            if show_input:
                f_output.write(line + "\n")
            now = datetime.datetime.now(datetime.timezone.utc)
            if as_kv:
                record = lp.process_kv(line, verbose=verbose)
                ts = lp.process_timestamp(record, verbose=verbose)
                result = ParseResult(ts if ts is not None else now, record)
            else:
                result = lp.process_line(line, now=now, verbose=verbose)
            buf = format_parsed_line(result, format_type, lp.kv_parser)
            f_output.write(buf + "\n")
    finally:
        if f_output is not sys.stdout:
            f_output.close()


if __name__ == "__main__":
    main()
