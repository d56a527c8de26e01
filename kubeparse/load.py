#!/usr/bin/env python
# coding: utf-8

from ._common import ConfigError, LineParser, ParserConfig

SECTION = "parser"


def load_config(fp, section=SECTION):
    """Load :class:`~kubeparse.ParserConfig` from configparser text file.

    Options are read from the given section
    (all optional, same names as ParserConfig)::

        [parser]
        default_tz = +02:00
        force_year = 2022
        keep_time_key = false
        time_format = %Y-%m-%dT%H:%M:%S.%f%z
        time_key = time

    Interpolation is disabled, so "%" can be used as is in time_format.

    Args:
        fp (str): file path of configparser text file.
        section (str, optional): section name.

    Returns:
        :class:`~kubeparse.ParserConfig`
    """

    import configparser
    conf = configparser.ConfigParser(interpolation=None)
    with open(fp) as f:
        conf.read_file(f)
    if not conf.has_section(section):
        raise ConfigError("section [{0}] not found in {1}".format(section, fp))

    kwargs = {}
    for key in ("delimiter", "default_tz", "force_year",
                "time_format", "time_key"):
        if conf.has_option(section, key):
            kwargs[key] = conf.get(section, key)
    if conf.has_option(section, "keep_time_key"):
        try:
            kwargs["keep_time_key"] = conf.getboolean(section, "keep_time_key")
        except ValueError as e:
            raise ConfigError("keep_time_key: {0}".format(e))
    return ParserConfig(**kwargs)


def load_parser_script(fp):
    """Load external python script that gives a kubeparse parser.
    The script defines :class:`~kubeparse.LineParser`
    as module-level variable named "parser".
    See example/ for such scripts.

    Args:
        fp (str): file path of external python script.

    Returns:
        :class:`~kubeparse.LineParser`
    """

    import os.path
    from importlib import util
    libname = os.path.splitext(os.path.basename(fp))[0]
    spec = util.spec_from_file_location(libname, os.path.abspath(fp))
    if spec is None:
        raise ImportError("cannot load parser script {0}".format(fp))
    script_mod = util.module_from_spec(spec)
    spec.loader.exec_module(script_mod)

    parser = getattr(script_mod, "parser", None)
    if not isinstance(parser, LineParser):
        raise ConfigError("{0} does not define LineParser as parser".format(fp))
    return parser
