"""kubeparse: parse klog headers and key-value pairs in Kubernetes logs."""

__version__ = '0.1.0'

from ._common import ConfigError, ParserDefinitionError, TimeParseError
from ._common import ParserConfig, ParseResult, LineParser, init_parser
from .load import load_config, load_parser_script
