"""Argument parsing functionality for gemgate."""

import argparse
from constants import Constants

def build_parser():
    """Builds the argument parser for the gateway."""
    parser = argparse.ArgumentParser(
        prog="gemgate",
        description=(
            "gemgate - merge several RubyGems repositories into one by priority"
        ),
        add_help=True,
    )

    parser.add_argument("-r", "--repo",
                        dest="REPOSITORIES",
                        help="URL of an upstream RubyGems repository. Specify one or more in order of priority.",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--addr",
                        dest="GATEWAY_HOST",
                        help=f"Address to bind server to (default: {Constants.DEFAULT_HOST})",
                        action="store",
                        type=str)
    parser.add_argument("--port",
                        dest="GATEWAY_PORT",
                        help=f"Port to listen on (default: {Constants.DEFAULT_PORT})",
                        action="store",
                        type=int)
    parser.add_argument("--timeout",
                        dest="GATEWAY_TIMEOUT",
                        help=f"Upstream request timeout in seconds (default: {Constants.REQUEST_TIMEOUT})",
                        action="store",
                        type=int)

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=Constants.LOG_LEVELS,
                        default="INFO")
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
