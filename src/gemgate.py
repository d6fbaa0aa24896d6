"""gemgate - a RubyGems gateway merging several upstream repositories.

    Returns:
        int: Exit code
"""
import sys

from args import build_parser
from cli_gateway import run_gateway_server
from constants import ExitCodes


def main(argv=None):
    """Main entry point for the gateway."""
    parser = build_parser()
    args = parser.parse_args(argv)
    run_gateway_server(args, usage=parser.format_usage())
    return ExitCodes.SUCCESS.value


if __name__ == "__main__":
    sys.exit(main())
