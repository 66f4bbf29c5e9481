"""FeedBridge - NuGet v3 registration bridge over a NuGet v2 feed.

    Returns:
        int: Exit code
"""
import sys

from args import parse_args
from cli_bridge import run_bridge_server
from constants import ExitCodes


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    run_bridge_server(args)
    return ExitCodes.SUCCESS.value


if __name__ == "__main__":
    sys.exit(main())
