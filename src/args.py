"""Argument parsing functionality for FeedBridge."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="feedbridge",
        description=(
            "FeedBridge - NuGet v3 registration documents synthesized from a v2 feed"
        ),
        add_help=True,
    )

    parser.add_argument("--host",
                        dest="BRIDGE_HOST",
                        help="Address to bind (default: 127.0.0.1)",
                        action="store", type=str)
    parser.add_argument("--port",
                        dest="BRIDGE_PORT",
                        help="Port to listen on (default: 8080)",
                        action="store", type=int)
    parser.add_argument("--allow-external",
                        dest="ALLOW_EXTERNAL",
                        help="Allow binding to a non-loopback address.",
                        action="store_true")
    parser.add_argument("-u", "--upstream",
                        dest="UPSTREAM",
                        help="Base URL of the upstream v2 feed",
                        action="store", type=str)
    parser.add_argument("--base-url",
                        dest="BASE_URL",
                        help="Public base URL used in document identifiers (default: request origin)",
                        action="store", type=str)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help="Upstream request timeout in seconds",
                        action="store", type=int)
    parser.add_argument("--readahead-concurrency",
                        dest="READAHEAD_CONCURRENCY",
                        help="Maximum outstanding upstream fetches during readahead",
                        action="store", type=int)
    parser.add_argument("--older-fallback",
                        dest="OLDER_FALLBACK",
                        help="Aggregate the older page synchronously when waiting for it times out.",
                        action="store_true")
    parser.add_argument("--user-agent-prefix",
                        dest="USER_AGENT_PREFIX",
                        help="Only serve clients whose User-Agent starts with this prefix",
                        action="store", type=str)

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML or YML)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
