"""Command line interface for Delivery Metrics."""

import argparse
import logging
import os

from dotenv import load_dotenv

from .calculator import run_calculators
from .config import ConfigError, config_to_options
from .config.type_utils import force_date
from .config_main import CALCULATORS
from .history import JsonFileHistoryProvider, NoHistoryProvider
from .itemstore import ItemStore

load_dotenv()

logger = logging.getLogger(__name__)


def configure_argument_parser():
    """Configure an ArgumentParser that manages command line options."""

    parser = argparse.ArgumentParser(
        description=(
            "Compute delivery performance and estimation metrics "
            "from exported work items."
        )
    )

    parser.add_argument(
        "config", metavar="config.yml", nargs="?", help="Configuration file"
    )
    parser.add_argument(
        "-v", dest="verbose", action="store_true", help="Verbose output"
    )
    parser.add_argument(
        "-vv",
        dest="very_verbose",
        action="store_true",
        help="Even more verbose output",
    )
    parser.add_argument(
        "--items",
        metavar="items.json",
        help="JSON file of work items to analyse",
    )
    parser.add_argument(
        "--history",
        metavar="history.json",
        help="JSON file of previously completed work items",
    )
    parser.add_argument(
        "--output-directory",
        "-o",
        metavar="metrics",
        help="Write output files to this directory, rather than the current one.",
    )
    parser.add_argument(
        "--as-of",
        metavar="2024-01-31T18:00:00Z",
        help="End of the reporting window (defaults to the latest completion)",
    )

    return parser


def main():
    parser = configure_argument_parser()
    args = parser.parse_args()
    run_command_line(parser, args)


def run_command_line(parser, args):
    if not args.config:
        parser.print_usage()
        return

    logging.basicConfig(
        format="[%(asctime)s %(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=(
            logging.DEBUG
            if args.very_verbose
            else logging.INFO if args.verbose else logging.WARNING
        ),
    )

    # Configuration and settings
    # (command line arguments override config file options)

    logger.debug("Parsing options from %s", args.config)
    try:
        with open(args.config, encoding="utf-8") as config:
            options = config_to_options(
                config.read(), cwd=os.path.dirname(os.path.abspath(args.config))
            )
    except FileNotFoundError:
        print(
            f"Error: Configuration file '{args.config}' not found. "
            "Please provide a valid config file."
        )
        return

    override_options(options["input"], args)
    if args.as_of:
        options["settings"]["as_of"] = force_date("as_of", args.as_of)

    items_file = options["input"]["items"] or os.environ.get("DELIVERY_METRICS_ITEMS")
    if not items_file:
        raise ConfigError("No work items file given in the config or with --items")
    items_file = os.path.abspath(items_file)

    history_file = options["input"]["history"] or os.environ.get(
        "DELIVERY_METRICS_HISTORY"
    )
    history_provider = (
        JsonFileHistoryProvider(os.path.abspath(history_file))
        if history_file
        else NoHistoryProvider()
    )

    # Set output directory if required
    output_dir = options.get("output_directory")
    if args.output_directory:
        output_dir = args.output_directory
    if output_dir:
        logger.info("Changing working directory to %s", output_dir)
        os.makedirs(output_dir, exist_ok=True)
        os.chdir(output_dir)

    logger.info("Loading work items from %s", items_file)
    store = ItemStore.from_file(
        items_file,
        history_provider=history_provider,
        history_scope=options["input"]["history_scope"],
    )

    logger.info("Running calculators")
    return run_calculators(CALCULATORS, store, options["settings"])


def override_options(options, arguments):
    """Update `options` dict with settings from `arguments`
    with the same key.
    """
    for key in options.keys():
        if getattr(arguments, key, None) is not None:
            options[key] = getattr(arguments, key)


if __name__ == "__main__":
    main()
