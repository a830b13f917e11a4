"""
Strata command-line interface.

Usage examples:
    strata show app.json --env production --dir ./Configs
    strata set app.json database.port 5433
    strata backup app.json
    strata ini-get settings.ini db port
"""

import argparse
import json
import sys
from typing import Any, Callable, Dict, List, Optional

from strata import __version__
from strata.framework.configuration.builder import ConfigurationBuilder, StrataContext
from strata.framework.configuration.document import DocumentFormat, serialize_document
from strata.framework.configuration.store import ConfigDescriptor
from strata.infrastructure.exceptions import StrataException
from .utils import (
    create_table, get_console, print_error, print_info, print_success, print_text, print_warning
)


def _parse_cli_value(raw: str) -> Any:
    """JSON literals (numbers, booleans, null, objects) are parsed, anything else is a string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def cmd_show(context: StrataContext, args: argparse.Namespace) -> int:
    """Handle the 'show' command."""
    descriptor = ConfigDescriptor(args.file, environment=args.env)
    tree = context.config_store.load_with_environment(descriptor)
    if tree is None:
        print_error(f"Configuration not found: {context.config_store.get_config_path(descriptor)}")
        return 1
    print_text(serialize_document(tree, indented=True, format=DocumentFormat.for_path(args.file)))
    return 0


def cmd_set(context: StrataContext, args: argparse.Namespace) -> int:
    """Handle the 'set' command."""
    store = context.config_store
    if not store.update_path(args.file, args.path, _parse_cli_value(args.value)):
        print_error(f"Configuration not found: {store.get_config_path(args.file)}")
        return 1
    print_success(f"Updated {args.path} in {store.get_config_path(args.file)}")
    return 0


def cmd_backup(context: StrataContext, args: argparse.Namespace) -> int:
    backup_path = context.config_store.backup(args.file)
    if backup_path is None:
        print_error(f"Nothing to back up: {context.config_store.get_config_path(args.file)}")
        return 1
    print_success(f"Backup created: {backup_path}")
    return 0


def cmd_restore(context: StrataContext, args: argparse.Namespace) -> int:
    safety_backup = context.config_store.restore(args.file, args.backup)
    print_success(f"Restored {args.file} from {args.backup}")
    if safety_backup is None:
        print_warning(f"{args.file} did not exist, so no safety backup was taken")
    else:
        print_info(f"Previous version saved as {safety_backup.name}")
    return 0


def cmd_backups(context: StrataContext, args: argparse.Namespace) -> int:
    backups = context.config_store.list_backups(args.file)
    if not backups:
        print_info(f"No backups for {args.file}")
        return 0
    rows = [(path.name, path.stat().st_size) for path in backups]
    get_console().print(create_table(f"Backups of {args.file}", ["Name", "Size"], rows))
    return 0


def cmd_ini_get(context: StrataContext, args: argparse.Namespace) -> int:
    print_text(context.flat_store.get_value(args.file, args.section, args.key, args.default))
    return 0


def cmd_ini_set(context: StrataContext, args: argparse.Namespace) -> int:
    context.flat_store.set_value(args.file, args.section, args.key, args.value)
    print_success(f"Set [{args.section}] {args.key} in {args.file}")
    return 0


def cmd_ini_validate(context: StrataContext, args: argparse.Namespace) -> int:
    if context.flat_store.validate(args.file):
        print_success(f"Valid: {args.file}")
        return 0
    print_error(f"Invalid: {args.file}")
    return 1


def cmd_ini_merge(context: StrataContext, args: argparse.Namespace) -> int:
    merged = context.flat_store.merge(args.source, args.target)
    print_success(f"Merged {args.source} into {args.target} ({len(merged)} sections)")
    return 0


COMMANDS: Dict[str, Callable[[StrataContext, argparse.Namespace], int]] = {
    "show": cmd_show,
    "set": cmd_set,
    "backup": cmd_backup,
    "restore": cmd_restore,
    "backups": cmd_backups,
    "ini-get": cmd_ini_get,
    "ini-set": cmd_ini_set,
    "ini-validate": cmd_ini_validate,
    "ini-merge": cmd_ini_merge,
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="strata",
        description="Strata - layered configuration files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show app.json with app.production.json merged on top
  strata show app.json --env production

  # Set a nested value (JSON literals are parsed)
  strata set app.json database.port 5433

  # Back up and restore
  strata backup app.json
  strata backups app.json
  strata restore app.json app.20240101120000.json

  # Flat section/key-value files
  strata ini-set settings.ini db host localhost
  strata ini-get settings.ini db host
  strata ini-validate settings.ini
"""
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"Strata v{__version__}"
    )
    parser.add_argument(
        "--settings", "-s",
        help="YAML settings file for Strata itself"
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log to the console at this level (default: no logging)"
    )

    # Shared by every structured-file command
    store_options = argparse.ArgumentParser(add_help=False)
    store_options.add_argument(
        "--dir", "-d",
        help="Configuration directory (default: ./Configs)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    show_parser = subparsers.add_parser(
        "show", parents=[store_options],
        help="Show a configuration with its environment overlay"
    )
    show_parser.add_argument("file", help="Configuration file name")
    show_parser.add_argument("--env", "-e", help="Environment overlay to merge")

    set_parser = subparsers.add_parser("set", parents=[store_options], help="Set a value by dot path")
    set_parser.add_argument("file", help="Configuration file name")
    set_parser.add_argument("path", help="Dot path, e.g. database.port")
    set_parser.add_argument("value", help="New value (JSON literal or plain string)")

    backup_parser = subparsers.add_parser("backup", parents=[store_options], help="Back up a configuration")
    backup_parser.add_argument("file", help="Configuration file name")

    restore_parser = subparsers.add_parser("restore", parents=[store_options], help="Restore from a backup")
    restore_parser.add_argument("file", help="Configuration file name")
    restore_parser.add_argument("backup", help="Backup file name")

    backups_parser = subparsers.add_parser("backups", parents=[store_options], help="List backups")
    backups_parser.add_argument("file", help="Configuration file name")

    ini_get_parser = subparsers.add_parser("ini-get", help="Read a flat file value")
    ini_get_parser.add_argument("file", help="Flat file path")
    ini_get_parser.add_argument("section")
    ini_get_parser.add_argument("key")
    ini_get_parser.add_argument("--default", default="", help="Value printed when the key is missing")

    ini_set_parser = subparsers.add_parser("ini-set", help="Write a flat file value")
    ini_set_parser.add_argument("file", help="Flat file path")
    ini_set_parser.add_argument("section")
    ini_set_parser.add_argument("key")
    ini_set_parser.add_argument("value")

    ini_validate_parser = subparsers.add_parser("ini-validate", help="Check flat file syntax")
    ini_validate_parser.add_argument("file", help="Flat file path")

    ini_merge_parser = subparsers.add_parser("ini-merge", help="Overlay one flat file onto another")
    ini_merge_parser.add_argument("source", help="Flat file providing values")
    ini_merge_parser.add_argument("target", help="Flat file receiving values")

    return parser


def build_context(args: argparse.Namespace) -> StrataContext:
    builder = ConfigurationBuilder().add_defaults()
    if args.settings:
        builder.add_yaml_source(args.settings)
    builder.add_environment_source()
    if getattr(args, "dir", None):
        builder.with_config_directory(args.dir)
    if args.log_level:
        builder.with_logging(level=args.log_level, output="console")
    return builder.build()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        with build_context(args) as context:
            return COMMANDS[args.command](context, args)
    except StrataException as e:
        print_error(f"{e.error_code}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
