"""
Command-line entry points

Usage:
    connector-deploy --resource-group my-rg
    connector-deploy --resource-group my-rg --settings deploy.json

    connector-assets --config connector.json --output build/connector
    connector-register --assets build/connector

Every command exits with code 1 and prints "Error: ..." to stderr when a
step fails.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .assets import build_assets, register_connector
from .commands import CommandRunner
from .config_schema import DeploymentSettings, ToolSettings
from .deploy import Deployment


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _add_verbose(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log every external command"
    )


def deploy_main(argv: Optional[List[str]] = None,
                runner: Optional[CommandRunner] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Deploy the function app and its HTTP functions"
    )
    parser.add_argument(
        "--resource-group", "--resourceGroup", "-g",
        dest="resource_group",
        required=True,
        help="Target Azure resource group"
    )
    parser.add_argument(
        "--settings", "-s",
        help="Deployment settings JSON (templates, datasets, time window)"
    )
    _add_verbose(parser)
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        tools = ToolSettings.from_env()
    except ValueError as e:
        return _fail(str(e))
    runner = runner or CommandRunner(tools)

    settings = DeploymentSettings()
    if args.settings:
        try:
            settings = DeploymentSettings.from_json_file(args.settings)
        except FileNotFoundError:
            return _fail(f"Settings file not found: {args.settings}")
        except (json.JSONDecodeError, KeyError) as e:
            return _fail(f"Invalid settings file {args.settings}: {e}")

    result = Deployment(settings, runner).run(args.resource_group)
    if not result.success:
        return _fail(result.error)

    print("-" * 40)
    print(f"Function app: {result.function_app}")
    print("Invocation URLs:")
    for url in result.invoke_urls:
        print(f"  {url}")
    return 0


def assets_main(argv: Optional[List[str]] = None,
                runner: Optional[CommandRunner] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Generate custom connector assets from a config file"
    )
    parser.add_argument(
        "--config", "-c",
        required=True,
        help="Path to connector config JSON file"
    )
    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output directory (created if absent)"
    )
    _add_verbose(parser)
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        tools = ToolSettings.from_env()
    except ValueError as e:
        return _fail(str(e))
    runner = runner or CommandRunner(tools)

    print(f"Building connector assets: {args.config} -> {args.output}")
    result = build_assets(args.config, args.output, runner,
                          http_timeout=tools.http_timeout_seconds)
    if not result.success:
        return _fail(result.error)

    print(f"Authentication: {result.auth_kind.value}")
    print("Files:")
    for name in result.files:
        print(f"  {name}")
    return 0


def register_main(argv: Optional[List[str]] = None,
                  runner: Optional[CommandRunner] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Register a custom connector from an assets directory"
    )
    parser.add_argument(
        "--assets", "-a",
        required=True,
        help="Directory produced by connector-assets"
    )
    _add_verbose(parser)
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        tools = ToolSettings.from_env()
    except ValueError as e:
        return _fail(str(e))
    runner = runner or CommandRunner(tools)

    result = register_connector(args.assets, runner)
    if not result.success:
        return _fail(result.error)

    action = "Updated" if result.connector_id else "Created"
    print(f"{action} connector from {args.assets}")
    return 0
