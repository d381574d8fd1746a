import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Any

from pydantic import ValidationError

from qrc_client.config import ConnectionConfig
from qrc_client.domain.errors import CoreError
from qrc_client.log_format import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrc", description="Control and diagnose a Core over QRC")
    parser.add_argument("--host", help="Core address (default: $QRC_HOST)")
    parser.add_argument("--user", help="Logon user name")
    parser.add_argument("--password", help="Logon password")
    parser.add_argument("--component", help="Default component name")
    parser.add_argument("--output", "-o", help="Write the JSON result to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Query Core status")

    get_parser = subparsers.add_parser("get", help="Read control values")
    get_parser.add_argument("controls", nargs="+", help="Control names")

    set_parser = subparsers.add_parser("set", help="Set a control value")
    set_parser.add_argument("control", help="Control name")
    set_parser.add_argument("value", help="Value (parsed as JSON when possible)")
    set_parser.add_argument("--ramp", type=float, help="Ramp time in seconds")

    subparsers.add_parser("controls", help="List the component's controls")
    subparsers.add_parser("components", help="List all components")

    push_parser = subparsers.add_parser("push", help="Push a script file to a code control, or a value to another control")
    push_parser.add_argument("source", help="Script file for the code control, otherwise the value itself")
    push_parser.add_argument("--control", default="code", help="Target control (default: code)")

    restart_parser = subparsers.add_parser("restart", help="Reload a script component")
    restart_parser.add_argument("name", help="Component name")

    scan_parser = subparsers.add_parser("scan", help="Report script errors and status faults")
    scan_parser.add_argument("target", nargs="?", help="Limit the scan to one component")

    remediate_parser = subparsers.add_parser("remediate", help="Restart faulty scripts and re-check them")
    remediate_parser.add_argument("--system", help="System label for audit events")
    remediate_parser.add_argument("--site", help="Site label for audit events")

    subparsers.add_parser("check", help="Check reachability and credentials")

    return parser


def _load_config(args: argparse.Namespace) -> ConnectionConfig:
    overrides: dict[str, Any] = {}
    if args.host:
        overrides["host"] = args.host
    if args.user:
        overrides["username"] = args.user
    if args.password:
        overrides["password"] = args.password
    if args.component:
        overrides["default_component"] = args.component
    if args.verbose:
        overrides["verbose"] = True
    return ConnectionConfig(**overrides)


def _parse_value(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        config = _load_config(args)
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging(config.verbose)

    try:
        result = asyncio.run(_run_command(args, config))
    except CoreError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        sys.exit(1)
    except (ValueError, OSError) as exc:
        logger.error("%s", exc)
        sys.exit(1)

    try:
        _emit(result, args.output)
    except OSError as exc:
        logger.error("Could not write output: %s", exc)
        sys.exit(1)
    if args.command == "check" and not result["ok"]:
        sys.exit(1)


async def _run_command(args: argparse.Namespace, config: ConnectionConfig) -> Any:
    from qrc_client.factory import create_client, create_diagnostics

    client = create_client(config)

    if args.command == "status":
        return await client.status()
    if args.command == "get":
        return await client.get(args.controls)
    if args.command == "set":
        return await client.set(args.control, _parse_value(args.value), ramp=args.ramp)
    if args.command == "controls":
        return await client.get_controls()
    if args.command == "components":
        return await client.get_components()
    if args.command == "push":
        return await client.push_code(args.source, control=args.control)

    if args.command == "check":
        from qrc_client.health import has_critical_failures, run_startup_checks

        results = await run_startup_checks(config)
        return {"ok": not has_critical_failures(results), "checks": [asdict(r) for r in results]}

    engine = create_diagnostics(config, client)
    if args.command == "restart":
        return {"component": args.name, "restarted": await engine.restart(args.name)}
    if args.command == "scan":
        errors, statuses = await asyncio.gather(
            engine.scan_errors(args.target),
            engine.scan_statuses(args.target),
        )
        return {
            "scriptErrors": [issue.to_dict() for issue in errors],
            "scriptStatuses": [issue.to_dict() for issue in statuses],
        }
    if args.command == "remediate":
        report = await engine.remediate(
            args.system or config.system_label,
            args.site or config.site_label,
            config.host,
        )
        return report.to_dict()

    raise ValueError(f"Unknown command: {args.command}")


def _emit(result: Any, output: str | None) -> None:
    text = json.dumps(result, indent=2, default=str)
    if output:
        from qrc_client.factory import create_sink

        create_sink().write_text(output, text)
        return
    print(text)
