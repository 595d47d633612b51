#!/usr/bin/env python3
"""
netmeter CLI -- measure latency, jitter and throughput from the terminal.

Usage::

    python speedtest.py                     # rich dashboard
    python speedtest.py --simple            # plain text
    python speedtest.py --json              # JSON to stdout
    python speedtest.py --multi             # four parallel connections
    python speedtest.py -o result.json      # save to file
    python speedtest.py --csv log.csv       # append CSV row
    python speedtest.py --isp "My ISP" --country TR --region Istanbul
    python speedtest.py --history           # stored results for --user
    python speedtest.py --show ID           # one stored result
    python speedtest.py --delete ID         # remove a stored result
    python speedtest.py --set-config user_id alice
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from netmeter.config import (
    DEFAULTS,
    LOG_LEVELS,
    config_path,
    get_config_value,
    load_config,
    set_config_value,
    validate_config,
)
from netmeter.constants import ANONYMOUS_USER
from netmeter.errors import ConfigError, NetmeterError
from netmeter.logging_setup import configure_logging
from netmeter.service import SpeedTestService
from netmeter.store import JsonlResultStore, MemoryResultStore, ResultStore
from ui.dashboard import (
    console,
    print_final_results,
    print_header,
    print_history,
    print_measurement_details,
    print_network_info,
)
from ui.output import append_csv, create_result_json, format_text_result, save_json

logger = logging.getLogger("netmeter.cli")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _network_metadata(args: argparse.Namespace) -> Dict[str, str]:
    """Caller-supplied network context; absent values are stored as ""."""
    return {
        "ip": args.ip or "",
        "isp": args.isp or "",
        "country": args.country or "",
        "region": args.region or "",
    }


def _build_store(kind: str, history_file: str = "") -> ResultStore:
    if kind == "memory":
        return MemoryResultStore()
    return JsonlResultStore(history_file or None)


def _parse_config_value(raw: str) -> Any:
    """JSON literals (true, 4, "x") are decoded; anything else stays a string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _set_config(key: str, raw: str) -> str:
    if key not in DEFAULTS:
        raise ConfigError(f"unknown config key {key!r} (known: {', '.join(DEFAULTS)})")
    value = _parse_config_value(raw)
    candidate = load_config()
    candidate[key] = value
    validate_config(candidate)
    return set_config_value(key, value)


# ---------------------------------------------------------------------------
# Core test runner
# ---------------------------------------------------------------------------

async def run_speedtest(
    service: SpeedTestService,
    *,
    user_id: str,
    metadata: Dict[str, str],
    multi_connection: bool = False,
    json_output: bool = False,
    output_file: Optional[str] = None,
    csv_file: Optional[str] = None,
    simple: bool = False,
) -> Dict[str, Any]:
    """Execute one measurement run and return a JSON-serialisable dict."""

    show_ui = not json_output and not simple

    if show_ui:
        print_header()
        location = ", ".join(p for p in (metadata["region"], metadata["country"]) if p)
        print_network_info(metadata["ip"], metadata["isp"], location)
        mode = "multi-connection" if multi_connection else "single-connection"
        with console.status(f"[bold]Measuring ({mode})...[/bold]"):
            run = await service.run(user_id, metadata, multi_connection)
    else:
        run = await service.run(user_id, metadata, multi_connection)

    result, report = run.result, run.report

    if show_ui:
        print_measurement_details(report)
        print_final_results(result, report)
    elif simple:
        print(format_text_result(result))
        if report.simulated:
            print(f"Simulated: {', '.join(sorted(report.simulated))}")

    result_json = create_result_json(result, report)

    if json_output:
        print(json.dumps(result_json, indent=2))

    if output_file:
        save_json(result_json, output_file)
        if not json_output:
            console.print(f"\n[green]Results saved to:[/green] {output_file}")

    if csv_file:
        append_csv(csv_file, result)
        if not json_output:
            console.print(f"[green]CSV row appended to:[/green] {csv_file}")

    return result_json


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser(config: Dict[str, Any]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="netmeter -- network performance estimation",
    )
    # Output modes
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--output", "-o", type=str, metavar="FILE", help="Save results to JSON file")
    parser.add_argument("--csv", type=str, metavar="FILE", default=config["csv_file"] or None, help="Append results as CSV row")
    parser.add_argument("--simple", "-s", action="store_true", help="Simple output mode (no dashboard)")

    # Measurement
    parser.add_argument("--multi", action="store_true", default=bool(config["multi_connection"]), help="Use multiple parallel connections")
    parser.add_argument("--single", dest="multi", action="store_false", help="Use a single connection")

    # Identity and network context
    parser.add_argument("--user", type=str, default=config["user_id"] or ANONYMOUS_USER, metavar="ID", help="User that owns the result")
    parser.add_argument("--ip", type=str, metavar="ADDR", help="Client IP address to record")
    parser.add_argument("--isp", type=str, metavar="NAME", help="ISP name to record")
    parser.add_argument("--country", type=str, metavar="NAME", help="Country to record")
    parser.add_argument("--region", type=str, metavar="NAME", help="Region to record")

    # Storage
    parser.add_argument("--memory", action="store_true", default=config["store"] == "memory", help="Do not persist the result")
    parser.add_argument("--history-file", type=str, default=config["history_file"], metavar="FILE", help="Results file (JSON lines)")
    parser.add_argument("--history", action="store_true", help="Show stored results for --user and exit")
    parser.add_argument("--show", type=str, metavar="ID", help="Show one stored result and exit")
    parser.add_argument("--delete", type=str, metavar="ID", help="Delete a stored result owned by --user and exit")

    # Logging
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default=str(config["log_level"]).upper(), help="Log verbosity")
    parser.add_argument("--log-file", type=str, default=config["log_file"] or None, metavar="FILE", help="Also log to a rotating file")

    # Configuration
    parser.add_argument("--config", action="store_true", help="Show the config file and exit")
    parser.add_argument("--set-config", nargs=2, metavar=("KEY", "VALUE"), help="Persist a config value and exit")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    config = load_config()
    args = build_parser(config).parse_args(argv)

    if args.set_config:
        key, raw = args.set_config
        try:
            path = _set_config(key, raw)
        except (NetmeterError, OSError) as exc:
            console.print(f"[red]Error: {exc}[/red]")
            sys.exit(1)
        console.print(f"[green]{key}[/green] = {get_config_value(key)!r}  ({path})")
        return

    if args.config:
        console.print(f"[bold]Config file:[/bold] {config_path()}")
        print(json.dumps(config, indent=2))
        return

    try:
        validate_config(config)
    except NetmeterError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    configure_logging(args.log_level, args.log_file)

    store = _build_store("memory" if args.memory else "file", args.history_file)
    service = SpeedTestService(store)

    try:
        if args.history:
            results = service.get_user_history(args.user)
            if args.json:
                print(json.dumps([r.to_dict() for r in results], indent=2))
            else:
                print_history(results)
            return

        if args.show:
            result = service.get_result(args.show)
            if args.json:
                print(json.dumps(result.to_dict(), indent=2))
            else:
                print(format_text_result(result))
            return

        if args.delete:
            service.delete_result(args.delete, user_id=args.user)
            console.print(f"[green]Deleted result[/green] {args.delete}")
            return

        asyncio.run(
            run_speedtest(
                service,
                user_id=args.user,
                metadata=_network_metadata(args),
                multi_connection=args.multi,
                json_output=args.json,
                output_file=args.output,
                csv_file=args.csv,
                simple=args.simple,
            )
        )

    except KeyboardInterrupt:
        console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)
    except (NetmeterError, OSError) as exc:
        logger.debug("Command failed", exc_info=True)
        console.print(f"\n[red]Error: {exc}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
