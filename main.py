#!/usr/bin/env python3
"""
VisitPrint - Returning Visitor Identification
=============================================

Command line entry point.

Commands:
  hash             Digest a collected signal set (JSON file)
  score            Proxy/anonymization verdict for a signal set
  resolve          Resolve the visitor ID across local storage mechanisms
  visit            Full visit: resolve, collect, submit, adopt server match
  beacon-schedule  Print the ultrasonic tone schedule for a pairing code
  pair-demo        Emit and receive a pairing code over an in-process loopback

Usage:
    python main.py hash signals.json
    python main.py --debug visit signals.json
    python main.py beacon-schedule 4242

Author: Team VisitPrint
License: MIT
"""

import json
import sys
from pathlib import Path

import click
import requests
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Add project root to path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from visitprint.config import load_config, setup_logging
from visitprint.fingerprinting import hash_signals, readable_id, ProxyClassifier
from visitprint.persistence import VisitorIdManager, build_default_mechanisms
from visitprint.collectors import StaticCollector, UltrasonicBeacon, LoopbackChannel, build_transmission
from visitprint.fingerprinter import Fingerprinter
from visitprint.client import FingerprintClient
from visitprint.session import VisitSession

# Rich console for pretty output
console = Console()


def load_signals(path: str) -> list:
    """Load a signal list from JSON: either a list or {"signals": [...]}."""
    with open(path, "r") as f:
        payload = json.load(f)
    if isinstance(payload, dict):
        payload = payload.get("signals", [])
    if not isinstance(payload, list):
        raise click.BadParameter(f"{path} does not contain a signal list")
    return payload


@click.group()
@click.option("--config", "-c", default="config/config.yaml", help="Path to config file")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging")
@click.option("--no-log-file", is_flag=True, help="Log to stderr only")
@click.pass_context
def cli(ctx, config: str, debug: bool, no_log_file: bool):
    """VisitPrint - is this the same visitor as before?"""
    cfg = load_config(config)
    if debug:
        cfg["general"]["debug"] = True
        cfg["general"]["log_level"] = "DEBUG"

    setup_logging(cfg, log_to_file=not no_log_file)
    ctx.obj = cfg


@cli.command("hash")
@click.argument("signals_file", type=click.Path(exists=True, dir_okay=False))
def hash_command(signals_file: str):
    """Compute the canonical digest of SIGNALS_FILE."""
    signals = load_signals(signals_file)
    digest = hash_signals(signals)

    console.print(Panel(
        f"[bold]{digest}[/bold]\n[dim]{readable_id(digest)}[/dim]",
        title="Fingerprint",
        border_style="cyan"
    ))


@cli.command("score")
@click.argument("signals_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def score_command(cfg: dict, signals_file: str):
    """Proxy/anonymization verdict for SIGNALS_FILE."""
    classifier = ProxyClassifier.from_config(cfg)
    indicators = classifier.indicators_from_signals(load_signals(signals_file))
    result = classifier.classify(indicators)

    table = Table(title="Anonymization indicators")
    table.add_column("Indicator", style="cyan")
    table.add_column("Weight", justify="right")
    table.add_column("Detected")
    for name, weight in classifier.policy.weights.items():
        flag = indicators.get(name)
        table.add_row(name, str(weight), "[red]yes[/red]" if flag else ("no" if flag is False else "[dim]n/a[/dim]"))
    console.print(table)

    color = "red" if result.verdict else "green"
    console.print(f"[{color}]Score {result.score}/{result.total_weight} = "
                  f"{result.confidence_percent}% -> verdict {result.verdict}[/{color}]")


@cli.command("resolve")
@click.option("--offline", is_flag=True, help="Skip the server ETag store")
@click.pass_obj
def resolve_command(cfg: dict, offline: bool):
    """Resolve and heal the visitor ID."""
    if offline:
        cfg["persistence"]["etag_enabled"] = False

    manager = VisitorIdManager(build_default_mechanisms(cfg))
    resolution = manager.resolve()

    status = "[yellow]new[/yellow]" if resolution.is_new else "[green]returning[/green]"
    console.print(Panel(
        f"Visitor ID: [bold]{resolution.visitor_id}[/bold] ({status})\n"
        f"Found in: {', '.join(resolution.sources) or '-'}\n"
        f"Repaired: {', '.join(resolution.repaired) or '-'}",
        title="Visitor",
        border_style="cyan"
    ))


@cli.command("visit")
@click.argument("signals_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def visit_command(cfg: dict, signals_file: str):
    """Run a full visit with the signals in SIGNALS_FILE."""
    session = requests.Session()
    endpoint = cfg.get("server", {}).get("endpoint")
    client = FingerprintClient.from_config(cfg, session=session) if endpoint else None

    fingerprinter = Fingerprinter()
    for signal in load_signals(signals_file):
        fingerprinter.register(StaticCollector(
            signal["name"],
            signal.get("data"),
            description=signal.get("description", ""),
            cross_browser_keys=signal.get("crossBrowserKeys", ())
        ))

    manager = VisitorIdManager(build_default_mechanisms(cfg, session=session))
    outcome = VisitSession(manager, fingerprinter, client).run()

    table = Table(title="Visit")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Fingerprint", outcome.result.fingerprint)
    table.add_row("Readable", readable_id(outcome.result.fingerprint))
    table.add_row("Device ID", outcome.result.device_id)
    table.add_row("Visitor ID", outcome.visitor_id)
    if isinstance(outcome.verdict, dict):
        table.add_row("Server match", str(outcome.verdict.get("matchedVisitorId")))
        table.add_row("Confidence", str(outcome.verdict.get("confidence")))
    else:
        table.add_row("Server", "[yellow]offline / local only[/yellow]")
    console.print(table)


@cli.command("beacon-schedule")
@click.argument("code", type=click.IntRange(0, 65535))
@click.pass_obj
def beacon_schedule_command(cfg: dict, code: int):
    """Print the tone schedule that encodes pairing CODE."""
    repeat_count = cfg.get("ultrasonic", {}).get("repeat_count", 3)

    table = Table(title=f"Pairing code {code} ({code:016b})")
    table.add_column("#", justify="right")
    table.add_column("Tones (Hz)")
    table.add_column("ms", justify="right")
    for index, slot in enumerate(build_transmission(code, repeat_count)):
        tones = ", ".join(str(f) for f in slot.frequencies) or "[dim]silence[/dim]"
        table.add_row(str(index), tones, str(slot.duration_ms))
    console.print(table)


@cli.command("pair-demo")
@click.argument("code", type=click.IntRange(0, 65535))
@click.pass_obj
def pair_demo_command(cfg: dict, code: int):
    """Emit CODE and receive it back over an in-process loopback."""
    channel = LoopbackChannel()
    emitter = UltrasonicBeacon.from_config(cfg, sink=channel)
    receiver = UltrasonicBeacon.from_config(cfg, source=channel)
    emitter.realtime = False
    receiver.realtime = False

    # realtime is off, so the whole schedule is queued before listening starts
    emitter.start_emitting(code)
    result = receiver.start_receiving(cfg.get("observation", {}).get("timeout_ms", 10000))
    emitter.destroy()
    receiver.destroy()

    if result.detected:
        console.print(f"[green]Received pairing code {result.pairing_code} "
                      f"(confidence {result.confidence:.2f})[/green]")
    else:
        console.print("[red]No pairing code decoded[/red]")
        logger.warning(f"Pair demo failed for code {code}")


if __name__ == "__main__":
    cli()
