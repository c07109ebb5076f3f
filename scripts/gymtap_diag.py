"""GymTap storage diagnostics CLI."""

from __future__ import annotations

import argparse
import json
from datetime import datetime

from gymtap.config import GymTapSettings
from gymtap.server import build_gateway
from gymtap.storage import PersistenceGateway
from gymtap.summary import summarize


def load_gateway(settings: GymTapSettings) -> PersistenceGateway:
    gateway, sync_metadata = build_gateway(settings)
    if sync_metadata["enabled"] and not sync_metadata["available"]:
        print(f"Synced storage unavailable: {sync_metadata['error']}")
    return gateway


def cmd_slots(args: argparse.Namespace) -> None:
    settings = GymTapSettings()
    gateway = load_gateway(settings)
    reports = gateway.inspect()
    if args.json:
        print(json.dumps([report.to_dict() for report in reports], indent=2))
        return
    for report in reports:
        if not report.present:
            state = "absent" if report.error is None else f"unreadable ({report.error})"
        elif report.decodable:
            state = f"{report.session_count} sessions, {report.size} bytes"
        else:
            state = f"corrupt, {report.size} bytes"
        print(f"{report.slot}: {state}")


def cmd_sessions(args: argparse.Namespace) -> None:
    settings = GymTapSettings()
    gateway = load_gateway(settings)
    sessions = gateway.load()
    if args.limit is not None and args.limit > 0:
        sessions = sessions[: args.limit]
    payload = [session.model_dump(mode="json", by_alias=True) for session in sessions]
    print(json.dumps(payload, indent=2))


def cmd_summary(args: argparse.Namespace) -> None:
    settings = GymTapSettings()
    gateway = load_gateway(settings)
    summary = summarize(gateway.load(), datetime.now().astimezone())
    print(json.dumps(summary.to_dict(), indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="GymTap storage diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_slots = sub.add_parser("slots", help="Report what the local and synced slots hold")
    p_slots.add_argument("--json", action="store_true", help="Output JSON")
    p_slots.set_defaults(func=cmd_slots)

    p_sessions = sub.add_parser("sessions", help="Print the sessions that would load at startup")
    p_sessions.add_argument(
        "--limit",
        type=int,
        default=None,
        help="If provided, show only the most recent N sessions",
    )
    p_sessions.set_defaults(func=cmd_sessions)

    p_summary = sub.add_parser("summary", help="Show total/today/week/month counts")
    p_summary.set_defaults(func=cmd_summary)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
