"""CLI interface for contract-guard.

Usage:
    # Mask a contract (stdin: text, stdout: masked text + placeholder map as JSON)
    cat contract.txt | python -m contract_guard.cli --rules rules.json mask

    # Restore placeholders (stdin: text, --map: JSON map or mask output)
    cat reply.txt | python -m contract_guard.cli unmask --map masked.json

    # Store a review from a model reply (stdin: contract text)
    cat contract.txt | python -m contract_guard.cli review --name nda.docx \
        --response reply.json --mask

    # Work through a stored review
    python -m contract_guard.cli show --session 1700000000000
    python -m contract_guard.cli accept --session 1700000000000 --risk risk-chat-0-1700000000000
    python -m contract_guard.cli export --session 1700000000000

All sessions are persisted in SQLite so reviews survive across calls.
"""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
import time
from pathlib import Path

from .analyzer import parse_risk_response
from .config import create_rulebook, load_config, load_from_yaml
from .patterns import CATALOG
from .reconcile import ReviewDocument
from .rules import RuleBook
from .session import build_session, open_session, session_to_dict, snapshot_session
from .store_sqlite import SqliteSessionStore
from .types import Document
from .vault import unmask


DEFAULT_DB = os.environ.get(
    "CONTRACT_GUARD_DB",
    str(Path.home() / ".contract-guard" / "sessions.db"),
)


def _config(args: argparse.Namespace) -> dict:
    return load_from_yaml(args.config) if args.config else load_config({})


def _build_rulebook(args: argparse.Namespace) -> RuleBook:
    book = create_rulebook(_config(args))
    if args.detectors is not None:
        wanted = {d for d in args.detectors.split(",") if d}
        for detector in CATALOG:
            if detector.id in wanted:
                book.enable(detector.id)
            else:
                book.disable(detector.id)
    if args.rules:
        with open(args.rules, encoding="utf-8") as f:
            for raw in json.load(f):
                book.add_rule(raw["target"], raw["placeholder"], rule_id=raw.get("id"))
    return book


def _store(args: argparse.Namespace) -> SqliteSessionStore:
    return SqliteSessionStore(db_path=args.db)


def _dump(data) -> None:
    json.dump(data, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def _state(review: ReviewDocument) -> dict:
    summary = review.summary()
    return {
        "summary": {
            "total": summary.total,
            "addressed": summary.addressed,
            "active": summary.active,
            "hidden": summary.hidden,
            "pending_by_level": {k.value: v for k, v in summary.pending_by_level.items()},
        },
        "active_risks": [
            {"id": r.id, "level": r.level.value, "description": r.risk_description,
             "original_text": r.original_text, "suggested_text": r.suggested_text}
            for r in review.active_risks()
        ],
    }


def cmd_mask(args: argparse.Namespace) -> None:
    """Mask plain text on stdin."""
    result = _build_rulebook(args).compute(sys.stdin.read())
    _dump({
        "masked_text": result.masked_text,
        "placeholder_map": result.placeholder_map,
        "total_replacements": result.total_replacements,
    })


def cmd_unmask(args: argparse.Namespace) -> None:
    """Restore placeholders in text on stdin."""
    with open(args.map, encoding="utf-8") as f:
        data = json.load(f)
    placeholder_map = data.get("placeholder_map", data)
    sys.stdout.write(unmask(sys.stdin.read(), placeholder_map))


def cmd_detectors(args: argparse.Namespace) -> None:
    """List the detector catalog."""
    enabled = _build_rulebook(args).enabled
    _dump([
        {"id": d.id, "label": d.label, "placeholder": f"{d.prefix}#]", "enabled": d.id in enabled}
        for d in CATALOG
    ])


def cmd_review(args: argparse.Namespace) -> None:
    """Store a review session built from a saved model reply."""
    config = _config(args)
    text = sys.stdin.read()
    now = time.time()
    document = Document(name=args.name, content=text, last_modified=now)
    masking = _build_rulebook(args).compute(text) if args.mask else None

    with open(args.response, encoding="utf-8") as f:
        reply = f.read()
    risks = parse_risk_response(reply, provider=config["provider"], now=now)

    session = build_session(document, masking, risks, now)
    store = _store(args)
    store.save_session(session)
    _dump({"session_id": session.id, **_state(open_session(session))})
    store.close()


def cmd_show(args: argparse.Namespace) -> None:
    """Show a stored review's summary and active risks."""
    store = _store(args)
    review = open_session(store.get_session(args.session))
    _dump(_state(review))
    store.close()


def cmd_segments(args: argparse.Namespace) -> None:
    """Print a stored review as display segments."""
    store = _store(args)
    review = open_session(store.get_session(args.session))
    _dump([
        {"text": s.text, "risk_id": s.risk_id, "level": s.level.value if s.level else None}
        for s in review.segment_document(unmasked=args.original)
    ])
    store.close()


def _edit(args: argparse.Namespace, accept: bool) -> None:
    store = _store(args)
    session = store.get_session(args.session)
    review = open_session(session)
    if accept:
        review.accept(args.risk, animate=False)
    else:
        review.ignore(args.risk)
    store.save_session(snapshot_session(session, review, time.time()))
    _dump(_state(review))
    store.close()


def cmd_accept(args: argparse.Namespace) -> None:
    """Accept a risk's suggested text."""
    _edit(args, accept=True)


def cmd_ignore(args: argparse.Namespace) -> None:
    """Ignore a risk."""
    _edit(args, accept=False)


def cmd_export(args: argparse.Namespace) -> None:
    """Print a stored review's text with placeholders restored."""
    store = _store(args)
    sys.stdout.write(open_session(store.get_session(args.session)).export_text())
    store.close()


def cmd_sessions(args: argparse.Namespace) -> None:
    """List stored sessions, newest first."""
    store = _store(args)
    _dump(store.list_sessions())
    store.close()


def cmd_dump(args: argparse.Namespace) -> None:
    """Dump a stored session as JSON."""
    store = _store(args)
    _dump(session_to_dict(store.get_session(args.session)))
    store.close()


def cmd_clear(args: argparse.Namespace) -> None:
    """Delete all stored sessions."""
    store = _store(args)
    store.clear()
    sys.stderr.write("Cleared all sessions\n")
    store.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="contract_guard",
        description="Local masking and risk review for contracts",
    )
    parser.add_argument("--db", default=DEFAULT_DB, help="SQLite session store path")
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("--detectors", default=None, help="Comma-separated detector ids to enable")
    parser.add_argument("--rules", default=None, help="JSON file of mask rules")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("mask", help="Mask plain text (stdin)")
    p = sub.add_parser("unmask", help="Restore placeholders (stdin)")
    p.add_argument("--map", required=True, help="JSON placeholder map or mask output")
    sub.add_parser("detectors", help="List pattern detectors")
    p = sub.add_parser("review", help="Store a review from a model reply (contract on stdin)")
    p.add_argument("--name", default="contract.txt", help="Document name")
    p.add_argument("--response", required=True, help="File holding the model's reply")
    p.add_argument("--mask", action="store_true", help="Mask the contract before review")
    for name, help_text in (
        ("show", "Show summary and active risks"),
        ("segments", "Print display segments"),
        ("export", "Print text with placeholders restored"),
        ("dump", "Dump session JSON"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--session", required=True, help="Session ID")
        if name == "segments":
            p.add_argument("--original", action="store_true", help="Unmask each segment")
    for name, help_text in (("accept", "Accept a risk"), ("ignore", "Ignore a risk")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--session", required=True, help="Session ID")
        p.add_argument("--risk", required=True, help="Risk ID")
    sub.add_parser("sessions", help="List sessions")
    sub.add_parser("clear", help="Delete all sessions")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    cmds = {
        "mask": cmd_mask,
        "unmask": cmd_unmask,
        "detectors": cmd_detectors,
        "review": cmd_review,
        "show": cmd_show,
        "segments": cmd_segments,
        "accept": cmd_accept,
        "ignore": cmd_ignore,
        "export": cmd_export,
        "sessions": cmd_sessions,
        "dump": cmd_dump,
        "clear": cmd_clear,
    }
    cmds[args.command](args)


if __name__ == "__main__":
    main()
