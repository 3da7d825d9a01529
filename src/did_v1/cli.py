"""Command-line utilities for did_v1."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .constants import DEFAULT_KEY_TYPE, DID_TYPES, MODES
from .document import DidDocument
from .driver import DidV1Driver
from .errors import DidV1Error
from .identifier import validate_did, validate_method_ids
from .logging_pipeline import configure_structured_logging, shutdown_listeners
from .settings import get_settings


def _read_stdin() -> str | None:
    """Read JSON payload from stdin if available."""
    try:
        if sys.stdin and not sys.stdin.isatty():
            return sys.stdin.read()
    except OSError as e:
        print(f"Error reading stdin: {e}", file=sys.stderr)
    return None


def _load_json(path: str | None, stdin_payload: str | None) -> dict[str, Any]:
    """Load a JSON object from file or stdin."""
    if path:
        text = Path(path).read_text(encoding="utf-8")
    elif stdin_payload:
        text = stdin_payload
    else:
        raise ValueError("No input provided. Use --input or pipe JSON via stdin.")
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Input JSON must be an object at the top level.")
    return data


def _print(payload: object) -> None:
    print(json.dumps(payload, indent=2))


def _cmd_generate(args: argparse.Namespace) -> int:
    document = DidDocument.generate(
        did_type=args.did_type, key_type=args.key_type, mode=args.mode
    )
    keys = document.export_keys()
    output: dict[str, Any] = {"didDocument": document.to_dict()}
    if args.keys_out:
        Path(args.keys_out).write_text(json.dumps(keys, indent=2), encoding="utf-8")
    else:
        output["keys"] = keys
    _print(output)
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    document = _load_json(args.input, None if args.input else _read_stdin())
    if isinstance(document.get("didDocument"), dict):
        document = document["didDocument"]
    result = validate_did(document, mode=args.mode)
    if result.valid and args.method_ids:
        result = validate_method_ids(document)
    if not args.quiet:
        print(json.dumps(result.to_dict(), separators=(",", ":")))
    return 0 if result.valid else 1


def _cmd_get(args: argparse.Namespace) -> int:
    driver = DidV1Driver(mode=args.mode, hostname=args.hostname)
    _print(asyncio.run(driver.get(args.did)))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Veres One did:v1 utilities.")
    parser.add_argument(
        "--mode",
        choices=MODES,
        default=settings.mode,
        help="Ledger mode (default from DID_V1_MODE).",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit structured JSON logs on stderr.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    generate = subcommands.add_parser("generate", help="Generate a new DID document.")
    generate.add_argument("--did-type", choices=DID_TYPES, default="nym")
    generate.add_argument("--key-type", default=DEFAULT_KEY_TYPE)
    generate.add_argument(
        "--keys-out",
        help="Write private keys to this file instead of stdout.",
    )
    generate.set_defaults(handler=_cmd_generate)

    validate = subcommands.add_parser("validate", help="Validate a DID document.")
    validate.add_argument(
        "--input",
        "-i",
        help="Path to a DID document. If omitted, reads from stdin.",
    )
    validate.add_argument(
        "--method-ids",
        action="store_true",
        help="Also check every verification method id.",
    )
    validate.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Quiet mode: suppress output, just return exit code.",
    )
    validate.set_defaults(handler=_cmd_validate)

    get = subcommands.add_parser("get", help="Resolve a DID or key id.")
    get.add_argument("did")
    get.add_argument("--hostname", default=settings.hostname)
    get.set_defaults(handler=_cmd_get)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run a did_v1 subcommand."""
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:  # pragma: no cover - controlled via tests
        exit_code = int(exc.code) if isinstance(exc.code, int) else 1
        return 0 if exit_code == 0 else 1

    listeners = []
    if args.log_json:
        level = logging.getLevelName(get_settings().log_level.upper())
        listeners.append(
            configure_structured_logging(
                logging.getLogger("did_v1"),
                level=level if isinstance(level, int) else logging.WARNING,
            )
        )
    try:
        return args.handler(args)
    except (DidV1Error, TypeError, ValueError, OSError) as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1
    finally:
        shutdown_listeners(listeners)


if __name__ == "__main__":
    raise SystemExit(main())
