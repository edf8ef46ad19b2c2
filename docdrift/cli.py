"""CLI entrypoints for docdrift commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import load_config, validate_runtime_config
from .errors import DocDriftError
from .logging import configure_logging
from .models import Outcome, TriggerKind
from .orchestrator import Orchestrator

EXIT_OK = 0
EXIT_DRIFT = 1
EXIT_FATAL = 2


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Repository root or docdrift.yaml path (defaults to current directory).",
    )


def _add_revision_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--base", default=None, help="Base revision (defaults to the merge-base with main).")
    parser.add_argument("--head", default=None, help="Head revision (defaults to HEAD).")
    parser.add_argument(
        "--trigger",
        choices=[kind.value for kind in TriggerKind],
        default=TriggerKind.MANUAL.value,
        help="What started this run.",
    )
    parser.add_argument("--pr-number", type=int, default=None, help="Pull request number, if any.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docdrift",
        description="Detect documentation drift and decide what to do about it.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate docdrift.yaml and check that configured commands exist.",
    )
    _add_verbose_option(validate_parser, suppress_default=True)
    _add_path_argument(validate_parser)

    detect_parser = subparsers.add_parser(
        "detect",
        help="Write the drift report; exits 1 when drift is found.",
    )
    _add_verbose_option(detect_parser, suppress_default=True)
    _add_path_argument(detect_parser)
    _add_revision_options(detect_parser)

    decide_parser = subparsers.add_parser(
        "decide",
        help="Detect drift and print the policy decision for the primary item.",
    )
    _add_verbose_option(decide_parser, suppress_default=True)
    _add_path_argument(decide_parser)
    _add_revision_options(decide_parser)

    record_parser = subparsers.add_parser(
        "record",
        help="Record the outcome of an executed decision in the state file.",
    )
    _add_verbose_option(record_parser, suppress_default=True)
    _add_path_argument(record_parser)
    record_parser.add_argument(
        "--outcome",
        required=True,
        choices=[outcome.value for outcome in Outcome],
        help="What happened when the decision was carried out.",
    )
    record_parser.add_argument("--link", default=None, help="URL of the PR or issue that was opened.")
    record_parser.add_argument("--summary", default="", help="One-line summary of what was done.")
    record_parser.add_argument(
        "--agent-confidence",
        type=float,
        default=None,
        help="Confidence reported by the agent that acted on the decision.",
    )
    record_parser.add_argument(
        "--decision-file",
        type=Path,
        default=None,
        help="Decision JSON written by `docdrift decide` (defaults to the state directory).",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None, *, orchestrator: Orchestrator | None = None) -> None:
    """CLI entrypoint for docdrift commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    orchestrator = orchestrator or Orchestrator()

    try:
        if args.command == "validate":
            code = _validate(args.path)
        elif args.command == "detect":
            outcome = orchestrator.run_detect(
                args.path,
                args.base,
                args.head,
                trigger=TriggerKind(args.trigger),
                pr_number=args.pr_number,
            )
            report = outcome.report
            print(f"Drift report written to {_relativize(outcome.report_path)}")
            for item in report.items:
                print(f"- {item.doc_area} [{item.recommended_action.value}] {item.summary}")
            code = EXIT_DRIFT if report.has_drift else EXIT_OK
        elif args.command == "decide":
            decided = orchestrator.run_decide(
                args.path,
                args.base,
                args.head,
                trigger=TriggerKind(args.trigger),
                pr_number=args.pr_number,
            )
            if decided is None:
                print("No drift detected")
            else:
                print(json.dumps(decided.to_dict(), indent=2))
            code = EXIT_OK
        elif args.command == "record":
            doc_area, decision = orchestrator.load_decision(args.path, args.decision_file)
            result = orchestrator.record_outcome(
                args.path,
                decision,
                doc_area,
                Outcome(args.outcome),
                link=args.link,
                summary=args.summary,
                agent_confidence=args.agent_confidence,
            )
            print(json.dumps(result.to_dict(), indent=2))
            code = EXIT_OK
        elif args.command == "serve":  # pragma: no cover - integration path
            from .service import run_service

            run_service(host=args.host, port=args.port)
            code = EXIT_OK
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(EXIT_FATAL, "Unknown command\n")
    except DocDriftError as exc:
        parser.exit(EXIT_FATAL, f"docdrift {args.command} failed: {exc}\n")

    if code != EXIT_OK:
        sys.exit(code)


def _validate(path: str) -> int:
    config = load_config(Path(path).expanduser())
    result = validate_runtime_config(config)
    for warning in result.warnings:
        print(f"warning: {warning}")
    for error in result.errors:
        print(f"error: {error}")
    if result.ok:
        print(f"Config OK: {len(config.doc_areas)} doc area(s)")
        return EXIT_OK
    return EXIT_DRIFT


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
