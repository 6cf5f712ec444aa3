"""Command-line entry point: ``vibium <command>``.

Commands:
  run SCRIPT             run an automation script (YAML or JSON)
  workflow FILE          run an RPA workflow and print its result
  validate FILE          check a workflow (or with --script, a script)
  activities             list the built-in workflow activities
  version                print the package version
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from . import __version__
from .context import Context
from .durations import parse_duration
from .errors import VibiumError, WorkflowValidationError
from .rpa import Executor, ExecutorConfig, default_registry, parse_file
from .script import DEFAULT_SCRIPT_TIMEOUT, ScriptRunner, load_script
from .session import launch
from .types import LaunchOptions

logger = logging.getLogger("vibium.cli")


def _parse_vars(pairs: list[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise SystemExit(f"invalid --var {pair!r}: expected key=value")
        out[key] = value
    return out


def _duration(raw: str) -> float:
    try:
        return parse_duration(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vibium", description="Browser automation over WebDriver BiDi")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every step and debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run an automation script")
    run.add_argument("script")
    run.add_argument("--headless", action="store_true", default=None, help="Run the browser headless")
    run.add_argument("--timeout", type=_duration, default=DEFAULT_SCRIPT_TIMEOUT, help="Total script timeout (default: 5m)")
    run.add_argument("--var", action="append", default=[], metavar="KEY=VALUE", help="Override a script variable")

    wf = sub.add_parser("workflow", help="Run an RPA workflow")
    wf.add_argument("file")
    wf.add_argument("--headless", action="store_true", help="Run the browser headless")
    wf.add_argument("--var", action="append", default=[], metavar="KEY=VALUE", help="Override a workflow variable")
    wf.add_argument("--dry-run", action="store_true", help="Validate without launching a browser")
    wf.add_argument(
        "--timeout", type=_duration, default=0.0, help="Default step timeout (default: $VIBIUM_TIMEOUT or 30s)"
    )
    wf.add_argument("--work-dir", default="", help="Base directory for relative file paths")
    wf.add_argument("-o", "--output", default="", help="Write the JSON result here instead of stdout")

    val = sub.add_parser("validate", help="Validate a workflow or script file")
    val.add_argument("file")
    val.add_argument("--script", action="store_true", help="Treat FILE as an automation script")

    acts = sub.add_parser("activities", help="List built-in activities")
    acts.add_argument("--category", default="", help="Only list this category")
    acts.add_argument("--json", action="store_true", help="Print as JSON")

    sub.add_parser("version", help="Print the version")
    return parser


def cmd_run(args: argparse.Namespace) -> int:
    script = load_script(args.script)
    if args.headless is not None:
        script.headless = args.headless

    ctx = Context.background().with_timeout(args.timeout)
    with launch(LaunchOptions(headless=script.headless), ctx=ctx) as session:
        runner = ScriptRunner(session, variables=_parse_vars(args.var), verbose=args.verbose)
        result = runner.run(script, ctx, timeout=args.timeout)
    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    print(f"Completed {result.completed} steps")
    return 0


def cmd_workflow(args: argparse.Namespace) -> int:
    def on_complete(step, step_result) -> None:  # noqa: ANN001
        logger.info("step %s %s (%dms)", step.get_id(), step_result.status.value, step_result.duration_ms)

    executor = Executor(
        ExecutorConfig(
            headless=args.headless,
            default_timeout=args.timeout,
            work_dir=args.work_dir,
            variables=_parse_vars(args.var),
            dry_run=args.dry_run,
            on_step_complete=on_complete if args.verbose else None,
        )
    )
    result = executor.run_file(args.file)
    payload = result.to_json()
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(payload + "\n")
        logger.info("result written to %s", args.output)
    else:
        print(payload)
    if not result.is_success:
        logger.error("workflow failed: %s", result.error)
        return 1
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    if args.script:
        script = load_script(args.file)
        print(f"OK: {script.name or args.file} ({len(script.steps)} steps)")
        return 0
    wf = parse_file(args.file)
    issues = Executor().validate(wf)
    if issues:
        for issue in issues:
            print(f"- {issue}", file=sys.stderr)
        print(f"FAIL: {len(issues)} error(s)", file=sys.stderr)
        return 1
    print(f"OK: {wf.name} ({len(wf.steps)} steps)")
    return 0


def cmd_activities(args: argparse.Namespace) -> int:
    grouped = default_registry.list_by_category()
    if args.category:
        grouped = {args.category: grouped.get(args.category, [])}
    if args.json:
        print(json.dumps(grouped, indent=2))
        return 0
    for category in sorted(grouped):
        print(f"{category}:")
        for name in grouped[category]:
            print(f"  {name}")
    return 0


COMMANDS = {
    "run": cmd_run,
    "workflow": cmd_workflow,
    "validate": cmd_validate,
    "activities": cmd_activities,
    "version": lambda args: print(f"vibium {__version__}") or 0,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    try:
        return COMMANDS[args.command](args)
    except WorkflowValidationError as exc:
        for issue in exc.issues:
            print(f"- {issue}", file=sys.stderr)
        print(f"FAIL: {len(exc.issues)} error(s)", file=sys.stderr)
        return 1
    except (VibiumError, ValueError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.warning("interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
