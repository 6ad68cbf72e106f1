# SPDX-License-Identifier: Apache-2.0
"""framesmith CLI entrypoint.

Commands
- models: list the model catalog
- analyze: classify an instruction and print the analysis
- plan: synthesize a plan from an instruction and write it (YAML or JSON)
- run: approve and execute a plan from an instruction or a plan file
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml

from framesmith import __version__
from framesmith.backends import collaborator_from_env
from framesmith.catalog import iter_models
from framesmith.engine.core import PlanEngine
from framesmith.engine.models import ExecutionPlan, PlanStatus
from framesmith.errors import FramesmithError
from framesmith.planner.classifier import classify
from framesmith.planner.synthesizer import format_estimated_time, synthesize
from framesmith.utils.env import env_int

LOG = logging.getLogger("framesmith.cli")


def _read_intent(ns: argparse.Namespace) -> str | None:
    intent = getattr(ns, "intent", None)
    if not intent and getattr(ns, "intent_file", None):
        intent = Path(ns.intent_file).read_text(encoding="utf-8")
    return intent.strip() if intent else None


def _load_plan_file(path: str) -> dict[str, Any]:
    """Load a plan document; YAML first, JSON when YAML parsing fails."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SystemExit(f"Plan file not found: {path}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        logging.debug("YAML parse failed for %s: %s. Falling back to JSON.", path, e)
        data = json.loads(text)
    if not isinstance(data, dict):
        raise SystemExit(f"Plan file must contain a mapping: {path}")
    return data


def _dump(data: dict[str, Any], output: str | None) -> None:
    if output and output != "-" and output.lower().endswith((".yml", ".yaml")):
        text = yaml.safe_dump(data, sort_keys=False)
    else:
        text = json.dumps(data, indent=2)
    if not output or output == "-":
        print(text)
        return
    Path(output).write_text(text if text.endswith("\n") else text + "\n", encoding="utf-8")
    print(f"wrote {output}", file=sys.stderr)


def _summary_lines(plan: ExecutionPlan) -> list[str]:
    lines = [
        f"Plan {plan.id} [{plan.status.value}] "
        f"({format_estimated_time(plan.total_estimated_time)} estimated)"
    ]
    for step in plan.steps:
        deps = f" after {', '.join(d[:8] for d in step.dependencies)}" if step.dependencies else ""
        optional = " (optional)" if step.is_optional else ""
        lines.append(
            f"  {step.order + 1}. {step.model_name} [{step.status.value}]{optional}{deps}"
        )
        lines.append(f"     {step.explanation}")
    return lines


def _cmd_models(ns: argparse.Namespace) -> int:
    models = list(iter_models())
    if ns.json:
        print(json.dumps([m.to_dict() for m in models], indent=2))
        return 0
    for m in models:
        print(
            f"{m.id.value:<20} {m.name:<22} {m.category.value:<12} "
            f"{format_estimated_time(m.estimated_time)}"
        )
    return 0


def _cmd_analyze(ns: argparse.Namespace) -> int:
    intent = _read_intent(ns)
    if not intent:
        print("--intent or --intent-file is required", file=sys.stderr)
        return 2
    print(json.dumps(classify(intent).to_dict(), indent=2))
    return 0


def _cmd_plan(ns: argparse.Namespace) -> int:
    intent = _read_intent(ns)
    if not intent:
        print("--intent or --intent-file is required", file=sys.stderr)
        return 2
    analysis = classify(intent)
    LOG.debug("analysis: %s", analysis.reasoning)
    plan = synthesize(intent, analysis)
    _dump(plan.to_dict(), ns.output)
    return 0


def _cmd_run(ns: argparse.Namespace) -> int:
    if ns.plan:
        try:
            plan = ExecutionPlan.from_mapping(_load_plan_file(ns.plan))
        except FramesmithError as exc:
            print(f"invalid plan: {exc}", file=sys.stderr)
            return 2
    else:
        intent = _read_intent(ns)
        if not intent:
            print("--intent, --intent-file or --plan is required", file=sys.stderr)
            return 2
        plan = synthesize(intent, classify(intent))
    for line in _summary_lines(plan):
        print(line, file=sys.stderr)
    if not ns.yes:
        print("re-run with --yes to approve and execute this plan", file=sys.stderr)
        return 2
    try:
        collaborator = collaborator_from_env(ns.backend, ns.base_url)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    engine = PlanEngine(plan, collaborator)
    try:
        if plan.status is PlanStatus.PENDING_APPROVAL:
            engine.approve_plan()
        asyncio.run(
            engine.execute_plan(
                max_workers=ns.max_workers, halt_on_failure=not ns.keep_going
            )
        )
    except FramesmithError as exc:
        print(f"execution rejected: {exc}", file=sys.stderr)
        return 2
    for line in _summary_lines(plan):
        print(line, file=sys.stderr)
    _dump(plan.to_dict(), ns.output)
    return 0 if plan.status is PlanStatus.COMPLETED else 1


def _add_intent_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--intent", help="Free-form editing instruction")
    p.add_argument(
        "--intent-file", help="Read the instruction from a file (if --intent is absent)"
    )


def register_cli(sub: argparse._SubParsersAction) -> None:
    p_models = sub.add_parser("models", help="List available model operations")
    p_models.add_argument("--json", action="store_true", help="Emit JSON")
    p_models.set_defaults(func=_cmd_models)

    p_analyze = sub.add_parser("analyze", help="Classify an editing instruction")
    _add_intent_args(p_analyze)
    p_analyze.set_defaults(func=_cmd_analyze)

    p_plan = sub.add_parser("plan", help="Synthesize an execution plan")
    _add_intent_args(p_plan)
    p_plan.add_argument(
        "--output", help="Write the plan to a file (.yaml/.yml for YAML, '-' for stdout)"
    )
    p_plan.set_defaults(func=_cmd_plan)

    p_run = sub.add_parser("run", help="Approve and execute a plan")
    _add_intent_args(p_run)
    p_run.add_argument("--plan", help="Plan file produced by 'framesmith plan'")
    p_run.add_argument(
        "--yes", action="store_true", help="Approve the plan without prompting"
    )
    p_run.add_argument(
        "--max-workers",
        type=int,
        default=env_int("MAX_WORKERS", 1),
        help="Run up to N independent ready steps at once (default: 1)",
    )
    p_run.add_argument(
        "--keep-going",
        action="store_true",
        help="Keep running independent steps after a failure",
    )
    p_run.add_argument(
        "--backend",
        choices=["mock", "http"],
        help="Execution backend (default: FRAMESMITH_BACKEND or mock)",
    )
    p_run.add_argument("--base-url", help="Base URL for the http backend")
    p_run.add_argument("--output", help="Write the final plan to a file ('-' for stdout)")
    p_run.set_defaults(func=_cmd_run)


def main(argv: list[str] | None = None) -> int:
    args_list = argv if argv is not None else sys.argv[1:]
    if any(a in {"--version", "-V"} for a in args_list):
        print(f"framesmith {__version__}")
        return 0
    parser = argparse.ArgumentParser(prog="framesmith")
    vgrp = parser.add_mutually_exclusive_group()
    vgrp.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output (sets FRAMESMITH_VERBOSITY=debug)",
    )
    vgrp.add_argument(
        "--quiet",
        action="store_true",
        help="Quiet output (sets FRAMESMITH_VERBOSITY=quiet)",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)
    register_cli(sub)
    args = parser.parse_args(args_list)

    if args.verbose:
        os.environ["FRAMESMITH_VERBOSITY"] = "debug"
    elif args.quiet:
        os.environ["FRAMESMITH_VERBOSITY"] = "quiet"
    else:
        os.environ.setdefault("FRAMESMITH_VERBOSITY", "info")
    from framesmith.utils.cli_helpers import configure_logging_from_env

    configure_logging_from_env(default=os.environ.get("FRAMESMITH_VERBOSITY", "info"))
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
