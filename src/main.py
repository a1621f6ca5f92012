#!/usr/bin/env python3
"""
Stepwise - Command Line Entry Point

Runs resource-creation wizards headlessly: values come from a YAML file
(a saved draft or a plain mapping of field id to value) instead of a UI.

Usage:
    stepwise list
    stepwise validate create-vpc my-vpc.yaml
    stepwise submit create-vpc my-vpc.yaml
    stepwise save create-vpc "My VPC" my-vpc.yaml
    stepwise watch --wizard create-vpc
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from app.core.config import REDIS_HOST, REDIS_PORT, setup_logging
from app.core.redis_client import RedisClient, WizardStatusPublisher
from storage import list_drafts, read_values, save_draft
from wizard import WizardController, simulated_create
from wizard.errors import UnknownWizardError
from wizard.pages import RESOURCE_PREFIXES, get_definition, list_wizards

logger = logging.getLogger(__name__)


def _load(wizard_id: str, path: Path):
    definition = get_definition(wizard_id)
    values = read_values(path)
    unknown = sorted(key for key in values if not definition.has_field(key))
    if unknown:
        print(f"Ignoring unknown field(s): {', '.join(unknown)}")
    return definition, values


def cmd_list(args) -> int:
    print("Wizards:")
    for definition in list_wizards():
        print(f"  {definition.id:<24} {definition.title} ({definition.step_count} steps)")

    drafts = list_drafts(args.drafts_dir)
    if drafts:
        print("\nDrafts:")
        for draft in drafts:
            marker = " [error]" if draft["status"] == "error" else ""
            print(f"  {draft['wizard_id']}/{draft['slug']}: {draft['name']}{marker}")
    return 0


def cmd_validate(args) -> int:
    definition, values = _load(args.wizard, args.file)
    controller = WizardController.from_snapshot(
        definition, values, create_operation=simulated_create("noop", delay=0)
    )
    results = controller.validator.validate_all(controller.store, include_optional=True)

    failed = False
    for step in definition.steps:
        result = results[step.id]
        if result.valid:
            print(f"  ok    {step.title}")
            continue
        tag = "warn " if step.optional else "FAIL "
        failed = failed or not step.optional
        print(f"  {tag} {step.title}")
        for key, message in result.errors.items():
            print(f"          {key}: {message}")

    print("\nConfiguration is valid." if not failed else "\nConfiguration is invalid.")
    return 1 if failed else 0


def cmd_submit(args) -> int:
    definition, values = _load(args.wizard, args.file)
    publisher = None if args.no_redis else WizardStatusPublisher(definition.id)
    controller = WizardController.from_snapshot(
        definition,
        values,
        create_operation=simulated_create(RESOURCE_PREFIXES.get(definition.id, "res"), delay=args.delay),
        status_publisher=publisher,
    )

    outcome = asyncio.run(controller.submit())
    if outcome.succeeded:
        print(f"Created {definition.resource_type}: {outcome.resource_id}")
        return 0
    if outcome.errors:
        print(f"Cannot submit {definition.id}:")
        for key, message in outcome.errors.items():
            print(f"  {key}: {message}")
    else:
        print(f"Submission failed: {outcome.error}")
    return 1


def cmd_save(args) -> int:
    definition, values = _load(args.wizard, args.file)
    controller = WizardController.from_snapshot(
        definition, values, create_operation=simulated_create("noop", delay=0)
    )
    path = save_draft(definition, args.name, controller.snapshot(), args.drafts_dir)
    print(f"Saved draft to {path}")
    return 0


def _format_event(event) -> str:
    data = event.get("data") or {}
    detail = data.get("resource_id") or data.get("error") or data.get("message") or ""
    return (
        f"[{event.get('wizard_id', '-')}] {event.get('type')} "
        f"{event.get('status', '')} {detail}".rstrip()
    )


def cmd_watch(args) -> int:
    client = RedisClient()
    if client.client is None:
        print(f"Redis is not reachable at {REDIS_HOST}:{REDIS_PORT}")
        return 2

    seen = 0
    try:
        for event in client.iter_events(
            wizard_id=args.wizard,
            request_id=args.request_id,
            allowed_types={"submission"},
        ):
            print(_format_event(event))
            seen += 1
            if args.count and seen >= args.count:
                break
    except KeyboardInterrupt:
        pass
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stepwise",
        description="Run resource-creation wizards from YAML values",
    )
    parser.add_argument(
        "--drafts-dir",
        type=Path,
        default=None,
        help="Drafts directory (default: $STEPWISE_DATA_DIR/drafts)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    list_parser = sub.add_parser("list", help="List wizards and saved drafts")
    list_parser.set_defaults(func=cmd_list)

    validate_parser = sub.add_parser("validate", help="Validate values against a wizard")
    validate_parser.add_argument("wizard", help="Wizard id, e.g. create-vpc")
    validate_parser.add_argument("file", type=Path, help="YAML file with field values")
    validate_parser.set_defaults(func=cmd_validate)

    submit_parser = sub.add_parser("submit", help="Validate and run the (simulated) create operation")
    submit_parser.add_argument("wizard", help="Wizard id, e.g. create-vpc")
    submit_parser.add_argument("file", type=Path, help="YAML file with field values")
    submit_parser.add_argument("--delay", type=float, default=None, help="Simulated create delay in seconds")
    submit_parser.add_argument("--no-redis", action="store_true", help="Do not publish status events")
    submit_parser.set_defaults(func=cmd_submit)

    save_parser = sub.add_parser("save", help="Save values as a draft")
    save_parser.add_argument("wizard", help="Wizard id, e.g. create-vpc")
    save_parser.add_argument("name", help="Draft name")
    save_parser.add_argument("file", type=Path, help="YAML file with field values")
    save_parser.set_defaults(func=cmd_save)

    watch_parser = sub.add_parser("watch", help="Print submission status events as they arrive")
    watch_parser.add_argument("--wizard", default=None, help="Only events of this wizard id")
    watch_parser.add_argument("--request-id", default=None, help="Only events of this submission")
    watch_parser.add_argument("--count", type=int, default=0, help="Exit after this many events")
    watch_parser.set_defaults(func=cmd_watch)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        return args.func(args)
    except UnknownWizardError as exc:
        print(f"{exc}. Run 'stepwise list' to see the available wizards.")
        return 2
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error("Cannot read values: %s", exc)
        print(f"Error: {exc}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
