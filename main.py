"""
CLI entrypoint to check a product for allergens.

Flow:
- Parse user inputs (barcode or manual ingredients, profile edits, output format).
- Load the persisted allergen profile and apply any --add/--remove edits.
- Optionally override the profile for this run with --allergies.
- Look up the product on OpenFoodFacts (or take the manual details), run the
  LLM-backed analysis, and render a text report or JSON payload.

Exit codes: 0 on a completed analysis or profile edit, 1 on any failure or when
the analysis was skipped because ingredients are missing.
"""

import argparse
import json
import sys
from typing import List

from allergen_alert import (
    COMMON_ALLERGENS,
    InMemoryProfileBackend,
    JsonFileProfileBackend,
    OutcomeStatus,
    ProfileStore,
    allergen_label,
    resolve_allergen_id,
)
from allergen_alert.config import Settings, configure_logging
from allergen_alert.report import MATCHING_MODES, render_text_report, report_payload
from allergen_alert.service import build_service

STATUS_MESSAGES = {
    OutcomeStatus.INVALID_INPUT: "Missing input",
    OutcomeStatus.NOT_FOUND: "Product not found. You can enter the ingredients manually with --ingredients.",
    OutcomeStatus.UPSTREAM_ERROR: "Product lookup failed. Retry later or enter the ingredients manually.",
    OutcomeStatus.PARTIAL_DATA: "Analysis not performed: ingredients are missing for this product.",
    OutcomeStatus.ANALYSIS_ERROR: "Allergen analysis failed",
    OutcomeStatus.BUSY: "An analysis is already in progress",
}


def parse_args(argv=None) -> argparse.Namespace:
    """Configure and parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Check a product's ingredients against your allergen profile"
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--barcode", help="Product barcode to look up on OpenFoodFacts")
    source.add_argument(
        "--ingredients", help="Ingredient text to analyze instead of a barcode lookup"
    )
    parser.add_argument("--product-name", default="", help="Product name for manual entry")
    parser.add_argument("--description", default=None, help="Product description for manual entry")
    parser.add_argument(
        "--allergies",
        default=None,
        help="Comma-separated allergens for this run only (e.g. peanuts,milk). Defaults to the stored profile.",
    )
    parser.add_argument(
        "--add", dest="add_allergens", action="append", default=[],
        help="Add an allergen to the stored profile (repeatable)",
    )
    parser.add_argument(
        "--remove", dest="remove_allergens", action="append", default=[],
        help="Remove an allergen from the stored profile (repeatable)",
    )
    parser.add_argument(
        "--show-profile", action="store_true", help="Print the stored profile and exit"
    )
    parser.add_argument(
        "--list-allergens", action="store_true", help="Print the selectable allergens and exit"
    )
    parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format (default: text)"
    )
    parser.add_argument(
        "--matching",
        choices=list(MATCHING_MODES),
        default="name",
        help="How detected allergens are matched to the profile for highlighting",
    )
    parser.add_argument("--profile-file", default=None, help="Profile JSON file (default: db/profile.json)")
    parser.add_argument("--model", default=None, help="Reasoning model name")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    return parser.parse_args(argv)


def resolve_allergens(tokens: List[str]) -> List[str]:
    """Map free-form allergen names to category ids, rejecting unknown ones."""
    resolved = []
    for token in tokens:
        token = token.strip()
        if not token:
            continue
        allergen_id = resolve_allergen_id(token)
        if not allergen_id:
            raise ValueError(f"Unknown allergen '{token}'")
        if allergen_id not in resolved:
            resolved.append(allergen_id)
    return resolved


def format_profile(store: ProfileStore) -> str:
    ids = store.list()
    if not ids:
        return "Allergen profile is empty."
    return "Allergen profile: " + ", ".join(f"{allergen_label(i)} [{i}]" for i in ids)


def format_allergen_choices() -> str:
    lines = ["Selectable allergens:"]
    for idx, category in enumerate(COMMON_ALLERGENS, start=1):
        lines.append(f"  {idx:2d}. {category.name} [{category.id}]")
    return "\n".join(lines)


def render_outcome(outcome, profile_ids: List[str], fmt: str = "text", matching: str = "name") -> str:
    """Render a CheckOutcome for the console, successful or not."""
    if fmt == "json":
        payload = outcome.to_dict()
        if outcome.result:
            payload["report"] = report_payload(
                outcome.result, profile_ids, product=outcome.product, matching=matching
            )
        return json.dumps(payload, indent=2)

    lines = []
    for notice in outcome.notices:
        lines.append(f"Note: {notice}")
    if outcome.ok and outcome.result:
        lines.append(
            render_text_report(outcome.result, profile_ids, product=outcome.product, matching=matching)
        )
        return "\n".join(lines)

    message = STATUS_MESSAGES.get(outcome.status, "Check failed")
    if outcome.product:
        lines.append(f"{outcome.product.product_name} ({outcome.product.barcode})")
    if outcome.error:
        message = f"{message}: {outcome.error}"
    lines.append(message)
    return "\n".join(lines)


def main(argv=None) -> int:
    """Entrypoint: update the profile, run the check, render output."""
    args = parse_args(argv)
    settings = Settings.from_env(profile_path=args.profile_file, model=args.model, log_level=args.log_level)
    configure_logging(settings.log_level)

    if args.list_allergens:
        print(format_allergen_choices())
        return 0

    stored = ProfileStore(JsonFileProfileBackend(settings.profile_path))
    try:
        for allergen_id in resolve_allergens(args.add_allergens):
            stored.add(allergen_id)
        for allergen_id in resolve_allergens(args.remove_allergens):
            stored.remove(allergen_id)
        override = (
            resolve_allergens(args.allergies.split(",")) if args.allergies is not None else None
        )
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    if args.show_profile or (
        (args.add_allergens or args.remove_allergens) and not (args.barcode or args.ingredients)
    ):
        print(format_profile(stored))
        return 0

    if not (args.barcode or args.ingredients):
        print("Provide --barcode or --ingredients (see --help).", file=sys.stderr)
        return 1

    profile = stored
    if override is not None:
        profile = ProfileStore(InMemoryProfileBackend())
        for allergen_id in override:
            profile.add(allergen_id)

    service = build_service(settings, profile)
    if args.barcode:
        outcome = service.check_barcode(args.barcode)
    else:
        outcome = service.check_manual(args.product_name, args.ingredients, args.description)

    print(render_outcome(outcome, profile.list(), fmt=args.format, matching=args.matching))
    return 0 if outcome.ok else 1


if __name__ == "__main__":
    sys.exit(main())
