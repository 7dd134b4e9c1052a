"""
Interactive helper to run an allergen check without remembering flags.
Workflow:
- Show the stored allergen profile and offer to re-select it from the
  numbered list of allergens.
- Ask for a barcode, or for manual product details when there is no barcode,
  the product is not found, or its ingredients are missing.
- Run the analysis and print the formatted report.

Usage:
    python simple_cli.py
"""
from typing import List, Optional

from allergen_alert import COMMON_ALLERGENS, OutcomeStatus, ProfileStore
from allergen_alert.config import Settings, configure_logging
from allergen_alert.service import AllergenCheckService, build_service
from main import format_profile, render_outcome

MANUAL_FALLBACK = (
    OutcomeStatus.NOT_FOUND,
    OutcomeStatus.UPSTREAM_ERROR,
    OutcomeStatus.PARTIAL_DATA,
)


def prompt_bool(label: str, default: bool = False) -> bool:
    suffix = "[Y/n]" if default else "[y/N]"
    resp = input(f"{label} {suffix}: ").strip().lower()
    if not resp:
        return default
    return resp.startswith("y")


def prompt_allergens() -> List[str]:
    """
    Console-friendly "dropdown": show the selectable allergens and let the user
    pick by number. Returns category ids (e.g. peanuts, milk).
    """
    options = list(COMMON_ALLERGENS)
    print("\nSelect allergens (comma-separated numbers, empty for none):")
    for idx, category in enumerate(options, start=1):
        print(f"  {idx:2d}. {category.name} [{category.id}]")

    while True:
        raw = input("Your selection: ").strip()
        if not raw:
            return []
        try:
            indices = [
                int(token)
                for token in raw.replace(" ", "").split(",")
                if token.strip()
            ]
        except ValueError:
            print("Use numbers from the list (e.g. 1,3,5).")
            continue

        invalid = [i for i in indices if i < 1 or i > len(options)]
        if invalid:
            print(f"Choices out of range: {invalid}. Try again.")
            continue

        ids: List[str] = []
        for i in indices:
            if options[i - 1].id not in ids:
                ids.append(options[i - 1].id)
        return ids


def replace_profile(store: ProfileStore, ids: List[str]) -> None:
    for allergen_id in store.list():
        if allergen_id not in ids:
            store.remove(allergen_id)
    for allergen_id in ids:
        store.add(allergen_id)


def prompt_manual(service: AllergenCheckService, default_name: Optional[str] = None):
    """Ask for product details until ingredients are given, then analyze."""
    name = input(f"Product name [{default_name or ''}]: ").strip() or (default_name or "")
    while True:
        ingredients = input("Ingredients: ").strip()
        if ingredients:
            break
        print("Please enter the ingredient list.")
    description = input("Description (optional): ").strip() or None
    return service.check_manual(name, ingredients, description)


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    service = build_service(settings)
    store = service.profile_store

    print("=== Allergen Alert ===")
    print(format_profile(store))
    if not len(store) or prompt_bool("Change your allergen profile?", default=False):
        replace_profile(store, prompt_allergens())
        print(format_profile(store))

    barcode = input("\nProduct barcode (leave empty to enter details manually): ").strip()
    if barcode:
        outcome = service.check_barcode(barcode)
        if outcome.status in MANUAL_FALLBACK:
            print(render_outcome(outcome, store.list()))
            if prompt_bool("Enter the product details manually?", default=True):
                default_name = outcome.product.product_name if outcome.product else None
                outcome = prompt_manual(service, default_name=default_name)
            else:
                return
    else:
        outcome = prompt_manual(service)

    print()
    print(render_outcome(outcome, store.list()))


if __name__ == "__main__":
    main()
