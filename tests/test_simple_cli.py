from unittest.mock import patch

import simple_cli
from allergen_alert import OutcomeStatus

from fakes import verdict_reply


def _answers(*values):
    replies = iter(values)
    return lambda prompt="": next(replies)


def test_prompt_allergens_reprompts_on_bad_input(capsys):
    with patch("builtins.input", _answers("x", "9", "1, 3,1")):
        assert simple_cli.prompt_allergens() == ["peanuts", "milk"]
    out = capsys.readouterr().out
    assert "Use numbers from the list" in out
    assert "out of range" in out


def test_prompt_bool_default():
    with patch("builtins.input", _answers("")):
        assert simple_cli.prompt_bool("Continue?", default=True) is True
    with patch("builtins.input", _answers("no")):
        assert simple_cli.prompt_bool("Continue?", default=True) is False


def test_replace_profile(profile):
    profile.add("peanuts")
    profile.add("fish")
    simple_cli.replace_profile(profile, ["fish", "soy"])
    assert profile.list() == ["fish", "soy"]


def test_prompt_manual_waits_for_ingredients(service, backend):
    backend.replies = [verdict_reply([])]
    with patch("builtins.input", _answers("", "", "Rice, Salt", "")):
        outcome = simple_cli.prompt_manual(service, default_name="Oat Crackers")
    assert outcome.status == OutcomeStatus.OK
    assert outcome.product.product_name == "Oat Crackers"
