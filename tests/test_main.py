import json
from unittest.mock import patch

import main
from allergen_alert import AllergenAnalysisEngine, AllergenCheckService

from fakes import ScriptedBackend, StaticSource, verdict_reply


def _fake_builder(backend, products=None):
    def build(settings, profile_store=None):
        engine = AllergenAnalysisEngine(backend)
        return AllergenCheckService(StaticSource(products or {}), engine, profile_store)

    return build


def test_list_allergens(capsys):
    assert main.main(["--list-allergens"]) == 0
    out = capsys.readouterr().out
    assert "Milk (Dairy) [milk]" in out


def test_profile_edits_persist(tmp_path, capsys):
    path = tmp_path / "profile.json"
    assert main.main(["--profile-file", str(path), "--add", "peanuts", "--add", "dairy"]) == 0
    assert "Peanuts [peanuts], Milk (Dairy) [milk]" in capsys.readouterr().out

    assert main.main(["--profile-file", str(path), "--remove", "peanuts", "--show-profile"]) == 0
    assert "Allergen profile: Milk (Dairy) [milk]" in capsys.readouterr().out


def test_unknown_allergen_is_rejected(tmp_path, capsys):
    path = tmp_path / "profile.json"
    assert main.main(["--profile-file", str(path), "--add", "unobtainium"]) == 1
    assert "Unknown allergen" in capsys.readouterr().err


def test_manual_analysis_text(tmp_path, capsys):
    backend = ScriptedBackend([verdict_reply(["Milk", "Soy"])])
    with patch.object(main, "build_service", _fake_builder(backend)):
        code = main.main(
            [
                "--profile-file", str(tmp_path / "profile.json"),
                "--allergies", "milk",
                "--product-name", "Latte",
                "--ingredients", "Milk, Soy lecithin",
            ]
        )
    out = capsys.readouterr().out
    assert code == 0
    assert "- Milk [profile match]" in out
    assert "Warning!" in out
    # --allergies does not touch the stored profile
    assert not (tmp_path / "profile.json").exists()


def test_barcode_json_output(tmp_path, capsys):
    from allergen_alert import ProductRecord

    backend = ScriptedBackend([verdict_reply([])])
    products = {"42": ProductRecord(barcode="42", product_name="Rice Cakes", ingredients="Rice, Salt")}
    with patch.object(main, "build_service", _fake_builder(backend, products)):
        code = main.main(
            ["--profile-file", str(tmp_path / "p.json"), "--allergies", "shellfish",
             "--barcode", "42", "--format", "json"]
        )
    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["status"] == "ok"
    assert payload["result"]["safeToConsume"] is True
    assert payload["report"]["highlighted"] == []


def test_partial_data_exits_non_zero(tmp_path, capsys):
    from allergen_alert import ProductRecord

    backend = ScriptedBackend()
    products = {"7": ProductRecord(barcode="7", product_name="Oat Crackers", ingredients="")}
    with patch.object(main, "build_service", _fake_builder(backend, products)):
        code = main.main(["--profile-file", str(tmp_path / "p.json"), "--barcode", "7"])
    out = capsys.readouterr().out
    assert code == 1
    assert "Analysis not performed" in out
    assert backend.calls == []


def test_requires_a_source(tmp_path, capsys):
    assert main.main(["--profile-file", str(tmp_path / "p.json")]) == 1
    assert "--barcode or --ingredients" in capsys.readouterr().err
