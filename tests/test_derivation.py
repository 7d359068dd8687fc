from __future__ import annotations

import json
from pathlib import Path

import pytest

from umaparse.services.derivation import (  # type: ignore[import-not-found]
    Strategy,
    build_horse_state,
    find_matching_uma,
    highest_aptitude,
    strategy_from_style,
)
from umaparse.services.errors import CatalogError  # type: ignore[import-not-found]
from umaparse.services.models import (  # type: ignore[import-not-found]
    Aptitudes,
    DistanceAptitudes,
    ParsedUmaData,
    Stats,
    StyleAptitudes,
    TrackAptitudes,
)
from umaparse.services.roster_catalog import (  # type: ignore[import-not-found]
    build_roster_catalog,
    load_roster_catalog,
)


def _roster_payload() -> dict[str, object]:
    return {
        "1001": {
            "name": ["スペシャルウィーク", "Special Week"],
            "outfits": {"100101": "[Special Dreamer]", "100102": "[Hopp'n♪Happy Heart]"},
        },
        "1002": {
            "name": ["サイレンススズカ", "Silence Suzuka"],
            "outfits": {"100201": "[Innocent Silence]"},
        },
        "1003": {
            "name": ["トウカイテイオー", "Tokai Teio"],
            "outfits": {"100301": "[Peak Joy]"},
        },
        "9999": {"name": ["broken"], "outfits": {}},
    }


def _roster():
    return build_roster_catalog(_roster_payload())


def _parsed(**overrides: object) -> ParsedUmaData:
    base = {
        "outfit": "[Special Dreamer]",
        "name": "Special Week",
        "stats": Stats(speed=1012, stamina=645, power=512, guts=388, wisdom=301),
        "aptitudes": Aptitudes(
            track=TrackAptitudes(turf="A", dirt="G"),
            distance=DistanceAptitudes(sprint="F", mile="C", medium="A", long="A"),
            style=StyleAptitudes(front="G", pace="A", late="A", end="C"),
        ),
        "skills": ("100011", "200512"),
    }
    base.update(overrides)
    return ParsedUmaData(**base)  # type: ignore[arg-type]


def test_roster_skips_entries_without_outfits() -> None:
    roster = _roster()

    assert [entry.uma_id for entry in roster.entries] == ["1001", "1002", "1003"]
    assert roster.entries[0].display_name == "Special Week"


def test_outfit_title_matches_first() -> None:
    roster = _roster()

    assert find_matching_uma("[Special Dreamer]", "", roster) == "100101"
    assert find_matching_uma("[Specia1 Dreamer]", "", roster) == "100101"
    assert find_matching_uma("[Peak Joy]", "Special Week", roster) == "100301"


def test_name_falls_back_to_first_outfit() -> None:
    roster = _roster()

    assert find_matching_uma("", "Silence Suzuka", roster) == "100201"
    assert find_matching_uma("[Nothing Like It]", "Special Week", roster) == "100101"


def test_no_match_returns_none() -> None:
    assert find_matching_uma("", "", _roster()) is None
    assert find_matching_uma("[Nothing Like It]", "Nobody Here", _roster()) is None


@pytest.mark.parametrize(
    ("grades", "expected"),
    [(["B", "A", "G"], "A"), (["S", "A"], "S"), ([], "G"), (["Z", "C"], "C")],
)
def test_highest_aptitude(grades: list[str], expected: str) -> None:
    assert highest_aptitude(grades) == expected


def test_strategy_follows_first_axis_with_best_grade() -> None:
    assert strategy_from_style(StyleAptitudes(front="A", pace="B", late="C", end="D"), "A") is Strategy.SENKOU
    assert strategy_from_style(StyleAptitudes(front="C", pace="B", late="S", end="A"), "S") is Strategy.OIKOMI
    assert strategy_from_style(StyleAptitudes(front="C", pace="C", late="C", end="A"), "A") is Strategy.OIKOMI
    assert strategy_from_style(StyleAptitudes(), "A") is Strategy.SASI


def test_all_g_styles_pick_front_axis_strategy() -> None:
    style = StyleAptitudes()

    assert strategy_from_style(style, highest_aptitude(["G", "G", "G", "G"])) is Strategy.SENKOU
    assert [strategy.value for strategy in Strategy] == ["Senkou", "Sasi", "Oikomi"]


def test_build_horse_state_summarizes_aptitudes() -> None:
    horse = build_horse_state(_parsed(), _roster())

    assert horse.outfit_id == "100101"
    assert horse.surface_aptitude == "A"
    assert horse.distance_aptitude == "A"
    assert horse.strategy_aptitude == "A"
    assert horse.strategy is Strategy.SENKOU
    assert horse.to_dict() == {
        "outfitId": "100101",
        "speed": 1012,
        "stamina": 645,
        "power": 512,
        "guts": 388,
        "wisdom": 301,
        "surfaceAptitude": "A",
        "distanceAptitude": "A",
        "strategyAptitude": "A",
        "strategy": "Senkou",
        "skills": ["100011", "200512"],
    }


def test_build_horse_state_without_roster_has_no_outfit() -> None:
    horse = build_horse_state(_parsed(), None)

    assert horse.outfit_id is None
    assert horse.wisdom == 301


def test_load_roster_catalog_reports_bad_files(tmp_path: Path) -> None:
    missing = tmp_path / "missing.json"
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    good = tmp_path / "umas.json"
    good.write_text(json.dumps(_roster_payload()), encoding="utf-8")

    with pytest.raises(CatalogError):
        load_roster_catalog(missing)
    with pytest.raises(CatalogError):
        load_roster_catalog(broken)
    assert len(load_roster_catalog(good)) == 3


def test_shipped_roster_resolves_outfit(shipped_data_dir: Path) -> None:
    roster = load_roster_catalog(shipped_data_dir / "umas.json")

    assert find_matching_uma("[Innocent Silence]", "", roster) == "100201"
    assert find_matching_uma("", "Gold Ship", roster) == "100701"
