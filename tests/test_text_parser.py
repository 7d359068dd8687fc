from __future__ import annotations

from umaparse.services.text_parser import (  # type: ignore[import-not-found]
    extract_name,
    extract_skill_lines,
    extract_stats,
    parse_uma_text,
    split_lines,
)

SCREEN_TEXT = """
Umamusume Details
Special Week

Speed 1012
Stamina 845
Power A 612
Guts 480
Wit 390
Turf A
Dirt G
Sprint F
Mile B
Medium A
Long B
Front C
Pace A
Late A
End B
Shooting Star
Right-Handed ◎
"""


def test_split_lines_strips_blank_lines() -> None:
    assert split_lines("  a \n\n b\n") == ["a", "b"]
    assert split_lines("") == []


def test_name_skips_header_lines() -> None:
    assert extract_name(["Umamusume Details", "Special Week"]) == "Special Week"
    assert extract_name(["1012", "S"]) == "Unknown Uma"


def test_labelled_stats_win_over_ranges() -> None:
    stats = extract_stats(split_lines(SCREEN_TEXT))

    assert stats.to_dict() == {
        "speed": 1012,
        "stamina": 845,
        "power": 612,
        "guts": 480,
        "wisdom": 390,
    }


def test_unlabelled_stats_fall_back_to_ranges() -> None:
    stats = extract_stats(["S 1104", "SS 1020", "C 640", "C 580", "D 420"])

    assert stats.to_dict() == {
        "speed": 1104,
        "stamina": 1020,
        "power": 640,
        "guts": 580,
        "wisdom": 420,
    }


def test_skill_lines_exclude_name_and_aptitude_rows() -> None:
    lines = split_lines(SCREEN_TEXT)

    assert extract_skill_lines(lines, "Special Week") == ["Shooting Star", "Right-Handed ◎"]


def test_parse_uma_text_builds_record() -> None:
    parsed = parse_uma_text(SCREEN_TEXT)

    assert parsed.name == "Special Week"
    assert parsed.outfit == ""
    assert parsed.aptitudes.track.turf == "A"
    assert parsed.aptitudes.distance.sprint == "F"
    assert parsed.aptitudes.distance.long == "B"
    assert parsed.aptitudes.style.front == "C"
    assert parsed.aptitudes.style.end == "B"
    assert parsed.raw_skills == ("Shooting Star", "Right-Handed ◎")
    assert parsed.skills == ()
