"""
Event title parsing.

Title contract:
- "<BUILDING> <BUILDING>.<FLOOR>.<NUMBER> ..." carries the room
- text before the first comma (cut at "(") is the short title
- text after the first comma is the teacher, "Unknown" when missing
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from app.services.event_parser import match_room, parse_events, split_title

from tests.factories import SAMPLE_EVENTS, make_event

VIENNA = ZoneInfo("Europe/Vienna")


class TestMatchRoom:
    def test_ground_floor_room(self):
        m = match_room("AP152 AP152.EG.108 Software Engineering (VO), Mustermann Max")
        assert m.building == "AP152"
        assert m.full_code == "AP152.EG.108"
        assert m.floor == "EG"
        assert m.number == "108"

    def test_numeric_floor(self):
        m = match_room("AP154 AP154.02.015 Physics")
        assert m.full_code == "AP154.02.015"
        assert m.floor == "02"
        assert m.number == "015"

    def test_administrative_noise_does_not_match(self):
        assert match_room("Dekanat Sprechstunde") is None
        assert match_room("AP152 Raumsperre") is None
        assert match_room("") is None

    def test_room_code_must_repeat_building(self):
        assert match_room("AP152 AP147.EG.010 Lecture, Prof") is None


class TestSplitTitle:
    def test_short_title_cut_at_parenthesis(self):
        short, teacher = split_title("AP152 AP152.EG.108 Software Engineering (VO), Mustermann Max, SWD23")
        assert short == "AP152 AP152.EG.108 Software Engineering"
        assert teacher == "Mustermann Max"

    def test_missing_teacher_defaults_to_unknown(self):
        short, teacher = split_title("AP152 AP152.EG.108 Networks")
        assert short == "AP152 AP152.EG.108 Networks"
        assert teacher == "Unknown"


class TestParseEvents:
    def test_sample_payload(self):
        result = parse_events(SAMPLE_EVENTS, "AP152", VIENNA)
        assert [e.external_id for e in result.events] == ["e1", "e2", "e3", "e6"]
        assert result.ignored == 1
        assert result.unmatched == 1

    def test_cross_building_event_is_dropped(self):
        raw = [make_event("x", "AP147 AP147.EG.010, Someone", "2025-11-20T08:00:00", "2025-11-20T09:00:00")]
        result = parse_events(raw, "AP152", VIENNA)
        assert result.events == []
        assert result.ignored == 1

    def test_requested_code_is_case_insensitive(self):
        raw = [make_event("x", "AP152 AP152.EG.108 Lab", "2025-11-20T08:00:00", "2025-11-20T09:00:00")]
        assert len(parse_events(raw, "ap152", VIENNA).events) == 1

    def test_instants_are_converted_to_civil_time(self):
        raw = [make_event("x", "AP152 AP152.EG.108 Lab", "2025-11-20T09:00:00Z", "2025-11-20T10:00:00Z")]
        event = parse_events(raw, "AP152", VIENNA).events[0]
        assert event.start_time == datetime(2025, 11, 20, 10, 0)
        assert event.end_time == datetime(2025, 11, 20, 11, 0)
        assert event.start_time.tzinfo is None

    def test_structured_fields(self):
        event = parse_events(SAMPLE_EVENTS[:1], "AP152", VIENNA).events[0]
        assert event.room_code == "AP152.EG.108"
        assert event.teacher == "Mustermann Max"
        assert event.class_name == "fc-lecture"
        assert event.color == "#C00C82"

    def test_unusable_instants_are_dropped(self):
        raw = [
            make_event("a", "AP152 AP152.EG.108 Lab", "not a date", "2025-11-20T09:00:00"),
            make_event("b", "AP152 AP152.EG.108 Lab", "2025-11-20T10:00:00", "2025-11-20T09:00:00"),
            {"id": "c", "start": "2025-11-20T10:00:00", "end": "2025-11-20T11:00:00"},
        ]
        result = parse_events(raw, "AP152", VIENNA)
        assert result.events == []
        assert result.unmatched == 3
