"""Fetching, fingerprinting and room registration."""

import hashlib
import json

import requests

from app.db.models.building import Building
from app.db.models.room import Room
from app.services.timetable_fetcher import TimetableFetcher

from tests.factories import API_URL, SAMPLE_EVENTS, make_event


def _rooms(db, code):
    b = db.query(Building).filter_by(code=code).one()
    return sorted(r.full_code for r in db.query(Room).filter_by(building_id=b.id))


class TestSync:
    def test_persists_raw_data_and_rooms(self, db, config, fake_api):
        result = TimetableFetcher(db, config).sync("AP152")

        assert result.processed == 4
        assert len(result.events) == 4
        assert _rooms(db, "AP152") == ["AP152.01.012", "AP152.EG.108"]

        raw = db.query(Building).filter_by(code="AP152").one().raw_data
        assert raw.content == fake_api.body
        assert raw.hash == hashlib.md5(fake_api.body.encode("utf-8")).hexdigest()

    def test_request_shape(self, db, config, fake_api):
        TimetableFetcher(db, config).sync("ap152")

        call = fake_api.calls[0]
        assert call["url"] == API_URL
        assert call["params"] == {"submit": "Suche", "q": "AP152"}
        assert call["timeout"] == 8
        assert call["headers"]["User-Agent"] == config.TIMETABLE_USER_AGENT

    def test_unchanged_payload_is_a_noop(self, db, config, fake_api):
        fetcher = TimetableFetcher(db, config)
        fetcher.sync("AP152")
        raw = db.query(Building).filter_by(code="AP152").one().raw_data
        first_hash, first_content = raw.hash, raw.content

        again = fetcher.sync("AP152")

        assert again.processed == 0
        assert again.events == []
        assert again.unchanged is True
        raw = db.query(Building).filter_by(code="AP152").one().raw_data
        assert (raw.hash, raw.content) == (first_hash, first_content)

    def test_changed_payload_is_reprocessed(self, db, config, fake_api):
        fetcher = TimetableFetcher(db, config)
        fetcher.sync("AP152")

        fake_api.set_events(SAMPLE_EVENTS + [
            make_event("e7", "AP152 AP152.03.301 Statistics, Novak Eva",
                       "2025-11-21T08:00:00+01:00", "2025-11-21T09:00:00+01:00"),
        ])
        result = fetcher.sync("AP152")

        assert result.processed == 5
        assert "AP152.03.301" in _rooms(db, "AP152")
        assert db.query(Building).filter_by(code="AP152").one().raw_data.content == fake_api.body

    def test_foreign_building_creates_no_room(self, db, config, fake_api):
        TimetableFetcher(db, config).sync("AP152")

        assert db.query(Room).filter(Room.full_code.like("AP147%")).count() == 0
        assert db.query(Building).filter_by(code="AP147").first() is None

    def test_room_of_another_building_is_not_registered(self, db, config, fake_api):
        fake_api.set_events([
            make_event("x1", "AP152 AP147.EG.010 Lecture, Prof",
                       "2025-11-20T08:00:00+01:00", "2025-11-20T09:00:00+01:00"),
        ])

        result = TimetableFetcher(db, config).sync("AP152")

        assert result.processed == 0
        assert _rooms(db, "AP152") == []


class TestSoftFailures:
    def _assert_nothing_stored(self, db, result):
        assert result.processed == 0
        assert result.events == []
        assert db.query(Building).filter_by(code="AP152").one().raw_data is None
        assert db.query(Room).count() == 0

    def test_missing_base_url(self, db, config, fake_api):
        config.TIMETABLE_API_URL = None
        result = TimetableFetcher(db, config).sync("AP152")
        self._assert_nothing_stored(db, result)
        assert fake_api.calls == []

    def test_error_status(self, db, config, fake_api):
        fake_api.status_code = 502
        self._assert_nothing_stored(db, TimetableFetcher(db, config).sync("AP152"))

    def test_timeout(self, db, config, fake_api):
        fake_api.error = requests.Timeout("read timed out")
        self._assert_nothing_stored(db, TimetableFetcher(db, config).sync("AP152"))

    def test_connection_error(self, db, config, fake_api):
        fake_api.error = requests.ConnectionError("connection refused")
        self._assert_nothing_stored(db, TimetableFetcher(db, config).sync("AP152"))

    def test_invalid_json(self, db, config, fake_api):
        fake_api.body = "<html>maintenance</html>"
        self._assert_nothing_stored(db, TimetableFetcher(db, config).sync("AP152"))

    def test_json_object_instead_of_list(self, db, config, fake_api):
        fake_api.body = json.dumps({"error": "unknown building"})
        self._assert_nothing_stored(db, TimetableFetcher(db, config).sync("AP152"))

    def test_failure_keeps_previous_raw_data(self, db, config, fake_api):
        fetcher = TimetableFetcher(db, config)
        fetcher.sync("AP152")
        stored = fake_api.body

        fake_api.status_code = 500
        fake_api.body = "[]"
        assert fetcher.sync("AP152").processed == 0
        assert db.query(Building).filter_by(code="AP152").one().raw_data.content == stored
