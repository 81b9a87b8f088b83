"""
Tests for summary.py - per-truck detail sheet aggregate.
"""

from datetime import timedelta

from ft.core.models import Status
from ft.domain.summary import summarize_truck

from conftest import make_sighting, T0


def ago(minutes):
    return T0 - timedelta(minutes=minutes)


class TestSummarizeTruck:
    def test_counts_and_latest_report(self):
        sightings = [
            make_sighting(ts=ago(90)),
            make_sighting(ts=ago(12), status=Status.VERIFIED),
            make_sighting(ts=ago(40)),
            make_sighting(name="Other Truck", ts=ago(1)),
        ]

        summary = summarize_truck("Taco Loco", sightings, now=T0)

        assert summary.report_count == 3
        assert summary.verified_count == 1
        assert summary.last_report_min == 12

    def test_popular_items_by_frequency(self):
        sightings = [
            make_sighting(favorite_items=["Horchata", "Al pastor"]),
            make_sighting(favorite_items=["Al pastor", " "]),
            make_sighting(favorite_items=["Al pastor", "Churros", "Horchata"]),
        ]
        summary = summarize_truck("Taco Loco", sightings, now=T0, limit=2)
        assert summary.popular_items == ["Al pastor", "Horchata"]

    def test_notes_from_freshest_report_with_notes(self):
        sightings = [
            make_sighting(ts=ago(50), additional_notes="Long line"),
            make_sighting(ts=ago(30), additional_notes="Out of churros "),
            make_sighting(ts=ago(5), additional_notes=""),
        ]
        summary = summarize_truck("Taco Loco", sightings, now=T0)
        assert summary.latest_notes == "Out of churros"
        assert summary.last_report_min == 5

    def test_no_reports(self):
        summary = summarize_truck("Ghost Truck", [], now=T0)
        assert summary.report_count == 0
        assert summary.last_report_min is None
        assert summary.popular_items == []

    def test_pipeline_summary_uses_exact_name(self, pipeline, store):
        store.add_sighting(make_sighting(ts=ago(3)))
        store.add_sighting(make_sighting(name="taco loco", ts=ago(1)))
        summary = pipeline.truck_summary("Taco Loco")
        assert summary.report_count == 1
        assert summary.last_report_min == 3
