import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "scripts"))

from assignment_report import build_report, parse_payload


def _line(**payload) -> str:
    return "INFO:servicematch.services.assigner:assignment_telemetry=" + json.dumps(payload, sort_keys=True)


def test_parse_payload_ignores_unrelated_lines():
    assert parse_payload("INFO:uvicorn:Application startup complete.") is None
    assert parse_payload("assignment_telemetry={broken") is None
    assert parse_payload("assignment_telemetry=[1, 2]") is None
    assert parse_payload(_line(booking_id="bk_1")) == {"booking_id": "bk_1"}


def test_build_report_counts_methods_and_synthesis():
    rows = [
        parse_payload(
            _line(
                booking_id="bk_1",
                provider_id="prov_1",
                category="electrical",
                assignment_method="auto-assigned",
                match_type="exact-service",
            )
        ),
        parse_payload(
            _line(
                booking_id="bk_2",
                provider_id="prov_1",
                category="electrical",
                assignment_method="synthesized-fallback",
                match_type="synthesized",
            )
        ),
        parse_payload(
            _line(
                booking_id="bk_3",
                provider_id="prov_2",
                category="cleaning",
                assignment_method="user-selected",
                match_type=None,
            )
        ),
    ]

    report = build_report(rows)

    assert report["total_bookings"] == 3
    assert report["assignment_methods"] == {"auto-assigned": 1, "synthesized-fallback": 1, "user-selected": 1}
    assert report["match_types"]["unknown"] == 1
    assert report["providers_top10"] == {"prov_1": 2, "prov_2": 1}
    assert report["categories_top10"]["electrical"] == 2
    assert report["synthesized_rate"] == 0.3333


def test_build_report_empty():
    report = build_report([])
    assert report["total_bookings"] == 0
    assert report["synthesized_rate"] == 0.0
