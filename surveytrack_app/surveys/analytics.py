from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any, Iterable

from django.utils import timezone

from .codec import decode_parameter
from .records import Survey, SurveyResponse

TIME_RANGES = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_TIME_RANGE = "30d"
TOP_VALUES = 5
RECENT_RESPONSES = 10


def filter_responses(
    responses: Iterable[SurveyResponse],
    survey_id: str = "all",
    time_range: str = DEFAULT_TIME_RANGE,
    now: datetime | None = None,
) -> list[SurveyResponse]:
    """Responses inside the time window, optionally for a single survey."""
    days = TIME_RANGES.get(time_range, TIME_RANGES[DEFAULT_TIME_RANGE])
    cutoff = (now or timezone.now()) - timedelta(days=days)
    return [
        r
        for r in responses
        if r.timestamp >= cutoff and (survey_id == "all" or r.survey_id == survey_id)
    ]


def parameter_distribution(
    responses: list[SurveyResponse], top: int = TOP_VALUES
) -> dict[str, list[dict[str, Any]]]:
    """Most frequent values per parameter name.

    Values are passed through the codec again so responses captured with
    tagged values still group with their plaintext.
    """
    counts: dict[str, Counter] = defaultdict(Counter)
    for response in responses:
        for name, value in response.parameters.items():
            counts[name][decode_parameter(value) or value] += 1

    total = len(responses)
    distribution = {}
    for name, counter in counts.items():
        distribution[name] = [
            {
                "value": value,
                "count": count,
                "percentage": round(count / total * 100, 1) if total else 0.0,
            }
            for value, count in counter.most_common(top)
        ]
    return distribution


def summarize(
    surveys: list[Survey],
    responses: list[SurveyResponse],
    survey_id: str = "all",
    time_range: str = DEFAULT_TIME_RANGE,
    now: datetime | None = None,
) -> dict[str, Any]:
    filtered = filter_responses(responses, survey_id, time_range, now)
    names = {s.id: s.name for s in surveys}
    recent = sorted(filtered, key=lambda r: r.timestamp, reverse=True)

    return {
        "survey": survey_id,
        "time_range": time_range if time_range in TIME_RANGES else DEFAULT_TIME_RANGE,
        "stats": {
            "total_responses": len(filtered),
            "active_surveys": sum(1 for s in surveys if s.is_active),
            "encrypted_parameters": sum(
                1 for s in surveys for p in s.parameters if p.is_encrypted
            ),
            "unique_visitors": len({r.ip_address for r in filtered}),
        },
        "parameter_distribution": parameter_distribution(filtered),
        "recent_activity": [
            {
                "id": r.id,
                "survey_id": r.survey_id,
                "survey_name": names.get(r.survey_id, "Unknown Survey"),
                "timestamp": r.timestamp,
                "parameters": sorted(r.parameters),
            }
            for r in recent[:RECENT_RESPONSES]
        ],
    }
