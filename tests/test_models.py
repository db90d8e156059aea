from datetime import date

import pytest

from rtschedule.dates import build_date_range, week_bounds, weeks_in_range
from rtschedule.models import SchedulerConfig, Therapist, WorkPattern, sanitize_weekly_limit


def test_config_from_env():
    config = SchedulerConfig.from_env({
        "RTSCHEDULE_MIN_COVERAGE": "2",
        "RTSCHEDULE_MAX_COVERAGE": "4",
        "RTSCHEDULE_GENERATION_TARGET": "6",
        "RTSCHEDULE_WEEK_STARTS_ON": "6",
        "RTSCHEDULE_PRN_POOL_MODE": "exclude",
    })
    assert (config.min_coverage, config.max_coverage) == (2, 4)
    assert config.fill_target == 4
    assert config.week_starts_on == 6
    assert config.prn_pool_mode == "exclude"


def test_config_defaults_from_empty_env():
    config = SchedulerConfig.from_env({})
    assert (config.min_coverage, config.max_coverage, config.generation_target) == (3, 5, 4)


@pytest.mark.parametrize("kwargs", [
    {"min_coverage": 4, "max_coverage": 3},
    {"week_starts_on": 7},
    {"prn_pool_mode": "sometimes"},
])
def test_config_rejects_bad_values(kwargs):
    with pytest.raises(ValueError):
        SchedulerConfig(**kwargs)


@pytest.mark.parametrize("employment,explicit,expected", [
    ("full_time", None, 3),
    ("part_time", None, 2),
    ("prn", None, 1),
    ("full_time", 5, 5),
    ("full_time", 0, 3),
    ("part_time", 9, 2),
])
def test_weekly_limit(employment, explicit, expected):
    t = Therapist(id=1, name="T", employment_type=employment, max_work_days_per_week=explicit)
    assert SchedulerConfig().weekly_limit_for(t) == expected


def test_sanitize_weekly_limit_rejects_bools_and_text():
    assert sanitize_weekly_limit(True, 3) == 3
    assert sanitize_weekly_limit("x", 2) == 2
    assert sanitize_weekly_limit("4", 2) == 4


def test_pattern_normalization():
    p = WorkPattern.normalized(works_dow=[1, "2", 9, None, 1], works_dow_mode="weird",
                               weekend_rotation="every_other", shift_preference="evening")
    assert p.works_dow == [1, 2]
    assert p.works_dow_mode == "hard"
    assert p.weekend_rotation == "every_other"
    assert p.shift_preference == "either"


def test_week_bounds():
    wed = date(2026, 1, 7)
    assert week_bounds(wed) == (date(2026, 1, 5), date(2026, 1, 11))
    assert week_bounds(wed, week_starts_on=6) == (date(2026, 1, 4), date(2026, 1, 10))


def test_weeks_in_range_keeps_only_cycle_days():
    days = build_date_range(date(2026, 1, 8), date(2026, 1, 13))
    weeks = weeks_in_range(days)
    assert [len(v) for _, v in sorted(weeks.items())] == [4, 2]
    assert build_date_range(date(2026, 1, 2), date(2026, 1, 1)) == []
