from datetime import datetime, timezone

from jobrelay.pipeline.filter import (
    RecordFilter,
    identity_key,
    is_excluded,
    normalize_exclusions,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_identity_key_prefers_link_then_id_then_composite():
    assert identity_key({"job_link": "https://x/1", "job_id": "9"}) == "https://x/1"
    assert identity_key({"job_id": "9"}) == "9"
    assert (
        identity_key({"company_name": "Acme", "job_position": "Dev", "job_location": "NYC"})
        == "Acme|Dev|NYC"
    )


def test_exclusion_matches_company_name_case_insensitive():
    exclusions = normalize_exclusions(["Lensa", "TieTalent"])
    assert is_excluded({"company_name": "LENSA Inc"}, exclusions)
    assert is_excluded({"companyName": "tietalent"}, exclusions)
    assert not is_excluded({"company_name": "Acme"}, exclusions)


def test_exclusion_matches_profile_host():
    exclusions = normalize_exclusions(["google"])
    record = {"company_name": "Alphabet", "company_profile": "https://careers.Google.com/x"}
    assert is_excluded(record, exclusions)


def test_exclusion_ignores_unparseable_profile():
    exclusions = normalize_exclusions(["meta"])
    assert not is_excluded({"company_name": "Acme", "company_profile": "not a url"}, exclusions)


def test_dedupe_keeps_first_instance():
    records = [
        {"job_link": "L1", "company_name": "A", "note": "first"},
        {"job_link": "L2", "company_name": "B"},
        {"job_link": "L1", "company_name": "A", "note": "second"},
    ]
    kept = RecordFilter().apply(records)
    assert [r["job_link"] for r in kept] == ["L1", "L2"]
    assert kept[0]["note"] == "first"


def test_excluded_record_never_admitted_regardless_of_position():
    records = [
        {"job_link": "L1", "company_name": "Lensa"},
        {"job_link": "L2", "company_name": "Acme"},
        {"job_link": "L3", "company_name": "via TieTalent"},
    ]
    kept = RecordFilter().apply(records)
    assert [r["job_link"] for r in kept] == ["L2"]


def test_excluded_record_does_not_reserve_its_key():
    f = RecordFilter()
    assert not f.admit({"job_link": "L1", "company_name": "Lensa"})
    assert f.admit({"job_link": "L1", "company_name": "Acme"})


def test_max_age_filter_rejects_old_and_unknown():
    f = RecordFilter(max_age_minutes=1440, now=NOW)
    assert f.admit({"job_link": "a", "postedTime": "3 hours ago"})
    assert not f.admit({"job_link": "b", "postedTime": "3 days ago"})
    assert not f.admit({"job_link": "c"})


def test_apply_stops_at_limit_and_skips_non_dicts():
    records = ["junk", {"job_link": "1"}, {"job_link": "2"}, {"job_link": "3"}]
    assert [r["job_link"] for r in RecordFilter().apply(records, limit=2)] == ["1", "2"]


def test_check_does_not_mutate():
    f = RecordFilter()
    seen = {"L1"}
    assert f.check({"job_link": "L1"}, seen) is None
    assert f.check({"job_link": "L2"}, seen) == "L2"
    assert seen == {"L1"}
    assert f.seen == set()
