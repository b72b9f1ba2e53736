"""Tests for same-company conflict detection."""

from core.validation import (
    annotate_conflicts,
    dates_overlap,
    find_conflicts,
    find_conflicts_in_range,
)


def _request(id, company="STARS_MC", start="2025-03-10", end="2025-03-14", status="Approved", **extra):
    return {
        "id": id,
        "user_name": f"User {id}",
        "company": company,
        "start_date": start,
        "end_date": end,
        "status": status,
        "type": "Paid Vacation",
        **extra,
    }


def test_overlap_is_inclusive():
    assert dates_overlap("2025-03-10", "2025-03-14", "2025-03-14", "2025-03-20")
    assert dates_overlap("2025-03-10", "2025-03-14", "2025-03-01", "2025-03-10")
    assert not dates_overlap("2025-03-10", "2025-03-14", "2025-03-15", "2025-03-20")


def test_overlap_with_invalid_dates_is_false():
    assert not dates_overlap("nope", "2025-03-14", "2025-03-10", "2025-03-20")


def test_boundary_touch_conflicts():
    target = _request("a", start="2025-03-10", end="2025-03-12", status="Pending")
    other = _request("b", start="2025-03-12", end="2025-03-15")

    conflicts = find_conflicts(target, [target, other])

    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict["type"] == "same-company"
    assert conflict["severity"] == "high"
    assert conflict["details"] == "Overlap with User b's Paid Vacation from 2025-03-12 to 2025-03-15"
    assert conflict["conflicting_requests"][0]["id"] == "b"


def test_other_company_never_conflicts():
    target = _request("a")
    other = _request("b", company="STARS_YACHTING")
    assert find_conflicts(target, [other]) == []


def test_denied_requests_never_conflict():
    target = _request("a")
    assert find_conflicts(target, [_request("b", status="rejected")]) == []


def test_legacy_status_labels_still_block():
    target = _request("a")
    assert len(find_conflicts(target, [_request("b", status="VALIDATED")])) == 1


def test_order_follows_candidates():
    target = _request("a", start="2025-03-01", end="2025-03-31")
    candidates = [_request("c", start="2025-03-20"), _request("b", start="2025-03-02", end="2025-03-03")]

    ids = [c["conflicting_requests"][0]["id"] for c in find_conflicts(target, candidates)]

    assert ids == ["c", "b"]


def test_name_fallbacks():
    candidate = _request("b", user_name=None, user_email="bob@stars.mc", type=None)
    conflict = find_conflicts(_request("a"), [candidate])[0]
    assert conflict["details"].startswith("Overlap with bob@stars.mc's Vacation from")


def test_annotate_conflicts_is_symmetric():
    a = _request("a")
    b = _request("b", start="2025-03-14", end="2025-03-18", status="Pending")
    denied = _request("c", status="Denied")

    annotated = {r["id"]: r for r in annotate_conflicts([a, b, denied])}

    assert len(annotated["a"]["conflicts"]) == 1
    assert len(annotated["b"]["conflicts"]) == 1
    # A denied request still sees the requests it overlaps
    assert len(annotated["c"]["conflicts"]) == 2


def test_range_probe_with_company_and_exclusion():
    requests = [_request("a"), _request("b", company="LE_PNEU")]

    assert len(find_conflicts_in_range(requests, "2025-03-14", "2025-03-16", company="STARS_MC")) == 1
    assert find_conflicts_in_range(requests, "2025-03-14", "2025-03-16", company="STARS_MC", exclude_id="a") == []


def test_range_probe_without_company_lists_all_blocking():
    requests = [_request("a"), _request("b", company="LE_PNEU"), _request("c", status="Denied")]
    conflicts = find_conflicts_in_range(requests, "2025-03-01", "2025-03-31")
    assert [c["conflicting_requests"][0]["id"] for c in conflicts] == ["a", "b"]
