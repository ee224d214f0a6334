from __future__ import annotations

import pytest

from safeqr.models.enums import SecurityStatus
from safeqr.models.user import User
from safeqr.services import ServiceContainer
from safeqr.services.verified_links import VerifiedLinkService
from tests.fakes import FakeSupabase


@pytest.fixture
def links(services: ServiceContainer) -> VerifiedLinkService:
    return services["verified_link_service"]


def _link(link_id: str, url: str, status: str = "Safe", created_at: str = "2025-01-01T00:00:00.000000+00:00") -> dict[str, str]:
    return {"link_id": link_id, "url": url, "security_status": status, "created_at": created_at}


def test_list_links_pages_through_everything(links: VerifiedLinkService, fake: FakeSupabase) -> None:
    # The test config uses a page size of 2.
    fake.seed("verified_links", [
        _link(f"l{i}", f"https://site{i}.example", created_at=f"2025-01-0{i}T00:00:00.000000+00:00")
        for i in range(1, 6)
    ])

    result = links.list_links()

    assert [link.link_id for link in result] == ["l5", "l4", "l3", "l2", "l1"]
    assert fake.calls.count(("verified_links", "select")) == 3


def test_create_link_and_duplicate_is_conflict(links: VerifiedLinkService, fake: FakeSupabase, admin: User) -> None:
    first = links.create_link("https://safeqr.app/login", "Safe", admin)
    second = links.create_link("https://safeqr.app/login", "Malicious", admin)

    assert first.success and first.status_code == 201
    assert first.data.added_by == admin.user_id
    assert second.status_code == 409
    assert len(fake.rows("verified_links")) == 1


@pytest.mark.parametrize("url", ["", "not a url", "safeqr.app", "https://", "http://exa mple.com"])
def test_create_link_rejects_malformed_urls(
    links: VerifiedLinkService, fake: FakeSupabase, admin: User, url: str,
) -> None:
    result = links.create_link(url, "Safe", admin)

    assert result.status_code == 400
    assert fake.writes() == []


def test_create_link_rejects_unknown_status(links: VerifiedLinkService, admin: User) -> None:
    assert links.create_link("https://a.example", "Suspicious", admin).status_code == 400


def test_create_link_requires_admin(links: VerifiedLinkService, end_user: User) -> None:
    assert links.create_link("https://a.example", "Safe", end_user).status_code == 403


def test_delete_link_removes_features_first(links: VerifiedLinkService, fake: FakeSupabase, admin: User) -> None:
    fake.seed("verified_links", [_link("l1", "https://a.example")])
    fake.seed("url_features", [{"link_id": "l1", "feature": "length", "value": 17}])

    result = links.delete_link("l1", admin)

    assert result.success
    assert fake.rows("url_features") == []
    assert fake.rows("verified_links") == []
    deletes = [call for call in fake.calls if call[1] == "delete"]
    assert deletes == [("url_features", "delete"), ("verified_links", "delete")]


def test_delete_missing_link_is_404(links: VerifiedLinkService, admin: User) -> None:
    assert links.delete_link("missing", admin).status_code == 404


def test_toggle_status_flips_and_closes_reports(links: VerifiedLinkService, fake: FakeSupabase, admin: User) -> None:
    fake.seed("verified_links", [_link("l1", "https://a.example", "Safe")])
    fake.seed("reports", [
        {"report_id": "r1", "link_id": "l1", "status": "Pending"},
        {"report_id": "r2", "link_id": "other", "status": "Pending"},
    ])

    result = links.toggle_security_status("l1", admin)

    assert result.success
    assert result.data.security_status == SecurityStatus.MALICIOUS
    statuses = {row["report_id"]: row["status"] for row in fake.rows("reports")}
    assert statuses == {"r1": "Closed", "r2": "Pending"}

    assert links.toggle_security_status("l1", admin).data.security_status == SecurityStatus.SAFE


def test_search_is_case_insensitive_and_literal(links: VerifiedLinkService, fake: FakeSupabase) -> None:
    fake.seed("verified_links", [
        _link("l1", "https://Example.com/promo"),
        _link("l2", "https://other.org/100%_real"),
        _link("l3", "https://other.org/100x_real"),
    ])

    assert [l.link_id for l in links.search_links("EXAMPLE")] == ["l1"]
    assert [l.link_id for l in links.search_links("100%")] == ["l2"]
    assert len(links.search_links("  ")) == 3


def test_lookup_helpers_and_stats(links: VerifiedLinkService, fake: FakeSupabase) -> None:
    fake.seed("verified_links", [
        _link("l1", "https://good.example", "Safe"),
        _link("l2", "https://bad.example", "Malicious"),
        _link("l3", "https://fine.example", "Safe"),
    ])

    assert links.is_url_verified_and_safe("https://good.example") is True
    assert links.is_url_verified_and_safe("https://bad.example") is False
    assert links.is_url_verified_and_safe("https://unknown.example") is False
    assert links.get_link("l2").data.url == "https://bad.example"
    assert links.get_link("nope").status_code == 404
    assert [l.link_id for l in links.links_by_status(SecurityStatus.MALICIOUS)] == ["l2"]

    stats = links.verification_stats()
    assert (stats.total, stats.safe, stats.malicious) == (3, 2, 1)


def test_reads_degrade_when_store_unavailable(links: VerifiedLinkService, fake: FakeSupabase) -> None:
    fake.fail("verified_links", "select")

    assert links.list_links() == []
    assert links.search_links("x") == []
    assert links.get_link_by_url("https://a.example") is None
    assert links.get_link("l1").status_code == 503
