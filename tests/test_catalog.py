from datetime import datetime, timezone

from caddy_sites.catalog import all_tags, filter_sites, recent_changes, site_stats
from caddy_sites.site import SiteRecord


def _sites() -> list[SiteRecord]:
    return [
        SiteRecord(
            domains=["a.example.com"],
            tags=["prod", "web"],
            filename="a",
            target_host="10.0.0.1",
            modified_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        ),
        SiteRecord(
            domains=["b.example.com"],
            tags=["lab"],
            is_internal=True,
            filename="b",
            target_host="nas.lan",
            modified_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
        ),
        SiteRecord(
            domains=["c.example.com"],
            tags=["prod"],
            basic_auth_enabled=True,
            filename="c",
            target_host="10.0.0.3",
        ),
    ]


def test_all_tags_sorted_unique():
    assert all_tags(_sites()) == ["lab", "prod", "web"]


def test_site_stats():
    stats = site_stats(_sites())
    assert stats.total == 3
    assert stats.internal == 1
    assert stats.public == 2
    assert stats.with_auth == 1
    assert stats.tags == 3


def test_recent_changes_orders_newest_first():
    assert [site.filename for site in recent_changes(_sites(), 2)] == ["b", "a"]
    assert [site.filename for site in recent_changes(_sites(), 10)] == ["b", "a", "c"]
    assert recent_changes(_sites(), 0) == []


def test_filter_sites():
    assert [site.filename for site in filter_sites(_sites(), tag="prod")] == ["a", "c"]
    assert [site.filename for site in filter_sites(_sites(), query="NAS")] == ["b"]
    assert [site.filename for site in filter_sites(_sites(), tag="prod", query="c.example")] == ["c"]
    assert len(filter_sites(_sites())) == 3
