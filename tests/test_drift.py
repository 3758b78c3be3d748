from pathlib import Path

from caddy_sites.drift import canonical_text, check_site_drift, check_store_drift, summarise_drift
from caddy_sites.store import SiteStore


CANONICAL = "example.com {\n    import cloudflare_dns\n    reverse_proxy 10.0.0.5:8080\n}\n"


def test_canonical_file_is_in_sync(tmp_path: Path):
    target = tmp_path / "example.com.caddy"
    target.write_text(CANONICAL)
    report = check_site_drift(target)
    assert report.in_sync is True
    assert report.diff is None
    assert report.error is None
    assert report.raw_hash == report.canonical_hash
    assert "is canonical" in summarise_drift(report)


def test_hand_edited_file_drifts(tmp_path: Path):
    target = tmp_path / "example.com.caddy"
    target.write_text("example.com {\n\treverse_proxy 10.0.0.5:8080\n\timport custom_snippet\n}\n")
    report = check_site_drift(target)
    assert report.in_sync is False
    assert report.diff is not None
    assert "-\timport custom_snippet" in report.diff
    assert "+    import cloudflare_dns" in report.diff
    assert "differs" in summarise_drift(report)


def test_missing_file_reports_error(tmp_path: Path):
    report = check_site_drift(tmp_path / "missing.caddy")
    assert report.in_sync is None
    assert "No site file" in summarise_drift(report)


def test_permission_error_is_reported(tmp_path: Path, monkeypatch):
    target = tmp_path / "locked.caddy"
    target.write_text(CANONICAL)

    def _denied(*_args, **_kwargs):
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "read_text", _denied)
    report = check_site_drift(target)
    assert report.in_sync is None
    assert report.error and "Unable to read" in report.error


def test_identity_comes_from_filename(tmp_path: Path):
    assert canonical_text("", "fallback.example").startswith("fallback.example {\n")
    target = tmp_path / "headless.caddy"
    target.write_text("{\n    reverse_proxy 10.0.0.1:80\n}\n")
    report = check_site_drift(target)
    assert report.diff and "+headless {" in report.diff


def test_check_store_drift(tmp_path: Path):
    (tmp_path / "standard").mkdir()
    (tmp_path / "standard" / "a.caddy").write_text(CANONICAL)
    (tmp_path / "b.caddy").write_text("b.example.com {\n  reverse_proxy 10.0.0.2:80\n}\n")
    reports = check_store_drift(SiteStore(tmp_path))
    assert [(report.target_path.name, report.in_sync) for report in reports] == [("a.caddy", True), ("b.caddy", False)]


def test_undecodable_file_is_reported(tmp_path: Path):
    target = tmp_path / "bad.caddy"
    target.write_bytes(b"bad.example.com {\n\xff\n}\n")
    report = check_site_drift(target)
    assert report.in_sync is None
    assert report.error and "UTF-8" in report.error
