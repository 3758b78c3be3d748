from pathlib import Path

from caddy_sites import db
from caddy_sites.index import changed_sites, load_index, sync_index
from caddy_sites.store import SiteStore


def _reset_db(tmp_path: Path) -> Path:
    db.reset_engine()
    db_path = tmp_path / "index.db"
    db.init_db(db_path)
    return db_path


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def test_sync_index_tracks_changes(tmp_path: Path):
    db_path = _reset_db(tmp_path)
    sites_dir = tmp_path / "sites"
    first = _write(
        sites_dir / "standard" / "a.caddy",
        "# @tags: prod, web\na.example.com, www.a.example.com {\n    reverse_proxy 10.0.0.1:80\n}\n",
    )
    _write(sites_dir / "standard" / "b.caddy", "b.example.com {\n    import internal_only\n    reverse_proxy 10.0.0.2:80\n}\n")
    store = SiteStore(sites_dir)

    summary = sync_index(store, db_path=db_path)
    assert sorted(summary.added) == ["a", "b"]
    assert summary.changed

    entries = {entry.filename: entry for entry in load_index(db_path=db_path)}
    assert entries["a"].domains == ["a.example.com", "www.a.example.com"]
    assert entries["a"].tags == ["prod", "web"]
    assert entries["a"].target_url == "http://10.0.0.1:80"
    assert entries["b"].is_internal is True

    summary = sync_index(store, db_path=db_path)
    assert sorted(summary.unchanged) == ["a", "b"]
    assert not summary.changed

    first.write_text("# @tags: prod\na.example.com {\n    reverse_proxy 10.0.0.9:80\n}\n")
    (sites_dir / "standard" / "b.caddy").unlink()
    assert changed_sites(store, db_path=db_path) == ["a"]

    summary = sync_index(store, db_path=db_path)
    assert summary.updated == ["a"]
    assert summary.removed == ["b"]
    entries = {entry.filename: entry for entry in load_index(db_path=db_path)}
    assert list(entries) == ["a"]
    assert entries["a"].domains == ["a.example.com"]
    assert entries["a"].tags == ["prod"]
    assert entries["a"].target_url == "http://10.0.0.9:80"
    assert changed_sites(store, db_path=db_path) == []


def test_changed_sites_reports_unindexed_files(tmp_path: Path):
    db_path = _reset_db(tmp_path)
    sites_dir = tmp_path / "sites"
    _write(sites_dir / "new.caddy", "new.example.com {\n}\n")
    assert changed_sites(SiteStore(sites_dir), db_path=db_path) == ["new"]


def test_sync_index_indexes_shadowed_name_once(tmp_path: Path):
    db_path = _reset_db(tmp_path)
    sites_dir = tmp_path / "sites"
    _write(sites_dir / "standard" / "app.caddy", "app.example.com {\n    reverse_proxy 10.0.0.1:80\n}\n")
    _write(sites_dir / "app.caddy", "legacy.example.com {\n    reverse_proxy 10.0.0.2:80\n}\n")
    summary = sync_index(SiteStore(sites_dir), db_path=db_path)
    assert summary.added == ["app"]
    entries = load_index(db_path=db_path)
    assert [entry.primary_domain for entry in entries] == ["app.example.com"]
