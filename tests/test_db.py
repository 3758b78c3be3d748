from pathlib import Path

from sqlalchemy import inspect, select

from caddy_sites import db, models


def test_init_db(tmp_path: Path):
    db_path = tmp_path / "index.db"
    db.init_db(db_path)
    engine = db.get_engine(db_path)
    insp = inspect(engine)
    tables = insp.get_table_names()
    assert "sites" in tables
    assert "site_domains" in tables
    assert "site_tags" in tables
    db.reset_engine()


def test_schema_version_recorded(tmp_path: Path):
    with db.session_scope(db_path=tmp_path / "index.db") as session:
        meta = session.scalar(select(models.Meta).where(models.Meta.key == "schema_version"))
        assert meta is not None
        assert meta.value == models.SCHEMA_VERSION
        assert models.to_dict(meta)["key"] == "schema_version"
    db.reset_engine()
