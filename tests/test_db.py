from sqlalchemy import event, text

from app.quill.db import _enable_sqlite_foreign_keys, _log_checkout, make_engine


def test_checkout_logging_off_for_both_production_names(tmp_path):
    for env in ("prod", "production"):
        engine = make_engine(f"sqlite:///{tmp_path / 'p.db'}", env=env)
        assert not event.contains(engine, "checkout", _log_checkout)
        engine.dispose()


def test_checkout_logging_on_outside_production(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'd.db'}", env="development")
    assert event.contains(engine, "checkout", _log_checkout)
    engine.dispose()


def test_sqlite_foreign_keys_enabled(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'fk.db'}", env="test")
    assert event.contains(engine, "connect", _enable_sqlite_foreign_keys)
    with engine.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
    engine.dispose()
