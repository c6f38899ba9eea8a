from alembic.config import Config
from alembic.script import ScriptDirectory

from admin import ALEMBIC_INI


def _script():
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    return ScriptDirectory.from_config(cfg)


def test_migrations_form_a_single_ordered_chain():
    script = _script()
    assert script.get_heads() == ["0004_type_not_empty"]
    chain = [rev.revision for rev in script.walk_revisions("base", "heads")]
    assert list(reversed(chain)) == [
        "0001_create_events",
        "0002_add_page_count",
        "0003_index_event_type",
        "0004_type_not_empty",
    ]


def test_migrations_are_additive_and_idempotent():
    for rev in _script().walk_revisions("base", "heads"):
        source = open(rev.path, encoding="utf-8").read()
        assert "IF NOT EXISTS" in source
        assert "DROP" not in source.upper()
