from __future__ import annotations

from django.db import migrations

VOTE_APPEND_ONLY_SQL = """
CREATE OR REPLACE FUNCTION core_vote_append_only() RETURNS trigger AS $$
BEGIN
    RAISE EXCEPTION USING MESSAGE = 'vote rows are append-only (' || TG_OP || ' is not allowed)';
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS core_vote_no_update_trg ON core_vote;
CREATE TRIGGER core_vote_no_update_trg
BEFORE UPDATE ON core_vote
FOR EACH ROW
EXECUTE FUNCTION core_vote_append_only();

DROP TRIGGER IF EXISTS core_vote_no_delete_trg ON core_vote;
CREATE TRIGGER core_vote_no_delete_trg
BEFORE DELETE ON core_vote
FOR EACH ROW
EXECUTE FUNCTION core_vote_append_only();
"""

VOTE_APPEND_ONLY_SQL_REVERSE = """
DROP TRIGGER IF EXISTS core_vote_no_update_trg ON core_vote;
DROP TRIGGER IF EXISTS core_vote_no_delete_trg ON core_vote;
DROP FUNCTION IF EXISTS core_vote_append_only();
"""


def install_vote_triggers(apps, schema_editor) -> None:
    # The model layer refuses updates/deletes on every backend; PostgreSQL also
    # enforces it for raw queryset updates and manual SQL.
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute(VOTE_APPEND_ONLY_SQL)


def remove_vote_triggers(apps, schema_editor) -> None:
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute(VOTE_APPEND_ONLY_SQL_REVERSE)


class Migration(migrations.Migration):
    dependencies = [
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(install_vote_triggers, reverse_code=remove_vote_triggers),
    ]
