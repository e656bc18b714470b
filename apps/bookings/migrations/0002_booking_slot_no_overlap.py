from django.db import migrations

CONSTRAINT_NAME = "booking_slot_no_overlap"


def add_exclusion_constraint(apps, schema_editor):
    # Range types and GiST exclusion only exist on PostgreSQL; other
    # backends rely on the row locks taken by the orchestrator.
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    schema_editor.execute(
        f"""
        ALTER TABLE bookings_bookingslot
        ADD CONSTRAINT {CONSTRAINT_NAME}
        EXCLUDE USING gist (
            slot_id WITH =,
            tstzrange(start_time, end_time, '[)') WITH &&
        ) WHERE (blocks_slot)
        """
    )


def drop_exclusion_constraint(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute(
        f"ALTER TABLE bookings_bookingslot DROP CONSTRAINT IF EXISTS {CONSTRAINT_NAME}"
    )


class Migration(migrations.Migration):

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(add_exclusion_constraint, drop_exclusion_constraint),
    ]
