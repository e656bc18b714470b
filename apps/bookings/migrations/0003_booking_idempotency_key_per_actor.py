from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("bookings", "0002_booking_slot_no_overlap"),
    ]

    operations = [
        migrations.AlterField(
            model_name="booking",
            name="idempotency_key",
            field=models.CharField(
                blank=True,
                help_text="Client supplied key; a replayed create by the same actor returns the original booking.",
                max_length=64,
                null=True,
            ),
        ),
        migrations.AddConstraint(
            model_name="booking",
            constraint=models.UniqueConstraint(
                fields=("created_by", "idempotency_key"),
                name="booking_idempotency_key_per_actor",
            ),
        ),
    ]
