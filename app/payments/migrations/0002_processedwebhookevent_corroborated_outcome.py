"""
Add the CORROBORATED outcome to the processed-event ledger.

Stripe reports most outcomes twice (a payment_intent.* and a charge.*
event). The second one finds the payment already in the reported state
and is recorded as corroborated instead of rejected.
"""

from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="processedwebhookevent",
            name="outcome",
            field=models.CharField(
                choices=[
                    ("claimed", "Claimed"),
                    ("applied", "Applied"),
                    ("rejected", "Rejected"),
                    ("corroborated", "Corroborated"),
                ],
                db_index=True,
                default="claimed",
                help_text="Applied, rejected or corroborated; claimed only inside the unit of work",
                max_length=16,
            ),
        ),
        migrations.AlterField(
            model_name="processedwebhookevent",
            name="detail",
            field=models.TextField(
                blank=True,
                help_text="Why the transition was rejected, or what the event corroborated",
                null=True,
            ),
        ),
    ]
