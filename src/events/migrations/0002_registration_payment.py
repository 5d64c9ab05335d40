from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("events", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="registration",
            name="payment_intent_id",
            field=models.CharField(blank=True, max_length=255),
        ),
        migrations.AddField(
            model_name="registration",
            name="amount_paid",
            field=models.PositiveIntegerField(blank=True, help_text="In minor units", null=True),
        ),
        migrations.AddField(
            model_name="registration",
            name="amount_refunded",
            field=models.PositiveIntegerField(default=0, help_text="In minor units"),
        ),
        migrations.AddField(
            model_name="registration",
            name="currency",
            field=models.CharField(blank=True, max_length=3),
        ),
    ]
