from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("core", "0003_create_vote_confirmation_email_template"),
    ]

    operations = [
        migrations.AlterField(
            model_name="vote",
            name="vote_token",
            field=models.CharField(max_length=64, unique=True),
        ),
    ]
