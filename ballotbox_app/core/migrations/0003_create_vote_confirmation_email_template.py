from __future__ import annotations

from django.db import migrations


def create_vote_confirmation_template(apps, schema_editor) -> None:
    EmailTemplate = apps.get_model("post_office", "EmailTemplate")
    EmailTemplate.objects.update_or_create(
        name="election-vote-confirmation",
        defaults={
            "subject": "Vote confirmed: {{ election_name }}",
            "content": (
                "Dear voter,\n"
                "\n"
                "Your vote has been successfully recorded.\n"
                "\n"
                "Election: {{ election_name }}\n"
                "Your choice: {{ candidate_description }}\n"
                "Recorded at: {{ voted_at }}\n"
                "Confirmation ID: {{ confirmation_id }}\n"
                "\n"
                "Thank you for making your voice heard.\n"
                "\n"
                "This is an automated confirmation. Please do not reply to this email.\n"
                "\n"
                "-- The Ballotbox Team\n"
            ),
            "html_content": (
                "<p>Dear voter,</p>\n"
                "<p>Your vote has been successfully recorded.</p>\n"
                "<ul>\n"
                "<li><strong>Election:</strong> {{ election_name }}</li>\n"
                "<li><strong>Your choice:</strong> {{ candidate_description }}</li>\n"
                "<li><strong>Recorded at:</strong> {{ voted_at }}</li>\n"
                "<li><strong>Confirmation ID:</strong> <code>{{ confirmation_id }}</code></li>\n"
                "</ul>\n"
                "<p>Thank you for making your voice heard.</p>\n"
                "<p><em>This is an automated confirmation. Please do not reply to this email.</em></p>\n"
                "<p><em>The Ballotbox Team</em></p>"
            ),
        },
    )


def noop_reverse(*_args, **_kwargs) -> None:
    # Keep templates on rollback to avoid losing admin edits.
    return


class Migration(migrations.Migration):
    dependencies = [
        ("core", "0002_vote_append_only"),
        ("post_office", "0013_email_recipient_delivery_status_alter_log_status"),
    ]

    operations = [
        migrations.RunPython(
            create_vote_confirmation_template,
            reverse_code=noop_reverse,
        ),
    ]
