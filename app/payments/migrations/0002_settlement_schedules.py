"""
Add celery-beat schedules for the settlement background tasks.

- Retry failed webhook events every 5 minutes
- Reset webhook events stuck in processing every 15 minutes
- Expire stale transfer claims every 10 minutes
"""

from django.db import migrations

SCHEDULES = [
    {
        "name": "Retry Failed Stripe Webhooks",
        "task": "payments.tasks.retry_failed_webhooks",
        "every": 5,
        "description": "Re-queues failed webhook events that are under the retry limit.",
    },
    {
        "name": "Reset Stuck Stripe Webhooks",
        "task": "payments.tasks.cleanup_stuck_webhooks",
        "every": 15,
        "description": "Marks webhook events stuck in processing as failed so they are retried.",
    },
    {
        "name": "Expire Stale Transfer Claims",
        "task": "payments.tasks.expire_stale_transfer_claims",
        "every": 10,
        "description": (
            "Moves distribution rows stuck in processing to transfer_failed "
            "(TRANSFER_STALE) so they reach the manual payout queue."
        ),
    },
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for settlement housekeeping."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=entry["every"],
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=entry["name"],
            defaults={
                "task": entry["task"],
                "interval": schedule,
                "enabled": True,
                "description": entry["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name__in=[entry["name"] for entry in SCHEDULES]).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
