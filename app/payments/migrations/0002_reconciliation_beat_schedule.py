"""
Add celery-beat schedules for payment reconciliation.

- poll_due_reconciliation_jobs runs every 5 seconds and dispatches one
  status poll per due ReconciliationJob.
- purge_expired_checkout_intents runs hourly and deletes expired,
  unconsumed checkout intents.
"""

from django.db import migrations

SCHEDULES = [
    {
        "name": "Poll Due Reconciliation Jobs",
        "task": "payments.workers.reconciliation_worker.poll_due_reconciliation_jobs",
        "every": 5,
        "period": "seconds",
        "description": (
            "Dispatches provider status polls for pending reconciliation jobs "
            "whose next poll time has arrived."
        ),
    },
    {
        "name": "Purge Expired Checkout Intents",
        "task": "payments.workers.reconciliation_worker.purge_expired_checkout_intents",
        "every": 1,
        "period": "hours",
        "description": "Deletes checkout intents that expired without being used.",
    },
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for reconciliation."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=entry["every"],
            period=entry["period"],
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

    PeriodicTask.objects.filter(
        name__in=[entry["name"] for entry in SCHEDULES],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
