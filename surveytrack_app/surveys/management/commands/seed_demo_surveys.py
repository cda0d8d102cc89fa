"""
Management command to seed demo surveys with tracking parameters.

Creates two example surveys (one with a mix of encoded and plain
parameters) and the matching audit trail. Does nothing when surveys
already exist unless --force is given.

Usage:
    python manage.py seed_demo_surveys
    python manage.py seed_demo_surveys --force  # Replace existing surveys
"""

from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from surveytrack_app.core.storage import get_storage
from surveytrack_app.surveys.audit import AuditRecorder
from surveytrack_app.surveys.codec import encode_parameter
from surveytrack_app.surveys.records import (
    AuditAction,
    AuditEntityType,
    Survey,
    TrackingParameter,
)
from surveytrack_app.surveys.store import get_surveys, save_surveys

DEMO_USER_ID = "demo-user"

# (id, name, description, created days ago, updated days ago, parameters)
# parameters: (id, name, plaintext value, encode, days ago)
DEMO_SURVEYS = [
    (
        "demo-survey-1",
        "Q4 Customer Satisfaction Survey",
        "Quarterly customer feedback collection with campaign tracking",
        7,
        2,
        [
            ("param-1", "campaign", "Q4_2024_CUSTOMER_SAT", True, 7),
            ("param-2", "source", "email_newsletter", True, 7),
            ("param-3", "segment", "enterprise", False, 5),
        ],
    ),
    (
        "demo-survey-2",
        "Product Feature Feedback",
        "Collect feedback on new product features",
        3,
        1,
        [
            ("param-4", "user_id", "user_12345", True, 3),
            ("param-5", "feature", "new_dashboard", True, 3),
        ],
    ),
]


def build_demo_surveys(now=None) -> list[Survey]:
    now = now or timezone.now()
    surveys = []
    for survey_id, name, description, created, updated, params in DEMO_SURVEYS:
        parameters = []
        for param_id, param_name, value, encode, days_ago in params:
            stamp = now - timedelta(days=days_ago)
            parameters.append(
                TrackingParameter(
                    id=param_id,
                    name=param_name,
                    value=encode_parameter(value) if encode else value,
                    is_encrypted=encode,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
        surveys.append(
            Survey(
                id=survey_id,
                name=name,
                description=description,
                created_at=now - timedelta(days=created),
                updated_at=now - timedelta(days=updated),
                created_by="current-user",
                is_active=True,
                parameters=parameters,
            )
        )
    return surveys


class Command(BaseCommand):
    help = "Seed demo surveys and their audit entries"

    def add_arguments(self, parser):
        parser.add_argument(
            "--force",
            action="store_true",
            help="Replace existing surveys with the demo set",
        )

    def handle(self, *args, **options):
        storage = get_storage()
        existing = get_surveys(storage)
        if existing and not options["force"]:
            self.stdout.write(
                self.style.WARNING(
                    f"⏭️  {len(existing)} surveys already exist, nothing seeded"
                )
            )
            return

        surveys = build_demo_surveys()
        save_surveys(storage, surveys)

        recorder = AuditRecorder(storage)
        for survey in surveys:
            recorder.record(
                AuditAction.CREATE,
                AuditEntityType.SURVEY,
                survey.id,
                DEMO_USER_ID,
                f"Demo survey created: {survey.name}",
            )
            for param in survey.parameters:
                recorder.record(
                    AuditAction.ENCRYPT if param.is_encrypted else AuditAction.CREATE,
                    AuditEntityType.PARAMETER,
                    param.id,
                    DEMO_USER_ID,
                    f"{'Encrypted' if param.is_encrypted else 'Plain'} parameter added: {param.name}",
                    metadata={"surveyId": survey.id, "surveyName": survey.name},
                )
            self.stdout.write(self.style.SUCCESS(f"✅ Created survey: {survey.name}"))

        self.stdout.write(
            self.style.SUCCESS(f"Seeded {len(surveys)} demo surveys")
        )
