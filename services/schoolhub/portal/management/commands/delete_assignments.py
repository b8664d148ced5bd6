"""Bulk-remove assignments (and their submissions) for test setups and cleanup."""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from portal.models import Assessment, Organization, Submission


class Command(BaseCommand):
    help = "Delete assignments matching the given filters. At least one filter or --all is required."

    def add_arguments(self, parser):
        parser.add_argument("--organization", default="", help="Organization code to scope deletion to.")
        parser.add_argument("--course-id", type=int, default=None, help="Only assignments in this course.")
        parser.add_argument("--title-contains", default="", help="Case-insensitive title substring.")
        parser.add_argument(
            "--all",
            action="store_true",
            help="Delete every assignment (ignored when other filters are given).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report matches without deleting.",
        )

    def handle(self, *args, **opts):
        org_code = str(opts.get("organization") or "").strip()
        course_id = opts.get("course_id")
        title_contains = str(opts.get("title_contains") or "").strip()
        dry_run = bool(opts["dry_run"])

        if not (org_code or course_id or title_contains or opts.get("all")):
            raise CommandError("Pass --organization, --course-id, --title-contains or --all.")

        qs = Assessment.objects.all()
        if org_code:
            org = Organization.objects.filter(code__iexact=org_code).first()
            if org is None:
                raise CommandError(f"Organization '{org_code}' not found.")
            qs = qs.filter(organization=org)
        if course_id:
            qs = qs.filter(course_id=course_id)
        if title_contains:
            qs = qs.filter(title__icontains=title_contains)

        count = qs.count()
        submission_count = Submission.objects.filter(assessment__in=qs).count()
        self.stdout.write(f"Matched assignments: {count}")
        self.stdout.write(f"Matched submissions: {submission_count}")
        for title in qs.order_by("id").values_list("title", flat=True)[:20]:
            self.stdout.write(f" - {title}")
        if count > 20:
            self.stdout.write(f"... ({count - 20} more)")

        if dry_run:
            self.stdout.write(self.style.WARNING(f"[dry-run] Would delete assignments: {count}"))
            return
        with transaction.atomic():
            deleted, details = qs.delete()
        self.stdout.write(
            self.style.SUCCESS(
                f"Deleted assignments: {details.get('portal.Assessment', 0)}; total rows: {deleted}"
            )
        )
