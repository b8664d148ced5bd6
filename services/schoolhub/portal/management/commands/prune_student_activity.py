"""Delete old student analytics rows by retention policy."""

from __future__ import annotations

import csv
import json
from datetime import timedelta
from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from portal.services.analytics import prunable_activity


class Command(BaseCommand):
    help = "Prune old StudentActivity, closed StudentSession and finished AssignmentAttempt rows."

    def add_arguments(self, parser):
        parser.add_argument(
            "--older-than-days",
            type=int,
            default=int(getattr(settings, "SCHOOLHUB_ACTIVITY_RETENTION_DAYS", 0)),
            help="Delete rows older than this many days (0 disables by default).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report candidate counts without deleting.",
        )
        parser.add_argument(
            "--export-csv",
            default="",
            help="Optional path to write matched activity rows as CSV before delete.",
        )

    def handle(self, *args, **opts):
        days = int(opts["older_than_days"])
        dry_run = bool(opts["dry_run"])
        export_csv = str(opts.get("export_csv") or "").strip()
        if days <= 0:
            raise CommandError(
                "Set --older-than-days to a positive integer (or set SCHOOLHUB_ACTIVITY_RETENTION_DAYS)."
            )

        cutoff = timezone.now() - timedelta(days=days)
        querysets = prunable_activity(cutoff=cutoff)
        counts = {name: qs.count() for name, qs in querysets.items()}
        self.stdout.write(f"Cutoff: {cutoff.isoformat()}")
        for name in ("activities", "sessions", "attempts"):
            self.stdout.write(f"Matched {name}: {counts[name]}")

        if export_csv:
            export_path = Path(export_csv)
            activities = querysets["activities"].order_by("id")
            try:
                export_path.parent.mkdir(parents=True, exist_ok=True)
                fields = [
                    "id",
                    "created_at",
                    "activity_type",
                    "student_id",
                    "session_id",
                    "assessment_id",
                    "resource_id",
                    "course_id",
                    "duration_seconds",
                    "details_json",
                ]
                exported_rows = 0
                with export_path.open("w", encoding="utf-8", newline="") as fh:
                    writer = csv.DictWriter(fh, fieldnames=fields)
                    writer.writeheader()
                    for row in activities.iterator(chunk_size=500):
                        writer.writerow(
                            {
                                "id": row.id,
                                "created_at": row.created_at.isoformat(),
                                "activity_type": row.activity_type,
                                "student_id": row.student_id,
                                "session_id": row.session_id or "",
                                "assessment_id": row.assessment_id or "",
                                "resource_id": row.resource_id or "",
                                "course_id": row.course_id or "",
                                "duration_seconds": row.duration_seconds if row.duration_seconds is not None else "",
                                "details_json": json.dumps(row.details or {}, ensure_ascii=False, sort_keys=True),
                            }
                        )
                        exported_rows += 1
            except OSError as exc:
                raise CommandError(f"Failed to write CSV export to '{export_path}': {exc}") from exc

            self.stdout.write(self.style.SUCCESS(f"CSV export written: {export_path} ({exported_rows} rows)"))

        if dry_run:
            self.stdout.write(self.style.WARNING(f"[dry-run] Would delete rows: {sum(counts.values())}"))
            return

        deleted_total = 0
        with transaction.atomic():
            # Activities first: they reference sessions.
            for name in ("activities", "attempts", "sessions"):
                deleted, _details = querysets[name].delete()
                deleted_total += deleted
        self.stdout.write(self.style.SUCCESS(f"Deleted rows: {deleted_total}"))
