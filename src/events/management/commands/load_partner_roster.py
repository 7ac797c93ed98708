# src/events/management/commands/load_partner_roster.py

import csv
import typing as t
from pathlib import Path

import structlog
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from events.models import PartnerStudent
from events.service.roster import normalize_roll_number

logger = structlog.get_logger(__name__)


class Command(BaseCommand):
    """Load the partner institution's roll numbers from a CSV file.

    The file needs a ``roll_number`` column and may have a ``name`` column. Existing
    roll numbers get their name updated; whether they already registered is kept.
    """

    help = "Load partner-institution roll numbers from a CSV file with roll_number (and optional name) columns"

    def add_arguments(self, parser: t.Any) -> None:
        parser.add_argument("path", type=Path, help="CSV file to read")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Parse the file and report what would change without writing anything",
        )

    def handle(self, *args: t.Any, **options: t.Any) -> None:
        path: Path = options["path"]
        if not path.exists():
            raise CommandError(f"{path} does not exist.")

        with path.open(newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)
            if not reader.fieldnames or "roll_number" not in reader.fieldnames:
                raise CommandError("The CSV file needs a roll_number column.")
            rows = {
                normalize_roll_number(row["roll_number"]): (row.get("name") or "").strip()
                for row in reader
                if (row.get("roll_number") or "").strip()
            }

        if options["dry_run"]:
            existing = PartnerStudent.objects.filter(roll_number__in=rows).count()
            self.stdout.write(f"{len(rows)} roll numbers read, {len(rows) - existing} new.")
            return

        created = 0
        with transaction.atomic():
            for roll_number, name in rows.items():
                _, was_created = PartnerStudent.objects.update_or_create(
                    roll_number=roll_number, defaults={"name": name}
                )
                created += was_created

        logger.info("partner_roster_loaded", path=str(path), rows=len(rows), created=created)
        self.stdout.write(self.style.SUCCESS(f"Loaded {len(rows)} roll numbers ({created} new)."))
