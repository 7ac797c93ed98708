from io import StringIO
from pathlib import Path

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from events.models import PartnerStudent

pytestmark = pytest.mark.django_db


@pytest.fixture
def roster_csv(tmp_path: Path) -> Path:
    path = tmp_path / "roster.csv"
    path.write_text("roll_number,name\n 21cs042 ,Asha Raman\n22EE007,Kavya S\n,Nobody\n", encoding="utf-8")
    return path


def test_loads_roll_numbers(roster_csv: Path) -> None:
    out = StringIO()

    call_command("load_partner_roster", str(roster_csv), stdout=out)

    assert "Loaded 2 roll numbers (2 new)." in out.getvalue()
    assert dict(PartnerStudent.objects.values_list("roll_number", "name")) == {
        "21CS042": "Asha Raman",
        "22EE007": "Kavya S",
    }


def test_reload_updates_names_and_keeps_registration_flag(roster_csv: Path) -> None:
    PartnerStudent.objects.create(roll_number="21CS042", name="A. Raman", is_registered=True)
    out = StringIO()

    call_command("load_partner_roster", str(roster_csv), stdout=out)

    assert "(1 new)" in out.getvalue()
    student = PartnerStudent.objects.get(roll_number="21CS042")
    assert student.name == "Asha Raman"
    assert student.is_registered


def test_dry_run_writes_nothing(roster_csv: Path) -> None:
    out = StringIO()

    call_command("load_partner_roster", str(roster_csv), "--dry-run", stdout=out)

    assert "2 roll numbers read, 2 new." in out.getvalue()
    assert not PartnerStudent.objects.exists()


def test_missing_column(tmp_path: Path) -> None:
    path = tmp_path / "roster.csv"
    path.write_text("roll,name\n21CS042,Asha Raman\n", encoding="utf-8")

    with pytest.raises(CommandError, match="roll_number column"):
        call_command("load_partner_roster", str(path))


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(CommandError, match="does not exist"):
        call_command("load_partner_roster", str(tmp_path / "missing.csv"))
