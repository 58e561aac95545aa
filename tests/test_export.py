import csv
import io

from calcconform.analysis.compliance import ComplianceThresholds
from calcconform.export import CSV_HEADERS, export_csv, export_rows


async def test_one_row_per_shutter(populated_store):
    rows = export_rows(await populated_store.get_projects())
    assert rows[0] == CSV_HEADERS
    assert len(rows) == 5
    assert rows[1][:6] == ["Tour Horizon", "Lyon", "Building A", "Main Hall", "VH01", "High shutter"]
    assert rows[1][6:10] == ["5000", "4900", "-2.0%", "Compliant"]
    assert rows[2][5] == "Low shutter"
    assert rows[2][8:10] == ["+15.0%", "Acceptable"]
    assert rows[3][9:11] == ["Non-compliant", "motor noise"]


async def test_dates_are_day_first(populated_store):
    projects = await populated_store.get_projects()
    shutter = projects[0].buildings[0].functional_zones[0].shutters[0]
    row = export_rows(projects)[1]
    assert row[11] == shutter.created_at.strftime("%d/%m/%Y")


async def test_project_filter(populated_store):
    projects = await populated_store.get_projects()
    rows = export_rows(projects, project_ids=[projects[1].id])
    assert [row[0] for row in rows[1:]] == ["Parc Sud"]


async def test_custom_thresholds(populated_store):
    strict = ComplianceThresholds(compliant_max=1.0, acceptable_max=2.0)
    rows = export_rows(await populated_store.get_projects(), thresholds=strict)
    assert rows[1][9] == "Acceptable"


async def test_csv_text_is_quoted(populated_store):
    text = export_csv(await populated_store.get_projects())
    assert text.startswith('"Project","City"')
    parsed = list(csv.reader(io.StringIO(text)))
    assert parsed == export_rows(await populated_store.get_projects())


def test_empty_tree_has_header_only():
    assert export_rows([]) == [CSV_HEADERS]
