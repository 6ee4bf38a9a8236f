"""Tests for the Excel export handler."""

from openpyxl import load_workbook

from kit_ledger.database.models import ActionEntry, Case
from kit_ledger.io.excel_handler import export_assets_excel, export_cases_excel


class TestExcelExport:
    def test_assets_workbook(self, repo, kit, drill, tmp_path):
        path = tmp_path / "assets.xlsx"
        assert export_assets_excel(repo, path) == 2
        ws = load_workbook(path)["Assets"]
        assert ws.cell(row=1, column=1).value == "ID"
        names = {ws.cell(row=r, column=2).value for r in (2, 3)}
        assert names == {"Impact Wrench Kit", "Cordless Drill"}

    def test_column_widths_capped(self, repo, tmp_path, kit):
        kit.name = "X" * 80
        repo.save_asset(kit)
        path = tmp_path / "assets.xlsx"
        export_assets_excel(repo, path)
        ws = load_workbook(path)["Assets"]
        assert ws.column_dimensions["B"].width == 40

    def test_cases_workbook_has_history_sheet(self, repo, kit, tmp_path):
        repo.create_case(Case(
            id="C-1", tool_id="T-001", tool_name="Impact Wrench Kit",
            quantity=2, monetary_value=420.0,
            action_history=[
                ActionEntry("Supervisor", "Sam", "GRANT GRACE", "2025-06-12"),
                ActionEntry("Supervisor", "Sam", "HR ESCALATE", "2025-07-13"),
            ],
        ))
        path = tmp_path / "cases.xlsx"
        assert export_cases_excel(repo, path) == 1
        wb = load_workbook(path)
        assert wb.sheetnames == ["Cases", "Action History"]
        assert wb["Cases"].cell(row=2, column=11).value == 840.0
        assert wb["Action History"].max_row == 3
