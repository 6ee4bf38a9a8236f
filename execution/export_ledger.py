"""Standalone export script: write the case ledger or asset registry to CSV/XLSX."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kit_ledger.app import open_ledger
from kit_ledger.io.csv_handler import export_assets_csv, export_cases_csv
from kit_ledger.io.excel_handler import export_assets_excel, export_cases_excel


def main():
    if len(sys.argv) < 3:
        print("Usage: python export_ledger.py <cases|open-cases|assets> "
              "<output.csv|output.xlsx>")
        sys.exit(1)

    data_type = sys.argv[1].lower()
    filepath = sys.argv[2]
    excel = Path(filepath).suffix.lower() == ".xlsx"

    repo = open_ledger().repo

    if data_type == "assets":
        count = (export_assets_excel if excel else export_assets_csv)(repo, filepath)
    elif data_type == "cases":
        count = (export_cases_excel if excel else export_cases_csv)(repo, filepath)
    elif data_type == "open-cases" and not excel:
        count = export_cases_csv(repo, filepath, open_only=True)
    else:
        print(f"Unknown data type: {data_type}. "
              "Use 'cases', 'open-cases' (CSV only) or 'assets'.")
        sys.exit(1)

    print(f"Exported {count} {data_type} to {filepath}")


if __name__ == "__main__":
    main()
