from datetime import datetime
from pathlib import Path

import pytest
from openpyxl import Workbook

from txn_intake.ingest.adapters.spreadsheet import SpreadsheetError, read_first_sheet


def test_xlsx_cells_arrive_as_raw_values_from_first_sheet(tmp_path: Path):
    wb = Workbook()
    ws = wb.active
    ws.append(["Ngày", "Số tiền", None, None])
    ws.append([datetime(2025, 5, 1), 150000, "ghi chú", ""])
    other = wb.create_sheet("Other")
    other.append(["ignored"])
    # Temp upload names carry no extension; the zip container is sniffed.
    path = tmp_path / "upload-abc"
    wb.save(path)

    rows = read_first_sheet(path)
    assert rows[0] == ("Ngày", "Số tiền")
    assert rows[1][0] == datetime(2025, 5, 1)
    assert rows[1][1] == 150000
    assert rows[1][2] == "ghi chú"
    assert len(rows[1]) == 3


def test_csv_with_bom(tmp_path: Path):
    path = tmp_path / "bom.csv"
    path.write_bytes("\ufeffDate,Amount\n2025-05-01,\"1,000\",,\n".encode())
    assert read_first_sheet(path) == [("Date", "Amount"), ("2025-05-01", "1,000")]


def test_missing_and_corrupt_files_raise(tmp_path: Path):
    with pytest.raises(SpreadsheetError, match="file not found"):
        read_first_sheet(tmp_path / "nope.csv")

    corrupt = tmp_path / "bad.xlsx"
    corrupt.write_text("plain text", encoding="utf-8")
    with pytest.raises(SpreadsheetError, match="bad.xlsx"):
        read_first_sheet(corrupt)
