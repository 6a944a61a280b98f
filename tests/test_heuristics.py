from datetime import datetime
from decimal import Decimal

from txn_intake.config import IntakeConfig
from txn_intake.ingest.heuristics import (
    SKIP_HEADER,
    SKIP_NO_AMOUNT,
    SKIP_NO_TEXT,
    SKIP_SPARSE,
    HeuristicRules,
    classify_row,
    stage_rows,
)
from txn_intake.models import ClassifiedRow, Skipped


def test_salary_row_is_classified_as_personnel():
    out = classify_row(["1", "Lương tháng 1", "15,000,000"])
    assert out == ClassifiedRow(
        subject="Lương tháng 1",
        note="",
        amount=Decimal("15000000.00"),
        is_personnel=True,
        column=2,
    )


def test_total_row_is_skipped():
    assert classify_row(["Tổng", "", "50,000,000"]) == Skipped(SKIP_HEADER)
    assert classify_row(["TOTAL:", "50000000"]) == Skipped(SKIP_HEADER)
    assert classify_row(["STT", "Hạng mục", "Thành tiền", 12000]) == Skipped(SKIP_HEADER)


def test_blank_and_sparse_rows_are_skipped():
    assert classify_row(["", "", ""]) == Skipped(SKIP_SPARSE)
    assert classify_row([None, "50,000,000"]) == Skipped(SKIP_SPARSE)
    assert classify_row([]) == Skipped(SKIP_SPARSE)


def test_rows_below_threshold_have_no_amount():
    assert classify_row(["Trà đá", "5.000"]) == Skipped(SKIP_NO_AMOUNT)
    assert classify_row(["Ghi chú", "xem sau"]) == Skipped(SKIP_NO_AMOUNT)


def test_largest_candidate_wins_and_note_joins_remaining_text():
    out = classify_row(["3", "Xi măng", "50 bao", 120000, "6.000.000đ", "10%", "kho A"])
    assert isinstance(out, ClassifiedRow)
    assert out.amount == Decimal("6000000.00")
    assert out.column == 4
    assert out.subject == "Xi măng"
    assert out.note == "50 bao | kho A"
    assert out.is_personnel is False


def test_text_amounts_keep_their_decimal_part():
    out = classify_row(["Hosting", "150,000.50"])
    assert isinstance(out, ClassifiedRow)
    assert out.amount == Decimal("150000.50")

    out = classify_row(["Thiết bị", "1.234.567,89 ₫"])
    assert isinstance(out, ClassifiedRow)
    assert out.amount == Decimal("1234567.89")


def test_date_text_never_outranks_the_real_amount():
    out = classify_row(["Tiền điện", "01.02.2026", "850.000"])
    assert isinstance(out, ClassifiedRow)
    assert out.amount == Decimal("850000.00")
    assert out.column == 2
    assert out.subject == "Tiền điện"

    assert classify_row(["Tiền nước", "15-03-2026"]) == Skipped(SKIP_NO_AMOUNT)


def test_codes_and_sequence_numbers_are_not_text():
    assert classify_row(["12", "2025-01-01", "1.500.000"]) == Skipped(SKIP_NO_TEXT)
    assert classify_row([datetime(2025, 1, 1), 1500000.0, "45"]) == Skipped(SKIP_NO_TEXT)


def test_personnel_flag_matches_any_cell():
    out = classify_row(["Đội B", "1,200,000", "tiền công nhật"])
    assert isinstance(out, ClassifiedRow)
    assert out.subject == "Đội B"
    assert out.is_personnel is True


def test_rules_come_from_config():
    rules = HeuristicRules.from_config(
        IntakeConfig(amount_threshold=Decimal("100"), personnel_keywords=("crew",))
    )
    out = classify_row(["Crew lunch", "250"], rules)
    assert isinstance(out, ClassifiedRow)
    assert out.amount == Decimal("250.00")
    assert out.is_personnel is True
    assert classify_row(["Lương", "250"], rules) == ClassifiedRow(
        subject="Lương", note="", amount=Decimal("250.00"), is_personnel=False, column=1
    )


def test_classification_is_deterministic_and_row_local():
    row = ["7", "Điện nước", "2.350.000", "tháng 4"]
    assert classify_row(row) == classify_row(list(row))


def test_stage_rows_numbers_rows_from_one():
    staged = stage_rows(
        [
            ("Bảng chi phí",),
            ("STT", "Hạng mục", "Số tiền"),
            ("1", "Lương tháng 1", "15,000,000"),
            ("2", "Văn phòng phẩm", "350.000"),
            ("Tổng", "", "15,350,000"),
        ]
    )
    assert [s.row_number for s in staged.rows] == [3, 4]
    assert [(s.row_number, s.reason) for s in staged.skipped] == [
        (1, SKIP_SPARSE),
        (2, SKIP_NO_AMOUNT),
        (5, SKIP_HEADER),
    ]
    assert staged.error is None
