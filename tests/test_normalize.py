from datetime import date
from decimal import Decimal

from txn_intake.config import IntakeConfig
from txn_intake.models import Currency, RawFields, Rejected, Transaction, TxType
from txn_intake.normalize import (
    SOURCE_AI_SCAN,
    SOURCE_MANUAL,
    SOURCE_SPREADSHEET,
    IdSequence,
    NormalizeContext,
    infer_type,
    make_context,
    normalize,
)

TODAY = date(2025, 6, 1)


def _ctx(**overrides) -> NormalizeContext:
    params = {"current_date": TODAY, "ids": IdSequence(lambda: 1000)}
    params.update(overrides)
    return NormalizeContext(**params)


def test_normalize_basic_record():
    raw = RawFields(
        date="15/05/2025",
        type="Chi",
        subject="  Cửa hàng ABC ",
        amount="150.000",
        currency="VND",
        note="  cà phê ",
    )
    tx = normalize(raw, _ctx())
    assert isinstance(tx, Transaction)
    assert tx.id == 1000
    assert tx.date == "2025-05-15"
    assert tx.type is TxType.EXPENSE
    assert tx.subject == "Cửa hàng ABC"
    assert tx.amount == Decimal("150000.00")
    assert tx.currency is Currency.VND
    assert tx.note == "cà phê"
    assert tx.created_by == "unknown"
    assert tx.source == SOURCE_MANUAL
    assert tx.original_currency is None


def test_normalize_rejects_missing_subject_and_non_positive_amount():
    assert normalize(RawFields(subject="  ", amount="100"), _ctx()) == Rejected("missing subject")
    assert normalize(RawFields(subject="A", amount="abc"), _ctx()) == Rejected(
        "amount must be positive"
    )
    assert normalize(RawFields(subject="A", amount=None), _ctx()) == Rejected(
        "amount must be positive"
    )


def test_explicit_zero_amount_allowed_only_when_context_permits():
    raw = RawFields(subject="Gift", amount="0")
    assert normalize(raw, _ctx()) == Rejected("amount must be positive")
    tx = normalize(raw, _ctx(allow_zero_amount=True))
    assert isinstance(tx, Transaction)
    assert tx.amount == Decimal("0.00")
    # A missing amount is still rejected.
    assert isinstance(normalize(RawFields(subject="Gift"), _ctx(allow_zero_amount=True)), Rejected)


def test_text_amount_is_not_mistaken_for_an_explicit_zero():
    ctx = _ctx(allow_zero_amount=True)
    for raw_amount in ("abc", "n/a", "-", "đ"):
        assert normalize(RawFields(subject="Coffee", amount=raw_amount), ctx) == Rejected(
            "amount must be positive"
        )
    for raw_amount in ("0,00", "0 VND", 0, Decimal("0")):
        tx = normalize(RawFields(subject="Coffee", amount=raw_amount), ctx)
        assert isinstance(tx, Transaction)
        assert tx.amount == Decimal("0.00")


def test_infer_type_income_tokens():
    for raw in ("Income", "received", "Thu", "Nhận tiền", "THU NHẬP"):
        assert infer_type(raw) is TxType.INCOME
    for raw in ("Expense", "Chi", "", None, "spent"):
        assert infer_type(raw) is TxType.EXPENSE


def test_missing_date_uses_processing_date():
    tx = normalize(RawFields(subject="A", amount="20000"), _ctx())
    assert tx.date == "2025-06-01"


def test_ai_extracted_dates_get_year_correction():
    raw = RawFields(subject="Shop", amount="50000", date="2021-04-10")
    assert normalize(raw, _ctx()).date == "2021-04-10"
    assert normalize(raw, _ctx(is_ai_extracted=True)).date == "2025-04-10"


def test_usd_kept_unless_conversion_requested():
    raw = RawFields(subject="Hosting", amount="24.99", currency="usd")
    kept = normalize(raw, _ctx())
    assert kept.currency is Currency.USD
    assert kept.amount == Decimal("24.99")

    converted = normalize(raw, _ctx(convert_to_base=True, usd_rate=Decimal("25000")))
    assert converted.currency is Currency.VND
    assert converted.amount == Decimal("624750.00")
    assert converted.original_amount == Decimal("24.99")
    assert converted.original_currency is Currency.USD
    assert converted.rate_used == Decimal("25000")


def test_normalize_is_idempotent():
    ctx = _ctx(convert_to_base=True)
    raws = [
        RawFields(subject="A", amount="1.234,5", date="45000", type="thu"),
        RawFields(subject="B", amount="10", currency="USD", note="n", created_by="lan"),
    ]
    for raw in raws:
        first = normalize(raw, ctx)
        assert isinstance(first, Transaction)
        again = normalize(first.to_raw_fields(), ctx, tx_id=first.id)
        assert again == first


def test_id_sequence_is_strictly_increasing_with_a_stuck_clock():
    ids = IdSequence(lambda: 500)
    assert [ids.next() for _ in range(5)] == [500, 501, 502, 503, 504]


def test_id_sequence_follows_the_clock_forward():
    ticks = iter([10, 50, 20])
    ids = IdSequence(lambda: next(ticks))
    assert [ids.next(), ids.next(), ids.next()] == [10, 50, 51]


def test_ids_unique_within_batch():
    ctx = _ctx()
    txs = [normalize(RawFields(subject=f"S{i}", amount="10000"), ctx) for i in range(5)]
    assert len({t.id for t in txs}) == 5


def test_make_context_per_source():
    cfg = IntakeConfig(usd_rate=Decimal("26000"))
    manual = make_context(cfg, source=SOURCE_MANUAL, today=TODAY, created_by=" lan ")
    assert manual.allow_zero_amount and not manual.is_ai_extracted
    assert manual.created_by_default == "lan"
    assert manual.usd_rate == Decimal("26000")

    sheet = make_context(cfg, source=SOURCE_SPREADSHEET, today=TODAY)
    assert not sheet.allow_zero_amount
    assert sheet.created_by_default == "unknown"

    scan = make_context(cfg, source=SOURCE_AI_SCAN, today=TODAY)
    assert scan.is_ai_extracted
    assert scan.source_tag == "ai-scan"
