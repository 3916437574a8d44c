from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, NamedTuple

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


class Totals(NamedTuple):
    ht: Decimal
    vat: Decimal
    ttc: Decimal


def _line_ht(line):
    return (line.quantity or Decimal("0")) * (line.unit_price or Decimal("0"))


def compute_totals(lines: Iterable) -> Totals:
    """
    Aggregate totals for quote or invoice lines.

    Works on anything with quantity / unit_price / vat_rate attributes.
    Per-line amounts stay exact; rounding to cents happens once, on the
    sums, so many small lines cannot drift.
    """
    ht = Decimal("0")
    vat = Decimal("0")
    for line in lines:
        line_ht = _line_ht(line)
        ht += line_ht
        vat += line_ht * (line.vat_rate or Decimal("0")) / HUNDRED

    ht = ht.quantize(CENT, rounding=ROUND_HALF_UP)
    vat = vat.quantize(CENT, rounding=ROUND_HALF_UP)
    return Totals(ht=ht, vat=vat, ttc=ht + vat)


def clone_lines(source_lines: Iterable, line_model, **owner):
    """
    Copy lines onto a new owner (e.g. document=invoice, company=company).

    Returns unsaved instances: fresh identities, same field values, nothing
    shared with the source objects.
    """
    clones = []
    for line in source_lines:
        values = {field: getattr(line, field) for field in line_model.CLONED_FIELDS}
        clones.append(line_model(**values, **owner))
    return clones


def build_lines(line_model, rows, **owner):
    """
    Turn caller supplied dicts into unsaved, validated line instances.

    Each row needs description / quantity / unit_price, and may carry
    unit and vat_rate. Positions follow list order.
    """
    lines = []
    for position, row in enumerate(rows, start=1):
        line = line_model(
            position=position,
            description=row.get("description", ""),
            quantity=Decimal(str(row.get("quantity", "1"))),
            unit=row.get("unit", "u"),
            unit_price=Decimal(str(row.get("unit_price", "0"))),
            vat_rate=Decimal(str(row.get("vat_rate", "0"))),
            **owner,
        )
        line.line_total_ht = line.compute_line_total()
        # parent FK is not saved yet, skip it in validation
        line.full_clean(exclude=["document"], validate_unique=False)
        lines.append(line)
    return lines
