"""
Quote and invoice money math.

Amounts are Decimals rounded half-up to 2 places. A line's tax rate
defaults to 20% only when it is missing; an explicit 0 is zero-rated.
"""
from decimal import Decimal, ROUND_HALF_UP

DEFAULT_TAX_RATE = Decimal('20')
TWO_PLACES = Decimal('0.01')
HUNDRED = Decimal('100')


def to_decimal(value, default=Decimal('0')):
    if value is None or value == '':
        return default
    return value if isinstance(value, Decimal) else Decimal(str(value))


def money(value):
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _field(item, name):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def tax_rate_for(item):
    return to_decimal(_field(item, 'tax_rate'), DEFAULT_TAX_RATE)


def line_net(item):
    """Quantity x price less the line discount, before tax"""
    gross = to_decimal(_field(item, 'quantity')) * to_decimal(_field(item, 'unit_price'))
    return gross - gross * to_decimal(_field(item, 'discount_percent')) / HUNDRED


def line_tax(item):
    return line_net(item) * tax_rate_for(item) / HUNDRED


def calculate_line_total(item):
    """Line total including its own tax"""
    return money(line_net(item) + line_tax(item))


def calculate_totals(items, discount_amount=None, discount_percent=None):
    """
    Totals for a set of lines.

    A quote-level discount_percent wins over discount_amount. Tax is the
    sum of each line's tax and is not reduced by the quote-level discount.
    """
    subtotal = sum((line_net(item) for item in items), Decimal('0'))
    discount = to_decimal(discount_amount)
    percent = to_decimal(discount_percent)
    if percent > 0:
        discount = subtotal * percent / HUNDRED
    tax = sum((line_tax(item) for item in items), Decimal('0'))
    return {
        'subtotal': money(subtotal),
        'discount_amount': money(discount),
        'tax_amount': money(tax),
        'total_amount': money(subtotal - discount + tax),
    }


def apply_totals(quote, lines=None):
    """Recalculate a saved quote's totals from its lines (does not save)"""
    lines = list(quote.lines.all()) if lines is None else lines
    totals = calculate_totals(lines, quote.discount_amount, quote.discount_percent)
    for field, value in totals.items():
        setattr(quote, field, value)
    return totals
