"""
Invoice arithmetic

Pure functions over already-fetched values: charge subtotals, tax, totals,
payment status derivation and cost/profit metrics. Charges may be model
instances or plain dicts with ``amount`` and ``charge_type`` keys.
"""
from decimal import Decimal, ROUND_HALF_UP

ZERO = Decimal('0.00')
HUNDRED = Decimal('100')

# 1 cent tolerance when comparing received amounts with the total
TOLERANCE = Decimal('0.01')

SUBTRACTING_CHARGE_TYPES = ('discount', 'deposit')

PAYMENT_PENDING = 'PENDING'
PAYMENT_PARTIALLY_PAID = 'PARTIALLY_PAID'
PAYMENT_PAID = 'PAID'


def to_decimal(value):
    if value is None or value == '':
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize(value):
    return to_decimal(value).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def _charge_value(charge, key):
    if isinstance(charge, dict):
        return charge.get(key)
    return getattr(charge, key, None)


def charge_type_name(charge):
    """Name of the charge type whether given as a string, a dict or a ChargeType"""
    charge_type = _charge_value(charge, 'charge_type')
    if charge_type is None:
        return ''
    if isinstance(charge_type, str):
        return charge_type
    if isinstance(charge_type, dict):
        return charge_type.get('name') or ''
    return getattr(charge_type, 'name', '') or ''


def is_charge_subtracting(charge):
    """Discounts and deposits reduce the invoice total"""
    return charge_type_name(charge).strip().lower() in SUBTRACTING_CHARGE_TYPES


def charges_subtotal(charges):
    """Sum of charges before tax, with discounts and deposits subtracted"""
    total = ZERO
    for charge in charges:
        amount = to_decimal(_charge_value(charge, 'amount'))
        total = total - amount if is_charge_subtracting(charge) else total + amount
    return total


def _total_of_type(charges, type_name):
    return sum(
        (to_decimal(_charge_value(c, 'amount')) for c in charges if charge_type_name(c).strip().lower() == type_name),
        ZERO,
    )


def discount_total(charges):
    return _total_of_type(charges, 'discount')


def deposit_total(charges):
    return _total_of_type(charges, 'deposit')


def tax_amount(subtotal, tax_enabled, tax_rate):
    if not tax_enabled or tax_rate is None:
        return ZERO
    return to_decimal(subtotal) * (to_decimal(tax_rate) / HUNDRED)


def invoice_total_with_tax(charges, tax_enabled=False, tax_rate=None):
    """Charge subtotal plus tax when enabled"""
    subtotal = charges_subtotal(charges)
    return subtotal + tax_amount(subtotal, tax_enabled, tax_rate)


def invoice_breakdown(invoice, charges=None):
    """Subtotal, discounts, deposits, tax and total of an invoice, rounded"""
    charges = list(invoice.charges.select_related('charge_type').all()) if charges is None else list(charges)
    subtotal = charges_subtotal(charges)
    tax = tax_amount(subtotal, invoice.tax_enabled, invoice.tax_rate)
    return {
        'subtotal': quantize(subtotal),
        'discount_total': quantize(discount_total(charges)),
        'deposit_total': quantize(deposit_total(charges)),
        'tax_amount': quantize(tax),
        'total': quantize(subtotal + tax),
    }


def is_amount_paid_in_full(total_received, total_amount):
    return to_decimal(total_received) >= to_decimal(total_amount) - TOLERANCE


def has_partial_payment(total_received):
    return to_decimal(total_received) > TOLERANCE


def derive_payment_status(total_received, total_amount):
    if is_amount_paid_in_full(total_received, total_amount):
        return PAYMENT_PAID
    if has_partial_payment(total_received):
        return PAYMENT_PARTIALLY_PAID
    return PAYMENT_PENDING


def profit_metrics(revenue, cost):
    """
    Profit, margin and ROI of a cost invoice.

    margin = profit / revenue * 100 (0 when there is no revenue)
    roi    = profit / cost * 100    (0 when there is no cost)
    """
    revenue = to_decimal(revenue)
    cost = to_decimal(cost)
    profit = revenue - cost
    margin = (profit / revenue * HUNDRED) if revenue > 0 else ZERO
    roi = (profit / cost * HUNDRED) if cost > 0 else ZERO
    return {
        'total_revenue': quantize(revenue),
        'total_cost': quantize(cost),
        'profit': quantize(profit),
        'margin': quantize(margin),
        'roi': quantize(roi),
    }


def split_evenly(total, count):
    """
    Split ``total`` into ``count`` cent-rounded shares that add up to it.
    Left-over cents go to the first shares.
    """
    if count <= 0:
        return []
    total = quantize(total)
    cents = int(total * HUNDRED)
    base, remainder = divmod(cents, count)
    return [quantize(Decimal(base + (1 if i < remainder else 0)) / HUNDRED) for i in range(count)]
