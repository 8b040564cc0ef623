"""
Customer wallet

The wallet is not stored: it is derived from the customer's transactions.
Only JPY counts. INCOMING transactions described exactly "Deposit" add to the
balance, every OUTGOING transaction (applied to an invoice, refunds) is
subtracted, other INCOMING transactions such as invoice payments are ignored.
"""
import logging
from decimal import Decimal

from django.db import transaction as db_transaction
from django.utils import timezone

from crm.invoicing.services import recalc_invoice_payment_status, sync_vehicle_payment_summary
from crm.invoicing.totals import quantize, to_decimal
from crm.parties.models import Customer
from .models import Transaction

logger = logging.getLogger(__name__)

WALLET_CURRENCY = 'JPY'
DEPOSIT_DESCRIPTION = 'Deposit'


class WalletError(Exception):
    """Raised when a wallet operation is not possible"""


def _field(tx, key):
    if isinstance(tx, dict):
        return tx.get(key)
    return getattr(tx, key, None)


def compute_wallet_balance(transactions):
    balance = Decimal('0')
    for tx in transactions:
        currency = (_field(tx, 'currency') or WALLET_CURRENCY).upper()
        if currency != WALLET_CURRENCY:
            continue
        amount = to_decimal(_field(tx, 'amount'))
        if _field(tx, 'direction') == Transaction.DIRECTION_INCOMING:
            if _field(tx, 'description') == DEPOSIT_DESCRIPTION:
                balance += amount
        else:
            balance -= amount
    return quantize(balance)


def get_customer_wallet_balance(customer):
    customer_id = getattr(customer, 'pk', customer)
    transactions = Transaction.objects.filter(customer_id=customer_id).values(
        'direction', 'amount', 'currency', 'description'
    )
    return compute_wallet_balance(transactions)


def apply_wallet_to_invoice(invoice, amount, user=None, payment_type='BANK_TRANSFER', date=None):
    """
    Move ``amount`` from the customer's wallet onto ``invoice``.

    Records an OUTGOING "Applied from wallet" transaction for the customer and
    an INCOMING "Payment for Invoice" transaction linked to the invoice, then
    recalculates the invoice payment status. All three writes share one
    database transaction.
    """
    amount = quantize(to_decimal(amount))
    if amount <= 0:
        raise WalletError('Amount must be greater than zero')
    if invoice.customer_id is None:
        raise WalletError('Invoice has no customer')

    date = date or timezone.localdate()

    with db_transaction.atomic():
        # Serialize concurrent applications for the same customer
        Customer.objects.select_for_update().get(pk=invoice.customer_id)

        balance = get_customer_wallet_balance(invoice.customer_id)
        if amount > balance:
            raise WalletError(f'Insufficient wallet balance ({balance} {WALLET_CURRENCY} available)')

        outgoing = Transaction.objects.create(
            direction=Transaction.DIRECTION_OUTGOING,
            type=payment_type,
            amount=amount,
            currency=WALLET_CURRENCY,
            date=date,
            description=f'Applied from wallet to Invoice {invoice.invoice_number}',
            customer_id=invoice.customer_id,
            created_by=user,
        )
        incoming = Transaction.objects.create(
            direction=Transaction.DIRECTION_INCOMING,
            type=payment_type,
            amount=amount,
            currency=WALLET_CURRENCY,
            date=date,
            description=f'Payment for Invoice {invoice.invoice_number}',
            customer_id=invoice.customer_id,
            invoice=invoice,
            vehicle_id=invoice.vehicle_id,
            created_by=user,
        )
        payment_status = recalc_invoice_payment_status(invoice)
        sync_vehicle_payment_summary(invoice.vehicle_id)

    logger.info(f"Applied {amount} {WALLET_CURRENCY} from wallet of customer {invoice.customer_id} to invoice {invoice.invoice_number} -> {payment_status}")
    return {
        'outgoing': outgoing,
        'incoming': incoming,
        'payment_status': payment_status,
        'balance': balance - amount,
    }
