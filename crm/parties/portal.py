"""
Customer self-service portal payload

Read-only view of one customer: their vehicles with shipping progress and
the documents we share with them, their finalized invoices and the wallet
balance.
"""
from crm.accounting.wallet import get_customer_wallet_balance, WALLET_CURRENCY
from crm.invoicing.models import Invoice
from crm.invoicing.totals import invoice_breakdown
from crm.vehicles.models import Vehicle
from crm.vehicles.stages import effective_stage, progress_percent, stage_label


def _shipping_details(vehicle):
    shipping_stage = getattr(vehicle, 'shipping_stage', None)
    if shipping_stage is None:
        return {}
    return {
        'vessel_name': shipping_stage.vessel_name,
        'voyage_no': shipping_stage.voyage_no,
        'pol': shipping_stage.pol,
        'pod': shipping_stage.pod,
        'etd': shipping_stage.etd.isoformat() if shipping_stage.etd else None,
        'eta': shipping_stage.eta.isoformat() if shipping_stage.eta else None,
        'container_number': shipping_stage.container_number,
        'dhl_tracking': shipping_stage.dhl_tracking,
    }


def build_vehicle_entry(vehicle):
    stage = effective_stage(vehicle)
    documents = [
        {
            'id': doc.id,
            'name': doc.name,
            'category': doc.category,
            'file_url': doc.file_url,
            'created_at': doc.created_at.isoformat(),
        }
        for doc in vehicle.documents.all()
        if doc.visible_to_customer
    ]
    return {
        'id': vehicle.id,
        'vin': vehicle.vin,
        'make': vehicle.make,
        'model': vehicle.model,
        'year': vehicle.year,
        'stage': stage,
        'stage_label': stage_label(stage),
        'progress': progress_percent(stage),
        'shipping': _shipping_details(vehicle),
        'documents': documents,
    }


def build_invoice_entry(invoice):
    breakdown = invoice_breakdown(invoice, invoice.charges.all())
    return {
        'id': invoice.id,
        'invoice_number': invoice.invoice_number,
        'issue_date': invoice.issue_date.isoformat() if invoice.issue_date else None,
        'due_date': invoice.due_date.isoformat() if invoice.due_date else None,
        'vehicle_id': invoice.vehicle_id,
        'payment_status': invoice.payment_status,
        'total': str(breakdown['total']),
        'share_token': invoice.share_token,
    }


def build_customer_portal(customer):
    vehicles = (
        Vehicle.objects.filter(customer=customer)
        .select_related('shipping_stage')
        .prefetch_related('documents')
        .order_by('-created_at')
    )
    invoices = (
        Invoice.objects.filter(customer=customer, status=Invoice.STATUS_FINALIZED)
        .prefetch_related('charges__charge_type')
        .order_by('-issue_date')
    )
    return {
        'customer': {
            'id': customer.id,
            'name': customer.name,
            'email': customer.email,
            'country': customer.country,
            'port_of_destination': customer.port_of_destination,
        },
        'vehicles': [build_vehicle_entry(v) for v in vehicles],
        'invoices': [build_invoice_entry(i) for i in invoices],
        'wallet': {
            'balance': str(get_customer_wallet_balance(customer)),
            'currency': WALLET_CURRENCY,
        },
    }
