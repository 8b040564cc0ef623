import hmac
import logging
import secrets

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes, throttle_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from crm.accounting.wallet import apply_wallet_to_invoice, WalletError
from crm.core.cache_utils import (
    get_cached, invalidate_cache, get_public_invoice_cache_key, PUBLIC_INVOICE_CACHE_TTL,
)
from crm.core.permissions import (
    ADMIN, MANAGER, SALES, ACCOUNTANT, get_user_role, is_admin_user,
    can_create_invoice, can_approve_invoice, can_finalize_invoice, can_delete_invoice,
    can_edit_invoice, can_view_transactions, can_view_wallet, can_delete_shared_invoice,
    can_reallocate_shared_invoice,
)
from crm.core.throttling import PublicInvoiceRateThrottle
from crm.core.utils import create_audit_log
from crm.vehicles.models import Vehicle
from .models import ChargeType, Invoice, InvoiceCharge, CostItem, SharedInvoice
from .serializers import (
    ChargeTypeSerializer, InvoiceSerializer, InvoiceListSerializer, InvoiceChargeSerializer,
    PublicInvoiceSerializer, CostInvoiceSerializer, CostItemSerializer, SharedInvoiceSerializer,
    SharedInvoiceVehicleSerializer,
)
from .services import (
    create_invoice, default_payment_link, recalc_invoice_payment_status,
    sync_vehicle_payment_summary, sync_cost_invoice, get_or_create_cost_invoice, move_invoice_to_vehicle,
    create_shared_invoice, allocate_shared_invoice, delete_shared_invoice,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

VALID_STATUSES = [choice[0] for choice in Invoice.STATUS_CHOICES]
VALID_PAYMENT_STATUSES = [choice[0] for choice in Invoice.PAYMENT_STATUS_CHOICES]

# Fields whose change alters what is owed on an invoice
TOTAL_FIELDS = {'charges', 'tax_enabled', 'tax_rate', 'vehicle'}


def visible_invoices(user):
    """
    Invoices a user may see: admins and accountants everything, managers
    their own and those created by sales staff, everybody else their own.
    """
    role = get_user_role(user)
    queryset = Invoice.objects.all()
    if role in (ADMIN, ACCOUNTANT):
        return queryset
    if role == MANAGER:
        return queryset.filter(Q(created_by=user) | Q(created_by__role=SALES))
    return queryset.filter(created_by=user)


def _get_invoice(request, pk):
    return get_object_or_404(
        visible_invoices(request.user).select_related('customer', 'vehicle', 'created_by')
        .prefetch_related('charges__charge_type'),
        pk=pk,
    )


def _refresh(invoice):
    return Invoice.objects.select_related(
        'customer', 'vehicle', 'created_by', 'approved_by', 'finalized_by'
    ).prefetch_related('charges__charge_type').get(pk=invoice.pk)


def _resync_invoice(invoice):
    """Payment status, vehicle summary and profit sheet follow the charges"""
    recalc_invoice_payment_status(invoice)
    sync_vehicle_payment_summary(invoice.vehicle_id)
    cost_invoice = getattr(invoice, 'cost_invoice', None)
    if cost_invoice is not None:
        sync_cost_invoice(cost_invoice)


def _int_param(value, default, minimum=1, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    number = max(number, minimum)
    return min(number, maximum) if maximum else number


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def invoice_list_create(request):
    """
    GET: paginated invoices (?status=&customer=&page=&limit=)
    POST: create an invoice with its charges
    """
    role = get_user_role(request.user)

    if request.method == 'GET':
        queryset = visible_invoices(request.user)
        invoice_status = request.query_params.get('status', None)
        if invoice_status:
            queryset = queryset.filter(status=invoice_status)
        customer_id = request.query_params.get('customer', None)
        if customer_id:
            if not customer_id.isdigit():
                return Response({'error': 'Invalid customer'}, status=status.HTTP_400_BAD_REQUEST)
            queryset = queryset.filter(customer_id=customer_id)
        payment_status = request.query_params.get('paymentStatus', None)
        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)

        page = _int_param(request.query_params.get('page'), 1)
        limit = _int_param(request.query_params.get('limit'), DEFAULT_PAGE_SIZE, maximum=MAX_PAGE_SIZE)
        total = queryset.count()
        offset = (page - 1) * limit
        invoices = queryset.select_related('customer', 'vehicle', 'created_by').prefetch_related(
            'charges__charge_type'
        ).order_by('-created_at')[offset:offset + limit]

        return Response({
            'invoices': InvoiceListSerializer(invoices, many=True).data,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'totalPages': (total + limit - 1) // limit,
            },
        })

    if not can_create_invoice(role):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    serializer = InvoiceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if role == ADMIN:
        requested = request.data.get('status')
        invoice_status = requested if requested in VALID_STATUSES else Invoice.STATUS_DRAFT
    else:
        invoice_status = Invoice.STATUS_PENDING_APPROVAL

    invoice = create_invoice(serializer, request.user, invoice_status)
    create_audit_log(
        request=request,
        action='invoice_create',
        model_name='Invoice',
        object_id=str(invoice.id),
        object_name=invoice.customer.name,
        object_reference=invoice.invoice_number,
        changes={'status': invoice.status},
    )
    sync_vehicle_payment_summary(invoice.vehicle_id)
    logger.info(f"Invoice {invoice.invoice_number} created by {request.user.username} ({invoice.status})")
    return Response(InvoiceSerializer(_refresh(invoice)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def invoice_detail(request, pk):
    """Retrieve, update or delete an invoice"""
    invoice = _get_invoice(request, pk)
    role = get_user_role(request.user)

    if request.method == 'GET':
        return Response(InvoiceSerializer(invoice).data)

    elif request.method == 'PATCH':
        if not can_edit_invoice(invoice.status, role, invoice.is_locked):
            return Response({'error': 'You cannot edit this invoice'}, status=status.HTTP_403_FORBIDDEN)

        serializer = InvoiceSerializer(invoice, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        old_status = invoice.status
        old_vehicle_id = invoice.vehicle_id
        changed = set(serializer.validated_data)
        extra = {}
        requested = serializer.validated_data.get('status')
        if requested is not None and requested != old_status and role != ADMIN:
            # Staff edits always go back through approval
            extra['status'] = Invoice.STATUS_PENDING_APPROVAL

        with transaction.atomic():
            invoice = serializer.save(**extra)
            if changed & {'customer', 'vehicle'}:
                move_invoice_to_vehicle(invoice, old_vehicle_id)
            if changed & TOTAL_FIELDS:
                _resync_invoice(invoice)

        create_audit_log(
            request=request,
            action='invoice_update',
            model_name='Invoice',
            object_id=str(invoice.id),
            object_reference=invoice.invoice_number,
            changes={'status': {'old': old_status, 'new': invoice.status}} if old_status != invoice.status else {},
        )
        return Response(InvoiceSerializer(_refresh(invoice)).data)

    else:  # DELETE
        if not can_delete_invoice(role):
            return Response({'error': 'Only admins can delete invoices'}, status=status.HTTP_403_FORBIDDEN)
        vehicle_id = invoice.vehicle_id
        create_audit_log(
            request=request,
            action='invoice_delete',
            model_name='Invoice',
            object_id=str(invoice.id),
            object_reference=invoice.invoice_number,
        )
        invoice.delete()
        sync_vehicle_payment_summary(vehicle_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invoice_submit(request, pk):
    """Send a draft for approval"""
    role = get_user_role(request.user)
    if role not in (SALES, MANAGER):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    invoice = _get_invoice(request, pk)
    if invoice.status != Invoice.STATUS_DRAFT:
        return Response({'error': 'Invoice must be in DRAFT status to submit for approval'},
                        status=status.HTTP_400_BAD_REQUEST)
    if role == SALES and invoice.created_by_id != request.user.id:
        return Response({'error': 'You can only submit your own invoices for approval'},
                        status=status.HTTP_403_FORBIDDEN)

    invoice.status = Invoice.STATUS_PENDING_APPROVAL
    invoice.save(update_fields=['status', 'updated_at'])
    create_audit_log(
        request=request,
        action='invoice_submit',
        model_name='Invoice',
        object_id=str(invoice.id),
        object_reference=invoice.invoice_number,
    )
    return Response(InvoiceSerializer(_refresh(invoice)).data)


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def invoice_approve(request, pk):
    """
    POST: approve an invoice pending approval
    PATCH: {action: "reject"} sends it back to DRAFT
    """
    if not can_approve_invoice(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    invoice = _get_invoice(request, pk)
    if invoice.status != Invoice.STATUS_PENDING_APPROVAL:
        return Response({'error': 'Invoice is not pending approval'}, status=status.HTTP_400_BAD_REQUEST)

    if request.method == 'PATCH':
        action = request.data.get('action')
        if action != 'reject':
            return Response({'error': 'Unsupported action'}, status=status.HTTP_400_BAD_REQUEST)
        invoice.status = Invoice.STATUS_DRAFT
        invoice.save(update_fields=['status', 'updated_at'])
        create_audit_log(
            request=request,
            action='invoice_reject',
            model_name='Invoice',
            object_id=str(invoice.id),
            object_reference=invoice.invoice_number,
            changes={'reason': request.data.get('reason')} if request.data.get('reason') else None,
        )
        return Response(InvoiceSerializer(_refresh(invoice)).data)

    invoice.status = Invoice.STATUS_APPROVED
    invoice.approved_by = request.user
    invoice.approved_at = timezone.now()
    if not invoice.wise_payment_link:
        invoice.wise_payment_link = default_payment_link()
    invoice.save(update_fields=['status', 'approved_by', 'approved_at', 'wise_payment_link', 'updated_at'])
    if invoice.share_token:
        invalidate_cache(get_public_invoice_cache_key(invoice.share_token))

    create_audit_log(
        request=request,
        action='invoice_approve',
        model_name='Invoice',
        object_id=str(invoice.id),
        object_reference=invoice.invoice_number,
    )
    logger.info(f"Invoice {invoice.invoice_number} approved by {request.user.username}")
    return Response(InvoiceSerializer(_refresh(invoice)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invoice_finalize(request, pk):
    """Finalize and lock an approved invoice"""
    if not can_finalize_invoice(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    invoice = _get_invoice(request, pk)
    if invoice.status != Invoice.STATUS_APPROVED:
        return Response({'error': 'Invoice must be approved before finalization'},
                        status=status.HTTP_400_BAD_REQUEST)

    invoice.status = Invoice.STATUS_FINALIZED
    invoice.is_locked = True
    invoice.finalized_by = request.user
    invoice.finalized_at = timezone.now()
    invoice.save(update_fields=['status', 'is_locked', 'finalized_by', 'finalized_at', 'updated_at'])
    create_audit_log(
        request=request,
        action='invoice_finalize',
        model_name='Invoice',
        object_id=str(invoice.id),
        object_reference=invoice.invoice_number,
    )
    return Response(InvoiceSerializer(_refresh(invoice)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invoice_unlock(request, pk):
    """Reopen a finalized invoice for admin corrections"""
    if not is_admin_user(request.user):
        return Response({'error': 'Only admins can unlock invoices'}, status=status.HTTP_403_FORBIDDEN)

    invoice = _get_invoice(request, pk)
    if not invoice.is_locked:
        return Response({'error': 'Invoice is not locked'}, status=status.HTTP_400_BAD_REQUEST)

    invoice.is_locked = False
    invoice.status = Invoice.STATUS_APPROVED
    invoice.finalized_by = None
    invoice.finalized_at = None
    invoice.save(update_fields=['is_locked', 'status', 'finalized_by', 'finalized_at', 'updated_at'])
    create_audit_log(
        request=request,
        action='invoice_unlock',
        model_name='Invoice',
        object_id=str(invoice.id),
        object_reference=invoice.invoice_number,
    )
    return Response(InvoiceSerializer(_refresh(invoice)).data)


@api_view(['PATCH'])
@permission_classes([AllowAny])
def invoice_payment(request, pk):
    """
    Set the payment status by hand. Admins only, or a payment provider
    webhook presenting ``webhookSecret``.
    """
    webhook_secret = request.data.get('webhookSecret')
    if webhook_secret:
        expected = settings.WISE_WEBHOOK_SECRET
        if not expected or not hmac.compare_digest(str(webhook_secret), str(expected)):
            logger.warning(f"Rejected payment update for invoice {pk}: invalid webhook secret")
            return Response({'error': 'Invalid webhook secret'}, status=status.HTTP_403_FORBIDDEN)
        invoice = get_object_or_404(Invoice, pk=pk)
    else:
        if not request.user or not request.user.is_authenticated:
            return Response({'error': 'Unauthorized'}, status=status.HTTP_401_UNAUTHORIZED)
        if not is_admin_user(request.user):
            return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
        invoice = get_object_or_404(Invoice, pk=pk)

    payment_status = request.data.get('paymentStatus')
    if payment_status and payment_status not in VALID_PAYMENT_STATUSES:
        return Response({'error': 'Invalid payment status'}, status=status.HTTP_400_BAD_REQUEST)

    old_status = invoice.payment_status
    paid_at = request.data.get('paidAt')
    if paid_at:
        try:
            parsed = parse_datetime(str(paid_at))
        except ValueError:
            parsed = None
        if parsed is None:
            return Response({'error': 'Invalid paidAt'}, status=status.HTTP_400_BAD_REQUEST)
        if timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed)
        invoice.paid_at = parsed
    elif payment_status == Invoice.PAYMENT_PAID and not invoice.paid_at:
        invoice.paid_at = timezone.now()
    if payment_status:
        invoice.payment_status = payment_status
    if invoice.payment_status != Invoice.PAYMENT_PAID:
        invoice.paid_at = None
    invoice.save(update_fields=['payment_status', 'paid_at', 'updated_at'])

    create_audit_log(
        request=request,
        action='payment_status_change',
        model_name='Invoice',
        object_id=str(invoice.id),
        object_reference=invoice.invoice_number,
        changes={'payment_status': {'old': old_status, 'new': invoice.payment_status}},
    )
    return Response(InvoiceSerializer(_refresh(invoice)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invoice_apply_wallet(request, pk):
    """Pay (part of) an invoice from the customer's deposit balance"""
    if not can_view_wallet(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    invoice = get_object_or_404(Invoice.objects.select_related('customer'), pk=pk)
    amount = request.data.get('amount')
    if amount in (None, ''):
        return Response({'error': 'amount is required'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = apply_wallet_to_invoice(invoice, amount, user=request.user)
    except WalletError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except ArithmeticError:
        return Response({'error': 'Invalid amount'}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='wallet_apply',
        model_name='Invoice',
        object_id=str(invoice.id),
        object_name=invoice.customer.name,
        object_reference=invoice.invoice_number,
        changes={'amount': str(result['incoming'].amount)},
    )
    return Response({
        'success': True,
        'payment_status': result['payment_status'],
        'wallet_balance': result['balance'],
        'transactions': [result['outgoing'].id, result['incoming'].id],
    })


# Charges
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def invoice_charge_list_create(request, pk):
    invoice = _get_invoice(request, pk)

    if request.method == 'GET':
        return Response(InvoiceChargeSerializer(invoice.charges.all(), many=True).data)

    if not can_edit_invoice(invoice.status, get_user_role(request.user), invoice.is_locked):
        return Response({'error': 'You cannot edit this invoice'}, status=status.HTTP_403_FORBIDDEN)
    serializer = InvoiceChargeSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            serializer.save(invoice=invoice)
            _resync_invoice(invoice)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def invoice_charge_detail(request, pk, charge_id):
    invoice = _get_invoice(request, pk)
    if not can_edit_invoice(invoice.status, get_user_role(request.user), invoice.is_locked):
        return Response({'error': 'You cannot edit this invoice'}, status=status.HTTP_403_FORBIDDEN)
    charge = get_object_or_404(InvoiceCharge, pk=charge_id, invoice=invoice)

    if request.method == 'PATCH':
        serializer = InvoiceChargeSerializer(charge, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        with transaction.atomic():
            serializer.save()
            _resync_invoice(invoice)
        return Response(serializer.data)

    if invoice.charges.count() <= 1:
        return Response({'error': 'An invoice needs at least one charge'}, status=status.HTTP_400_BAD_REQUEST)
    with transaction.atomic():
        charge.delete()
        _resync_invoice(invoice)
    return Response(status=status.HTTP_204_NO_CONTENT)


# Cost invoice (internal profit sheet)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def invoice_cost(request, pk):
    """
    GET: the invoice's cost sheet with items, revenue, profit, margin and ROI
    POST: create it (or update its notes)
    """
    if not can_view_transactions(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    invoice = get_object_or_404(Invoice, pk=pk)

    cost_invoice = get_or_create_cost_invoice(invoice)
    if request.method == 'POST' and 'notes' in request.data:
        cost_invoice.notes = request.data.get('notes') or None
        cost_invoice.save(update_fields=['notes', 'updated_at'])
    sync_cost_invoice(cost_invoice)
    return Response(CostInvoiceSerializer(cost_invoice).data,
                    status=status.HTTP_201_CREATED if request.method == 'POST' else status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invoice_cost_item_create(request, pk):
    if not can_view_transactions(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    invoice = get_object_or_404(Invoice, pk=pk)

    serializer = CostItemSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    with transaction.atomic():
        cost_invoice = get_or_create_cost_invoice(invoice)
        serializer.save(cost_invoice=cost_invoice)
        sync_cost_invoice(cost_invoice)
    return Response(CostInvoiceSerializer(cost_invoice).data, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def invoice_cost_item_detail(request, pk, item_id):
    if not can_view_transactions(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    item = get_object_or_404(CostItem.objects.select_related('cost_invoice'), pk=item_id, cost_invoice__invoice_id=pk)
    cost_invoice = item.cost_invoice

    if request.method == 'PATCH':
        serializer = CostItemSerializer(item, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        with transaction.atomic():
            serializer.save()
            sync_cost_invoice(cost_invoice)
        return Response(CostInvoiceSerializer(cost_invoice).data)

    with transaction.atomic():
        item.delete()
        sync_cost_invoice(cost_invoice)
    return Response(CostInvoiceSerializer(cost_invoice).data)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def invoice_share(request, pk):
    """
    POST: share link token for an approved or finalized invoice (reused if present)
    DELETE: revoke it (admins)
    """
    invoice = _get_invoice(request, pk)

    if request.method == 'DELETE':
        if not is_admin_user(request.user):
            return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
        if invoice.share_token:
            invalidate_cache(get_public_invoice_cache_key(invoice.share_token))
            invoice.share_token = None
            invoice.save(update_fields=['share_token', 'updated_at'])
            create_audit_log(
                request=request,
                action='share_token_revoke',
                model_name='Invoice',
                object_id=str(invoice.id),
                object_reference=invoice.invoice_number,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)

    if invoice.status not in Invoice.SHAREABLE_STATUSES:
        return Response({'error': 'Invoice must be approved before it can be shared'},
                        status=status.HTTP_400_BAD_REQUEST)

    if not invoice.share_token:
        token = secrets.token_urlsafe(32)
        while Invoice.objects.filter(share_token=token).exists():
            token = secrets.token_urlsafe(32)
        invoice.share_token = token
        invoice.save(update_fields=['share_token', 'updated_at'])
        create_audit_log(
            request=request,
            action='invoice_share',
            model_name='Invoice',
            object_id=str(invoice.id),
            object_reference=invoice.invoice_number,
        )

    return Response({'share_token': invoice.share_token})


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([PublicInvoiceRateThrottle])
def public_invoice(request, token):
    """Invoice as seen by the customer through a share link"""
    invoice = Invoice.objects.select_related('customer', 'vehicle').prefetch_related(
        'charges__charge_type'
    ).filter(share_token=token).first()
    if invoice is None:
        return Response({'error': 'Invoice not found'}, status=status.HTTP_404_NOT_FOUND)
    if invoice.status not in Invoice.SHAREABLE_STATUSES:
        return Response({'error': 'Invoice not available'}, status=status.HTTP_403_FORBIDDEN)

    data = get_cached(
        get_public_invoice_cache_key(token),
        lambda: PublicInvoiceSerializer(invoice).data,
        PUBLIC_INVOICE_CACHE_TTL,
    )
    return Response(data)


# Charge types
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def charge_type_list_create(request):
    if request.method == 'GET':
        return Response(ChargeTypeSerializer(ChargeType.objects.all(), many=True).data)

    if not can_create_invoice(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    serializer = ChargeTypeSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def charge_type_detail(request, pk):
    if not is_admin_user(request.user):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    charge_type = get_object_or_404(ChargeType, pk=pk)
    charge_type.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Shared invoices
def _shared_invoices():
    return SharedInvoice.objects.select_related('vendor', 'created_by').prefetch_related('allocations__vehicle')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def shared_invoice_list_create(request):
    """
    GET: paginated shared invoices (?type=&page=&limit=)
    POST: create one and split it over ``vehicle_ids``
    """
    if request.method == 'GET':
        queryset = _shared_invoices()
        invoice_type = request.query_params.get('type', None)
        if invoice_type:
            queryset = queryset.filter(type=invoice_type.upper())

        page = _int_param(request.query_params.get('page'), 1)
        limit = _int_param(request.query_params.get('limit'), DEFAULT_PAGE_SIZE, maximum=MAX_PAGE_SIZE)
        total = queryset.count()
        offset = (page - 1) * limit
        return Response({
            'shared_invoices': SharedInvoiceSerializer(queryset[offset:offset + limit], many=True).data,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'totalPages': (total + limit - 1) // limit,
            },
        })

    serializer = SharedInvoiceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    vehicle_ids = [vehicle.id for vehicle in serializer.validated_data['vehicle_ids']]
    shared_invoice = create_shared_invoice(serializer, request.user, vehicle_ids)
    create_audit_log(
        request=request,
        action='shared_invoice_create',
        model_name='SharedInvoice',
        object_id=str(shared_invoice.id),
        object_name=shared_invoice.vendor.name,
        object_reference=shared_invoice.invoice_number,
        changes={'total_amount': str(shared_invoice.total_amount), 'vehicles': vehicle_ids},
    )
    logger.info(f"Shared invoice {shared_invoice.invoice_number} created by {request.user.username}")
    return Response(SharedInvoiceSerializer(_shared_invoices().get(pk=shared_invoice.pk)).data,
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def shared_invoice_detail(request, pk):
    shared_invoice = get_object_or_404(_shared_invoices(), pk=pk)

    if request.method == 'GET':
        return Response(SharedInvoiceSerializer(shared_invoice).data)

    elif request.method == 'PATCH':
        serializer = SharedInvoiceSerializer(shared_invoice, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        vehicles = serializer.validated_data.get('vehicle_ids')
        if vehicles is not None:
            vehicle_ids = [vehicle.id for vehicle in vehicles]
        else:
            vehicle_ids = list(shared_invoice.allocations.values_list('vehicle_id', flat=True))
        with transaction.atomic():
            shared_invoice = serializer.save()
            if vehicles is not None or 'total_amount' in serializer.validated_data:
                allocate_shared_invoice(shared_invoice, vehicle_ids)

        create_audit_log(
            request=request,
            action='shared_invoice_update',
            model_name='SharedInvoice',
            object_id=str(shared_invoice.id),
            object_reference=shared_invoice.invoice_number,
        )
        return Response(SharedInvoiceSerializer(_shared_invoices().get(pk=shared_invoice.pk)).data)

    else:  # DELETE
        if not can_delete_shared_invoice(get_user_role(request.user)):
            return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
        create_audit_log(
            request=request,
            action='shared_invoice_delete',
            model_name='SharedInvoice',
            object_id=str(shared_invoice.id),
            object_reference=shared_invoice.invoice_number,
        )
        with transaction.atomic():
            delete_shared_invoice(shared_invoice)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def shared_invoice_vehicles(request, pk):
    """
    GET: vehicles the invoice is split over
    POST: add vehicles {vehicleIds} and split again
    DELETE: remove ?vehicleId= and split again
    """
    shared_invoice = get_object_or_404(SharedInvoice, pk=pk)

    if request.method == 'GET':
        allocations = shared_invoice.allocations.select_related('vehicle')
        return Response(SharedInvoiceVehicleSerializer(allocations, many=True).data)

    if not can_reallocate_shared_invoice(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    current = list(shared_invoice.allocations.values_list('vehicle_id', flat=True))
    if request.method == 'POST':
        requested = request.data.get('vehicleIds')
        if not isinstance(requested, list) or not requested:
            return Response({'error': 'At least one vehicle is required'}, status=status.HTTP_400_BAD_REQUEST)
        if not all(str(vehicle_id).isdigit() for vehicle_id in requested):
            return Response({'error': 'One or more vehicle IDs are invalid'}, status=status.HTTP_400_BAD_REQUEST)
        new_ids = [vehicle_id for vehicle_id in dict.fromkeys(int(v) for v in requested) if vehicle_id not in current]
        if Vehicle.objects.filter(pk__in=new_ids).count() != len(new_ids):
            return Response({'error': 'One or more vehicle IDs are invalid'}, status=status.HTTP_400_BAD_REQUEST)
        vehicle_ids = current + new_ids
    else:
        vehicle_id = request.query_params.get('vehicleId')
        if not vehicle_id:
            return Response({'error': 'vehicleId query parameter is required'}, status=status.HTTP_400_BAD_REQUEST)
        if not vehicle_id.isdigit() or int(vehicle_id) not in current:
            return Response({'error': 'Vehicle is not part of this shared invoice'}, status=status.HTTP_404_NOT_FOUND)
        vehicle_ids = [v for v in current if v != int(vehicle_id)]
        if not vehicle_ids:
            return Response({'error': 'A shared invoice needs at least one vehicle'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        allocate_shared_invoice(shared_invoice, vehicle_ids)
    create_audit_log(
        request=request,
        action='shared_invoice_update',
        model_name='SharedInvoice',
        object_id=str(shared_invoice.id),
        object_reference=shared_invoice.invoice_number,
        changes={'vehicles': {'old': current, 'new': vehicle_ids}},
    )
    return Response(SharedInvoiceSerializer(_shared_invoices().get(pk=shared_invoice.pk)).data)
