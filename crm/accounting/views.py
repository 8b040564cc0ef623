import logging

from rest_framework import status, serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.shortcuts import get_object_or_404

from crm.core.permissions import get_user_role, can_view_transactions, can_manage_transactions
from crm.core.utils import create_audit_log
from crm.vehicles.models import VehicleStageCost
from .filters import TransactionFilter
from .models import Transaction, GeneralCost
from .serializers import TransactionSerializer, GeneralCostSerializer
from .services import transaction_links, sync_paid_cost, resync_after_transaction_change

logger = logging.getLogger(__name__)

TRANSACTION_LIST_LIMIT = 500

_date_field = serializers.DateField()
_datetime_field = serializers.DateTimeField()


def _general_cost_row(cost):
    return {
        'id': f'general-{cost.id}',
        'source': 'general_cost',
        'direction': Transaction.DIRECTION_OUTGOING,
        'type': None,
        'amount': str(cost.amount),
        'currency': cost.currency,
        'date': _date_field.to_representation(cost.date),
        'description': cost.description,
        'category': cost.category,
        'vendor': cost.vendor_id,
        'vendor_name': cost.vendor.name if cost.vendor_id else None,
        'customer': None,
        'vehicle': None,
        'invoice': None,
        'created_at': _datetime_field.to_representation(cost.created_at),
    }


def _stage_cost_row(cost):
    date = cost.payment_date or cost.created_at.date()
    return {
        'id': f'stage-cost-{cost.id}',
        'source': 'vehicle_stage_cost',
        'direction': Transaction.DIRECTION_OUTGOING,
        'type': None,
        'amount': str(cost.amount),
        'currency': cost.currency,
        'date': _date_field.to_representation(date),
        'description': f'{cost.cost_type} ({cost.vehicle.vin})',
        'category': cost.stage,
        'vendor': cost.vendor_id,
        'vendor_name': cost.vendor.name if cost.vendor_id else None,
        'customer': None,
        'vehicle': cost.vehicle_id,
        'invoice': None,
        'created_at': _datetime_field.to_representation(cost.created_at),
    }


def _cost_rows(filters):
    """
    General costs and unpaid-through-transactions stage costs shown as
    OUTGOING rows in the transaction list.
    """
    start_date = filters.get('startDate')
    end_date = filters.get('endDate')
    vendor_id = filters.get('vendor')
    vehicle_id = filters.get('vehicle')

    rows = []
    if not vehicle_id:
        general_costs = GeneralCost.objects.select_related('vendor')
        if vendor_id:
            general_costs = general_costs.filter(vendor_id=vendor_id)
        if start_date:
            general_costs = general_costs.filter(date__gte=start_date)
        if end_date:
            general_costs = general_costs.filter(date__lte=end_date)
        rows.extend(_general_cost_row(cost) for cost in general_costs[:TRANSACTION_LIST_LIMIT])

    # Stage costs already settled by a recorded transaction are listed once, as that transaction
    stage_costs = VehicleStageCost.objects.select_related('vendor', 'vehicle').filter(transactions__isnull=True)
    if vendor_id:
        stage_costs = stage_costs.filter(vendor_id=vendor_id)
    if vehicle_id:
        stage_costs = stage_costs.filter(vehicle_id=vehicle_id)
    for cost in stage_costs[:TRANSACTION_LIST_LIMIT]:
        date = cost.payment_date or cost.created_at.date()
        if start_date and date < start_date:
            continue
        if end_date and date > end_date:
            continue
        rows.append(_stage_cost_row(cost))
    return rows


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def transaction_list_create(request):
    """
    GET: transactions merged with general and vehicle stage costs, newest first
    POST: record a transaction and resync the invoice and vehicle it touches
    """
    role = get_user_role(request.user)

    if request.method == 'GET':
        if not can_view_transactions(role):
            return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

        queryset = Transaction.objects.select_related('vendor', 'customer', 'vehicle', 'invoice', 'created_by')
        filterset = TransactionFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

        rows = TransactionSerializer(filterset.qs[:TRANSACTION_LIST_LIMIT], many=True).data
        filters = filterset.form.cleaned_data
        merge_costs = (
            filters.get('direction') != Transaction.DIRECTION_INCOMING
            and not filters.get('customer')
            and not filters.get('invoice')
            and not filters.get('type')
            and not filters.get('search')
        )
        if merge_costs:
            rows = list(rows) + _cost_rows(filters)
            rows.sort(key=lambda row: (row['date'] or '', row['created_at'] or ''), reverse=True)

        return Response(rows[:TRANSACTION_LIST_LIMIT])

    if not can_manage_transactions(role):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    serializer = TransactionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        tx = serializer.save(created_by=request.user)
        sync_paid_cost(tx)
        resync_after_transaction_change(transaction_links(tx))

    create_audit_log(
        request=request,
        action='transaction_create',
        model_name='Transaction',
        object_id=str(tx.id),
        object_name=tx.description,
        changes={'direction': tx.direction, 'amount': str(tx.amount), 'currency': tx.currency},
    )
    logger.info(f"Transaction {tx.id} ({tx.direction} {tx.amount} {tx.currency}) recorded by {request.user.username}")
    return Response(TransactionSerializer(tx).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def transaction_detail(request, pk):
    """Retrieve, update or delete a transaction"""
    role = get_user_role(request.user)
    if not can_view_transactions(role):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    tx = get_object_or_404(
        Transaction.objects.select_related('vendor', 'customer', 'vehicle', 'invoice', 'created_by'), pk=pk
    )

    if request.method == 'GET':
        return Response(TransactionSerializer(tx).data)

    if not can_manage_transactions(role):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    old_links = transaction_links(tx)

    if request.method == 'PATCH':
        serializer = TransactionSerializer(tx, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        with transaction.atomic():
            tx = serializer.save()
            sync_paid_cost(tx)
            resync_after_transaction_change(old_links, transaction_links(tx))
        create_audit_log(
            request=request,
            action='transaction_update',
            model_name='Transaction',
            object_id=str(tx.id),
            object_name=tx.description,
            changes={key: str(value) for key, value in request.data.items()},
        )
        return Response(TransactionSerializer(tx).data)

    with transaction.atomic():
        tx_id = tx.id
        tx.delete()
        resync_after_transaction_change(old_links)
    create_audit_log(
        request=request,
        action='transaction_delete',
        model_name='Transaction',
        object_id=str(tx_id),
        object_name=tx.description,
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def general_cost_list_create(request):
    role = get_user_role(request.user)

    if request.method == 'GET':
        if not can_view_transactions(role):
            return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
        queryset = GeneralCost.objects.select_related('vendor', 'created_by')
        category = request.query_params.get('category', None)
        if category:
            queryset = queryset.filter(category=category)
        return Response(GeneralCostSerializer(queryset[:TRANSACTION_LIST_LIMIT], many=True).data)

    if not can_manage_transactions(role):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    serializer = GeneralCostSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(created_by=request.user)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def general_cost_detail(request, pk):
    if not can_manage_transactions(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    cost = get_object_or_404(GeneralCost, pk=pk)

    if request.method == 'PATCH':
        serializer = GeneralCostSerializer(cost, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    cost.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
