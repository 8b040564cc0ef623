import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404

from crm.accounting.models import Transaction
from crm.core.cache_utils import (
    get_cached, make_cache_key, invalidate_shipping_kanban_cache,
    SHIPPING_KANBAN_KEY_PREFIX, KANBAN_CACHE_TTL,
)
from crm.core.permissions import (
    get_user_role, is_admin_user, can_manage_vehicle_stages, can_manage_transactions,
    can_view_all_vehicles,
)
from crm.core.utils import create_audit_log
from crm.invoicing.models import Invoice
from crm.invoicing.services import get_invoice_total, get_vehicle_payment_summary
from .models import (
    Vehicle, VehicleShippingStage, VehicleStageCost, VehicleDocument, Yard, SHIPPING_STAGES,
)
from .serializers import (
    VehicleSerializer, VehicleShippingStageSerializer, VehicleStageHistorySerializer,
    VehicleStageCostSerializer, VehicleDocumentSerializer, ShippingKanbanVehicleSerializer,
    YardSerializer,
)
from .services import create_vehicle, change_vehicle_stage
from .stages import is_valid_stage, stage_label, effective_stage, progress_percent

logger = logging.getLogger(__name__)

VEHICLE_SEARCH_LIMIT = 50


def _can_manage_costs(user):
    role = get_user_role(user)
    return can_manage_vehicle_stages(role) or can_manage_transactions(role)


# Vehicle views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vehicle_list_create(request):
    """Search vehicles by VIN, make or model, or register a new one"""
    if request.method == 'GET':
        queryset = Vehicle.objects.select_related('customer', 'shipping_stage').order_by('-created_at')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(vin__icontains=search) |
                Q(make__icontains=search) |
                Q(model__icontains=search)
            )
        customer_id = request.query_params.get('customer', None)
        if customer_id:
            if not customer_id.isdigit():
                return Response({'error': 'Invalid customer'}, status=status.HTTP_400_BAD_REQUEST)
            queryset = queryset.filter(customer_id=customer_id)
        stage = request.query_params.get('stage', None)
        if stage:
            queryset = queryset.filter(current_shipping_stage=stage)
        serializer = VehicleSerializer(queryset[:VEHICLE_SEARCH_LIMIT], many=True)
        return Response(serializer.data)
    else:
        serializer = VehicleSerializer(data=request.data)
        if serializer.is_valid():
            vehicle = create_vehicle(serializer, request.user)
            create_audit_log(
                request=request,
                action='create',
                model_name='Vehicle',
                object_id=str(vehicle.id),
                object_name=str(vehicle),
                object_reference=vehicle.vin,
            )
            return Response(VehicleSerializer(vehicle).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def vehicle_detail(request, pk):
    """Retrieve, update or delete a vehicle"""
    vehicle = get_object_or_404(Vehicle.objects.select_related('customer', 'shipping_stage'), pk=pk)

    if request.method == 'GET':
        return Response(VehicleSerializer(vehicle).data)
    elif request.method == 'PATCH':
        serializer = VehicleSerializer(vehicle, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if not is_admin_user(request.user):
            return Response({'error': 'Only admins can delete vehicles'}, status=status.HTTP_403_FORBIDDEN)
        if Invoice.objects.filter(vehicle=vehicle).exists():
            return Response({'error': 'Vehicle has invoices and cannot be deleted'}, status=status.HTTP_400_BAD_REQUEST)
        if vehicle.shared_invoice_allocations.exists():
            return Response({'error': 'Vehicle is part of a shared invoice and cannot be deleted'},
                            status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(
            request=request,
            action='delete',
            model_name='Vehicle',
            object_id=str(vehicle.id),
            object_name=str(vehicle),
            object_reference=vehicle.vin,
        )
        vehicle.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


def _stage_payload(vehicle):
    shipping_stage = VehicleShippingStage.objects.select_related(
        'yard', 'purchase_vendor', 'transport_vendor', 'repair_vendor', 'forwarding_vendor', 'freight_vendor'
    ).filter(vehicle=vehicle).first()
    history = vehicle.stage_history.select_related('user').all()
    stage = effective_stage(vehicle)
    return {
        'vehicle': VehicleSerializer(vehicle).data,
        'stage': stage,
        'stage_label': stage_label(stage),
        'progress': progress_percent(stage),
        'shipping_stage': VehicleShippingStageSerializer(shipping_stage).data if shipping_stage else None,
        'history': VehicleStageHistorySerializer(history, many=True).data,
    }


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def vehicle_stages(request, pk):
    """
    GET: vehicle, shipping record and stage history
    PATCH: update shipping details; a ``stage`` key moves the vehicle to that stage
    """
    vehicle = get_object_or_404(Vehicle, pk=pk)

    if request.method == 'GET':
        return Response(_stage_payload(vehicle))

    if not can_manage_vehicle_stages(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    data = request.data.copy() if hasattr(request.data, 'copy') else dict(request.data)
    new_stage = data.pop('stage', None)
    notes = data.pop('stageNotes', None)
    if isinstance(new_stage, list):
        new_stage = new_stage[0] if new_stage else None
    if new_stage is not None and not is_valid_stage(new_stage):
        return Response({'error': 'Invalid shipping stage'}, status=status.HTTP_400_BAD_REQUEST)

    shipping_stage, _ = VehicleShippingStage.objects.get_or_create(
        vehicle=vehicle, defaults={'stage': vehicle.current_shipping_stage or 'PURCHASE'}
    )
    if data:
        serializer = VehicleShippingStageSerializer(shipping_stage, data=data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()

    if new_stage is not None:
        change_vehicle_stage(vehicle, new_stage, request.user, request=request, notes=notes)
        vehicle.refresh_from_db()

    return Response(_stage_payload(vehicle))


# Stage costs
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vehicle_cost_list_create(request, pk):
    vehicle = get_object_or_404(Vehicle, pk=pk)

    if request.method == 'GET':
        costs = vehicle.stage_costs.select_related('vendor').all()
        return Response(VehicleStageCostSerializer(costs, many=True).data)

    if not _can_manage_costs(request.user):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    serializer = VehicleStageCostSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(vehicle=vehicle)
        invalidate_shipping_kanban_cache()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def vehicle_cost_detail(request, pk, cost_id):
    if not _can_manage_costs(request.user):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    cost = get_object_or_404(VehicleStageCost, pk=cost_id, vehicle_id=pk)

    if request.method == 'PATCH':
        serializer = VehicleStageCostSerializer(cost, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    cost.delete()
    invalidate_shipping_kanban_cache()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Documents
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vehicle_document_list_create(request, pk):
    """Documents attached to a vehicle (stored elsewhere, referenced by URL)"""
    vehicle = get_object_or_404(Vehicle, pk=pk)

    if request.method == 'GET':
        documents = vehicle.documents.select_related('uploaded_by').all()
        category = request.query_params.get('category', None)
        if category:
            documents = documents.filter(category=category)
        return Response(VehicleDocumentSerializer(documents, many=True).data)

    serializer = VehicleDocumentSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(vehicle=vehicle, uploaded_by=request.user)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def vehicle_document_detail(request, pk, document_id):
    document = get_object_or_404(VehicleDocument, pk=document_id, vehicle_id=pk)
    if not (can_manage_vehicle_stages(get_user_role(request.user)) or document.uploaded_by_id == request.user.id):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    document.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vehicle_payments(request, pk):
    """Invoiced charges against payments received for a vehicle"""
    vehicle = get_object_or_404(Vehicle, pk=pk)
    summary = get_vehicle_payment_summary(vehicle.id)

    invoices = []
    for invoice in Invoice.objects.filter(vehicle=vehicle).prefetch_related('charges__charge_type').order_by('issue_date'):
        invoices.append({
            'id': invoice.id,
            'invoice_number': invoice.invoice_number,
            'status': invoice.status,
            'payment_status': invoice.payment_status,
            'total': get_invoice_total(invoice),
        })

    payments = Transaction.objects.filter(
        Q(vehicle=vehicle) | Q(invoice__vehicle=vehicle),
        direction=Transaction.DIRECTION_INCOMING,
    ).order_by('-date')

    return Response({
        'total_charges': summary['total_charges'],
        'total_received': summary['total_received'],
        'balance_due': summary['total_charges'] - summary['total_received'],
        'purchase_paid': summary['purchase_paid'],
        'invoices': invoices,
        'payments': [
            {
                'id': t.id,
                'date': t.date,
                'amount': t.amount,
                'currency': t.currency,
                'type': t.type,
                'invoice': t.invoice_id,
                'description': t.description,
            }
            for t in payments
        ],
    })


def _build_shipping_board(assigned_user_id=None, customer_id=None):
    queryset = Vehicle.objects.select_related('customer', 'shipping_stage__yard').annotate(
        documents_count=Count('documents', distinct=True),
        stage_costs_count=Count('stage_costs', distinct=True),
    )
    if customer_id:
        queryset = queryset.filter(customer_id=customer_id)
    if assigned_user_id is not None:
        queryset = queryset.filter(customer__assigned_to_id=assigned_user_id)

    by_stage = {}
    for vehicle in queryset.order_by('-created_at'):
        by_stage.setdefault(vehicle.current_shipping_stage or 'PURCHASE', []).append(vehicle)

    return [
        {
            'id': stage,
            'name': stage_label(stage),
            'order': index,
            'stage': stage,
            'vehicles': ShippingKanbanVehicleSerializer(by_stage.get(stage, []), many=True).data,
        }
        for index, stage in enumerate(SHIPPING_STAGES)
    ]


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def shipping_kanban(request):
    """
    GET: vehicles grouped by shipping stage. ?filterType=mine limits the board
         to customers assigned to the caller; staff outside admin, manager
         and back office always get that view.
    PATCH: move a vehicle {vehicleId, newStage, dhlTracking}
    """
    role = get_user_role(request.user)

    if request.method == 'GET':
        customer_id = request.query_params.get('customerId')
        if customer_id and not customer_id.isdigit():
            return Response({'error': 'Invalid customerId'}, status=status.HTTP_400_BAD_REQUEST)
        mine = request.query_params.get('filterType') == 'mine'
        assigned_user_id = request.user.id if (mine or not can_view_all_vehicles(role)) else None

        cache_key = make_cache_key(SHIPPING_KANBAN_KEY_PREFIX, assigned_user_id or 'all', customer_id or '')
        stages = get_cached(cache_key, lambda: _build_shipping_board(assigned_user_id, customer_id), KANBAN_CACHE_TTL)
        return Response({'stages': stages})

    if not can_manage_vehicle_stages(role):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    vehicle_id = request.data.get('vehicleId')
    new_stage = request.data.get('newStage')
    if not vehicle_id or not new_stage:
        return Response({'error': 'Missing vehicleId or newStage'}, status=status.HTTP_400_BAD_REQUEST)
    if not is_valid_stage(new_stage):
        return Response({'error': 'Invalid shipping stage'}, status=status.HTTP_400_BAD_REQUEST)

    vehicle = Vehicle.objects.filter(pk=vehicle_id).first() if str(vehicle_id).isdigit() else None
    if vehicle is None:
        return Response({'error': 'Vehicle not found'}, status=status.HTTP_404_NOT_FOUND)

    change_vehicle_stage(vehicle, new_stage, request.user, request=request,
                         dhl_tracking=request.data.get('dhlTracking'))

    vehicle = Vehicle.objects.select_related('customer', 'shipping_stage__yard').annotate(
        documents_count=Count('documents', distinct=True),
        stage_costs_count=Count('stage_costs', distinct=True),
    ).get(pk=vehicle.pk)
    return Response(ShippingKanbanVehicleSerializer(vehicle).data)


# Yards
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def yard_list_create(request):
    if request.method == 'GET':
        yards = Yard.objects.select_related('vendor').all()
        return Response(YardSerializer(yards, many=True).data)

    serializer = YardSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
