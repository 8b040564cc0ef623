import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes, throttle_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.conf import settings
from django.db.models import Q, ProtectedError
from django.shortcuts import get_object_or_404

from crm.accounting.wallet import get_customer_wallet_balance, WALLET_CURRENCY
from crm.core.cache_utils import get_cached, get_portal_cache_key, PORTAL_CACHE_TTL
from crm.core.permissions import (
    get_user_role, is_admin_user, can_manage_share_tokens, can_view_wallet,
)
from crm.core.throttling import PublicPortalRateThrottle
from crm.core.utils import create_audit_log
from .filters import VendorFilter
from .models import Customer, Vendor
from .portal import build_customer_portal
from .serializers import CustomerSerializer, VendorSerializer

logger = logging.getLogger(__name__)

CUSTOMER_SEARCH_LIMIT = 50


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """Search customers by name or email, or create a new customer"""
    if request.method == 'GET':
        queryset = Customer.objects.select_related('assigned_to').order_by('name')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(email__icontains=search))
        assigned_to = request.query_params.get('assignedTo', None)
        if assigned_to == 'me':
            queryset = queryset.filter(assigned_to=request.user)
        elif assigned_to:
            if not assigned_to.isdigit():
                return Response({'error': 'Invalid assignedTo'}, status=status.HTTP_400_BAD_REQUEST)
            queryset = queryset.filter(assigned_to_id=assigned_to)
        serializer = CustomerSerializer(queryset[:CUSTOMER_SEARCH_LIMIT], many=True)
        return Response(serializer.data)
    else:
        serializer = CustomerSerializer(data=request.data)
        if serializer.is_valid():
            customer = serializer.save()
            logger.info(f"Customer {customer.name} (ID: {customer.id}) created by {request.user.username}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'GET':
        serializer = CustomerSerializer(customer)
        return Response(serializer.data)
    elif request.method == 'PATCH':
        serializer = CustomerSerializer(customer, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if not is_admin_user(request.user):
            return Response({'error': 'Only admins can delete customers'}, status=status.HTTP_403_FORBIDDEN)
        try:
            customer.delete()
        except ProtectedError:
            return Response({'error': 'Customer has invoices and cannot be deleted'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(
            request=request,
            action='delete',
            model_name='Customer',
            object_id=str(pk),
            object_name=customer.name,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_share_token(request, pk):
    """Generate (or revoke) the token giving a customer access to their portal"""
    if not can_manage_share_tokens(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'DELETE':
        customer.share_token = None
        customer.save(update_fields=['share_token', 'updated_at'])
        create_audit_log(
            request=request,
            action='share_token_revoke',
            model_name='Customer',
            object_id=str(customer.id),
            object_name=customer.name,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    customer.share_token = Customer.generate_share_token()
    customer.save(update_fields=['share_token', 'updated_at'])
    create_audit_log(
        request=request,
        action='share_token_generate',
        model_name='Customer',
        object_id=str(customer.id),
        object_name=customer.name,
    )
    logger.info(f"Share token generated for customer {customer.id} by {request.user.username}")
    return Response({
        'share_token': customer.share_token,
        'portal_url': f"{settings.PORTAL_BASE_URL.rstrip('/')}/{customer.share_token}",
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_wallet_balance(request, pk):
    """Deposits minus wallet applications and refunds (JPY only)"""
    if not can_view_wallet(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    customer = get_object_or_404(Customer, pk=pk)
    return Response({
        'balance': get_customer_wallet_balance(customer),
        'currency': WALLET_CURRENCY,
    })


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([PublicPortalRateThrottle])
def public_customer_portal(request, token):
    """Customer-facing portal data, addressed by the customer's share token"""
    customer = Customer.objects.filter(share_token=token).first()
    if customer is None:
        logger.warning(f"Portal access with unknown token from {request.META.get('REMOTE_ADDR')}")
        return Response({'error': 'Not found'}, status=status.HTTP_404_NOT_FOUND)

    data = get_cached(get_portal_cache_key(token), lambda: build_customer_portal(customer), PORTAL_CACHE_TTL)
    return Response(data)


# Vendor views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vendor_list_create(request):
    """List vendors (filter by category, search) or create one"""
    if request.method == 'GET':
        filterset = VendorFilter(request.query_params, queryset=Vendor.objects.all().order_by('name'))
        serializer = VendorSerializer(filterset.qs, many=True)
        return Response(serializer.data)
    else:
        serializer = VendorSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def vendor_detail(request, pk):
    """Retrieve, update or delete a vendor"""
    vendor = get_object_or_404(Vendor, pk=pk)

    if request.method == 'GET':
        serializer = VendorSerializer(vendor)
        return Response(serializer.data)
    elif request.method == 'PATCH':
        serializer = VendorSerializer(vendor, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if not is_admin_user(request.user):
            return Response({'error': 'Only admins can delete vendors'}, status=status.HTTP_403_FORBIDDEN)
        try:
            vendor.delete()
        except ProtectedError:
            return Response({'error': 'Vendor has shared invoices and cannot be deleted'}, status=status.HTTP_400_BAD_REQUEST)
        return Response(status=status.HTTP_204_NO_CONTENT)
