import hmac
import logging
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.conf import settings
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from crm.core.cache_utils import (
    get_cached, make_cache_key, invalidate_inquiry_caches,
    KANBAN_KEY_PREFIX, KANBAN_CACHE_TTL, INQUIRY_LIST_KEY_PREFIX, INQUIRY_LIST_CACHE_TTL,
)
from crm.core.models import User
from crm.core.permissions import (
    get_user_role, can_view_all_inquiries, can_assign_inquiry, is_manager_or_admin,
)
from crm.core.utils import parse_bool
from .kanban import build_board
from .models import Inquiry, InquiryHistory, InquiryNote
from .serializers import (
    InquirySerializer, InquiryDetailSerializer, InquiryNoteSerializer,
)
from .services import (
    assign_inquiry, release_inquiry, copy_inquiry, mark_failed_lead, change_inquiry_status,
    release_expired_assignments, normalize_source, build_looking_for, build_webhook_metadata,
)

logger = logging.getLogger(__name__)

VALID_STATUSES = [choice[0] for choice in Inquiry.STATUS_CHOICES]
VALID_SOURCES = [choice[0] for choice in Inquiry.SOURCE_CHOICES]


def _active_leads():
    """Inquiries not moved to the failed lead pool"""
    return Inquiry.objects.filter(
        Q(metadata__isFailedLead__isnull=True) | Q(metadata__isFailedLead=False)
    )


def _can_act_on(user, inquiry):
    return can_view_all_inquiries(get_user_role(user)) or inquiry.assigned_to_id == user.id


def _list_inquiries(user, params):
    role = get_user_role(user)
    queryset = _active_leads().select_related('assigned_to')

    inquiry_status = params.get('status')
    source = params.get('source')
    if inquiry_status:
        queryset = queryset.filter(status=inquiry_status)
    if source:
        queryset = queryset.filter(source=source)

    if parse_bool(params.get('unassignedOnly')):
        queryset = queryset.filter(assigned_to__isnull=True)
    elif can_view_all_inquiries(role):
        assigned_to = params.get('assignedTo') or params.get('userId')
        if assigned_to == 'me' or (parse_bool(params.get('assignedToMe')) and not assigned_to):
            queryset = queryset.filter(assigned_to=user)
        elif assigned_to and assigned_to != 'all':
            queryset = queryset.filter(assigned_to_id=assigned_to)
    elif parse_bool(params.get('assignedToMe')):
        queryset = queryset.filter(assigned_to=user)
    else:
        # Own, unassigned, or held by someone else for too long without a win
        cutoff = timezone.now() - timedelta(days=settings.INQUIRY_ASSIGNMENT_TTL_DAYS)
        queryset = queryset.filter(
            Q(assigned_to=user)
            | Q(assigned_to__isnull=True)
            | (Q(assigned_at__lte=cutoff) & ~Q(status=Inquiry.STATUS_CLOSED_WON))
        )

    search = params.get('search')
    if search:
        queryset = queryset.filter(
            Q(customer_name__icontains=search) |
            Q(email__icontains=search) |
            Q(phone__icontains=search)
        )

    return InquirySerializer(queryset.order_by('-created_at'), many=True).data


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def inquiry_list_create(request):
    """List inquiries visible to the current user, or create one manually"""
    if request.method == 'GET':
        params = {key: request.query_params.get(key) for key in request.query_params.keys()}
        assigned_to = params.get('assignedTo') or params.get('userId')
        if assigned_to and assigned_to not in ('me', 'all') and not assigned_to.isdigit():
            return Response({'error': 'Invalid assignedTo'}, status=status.HTTP_400_BAD_REQUEST)
        cache_key = make_cache_key(INQUIRY_LIST_KEY_PREFIX, request.user.id, get_user_role(request.user),
                                   tuple(sorted(params.items())))
        data = get_cached(cache_key, lambda: _list_inquiries(request.user, params), INQUIRY_LIST_CACHE_TTL)
        return Response(data)
    else:
        serializer = InquirySerializer(data=request.data)
        if serializer.is_valid():
            inquiry = serializer.save()
            InquiryHistory.objects.create(
                inquiry=inquiry,
                user=request.user,
                action='CREATED',
                new_status=inquiry.status,
                notes='Created manually',
            )
            logger.info(f"Inquiry {inquiry.id} created by {request.user.username}")
            return Response(InquirySerializer(inquiry).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def inquiry_detail(request, pk):
    """Retrieve, update or delete an inquiry"""
    inquiry = get_object_or_404(
        Inquiry.objects.select_related('assigned_to').prefetch_related('history__user', 'notes__user'),
        pk=pk,
    )

    if request.method == 'GET':
        return Response(InquiryDetailSerializer(inquiry).data)
    elif request.method == 'PATCH':
        if not _can_act_on(request.user, inquiry):
            return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
        previous_status = inquiry.status
        serializer = InquirySerializer(inquiry, data=request.data, partial=True)
        if serializer.is_valid():
            inquiry = serializer.save()
            if inquiry.status != previous_status:
                InquiryHistory.objects.create(
                    inquiry=inquiry,
                    user=request.user,
                    action='STATUS_CHANGED',
                    previous_status=previous_status,
                    new_status=inquiry.status,
                )
            return Response(InquirySerializer(inquiry).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if not is_manager_or_admin(request.user):
            return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
        inquiry.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def inquiry_assign(request, pk):
    """Take an inquiry from the pool"""
    role = get_user_role(request.user)
    if not can_assign_inquiry(role):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    inquiry = get_object_or_404(Inquiry.objects.select_related('assigned_to'), pk=pk)
    if (inquiry.assigned_to_id and inquiry.assigned_to_id != request.user.id
            and not is_manager_or_admin(request.user)):
        return Response({'error': 'Inquiry already assigned to another user'}, status=status.HTTP_400_BAD_REQUEST)

    assign_inquiry(inquiry, request.user)
    return Response(InquirySerializer(inquiry).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def inquiry_release(request, pk):
    """Put an inquiry back into the pool"""
    inquiry = get_object_or_404(Inquiry, pk=pk)
    if not _can_act_on(request.user, inquiry):
        return Response({'error': 'You can only release inquiries assigned to you'}, status=status.HTTP_403_FORBIDDEN)

    release_inquiry(inquiry, request.user)
    return Response(InquirySerializer(inquiry).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def inquiry_convert(request, pk):
    """Close an inquiry as won (converted) or lost"""
    inquiry = get_object_or_404(Inquiry, pk=pk)
    if not _can_act_on(request.user, inquiry):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    if 'converted' not in request.data:
        return Response({'error': 'converted is required'}, status=status.HTTP_400_BAD_REQUEST)

    converted = parse_bool(request.data.get('converted'))
    previous_status = inquiry.status
    inquiry.status = Inquiry.STATUS_CLOSED_WON if converted else Inquiry.STATUS_CLOSED_LOST
    inquiry.save(update_fields=['status', 'updated_at'])
    InquiryHistory.objects.create(
        inquiry=inquiry,
        user=request.user,
        action='CONVERTED' if converted else 'MARKED_NOT_CONVERTED',
        previous_status=previous_status,
        new_status=inquiry.status,
        notes=request.data.get('notes') or None,
    )
    invalidate_inquiry_caches()
    return Response(InquirySerializer(inquiry).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def inquiry_copy(request, pk):
    """Duplicate an inquiry as a new lead in the pool"""
    inquiry = get_object_or_404(Inquiry, pk=pk)
    if inquiry.assigned_to_id is not None and not _can_act_on(request.user, inquiry):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    copy = copy_inquiry(inquiry, request.user)
    return Response(InquirySerializer(copy).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def inquiry_to_failed_lead(request, pk):
    inquiry = get_object_or_404(Inquiry.objects.select_related('assigned_to'), pk=pk)
    if not _can_act_on(request.user, inquiry):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    mark_failed_lead(inquiry, request.user)
    return Response({'success': True})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def failed_leads(request):
    """Inquiries that went through several sales reps without converting"""
    if not can_view_all_inquiries(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    queryset = Inquiry.objects.filter(metadata__isFailedLead=True).select_related('assigned_to')
    return Response(InquirySerializer(queryset.order_by('-updated_at'), many=True).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def inquiry_notes(request, pk):
    inquiry = get_object_or_404(Inquiry, pk=pk)

    if request.method == 'GET':
        notes = inquiry.notes.select_related('user').all()
        return Response(InquiryNoteSerializer(notes, many=True).data)

    serializer = InquiryNoteSerializer(data=request.data)
    if serializer.is_valid():
        note = serializer.save(inquiry=inquiry, user=request.user)
        InquiryHistory.objects.create(
            inquiry=inquiry,
            user=request.user,
            action='NOTE_ADDED',
            new_status=inquiry.status,
        )
        return Response(InquiryNoteSerializer(note).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def kanban_board(request):
    """
    GET: board columns with assigned inquiries.
         ?userId=me|all|<id> (managers and admins only, others always see their own)
    PATCH: move an inquiry to another column {inquiryId, newStatus}
    """
    user = request.user
    can_view_all = can_view_all_inquiries(get_user_role(user))

    if request.method == 'GET':
        user_id = request.query_params.get('userId')
        if not can_view_all or user_id == 'me' or user_id == str(user.id):
            target_user_id = user.id
        elif user_id and user_id != 'all':
            target_user_id = int(user_id) if user_id.isdigit() else None
            if target_user_id is None:
                return Response({'error': 'Invalid userId'}, status=status.HTTP_400_BAD_REQUEST)
        else:
            target_user_id = None

        cache_key = make_cache_key(KANBAN_KEY_PREFIX, target_user_id or 'all')
        stages = get_cached(cache_key, lambda: build_board(target_user_id), KANBAN_CACHE_TTL)

        if target_user_id is None:
            view_mode = 'all'
        elif target_user_id == user.id:
            view_mode = 'me'
        else:
            view_mode = 'user'
        return Response({
            'stages': stages,
            'userId': target_user_id,
            'isManager': is_manager_or_admin(user),
            'viewMode': view_mode,
        })

    inquiry_id = request.data.get('inquiryId')
    new_status = request.data.get('newStatus')
    if not inquiry_id or not new_status:
        return Response({'error': 'Missing inquiryId or newStatus'}, status=status.HTTP_400_BAD_REQUEST)
    if new_status not in VALID_STATUSES:
        return Response({'error': 'Invalid status'}, status=status.HTTP_400_BAD_REQUEST)

    inquiry = Inquiry.objects.filter(pk=inquiry_id).first() if str(inquiry_id).isdigit() else None
    if inquiry is None:
        return Response({'error': 'Inquiry not found'}, status=status.HTTP_404_NOT_FOUND)
    if not can_view_all and inquiry.assigned_to_id != user.id:
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)

    change_inquiry_status(inquiry, new_status, user)
    return Response(InquirySerializer(inquiry).data)


def _secret_matches(provided, expected):
    return bool(provided) and hmac.compare_digest(str(provided), str(expected))


def _bearer_token(request):
    auth_header = request.META.get('HTTP_AUTHORIZATION', '')
    if auth_header.startswith('Bearer '):
        return auth_header[len('Bearer '):].strip()
    return None


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def n8n_webhook(request):
    """
    Create an inquiry from an n8n workflow.

    When N8N_WEBHOOK_SECRET is configured the caller must send it either as
    ``Authorization: Bearer <secret>`` or in the ``X-Webhook-Secret`` header.
    """
    secret = settings.N8N_WEBHOOK_SECRET
    if secret:
        provided = _bearer_token(request) or request.META.get('HTTP_X_WEBHOOK_SECRET')
        if not _secret_matches(provided, secret):
            logger.warning("Rejected n8n webhook call with invalid secret")
            return Response({'error': 'Unauthorized'}, status=status.HTTP_401_UNAUTHORIZED)

    payload = request.data if isinstance(request.data, dict) else {}
    raw_source = payload.get('source')
    if not raw_source or not str(raw_source).strip():
        return Response({
            'error': 'Missing required field: source',
            'receivedFields': list(payload.keys()),
        }, status=status.HTTP_400_BAD_REQUEST)

    source = normalize_source(raw_source)
    nested = payload.get('metadata') if isinstance(payload.get('metadata'), dict) else {}

    source_id = payload.get('sourceId')
    if source_id:
        existing = Inquiry.objects.filter(source=source, source_id=source_id).first()
        if existing:
            return Response({'error': 'Inquiry already exists', 'inquiryId': existing.id},
                            status=status.HTTP_409_CONFLICT)

    email = payload.get('email') or nested.get('email') or None
    if not source_id and email:
        source_id = f"contactus-{email}-{int(timezone.now().timestamp() * 1000)}"

    looking_for = build_looking_for(payload)
    customer_name = payload.get('customerName') or payload.get('name') or nested.get('name') or 'Unknown'
    inquiry = Inquiry.objects.create(
        source=source,
        source_id=source_id or None,
        customer_name=customer_name,
        email=email,
        phone=payload.get('phone') or nested.get('phone') or None,
        message=payload.get('message') or nested.get('message') or None,
        looking_for=looking_for or None,
        metadata=build_webhook_metadata(payload, looking_for),
        status=Inquiry.STATUS_NEW,
    )

    system_user = User.objects.filter(role=User.ROLE_MANAGER, is_active=True).order_by('id').first()
    InquiryHistory.objects.create(
        inquiry=inquiry,
        user=system_user,
        action='CREATED',
        new_status=Inquiry.STATUS_NEW,
        notes=f"Created from {source} via n8n webhook",
    )
    logger.info(f"Inquiry {inquiry.id} created from n8n webhook (source={source})")
    return Response({'success': True, 'inquiry': InquirySerializer(inquiry).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def cron_release_assignments(request):
    """Scheduled job: release assignments held too long without a win"""
    secret = settings.CRON_SECRET
    if secret and not _secret_matches(_bearer_token(request), secret):
        return Response({'error': 'Unauthorized'}, status=status.HTTP_401_UNAUTHORIZED)

    released = release_expired_assignments()
    return Response({
        'success': True,
        'released': released,
        'timestamp': timezone.now().isoformat(),
    })
