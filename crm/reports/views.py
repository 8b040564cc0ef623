import logging
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count, Sum
from django.db.models.functions import TruncMonth
from django.utils.dateparse import parse_date

from crm.accounting.models import Transaction
from crm.core.cache_utils import cached_query, STATS_KEY_PREFIX, STATS_CACHE_TTL
from crm.core.permissions import get_user_role, can_view_inquiry_stats, can_view_transactions
from crm.inquiries.models import Inquiry

logger = logging.getLogger(__name__)

WON_STATUSES = (Inquiry.STATUS_CLOSED_WON,)
LOST_STATUSES = (Inquiry.STATUS_CLOSED_LOST,)


class InvalidDateRange(ValueError):
    pass


def _date_range(request):
    """startDate/endDate query params as dates (either may be missing)"""
    dates = []
    for param in ('startDate', 'endDate'):
        value = request.query_params.get(param)
        if not value:
            dates.append(None)
            continue
        try:
            parsed = parse_date(value)
        except ValueError:
            parsed = None
        if parsed is None:
            raise InvalidDateRange(f'Invalid {param}, expected YYYY-MM-DD')
        dates.append(parsed)
    start_date, end_date = dates
    if start_date and end_date and start_date > end_date:
        raise InvalidDateRange('startDate must be before endDate')
    return start_date, end_date


def inquiry_stats(start_date=None, end_date=None):
    queryset = Inquiry.objects.all()
    if start_date:
        queryset = queryset.filter(created_at__date__gte=start_date)
    if end_date:
        queryset = queryset.filter(created_at__date__lte=end_date)

    by_source = {}
    for row in queryset.values('source', 'status').annotate(count=Count('id')):
        bucket = by_source.setdefault(row['source'], {'total': 0, 'won': 0, 'lost': 0, 'other': 0})
        bucket['total'] += row['count']
        if row['status'] in WON_STATUSES:
            bucket['won'] += row['count']
        elif row['status'] in LOST_STATUSES:
            bucket['lost'] += row['count']
        else:
            bucket['other'] += row['count']

    totals = {'total': 0, 'won': 0, 'lost': 0, 'other': 0}
    for bucket in by_source.values():
        for key in totals:
            totals[key] += bucket[key]

    return {
        'totals': totals,
        'by_source': [dict(source=source, **bucket) for source, bucket in sorted(by_source.items())],
    }


def transaction_stats(start_date=None, end_date=None, currency='JPY'):
    """Incoming, outgoing and net amounts with a breakdown by type and by month"""
    queryset = Transaction.objects.filter(currency=currency)
    if start_date:
        queryset = queryset.filter(date__gte=start_date)
    if end_date:
        queryset = queryset.filter(date__lte=end_date)

    zero = Decimal('0')
    totals = {
        row['direction']: row['total'] or zero
        for row in queryset.values('direction').annotate(total=Sum('amount'))
    }
    incoming = totals.get(Transaction.DIRECTION_INCOMING, zero)
    outgoing = totals.get(Transaction.DIRECTION_OUTGOING, zero)

    by_type = {}
    for row in queryset.values('type', 'direction').annotate(total=Sum('amount'), count=Count('id')):
        entry = by_type.setdefault(row['type'], {'type': row['type'], 'incoming': zero, 'outgoing': zero, 'count': 0})
        entry['incoming' if row['direction'] == Transaction.DIRECTION_INCOMING else 'outgoing'] += row['total'] or zero
        entry['count'] += row['count']

    by_month = {}
    monthly = queryset.annotate(month=TruncMonth('date')).values('month', 'direction').annotate(total=Sum('amount'))
    for row in monthly:
        key = row['month'].strftime('%Y-%m')
        entry = by_month.setdefault(key, {'month': key, 'incoming': zero, 'outgoing': zero})
        entry['incoming' if row['direction'] == Transaction.DIRECTION_INCOMING else 'outgoing'] += row['total'] or zero

    def _str(entry):
        return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in entry.items()}

    months = []
    for key in sorted(by_month):
        entry = by_month[key]
        entry['net'] = entry['incoming'] - entry['outgoing']
        months.append(_str(entry))

    return {
        'currency': currency,
        'incoming': str(incoming),
        'outgoing': str(outgoing),
        'net': str(incoming - outgoing),
        'by_type': [_str(by_type[key]) for key in sorted(by_type)],
        'by_month': months,
    }


# Stats expire by TTL only; they are not invalidated on writes
cached_inquiry_stats = cached_query(STATS_CACHE_TTL, f"{STATS_KEY_PREFIX}inquiries:")(inquiry_stats)
cached_transaction_stats = cached_query(STATS_CACHE_TTL, f"{STATS_KEY_PREFIX}transactions:")(transaction_stats)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stats_inquiries(request):
    """Inquiry counts by source, split into won, lost and other"""
    if not can_view_inquiry_stats(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    try:
        start_date, end_date = _date_range(request)
    except InvalidDateRange as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(cached_inquiry_stats(start_date, end_date))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stats_transactions(request):
    if not can_view_transactions(get_user_role(request.user)):
        return Response({'error': 'Forbidden'}, status=status.HTTP_403_FORBIDDEN)
    try:
        start_date, end_date = _date_range(request)
    except InvalidDateRange as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    currency = (request.query_params.get('currency') or 'JPY').upper()
    return Response(cached_transaction_stats(start_date, end_date, currency))
