"""
Inquiry assignment rules and n8n payload normalization
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from crm.core.cache_signals import suspend_cache_signals
from crm.core.cache_utils import invalidate_inquiry_caches
from .models import Inquiry, InquiryHistory

logger = logging.getLogger(__name__)

# Attempts after which a non-winning status change turns the lead into a failed lead
FAILED_LEAD_ATTEMPTS = 2

_SOURCE_ALIASES = {
    'whatsapp': 'WHATSAPP',
    'email': 'EMAIL',
    'web': 'WEB',
    'chatbot': 'CHATBOT',
    'chat': 'CHATBOT',
    'jct stock inquiry': 'JCT_STOCK_INQUIRY',
    'jct_stock_inquiry': 'JCT_STOCK_INQUIRY',
    'jctstockinquiry': 'JCT_STOCK_INQUIRY',
    'stock_inquiry': 'STOCK_INQUIRY',
    'stock inquiry': 'STOCK_INQUIRY',
    'stockinquiry': 'STOCK_INQUIRY',
    'onboarding form': 'ONBOARDING_FORM',
    'onboarding_form': 'ONBOARDING_FORM',
    'onboardingform': 'ONBOARDING_FORM',
    'contact us': 'CONTACT_US_INQUIRY_FORM',
    'contact_us': 'CONTACT_US_INQUIRY_FORM',
    'contact_us_inquiry_form': 'CONTACT_US_INQUIRY_FORM',
    'hero_inquiry': 'HERO_INQUIRY',
    'hero inquiry': 'HERO_INQUIRY',
    'heroinquiry': 'HERO_INQUIRY',
    'inquiry_form': 'INQUIRY_FORM',
    'inquiry form': 'INQUIRY_FORM',
    'inquiryform': 'INQUIRY_FORM',
}

# Form fields copied verbatim into Inquiry.metadata
_METADATA_FIELDS = ['vehicles', 'vehicle', 'price', 'make', 'model', 'yearRange', 'budget',
                    'destination', 'country', 'callingCode']


def normalize_source(source):
    """Map the free-form source names sent by n8n onto Inquiry sources"""
    normalized = str(source or '').strip().lower()
    return _SOURCE_ALIASES.get(normalized, 'INQUIRY_FORM')


def build_looking_for(payload):
    """
    Summarize what the customer is after from the different form layouts:
    a ``vehicles`` list (inquiry form), a single ``vehicle`` with ``price``
    (stock inquiry) or ``make``/``model``/``yearRange``/``budget`` (hero form).
    """
    vehicles = payload.get('vehicles')
    if isinstance(vehicles, list):
        entries = []
        for v in vehicles:
            if not isinstance(v, dict):
                continue
            entry = f"{v.get('make') or ''} {v.get('model') or ''}".strip()
            if v.get('yearRange'):
                entry = f"{entry} ({v['yearRange']})".strip()
            if entry:
                entries.append(entry)
        return ', '.join(entries)

    if payload.get('vehicle'):
        price = f" - {payload['price']}" if payload.get('price') else ''
        return f"{payload['vehicle']}{price}".strip()

    if payload.get('make') or payload.get('model'):
        parts = []
        if payload.get('make'):
            parts.append(str(payload['make']))
        if payload.get('model'):
            parts.append(str(payload['model']))
        if payload.get('yearRange'):
            parts.append(f"({payload['yearRange']})")
        if payload.get('budget'):
            parts.append(f"- Budget: {payload['budget']}")
        return ' '.join(parts).strip()

    return payload.get('lookingFor') or ''


def build_webhook_metadata(payload, looking_for):
    nested = payload.get('metadata') if isinstance(payload.get('metadata'), dict) else {}
    metadata = dict(nested)
    for field in _METADATA_FIELDS:
        if payload.get(field):
            metadata[field] = payload[field]
    if looking_for:
        metadata['lookingFor'] = looking_for
    return metadata


def _tried_by(user, tried_at):
    return {
        'userId': user.id,
        'userName': user.display_name,
        'triedAt': tried_at.isoformat() if tried_at else None,
    }


def assign_inquiry(inquiry, user):
    """
    Assign ``inquiry`` to ``user``, counting the attempt and remembering who
    held it before.
    """
    previous = inquiry.assigned_to
    metadata = dict(inquiry.metadata or {})
    metadata['attemptCount'] = inquiry.attempt_count + 1
    if previous is not None:
        metadata['previouslyTriedBy'] = _tried_by(previous, inquiry.assigned_at or inquiry.created_at)

    inquiry.assigned_to = user
    inquiry.assigned_at = timezone.now()
    inquiry.metadata = metadata
    inquiry.save(update_fields=['assigned_to', 'assigned_at', 'metadata', 'updated_at'])

    InquiryHistory.objects.create(
        inquiry=inquiry,
        user=user,
        action='ASSIGNED',
        new_status=inquiry.status,
        notes=f"Previously tried by {previous.display_name}" if previous is not None else None,
    )
    logger.info(f"Inquiry {inquiry.id} assigned to {user.username} (attempt {metadata['attemptCount']})")
    return inquiry


def release_inquiry(inquiry, user, action='RELEASED', notes=None):
    inquiry.assigned_to = None
    inquiry.assigned_at = None
    inquiry.save(update_fields=['assigned_to', 'assigned_at', 'updated_at'])
    InquiryHistory.objects.create(
        inquiry=inquiry,
        user=user,
        action=action,
        previous_status=inquiry.status,
        new_status=inquiry.status,
        notes=notes,
    )
    return inquiry


# Metadata that belongs to one lead's handling and is not carried into a copy
_COPY_EXCLUDED_METADATA = ('notes', 'isFailedLead', 'failedAt', 'attemptCount', 'previouslyTriedBy')


def copy_inquiry(inquiry, user):
    """Clone an inquiry as a new, unassigned lead"""
    metadata = {
        key: value for key, value in (inquiry.metadata or {}).items()
        if key not in _COPY_EXCLUDED_METADATA
    }
    copy = Inquiry.objects.create(
        source=inquiry.source,
        source_id=None,
        customer_name=inquiry.customer_name,
        email=inquiry.email,
        phone=inquiry.phone,
        message=inquiry.message,
        looking_for=inquiry.looking_for,
        status=Inquiry.STATUS_NEW,
        metadata=metadata,
    )
    InquiryHistory.objects.create(
        inquiry=copy,
        user=user,
        action='COPIED',
        new_status=copy.status,
        notes=f"Copied from inquiry {inquiry.id}",
    )
    logger.info(f"Inquiry {inquiry.id} copied to {copy.id} by {user.username}")
    return copy


def mark_failed_lead(inquiry, user=None):
    """Move an inquiry to the failed lead pool and unassign it"""
    now = timezone.now()
    metadata = dict(inquiry.metadata or {})
    metadata['isFailedLead'] = True
    metadata['failedAt'] = now.isoformat()
    metadata['attemptCount'] = inquiry.attempt_count + 1
    if inquiry.assigned_to is not None:
        metadata['previouslyTriedBy'] = _tried_by(inquiry.assigned_to, now)

    inquiry.metadata = metadata
    inquiry.assigned_to = None
    inquiry.assigned_at = None
    inquiry.save(update_fields=['metadata', 'assigned_to', 'assigned_at', 'updated_at'])
    InquiryHistory.objects.create(
        inquiry=inquiry,
        user=user,
        action='MARKED_FAILED',
        previous_status=inquiry.status,
        new_status=inquiry.status,
    )
    logger.info(f"Inquiry {inquiry.id} moved to failed leads")
    return inquiry


def change_inquiry_status(inquiry, new_status, user):
    """
    Move an inquiry to ``new_status`` on the kanban board.

    A lead that already went through FAILED_LEAD_ATTEMPTS assignments and is
    not being won is flagged as a failed lead.
    """
    previous_status = inquiry.status
    metadata = dict(inquiry.metadata or {})
    notes = None
    if inquiry.attempt_count >= FAILED_LEAD_ATTEMPTS and new_status != Inquiry.STATUS_CLOSED_WON:
        metadata['isFailedLead'] = True
        metadata['failedAt'] = timezone.now().isoformat()
        notes = 'Marked as failed lead after second attempt'

    inquiry.status = new_status
    inquiry.metadata = metadata
    inquiry.save(update_fields=['status', 'metadata', 'updated_at'])
    InquiryHistory.objects.create(
        inquiry=inquiry,
        user=user,
        action='STATUS_CHANGED',
        previous_status=previous_status,
        new_status=new_status,
        notes=notes,
    )
    return inquiry


def expired_assignments(days=None):
    days = days if days is not None else settings.INQUIRY_ASSIGNMENT_TTL_DAYS
    cutoff = timezone.now() - timedelta(days=days)
    return Inquiry.objects.filter(
        assigned_to__isnull=False,
        assigned_at__lte=cutoff,
    ).exclude(status=Inquiry.STATUS_CLOSED_WON)


def release_expired_assignments(days=None, dry_run=False):
    """
    Unassign inquiries held longer than ``days`` without being won.

    Returns the number of released inquiries.
    """
    days = days if days is not None else settings.INQUIRY_ASSIGNMENT_TTL_DAYS
    inquiries = list(expired_assignments(days))
    if dry_run or not inquiries:
        return len(inquiries)

    note = f"Automatically released after {days} days without conversion"
    with suspend_cache_signals():
        with transaction.atomic():
            for inquiry in inquiries:
                release_inquiry(inquiry, None, action='AUTO_RELEASED', notes=note)
    invalidate_inquiry_caches()
    logger.info(f"Auto-released {len(inquiries)} inquiries older than {days} days")
    return len(inquiries)
