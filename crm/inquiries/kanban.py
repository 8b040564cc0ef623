"""Sales kanban board: stage columns with the assigned inquiries in each"""
import logging

from .models import Inquiry, KanbanStage
from .serializers import KanbanInquirySerializer, KanbanStageSerializer

logger = logging.getLogger(__name__)

DEFAULT_STAGES = [
    {'name': 'New', 'order': 0, 'status': Inquiry.STATUS_NEW, 'color': '#3b82f6'},
    {'name': 'Contacted', 'order': 1, 'status': Inquiry.STATUS_CONTACTED, 'color': '#8b5cf6'},
    {'name': 'Qualified', 'order': 2, 'status': Inquiry.STATUS_QUALIFIED, 'color': '#10b981'},
    {'name': 'Deposit', 'order': 3, 'status': Inquiry.STATUS_DEPOSIT, 'color': '#f59e0b'},
    {'name': 'Closed Won', 'order': 4, 'status': Inquiry.STATUS_CLOSED_WON, 'color': '#22c55e'},
    {'name': 'Closed Lost', 'order': 5, 'status': Inquiry.STATUS_CLOSED_LOST, 'color': '#6b7280'},
    {'name': 'Recurring', 'order': 6, 'status': Inquiry.STATUS_RECURRING, 'color': '#06b6d4'},
]


def ensure_default_stages():
    """Create the default columns when the board has none. Returns the number created."""
    if KanbanStage.objects.exists():
        return 0
    created = 0
    for stage in DEFAULT_STAGES:
        _, was_created = KanbanStage.objects.get_or_create(status=stage['status'], defaults=stage)
        created += int(was_created)
    logger.info(f"Created {created} default kanban stages")
    return created


def build_board(target_user_id=None):
    """
    Columns in display order with their inquiries.

    Only assigned inquiries are shown; ``target_user_id`` narrows the board
    to one assignee.
    """
    ensure_default_stages()
    inquiries = Inquiry.objects.select_related('assigned_to').filter(assigned_to__isnull=False)
    if target_user_id is not None:
        inquiries = inquiries.filter(assigned_to_id=target_user_id)

    by_status = {}
    for inquiry in inquiries.order_by('-created_at'):
        by_status.setdefault(inquiry.status, []).append(inquiry)

    board = []
    for stage in KanbanStage.objects.all().order_by('order'):
        column = KanbanStageSerializer(stage).data
        column['inquiries'] = KanbanInquirySerializer(by_status.get(stage.status, []), many=True).data
        board.append(column)
    return board
