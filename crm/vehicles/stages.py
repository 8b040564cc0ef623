"""Shipping stage ordering and progress"""
from .models import SHIPPING_STAGES, SHIPPING_STAGE_CHOICES

DEFAULT_STAGE = 'PURCHASE'

STAGE_LABELS = dict(SHIPPING_STAGE_CHOICES)


def is_valid_stage(stage):
    return stage in SHIPPING_STAGES


def stage_index(stage):
    """Position of ``stage`` in the lifecycle, -1 when unknown or empty"""
    try:
        return SHIPPING_STAGES.index(stage)
    except ValueError:
        return -1


def stage_label(stage):
    return STAGE_LABELS.get(stage, stage or '')


def progress_percent(stage):
    """(index + 1) / number of stages * 100, rounded; 0 when there is no stage"""
    index = stage_index(stage)
    if index < 0:
        return 0
    return round((index + 1) / len(SHIPPING_STAGES) * 100)


def effective_stage(vehicle):
    """Stage used for kanban grouping; vehicles without one sit in PURCHASE"""
    stage = vehicle.current_shipping_stage
    if not stage:
        shipping_stage = getattr(vehicle, 'shipping_stage', None)
        stage = shipping_stage.stage if shipping_stage else None
    return stage or DEFAULT_STAGE
