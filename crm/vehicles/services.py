"""Vehicle lifecycle: creation with its shipping record and stage transitions"""
import logging

from django.db import transaction

from crm.core.utils import create_audit_log
from .models import Vehicle, VehicleShippingStage, VehicleStageHistory
from .stages import DEFAULT_STAGE

logger = logging.getLogger(__name__)


@transaction.atomic
def create_vehicle(serializer, user):
    """Save a validated vehicle serializer and open its shipping record at PURCHASE"""
    vehicle = serializer.save(created_by=user, current_shipping_stage=DEFAULT_STAGE)
    VehicleShippingStage.objects.get_or_create(vehicle=vehicle, defaults={'stage': DEFAULT_STAGE})
    VehicleStageHistory.objects.create(
        vehicle=vehicle,
        previous_stage=None,
        new_stage=DEFAULT_STAGE,
        action='Vehicle created',
        user=user,
    )
    logger.info(f"Vehicle {vehicle.vin} (ID: {vehicle.id}) created by {user.username}")
    return vehicle


def change_vehicle_stage(vehicle, new_stage, user, request=None, notes=None, dhl_tracking=None):
    """
    Move ``vehicle`` to ``new_stage``, keeping the vehicle, its shipping record
    and the stage history in step. Returns the previous stage.

    A tracking number is only stored when the vehicle reaches DHL.
    """
    with transaction.atomic():
        vehicle = Vehicle.objects.select_for_update().get(pk=vehicle.pk)
        shipping_stage, _ = VehicleShippingStage.objects.get_or_create(
            vehicle=vehicle, defaults={'stage': new_stage}
        )
        previous_stage = vehicle.current_shipping_stage or shipping_stage.stage

        shipping_stage.stage = new_stage
        update_fields = ['stage', 'updated_at']
        if new_stage == 'DHL' and dhl_tracking:
            shipping_stage.dhl_tracking = dhl_tracking
            update_fields.append('dhl_tracking')
        shipping_stage.save(update_fields=update_fields)

        if previous_stage == new_stage and vehicle.current_shipping_stage == new_stage:
            return previous_stage

        vehicle.current_shipping_stage = new_stage
        vehicle.save(update_fields=['current_shipping_stage', 'updated_at'])

        VehicleStageHistory.objects.create(
            vehicle=vehicle,
            previous_stage=previous_stage or None,
            new_stage=new_stage,
            action=f"Stage changed from {previous_stage or 'N/A'} to {new_stage}",
            notes=notes or None,
            user=user,
        )

    create_audit_log(
        request=request,
        user=user,
        action='stage_change',
        model_name='Vehicle',
        object_id=str(vehicle.id),
        object_name=str(vehicle),
        object_reference=vehicle.vin,
        changes={'stage': {'old': previous_stage, 'new': new_stage}},
    )
    logger.info(f"Vehicle {vehicle.vin} moved from {previous_stage} to {new_stage}")
    return previous_stage
