"""
Tests for vehicles, shipping stages, stage costs, documents and the shipping kanban
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from crm.core.test_utils import TestDataFactory, APITestCase
from crm.core.models import User, AuditLog
from crm.vehicles.models import Vehicle, VehicleShippingStage, VehicleStageHistory, VehicleDocument
from crm.vehicles.stages import progress_percent, effective_stage, stage_index


class StageHelperTests(TestCase):
    """Stage ordering and progress"""

    def test_progress_percent(self):
        self.assertEqual(progress_percent('PURCHASE'), 14)
        self.assertEqual(progress_percent('BOOKING'), 71)
        self.assertEqual(progress_percent('DHL'), 100)
        self.assertEqual(progress_percent(None), 0)
        self.assertEqual(progress_percent('SUNK'), 0)

    def test_stage_index(self):
        self.assertEqual(stage_index('PURCHASE'), 0)
        self.assertEqual(stage_index(''), -1)

    def test_vehicle_without_stage_sits_in_purchase(self):
        vehicle = Vehicle.objects.create(vin='JTMHV05J604123456')
        self.assertEqual(effective_stage(vehicle), 'PURCHASE')

    def test_shipping_record_used_when_vehicle_stage_missing(self):
        vehicle = Vehicle.objects.create(vin='JTMHV05J604654321')
        VehicleShippingStage.objects.create(vehicle=vehicle, stage='REPAIR')
        vehicle = Vehicle.objects.select_related('shipping_stage').get(pk=vehicle.pk)
        self.assertEqual(effective_stage(vehicle), 'REPAIR')


class VehicleAPITests(APITestCase):
    """Vehicle endpoints"""

    def setUp(self):
        super().setUp()
        self.user = self.login(TestDataFactory.create_user())

    def test_create_vehicle_opens_purchase_stage(self):
        customer = TestDataFactory.create_customer()
        response = self.client.post('/api/v1/vehicles/', {
            'vin': ' jtmhv05j604111111 ',
            'make': 'Toyota',
            'model': 'Hilux',
            'year': 2019,
            'customer': customer.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['vin'], 'JTMHV05J604111111')
        self.assertEqual(response.data['stage'], 'PURCHASE')
        self.assertEqual(response.data['progress'], 14)

        vehicle = Vehicle.objects.get(vin='JTMHV05J604111111')
        self.assertEqual(vehicle.shipping_stage.stage, 'PURCHASE')
        history = VehicleStageHistory.objects.get(vehicle=vehicle)
        self.assertIsNone(history.previous_stage)
        self.assertEqual(history.new_stage, 'PURCHASE')
        self.assertEqual(history.user, self.user)

    def test_duplicate_vin_rejected(self):
        TestDataFactory.create_vehicle(vin='JTMHV05J604222222')
        response = self.client.post('/api/v1/vehicles/', {'vin': 'jtmhv05j604222222'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('vin', response.data)

    def test_search_by_vin(self):
        TestDataFactory.create_vehicle(vin='JTMHV05J604333333')
        TestDataFactory.create_vehicle(vin='WDB1234567890ABCD')
        response = self.client.get('/api/v1/vehicles/', {'search': '3333'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([v['vin'] for v in response.data], ['JTMHV05J604333333'])

    def test_only_admin_can_delete(self):
        vehicle = TestDataFactory.create_vehicle()
        response = self.client.delete(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_vehicle_with_invoice_cannot_be_deleted(self):
        admin = self.login(TestDataFactory.create_admin())
        invoice = TestDataFactory.create_invoice(admin)
        response = self.client.delete(f'/api/v1/vehicles/{invoice.vehicle_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_payment_summary(self):
        admin = TestDataFactory.create_admin()
        invoice = TestDataFactory.create_invoice(admin)
        TestDataFactory.create_transaction(customer=invoice.customer, invoice=invoice, amount='400000')
        response = self.client.get(f'/api/v1/vehicles/{invoice.vehicle_id}/payments/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(str(response.data['total_charges'])), Decimal('1000000.00'))
        self.assertEqual(Decimal(str(response.data['total_received'])), Decimal('400000.00'))
        self.assertEqual(Decimal(str(response.data['balance_due'])), Decimal('600000.00'))
        self.assertFalse(response.data['purchase_paid'])
        self.assertEqual(len(response.data['payments']), 1)


class VehicleStageAPITests(APITestCase):
    """Stage details and transitions"""

    def setUp(self):
        super().setUp()
        self.back_office = self.login(TestDataFactory.create_user(role=User.ROLE_BACK_OFFICE))
        self.vehicle = TestDataFactory.create_vehicle()

    def test_get_stages(self):
        response = self.client.get(f'/api/v1/vehicles/{self.vehicle.id}/stages/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stage'], 'PURCHASE')
        self.assertEqual(response.data['shipping_stage']['stage'], 'PURCHASE')

    def test_change_stage_records_history(self):
        response = self.client.patch(f'/api/v1/vehicles/{self.vehicle.id}/stages/', {
            'stage': 'TRANSPORT',
            'transport_arranged': True,
            'stageNotes': 'Truck booked',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stage'], 'TRANSPORT')
        self.assertTrue(response.data['shipping_stage']['transport_arranged'])

        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.current_shipping_stage, 'TRANSPORT')
        history = VehicleStageHistory.objects.get(vehicle=self.vehicle)
        self.assertEqual(history.action, 'Stage changed from PURCHASE to TRANSPORT')
        self.assertEqual(history.notes, 'Truck booked')
        self.assertTrue(AuditLog.objects.filter(action='stage_change', object_id=str(self.vehicle.id)).exists())

    def test_same_stage_adds_no_history(self):
        response = self.client.patch(f'/api/v1/vehicles/{self.vehicle.id}/stages/', {'stage': 'PURCHASE'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(VehicleStageHistory.objects.filter(vehicle=self.vehicle).exists())

    def test_invalid_stage_rejected(self):
        response = self.client.patch(f'/api/v1/vehicles/{self.vehicle.id}/stages/', {'stage': 'SUNK'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sales_cannot_change_stage(self):
        self.login(TestDataFactory.create_user())
        response = self.client.patch(f'/api/v1/vehicles/{self.vehicle.id}/stages/', {'stage': 'TRANSPORT'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ShippingKanbanTests(APITestCase):
    """Shipping kanban board"""

    def setUp(self):
        super().setUp()
        self.manager = self.login(TestDataFactory.create_user(role=User.ROLE_MANAGER))

    def _stage(self, response, stage):
        return next(s for s in response.data['stages'] if s['id'] == stage)

    def test_board_groups_vehicles_by_stage(self):
        TestDataFactory.create_vehicle(stage='PURCHASE')
        TestDataFactory.create_vehicle(stage='BOOKING')
        response = self.client.get('/api/v1/shipping-kanban/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['stages']), 7)
        self.assertEqual(self._stage(response, 'BOOKING')['name'], 'Booking')
        self.assertEqual(len(self._stage(response, 'BOOKING')['vehicles']), 1)
        self.assertEqual(self._stage(response, 'DHL')['name'], 'Completed')

    def test_sales_sees_vehicles_of_assigned_customers(self):
        sales = self.login(TestDataFactory.create_user())
        mine = TestDataFactory.create_customer(assigned_to=sales)
        TestDataFactory.create_vehicle(customer=mine)
        TestDataFactory.create_vehicle(customer=TestDataFactory.create_customer())
        response = self.client.get('/api/v1/shipping-kanban/')
        self.assertEqual(len(self._stage(response, 'PURCHASE')['vehicles']), 1)

    def test_move_to_dhl_stores_tracking(self):
        vehicle = TestDataFactory.create_vehicle(stage='SHIPPED')
        response = self.client.patch('/api/v1/shipping-kanban/', {
            'vehicleId': vehicle.id, 'newStage': 'DHL', 'dhlTracking': '1234567890',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['current_shipping_stage'], 'DHL')
        self.assertEqual(response.data['dhl_tracking'], '1234567890')

    def test_tracking_ignored_before_dhl(self):
        vehicle = TestDataFactory.create_vehicle()
        self.client.patch('/api/v1/shipping-kanban/', {
            'vehicleId': vehicle.id, 'newStage': 'TRANSPORT', 'dhlTracking': '1234567890',
        }, format='json')
        self.assertIsNone(VehicleShippingStage.objects.get(vehicle=vehicle).dhl_tracking)

    def test_move_refreshes_cached_board(self):
        vehicle = TestDataFactory.create_vehicle()
        self.client.get('/api/v1/shipping-kanban/')
        self.client.patch('/api/v1/shipping-kanban/', {'vehicleId': vehicle.id, 'newStage': 'REPAIR'},
                          format='json')
        response = self.client.get('/api/v1/shipping-kanban/')
        self.assertEqual(len(self._stage(response, 'REPAIR')['vehicles']), 1)
        self.assertEqual(len(self._stage(response, 'PURCHASE')['vehicles']), 0)

    def test_missing_fields(self):
        response = self.client.patch('/api/v1/shipping-kanban/', {'newStage': 'REPAIR'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_vehicle(self):
        response = self.client.patch('/api/v1/shipping-kanban/', {'vehicleId': 999999, 'newStage': 'REPAIR'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_malformed_ids(self):
        response = self.client.patch('/api/v1/shipping-kanban/', {'vehicleId': 'abc', 'newStage': 'REPAIR'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.get('/api/v1/shipping-kanban/', {'customerId': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/vehicles/', {'customer': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sales_cannot_move_vehicles(self):
        self.login(TestDataFactory.create_user())
        vehicle = TestDataFactory.create_vehicle()
        response = self.client.patch('/api/v1/shipping-kanban/', {'vehicleId': vehicle.id, 'newStage': 'REPAIR'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class StageCostAndDocumentTests(APITestCase):
    """Stage costs and vehicle documents"""

    def setUp(self):
        super().setUp()
        self.accountant = self.login(TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT))
        self.vehicle = TestDataFactory.create_vehicle()

    def test_add_stage_cost(self):
        vendor = TestDataFactory.create_vendor(category='TRANSPORT_VENDOR')
        response = self.client.post(f'/api/v1/vehicles/{self.vehicle.id}/costs/', {
            'stage': 'TRANSPORT', 'cost_type': 'Trucking', 'amount': '35000', 'vendor': vendor.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['vendor_name'], vendor.name)
        self.assertEqual(self.vehicle.stage_costs.count(), 1)

    def test_cost_amount_must_be_positive(self):
        response = self.client.post(f'/api/v1/vehicles/{self.vehicle.id}/costs/', {
            'stage': 'TRANSPORT', 'cost_type': 'Trucking', 'amount': '0',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sales_cannot_add_costs(self):
        self.login(TestDataFactory.create_user())
        response = self.client.post(f'/api/v1/vehicles/{self.vehicle.id}/costs/', {
            'stage': 'TRANSPORT', 'cost_type': 'Trucking', 'amount': '35000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_documents_filtered_by_category(self):
        sales = self.login(TestDataFactory.create_user())
        response = self.client.post(f'/api/v1/vehicles/{self.vehicle.id}/documents/', {
            'name': 'Auction sheet', 'category': 'AUCTION_SHEET', 'file_url': 'https://files.test/as.pdf',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        VehicleDocument.objects.create(vehicle=self.vehicle, name='Photos', category='PHOTOS',
                                       file_url='https://files.test/p.zip')

        response = self.client.get(f'/api/v1/vehicles/{self.vehicle.id}/documents/', {'category': 'AUCTION_SHEET'})
        self.assertEqual([d['name'] for d in response.data], ['Auction sheet'])
        self.assertEqual(response.data[0]['uploaded_by']['id'], sales.id)

    def test_only_uploader_or_stage_manager_deletes_document(self):
        uploader = TestDataFactory.create_user()
        document = VehicleDocument.objects.create(vehicle=self.vehicle, name='Photos', category='PHOTOS',
                                                  file_url='https://files.test/p.zip', uploaded_by=uploader)
        self.login(TestDataFactory.create_user())
        response = self.client.delete(f'/api/v1/vehicles/{self.vehicle.id}/documents/{document.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.login(uploader)
        response = self.client.delete(f'/api/v1/vehicles/{self.vehicle.id}/documents/{document.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
