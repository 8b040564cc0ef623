from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Staff user with a single business role"""
    ROLE_SALES = 'SALES'
    ROLE_MANAGER = 'MANAGER'
    ROLE_ADMIN = 'ADMIN'
    ROLE_BACK_OFFICE = 'BACK_OFFICE_STAFF'
    ROLE_ACCOUNTANT = 'ACCOUNTANT'

    ROLE_CHOICES = [
        (ROLE_SALES, 'Sales'),
        (ROLE_MANAGER, 'Manager'),
        (ROLE_ADMIN, 'Admin'),
        (ROLE_BACK_OFFICE, 'Back Office Staff'),
        (ROLE_ACCOUNTANT, 'Accountant'),
    ]

    role = models.CharField(max_length=30, choices=ROLE_CHOICES, default=ROLE_SALES, db_index=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    class Meta:
        db_table = 'users'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('role_change', 'Role Changed'),
        ('invoice_create', 'Invoice Created'),
        ('invoice_update', 'Invoice Updated'),
        ('invoice_submit', 'Invoice Submitted'),
        ('invoice_approve', 'Invoice Approved'),
        ('invoice_reject', 'Invoice Rejected'),
        ('invoice_finalize', 'Invoice Finalized'),
        ('invoice_unlock', 'Invoice Unlocked'),
        ('invoice_share', 'Invoice Shared'),
        ('payment_status_change', 'Payment Status Changed'),
        ('wallet_apply', 'Applied From Wallet'),
        ('transaction_create', 'Transaction Created'),
        ('transaction_update', 'Transaction Updated'),
        ('transaction_delete', 'Transaction Deleted'),
        ('stage_change', 'Shipping Stage Changed'),
        ('share_token_generate', 'Share Token Generated'),
        ('share_token_revoke', 'Share Token Revoked'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., customer name, invoice number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., invoice number, VIN)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_7c2b1e_idx'),
            models.Index(fields=['action'], name='audit_logs_action_4f0d9a_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_1a6e3c_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_object__9b2f4d_idx'),
        ]
