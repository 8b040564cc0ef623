import secrets

from django.db import models
from crm.core.models import User


class Customer(models.Model):
    """Vehicle buyers"""
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=40, blank=True, null=True)
    country = models.CharField(max_length=100, blank=True, null=True)
    billing_address = models.TextField(blank=True, null=True)
    shipping_address = models.TextField(blank=True, null=True)
    port_of_destination = models.CharField(max_length=200, blank=True, null=True)
    assigned_to = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_customers')
    share_token = models.CharField(max_length=64, unique=True, null=True, blank=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @staticmethod
    def generate_share_token():
        """32 random bytes, hex encoded"""
        return secrets.token_hex(32)

    class Meta:
        db_table = 'customers'
        ordering = ['name']
        indexes = [
            models.Index(fields=['name'], name='customers_name_5b8e21_idx'),
            models.Index(fields=['email'], name='customers_email_3d7a90_idx'),
        ]


class Vendor(models.Model):
    """Dealers, auction houses, transporters, forwarders and yards we pay"""
    CATEGORY_CHOICES = [
        ('DEALERSHIP', 'Dealership'),
        ('AUCTION_HOUSE', 'Auction House'),
        ('TRANSPORT_VENDOR', 'Transport Vendor'),
        ('GARAGE', 'Garage'),
        ('FREIGHT_VENDOR', 'Freight Vendor'),
        ('FORWARDING_VENDOR', 'Forwarding Vendor'),
        ('FORWARDER', 'Forwarder'),
        ('SHIPPING_AGENT', 'Shipping Agent'),
        ('YARD', 'Yard'),
    ]

    name = models.CharField(max_length=200)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=40, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'vendors'
        ordering = ['name']
