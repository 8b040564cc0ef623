from django.db import models
from crm.core.models import User
from crm.parties.models import Customer


class Inquiry(models.Model):
    """Sales lead coming from a web form, chat, e-mail or a manual entry"""
    SOURCE_CHOICES = [
        ('WHATSAPP', 'WhatsApp'),
        ('EMAIL', 'Email'),
        ('WEB', 'Web'),
        ('CHATBOT', 'Chatbot'),
        ('JCT_STOCK_INQUIRY', 'JCT Stock Inquiry'),
        ('STOCK_INQUIRY', 'Stock Inquiry'),
        ('ONBOARDING_FORM', 'Onboarding Form'),
        ('CONTACT_US_INQUIRY_FORM', 'Contact Us Inquiry Form'),
        ('HERO_INQUIRY', 'Hero Inquiry'),
        ('INQUIRY_FORM', 'Inquiry Form'),
    ]

    STATUS_NEW = 'NEW'
    STATUS_CONTACTED = 'CONTACTED'
    STATUS_QUALIFIED = 'QUALIFIED'
    STATUS_DEPOSIT = 'DEPOSIT'
    STATUS_CLOSED_WON = 'CLOSED_WON'
    STATUS_CLOSED_LOST = 'CLOSED_LOST'
    STATUS_RECURRING = 'RECURRING'

    STATUS_CHOICES = [
        (STATUS_NEW, 'New'),
        (STATUS_CONTACTED, 'Contacted'),
        (STATUS_QUALIFIED, 'Qualified'),
        (STATUS_DEPOSIT, 'Deposit'),
        (STATUS_CLOSED_WON, 'Closed Won'),
        (STATUS_CLOSED_LOST, 'Closed Lost'),
        (STATUS_RECURRING, 'Recurring'),
    ]

    source = models.CharField(max_length=40, choices=SOURCE_CHOICES)
    source_id = models.CharField(max_length=255, blank=True, null=True)
    customer_name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=40, blank=True, null=True)
    message = models.TextField(blank=True, null=True)
    looking_for = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NEW, db_index=True)
    assigned_to = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_inquiries')
    assigned_at = models.DateTimeField(null=True, blank=True)
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='inquiries')
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.customer_name} ({self.get_source_display()})"

    @property
    def attempt_count(self):
        return int((self.metadata or {}).get('attemptCount') or 0)

    @property
    def is_failed_lead(self):
        return bool((self.metadata or {}).get('isFailedLead'))

    class Meta:
        db_table = 'inquiries'
        ordering = ['-created_at']
        verbose_name_plural = 'inquiries'
        indexes = [
            models.Index(fields=['assigned_to', 'status'], name='inquiries_assigne_8c41d2_idx'),
            models.Index(fields=['-created_at'], name='inquiries_created_2e9f57_idx'),
        ]


class KanbanStage(models.Model):
    """Column of the sales kanban board"""
    name = models.CharField(max_length=100)
    order = models.PositiveIntegerField(default=0)
    color = models.CharField(max_length=20, default='#3b82f6')
    status = models.CharField(max_length=20, choices=Inquiry.STATUS_CHOICES, unique=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'kanban_stages'
        ordering = ['order']


class InquiryHistory(models.Model):
    """Assignment and status trail of an inquiry"""
    ACTION_CHOICES = [
        ('CREATED', 'Created'),
        ('ASSIGNED', 'Assigned'),
        ('RELEASED', 'Released'),
        ('AUTO_RELEASED', 'Auto Released'),
        ('STATUS_CHANGED', 'Status Changed'),
        ('CONVERTED', 'Converted'),
        ('MARKED_NOT_CONVERTED', 'Marked Not Converted'),
        ('MARKED_FAILED', 'Marked Failed Lead'),
        ('NOTE_ADDED', 'Note Added'),
        ('COPIED', 'Copied'),
    ]

    inquiry = models.ForeignKey(Inquiry, on_delete=models.CASCADE, related_name='history')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='inquiry_history')
    action = models.CharField(max_length=30, choices=ACTION_CHOICES)
    previous_status = models.CharField(max_length=20, choices=Inquiry.STATUS_CHOICES, blank=True, null=True)
    new_status = models.CharField(max_length=20, choices=Inquiry.STATUS_CHOICES, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'inquiry_history'
        ordering = ['-created_at']


class InquiryNote(models.Model):
    inquiry = models.ForeignKey(Inquiry, on_delete=models.CASCADE, related_name='notes')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='inquiry_notes')
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'inquiry_notes'
        ordering = ['-created_at']
