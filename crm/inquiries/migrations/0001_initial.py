# Generated manually
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

INQUIRY_STATUS_CHOICES = [
    ('NEW', 'New'), ('CONTACTED', 'Contacted'), ('QUALIFIED', 'Qualified'), ('DEPOSIT', 'Deposit'),
    ('CLOSED_WON', 'Closed Won'), ('CLOSED_LOST', 'Closed Lost'), ('RECURRING', 'Recurring'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('parties', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Inquiry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('source', models.CharField(choices=[('WHATSAPP', 'WhatsApp'), ('EMAIL', 'Email'), ('WEB', 'Web'), ('CHATBOT', 'Chatbot'), ('JCT_STOCK_INQUIRY', 'JCT Stock Inquiry'), ('STOCK_INQUIRY', 'Stock Inquiry'), ('ONBOARDING_FORM', 'Onboarding Form'), ('CONTACT_US_INQUIRY_FORM', 'Contact Us Inquiry Form'), ('HERO_INQUIRY', 'Hero Inquiry'), ('INQUIRY_FORM', 'Inquiry Form')], max_length=40)),
                ('source_id', models.CharField(blank=True, max_length=255, null=True)),
                ('customer_name', models.CharField(max_length=200)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('phone', models.CharField(blank=True, max_length=40, null=True)),
                ('message', models.TextField(blank=True, null=True)),
                ('looking_for', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=INQUIRY_STATUS_CHOICES, db_index=True, default='NEW', max_length=20)),
                ('assigned_at', models.DateTimeField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_inquiries', to=settings.AUTH_USER_MODEL)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='inquiries', to='parties.customer')),
            ],
            options={
                'db_table': 'inquiries',
                'ordering': ['-created_at'],
                'verbose_name_plural': 'inquiries',
                'indexes': [models.Index(fields=['assigned_to', 'status'], name='inquiries_assigne_8c41d2_idx'), models.Index(fields=['-created_at'], name='inquiries_created_2e9f57_idx')],
            },
        ),
        migrations.CreateModel(
            name='KanbanStage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('order', models.PositiveIntegerField(default=0)),
                ('color', models.CharField(default='#3b82f6', max_length=20)),
                ('status', models.CharField(choices=INQUIRY_STATUS_CHOICES, max_length=20, unique=True)),
            ],
            options={
                'db_table': 'kanban_stages',
                'ordering': ['order'],
            },
        ),
        migrations.CreateModel(
            name='InquiryHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('CREATED', 'Created'), ('ASSIGNED', 'Assigned'), ('RELEASED', 'Released'), ('AUTO_RELEASED', 'Auto Released'), ('STATUS_CHANGED', 'Status Changed'), ('CONVERTED', 'Converted'), ('MARKED_NOT_CONVERTED', 'Marked Not Converted'), ('MARKED_FAILED', 'Marked Failed Lead'), ('NOTE_ADDED', 'Note Added')], max_length=30)),
                ('previous_status', models.CharField(blank=True, choices=INQUIRY_STATUS_CHOICES, max_length=20, null=True)),
                ('new_status', models.CharField(blank=True, choices=INQUIRY_STATUS_CHOICES, max_length=20, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('inquiry', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='history', to='inquiries.inquiry')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='inquiry_history', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'inquiry_history',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='InquiryNote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('content', models.TextField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('inquiry', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notes', to='inquiries.inquiry')),
                ('user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='inquiry_notes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'inquiry_notes',
                'ordering': ['-created_at'],
            },
        ),
    ]
