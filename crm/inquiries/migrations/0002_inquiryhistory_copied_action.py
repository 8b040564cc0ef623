# Generated manually
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('inquiries', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='inquiryhistory',
            name='action',
            field=models.CharField(choices=[('CREATED', 'Created'), ('ASSIGNED', 'Assigned'), ('RELEASED', 'Released'), ('AUTO_RELEASED', 'Auto Released'), ('STATUS_CHANGED', 'Status Changed'), ('CONVERTED', 'Converted'), ('MARKED_NOT_CONVERTED', 'Marked Not Converted'), ('MARKED_FAILED', 'Marked Failed Lead'), ('NOTE_ADDED', 'Note Added'), ('COPIED', 'Copied')], max_length=30),
        ),
    ]
