# Generated manually
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='user',
            name='admin_notes',
            field=models.TextField(blank=True, null=True),
        ),
        migrations.AlterField(
            model_name='auditlog',
            name='action',
            field=models.CharField(choices=[('create', 'Create'), ('update', 'Update'), ('delete', 'Delete'), ('login', 'Login'), ('signup', 'Signup'), ('invite', 'User Invited'), ('plan_change', 'Plan Changed'), ('trial_change', 'Trial Changed'), ('seat_sync', 'Seat Sync'), ('quote_send', 'Quote Sent'), ('quote_accept', 'Quote Accepted'), ('quote_decline', 'Quote Declined'), ('invoice_create', 'Invoice Created'), ('bulk_update', 'Bulk Update'), ('bulk_delete', 'Bulk Delete'), ('user_suspend', 'User Suspended'), ('user_unsuspend', 'User Unsuspended'), ('user_soft_delete', 'User Login Disabled'), ('user_hard_delete', 'User Deleted')], max_length=50),
        ),
    ]
