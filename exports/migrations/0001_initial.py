# Generated manually: PDF export ledger

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('tickets', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='TicketExport',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('verify_token', models.CharField(max_length=16, unique=True)),
                ('snapshot', models.JSONField(default=dict, help_text='Ticket state at export time')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('exported_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('ticket', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='exports', to='tickets.ticket')),
            ],
            options={
                'db_table': 'ticket_exports',
                'ordering': ['-created_at'],
            },
        ),
    ]
