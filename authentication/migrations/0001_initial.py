# Generated manually: custom user model with role, marshal and OTP columns

import uuid

from django.db import migrations, models

import authentication.models

ROLE_CHOICES = [
    ('MEDICAL_MARSHAL', 'Medical Marshal'),
    ('MEDICAL_VENDOR', 'Medical Vendor'),
    ('MEDICAL_EVACUATION', 'Medical Evacuation'),
    ('SPORT_MARSHAL', 'Sport Marshal'),
    ('SAFETY_MARSHAL', 'Safety Marshal'),
    ('MEDICAL_OP_TEAM', 'Medical Operation Team'),
    ('DEPUTY_MEDICAL_OFFICER', 'Deputy Medical Officer'),
    ('CHIEF_MEDICAL_OFFICER', 'Chief Medical Officer'),
    ('SAFETY_OP_TEAM', 'Safety Operation Team'),
    ('DEPUTY_SAFETY_OFFICER', 'Deputy Safety Officer'),
    ('SAFETY_OFFICER_CHIEF', 'Chief Safety Officer'),
    ('CONTROL_OP_TEAM', 'Control Operation Team'),
    ('DEPUTY_CONTROL_OP_OFFICER', 'Deputy Control Operation Officer'),
    ('CHIEF_OF_CONTROL', 'Chief of Control'),
    ('SCRUTINEERS', 'Scrutineers'),
    ('JUDGEMENT', 'Judgement'),
    ('ADMIN', 'Administrator'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID v4)', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated')),
                ('is_deleted', models.BooleanField(db_index=True, default=False, help_text='Soft delete flag')),
                ('deleted_at', models.DateTimeField(blank=True, help_text='Timestamp when record was soft-deleted', null=True)),
                ('email', models.EmailField(help_text='Login identifier', max_length=254, unique=True)),
                ('name', models.CharField(blank=True, help_text='Display name printed on tickets and reports', max_length=150)),
                ('role', models.CharField(choices=ROLE_CHOICES, db_index=True, default='SPORT_MARSHAL', max_length=32)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('SUSPENDED', 'Suspended')], db_index=True, default='ACTIVE', max_length=16)),
                ('is_intake_enabled', models.BooleanField(default=False, help_text='Senior officers with intake see every ticket of their department')),
                ('marshal_id', models.CharField(blank=True, help_text='Marshal licence / badge number used by the public intake forms', max_length=50, null=True, unique=True)),
                ('mobile', models.CharField(blank=True, max_length=30)),
                ('otp_code', models.CharField(blank=True, max_length=12)),
                ('otp_expires_at', models.DateTimeField(blank=True, null=True)),
                ('is_staff', models.BooleanField(default=False)),
                ('is_active', models.BooleanField(default=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'db_table': 'incident_users',
                'ordering': ['name', 'email'],
                'default_manager_name': 'objects',
                'indexes': [models.Index(fields=['role', 'status'], name='users_role_status_idx')],
            },
            managers=[
                ('objects', authentication.models.UserManager()),
            ],
        ),
    ]
