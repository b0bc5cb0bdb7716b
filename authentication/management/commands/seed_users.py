"""
Management command to seed demo users.

Usage:
    python manage.py seed_users [--force]

Creates one account per role. Log in with the email (or marshal id) and the
development OTP code (OTP_FIXED_CODE, "3333" by default).
"""

from django.core.management.base import BaseCommand

from authentication.models import User, UserRole, UserStatus


DEMO_USERS = [
    {'email': 'admin@race.local', 'name': 'System Admin', 'role': UserRole.ADMIN,
     'is_superuser': True, 'is_staff': True},
    {'email': 'medical.marshal@race.local', 'name': 'Medical Marshal', 'role': UserRole.MEDICAL_MARSHAL,
     'marshal_id': 'MM-001', 'mobile': '+10000000001'},
    {'email': 'medical.vendor@race.local', 'name': 'Medical Vendor', 'role': UserRole.MEDICAL_VENDOR},
    {'email': 'evacuation@race.local', 'name': 'Medical Evacuation', 'role': UserRole.MEDICAL_EVACUATION},
    {'email': 'sport.marshal@race.local', 'name': 'Sport Marshal', 'role': UserRole.SPORT_MARSHAL,
     'marshal_id': 'SM-001', 'mobile': '+10000000002'},
    {'email': 'safety.marshal@race.local', 'name': 'Safety Marshal', 'role': UserRole.SAFETY_MARSHAL,
     'marshal_id': 'FM-001', 'mobile': '+10000000003'},
    {'email': 'medical.ops@race.local', 'name': 'Medical Ops', 'role': UserRole.MEDICAL_OP_TEAM},
    {'email': 'deputy.medical@race.local', 'name': 'Deputy Medical Officer', 'role': UserRole.DEPUTY_MEDICAL_OFFICER},
    {'email': 'chief.medical@race.local', 'name': 'Chief Medical Officer', 'role': UserRole.CHIEF_MEDICAL_OFFICER},
    {'email': 'safety.ops@race.local', 'name': 'Safety Ops', 'role': UserRole.SAFETY_OP_TEAM},
    {'email': 'deputy.safety@race.local', 'name': 'Deputy Safety Officer', 'role': UserRole.DEPUTY_SAFETY_OFFICER},
    {'email': 'chief.safety@race.local', 'name': 'Chief Safety Officer', 'role': UserRole.SAFETY_OFFICER_CHIEF},
    {'email': 'control.ops@race.local', 'name': 'Control Ops', 'role': UserRole.CONTROL_OP_TEAM},
    {'email': 'deputy.control@race.local', 'name': 'Deputy Control Officer', 'role': UserRole.DEPUTY_CONTROL_OP_OFFICER},
    {'email': 'chief.control@race.local', 'name': 'Chief of Control', 'role': UserRole.CHIEF_OF_CONTROL,
     'is_intake_enabled': True},
    {'email': 'scrutineer@race.local', 'name': 'Scrutineer', 'role': UserRole.SCRUTINEERS},
    {'email': 'judge@race.local', 'name': 'Judge', 'role': UserRole.JUDGEMENT},
]


class Command(BaseCommand):
    help = 'Seed one demo user per role'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Reset role and status even if users already exist',
        )

    def handle(self, *args, **options):
        force = options['force']
        created_count = 0
        updated_count = 0

        for entry in DEMO_USERS:
            user_data = dict(entry)
            email = user_data.pop('email')

            try:
                user = User.objects.get(email=email)
                if force:
                    for field, value in user_data.items():
                        setattr(user, field, value)
                    user.status = UserStatus.ACTIVE
                    user.is_active = True
                    user.save()
                    updated_count += 1
                    self.stdout.write(self.style.WARNING(
                        f'  Updated: {email} ({user.role})'
                    ))
                else:
                    self.stdout.write(self.style.NOTICE(
                        f'  Exists:  {email} ({user.role}), use --force to reset'
                    ))
            except User.DoesNotExist:
                user = User.objects.create_user(email=email, **user_data)
                created_count += 1
                self.stdout.write(self.style.SUCCESS(
                    f'  Created: {email} ({user.role})'
                ))

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS(
            f'Done! Created: {created_count}, Updated: {updated_count}'
        ))
