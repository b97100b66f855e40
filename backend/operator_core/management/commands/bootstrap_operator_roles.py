from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand, CommandError

from operator_core.permissions import OPERATOR_ROLES


class Command(BaseCommand):
    help = "Create operator role groups and optionally grant one of them to a user."

    def add_arguments(self, parser):
        parser.add_argument("--username", help="Username of the user to grant a role to.")
        parser.add_argument("--phone", help="Phone number of the user to grant a role to.")
        parser.add_argument(
            "--role",
            default="operator_admin",
            choices=OPERATOR_ROLES,
            help="Role granted with --username/--phone (default: operator_admin).",
        )

    def handle(self, *args, **options):
        created = [
            name for name in OPERATOR_ROLES if Group.objects.get_or_create(name=name)[1]
        ]
        if created:
            self.stdout.write(self.style.SUCCESS(f"Created groups: {', '.join(created)}"))
        else:
            self.stdout.write("Operator groups already exist.")

        username, phone = options.get("username"), options.get("phone")
        if username and phone:
            raise CommandError("Provide only one of --username or --phone.")
        if not (username or phone):
            return

        lookup = {"username": username} if username else {"phone": phone}
        User = get_user_model()
        try:
            user = User.objects.get(**lookup)
        except User.DoesNotExist:
            raise CommandError("User not found for the provided identifier.")

        user.is_staff = True
        user.save(update_fields=["is_staff"])
        user.groups.add(Group.objects.get(name=options["role"]))
        self.stdout.write(self.style.SUCCESS(f"Granted {options['role']} to {user}."))
