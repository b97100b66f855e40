from __future__ import annotations

from typing import Iterable

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from users.models import WEEKDAYS, default_credit_balance

User = get_user_model()

FIRST_NAMES = [
    "Anjali",
    "Rahul",
    "Meera",
    "Arjun",
    "Diya",
    "Kiran",
    "Nisha",
    "Vikram",
    "Sneha",
    "Aditya",
]

GENDERS = ["female", "male"]

PRESET_LOCATIONS = [
    {"id": "loc-1", "name": "Marine Drive"},
    {"id": "loc-2", "name": "Fort Kochi Beach"},
    {"id": "loc-3", "name": "Lulu Mall"},
    {"id": "loc-4", "name": "Kaloor Stadium"},
]

# Hour blocks cycled across seeded users.
AVAILABILITY_BLOCKS = [range(9, 13), range(12, 18), range(17, 22)]


def phone_generator(existing_numbers: set[str], start: int = 9190000000) -> Iterable[str]:
    current = start
    while True:
        phone = f"+{current:012d}"
        current += 1
        if phone in existing_numbers:
            continue
        existing_numbers.add(phone)
        yield phone


def profile_seed(index: int, city: str) -> dict:
    gender = GENDERS[index % len(GENDERS)]
    block = AVAILABILITY_BLOCKS[index % len(AVAILABILITY_BLOCKS)]
    return {
        "name": FIRST_NAMES[index % len(FIRST_NAMES)],
        "gender": gender,
        "age": 21 + (index * 3) % 15,
        "city": city,
        "bio": "Happy to show you around town.",
        "interests": ["coffee", "walks"] if index % 2 else ["movies", "food"],
        "preferred_gender": [GENDERS[(index + 1) % len(GENDERS)]],
        "preferred_age_min": 20,
        "preferred_age_max": 40,
        "preset_locations": [
            PRESET_LOCATIONS[index % len(PRESET_LOCATIONS)],
            PRESET_LOCATIONS[(index + 1) % len(PRESET_LOCATIONS)],
        ],
        "availability": {day: list(block) for day in WEEKDAYS},
    }


class Command(BaseCommand):
    help = "Create seed users with matching profiles, preset locations and availability."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--count", type=int, default=10, help="Number of users to create.")
        parser.add_argument("--city", default="Kochi", help="City for the seeded users.")
        parser.add_argument(
            "--password",
            type=str,
            default="test-pass",
            help="Password for newly created users.",
        )
        parser.add_argument(
            "--credits",
            type=int,
            default=None,
            help="Starting credit balance (defaults to USER_DEFAULT_CREDITS).",
        )

    def handle(self, *args, **options) -> None:
        count = options["count"]
        if count < 0:
            raise CommandError("--count must be >= 0.")
        credits = options["credits"]
        if credits is None:
            credits = default_credit_balance()
        if credits < 0:
            raise CommandError("--credits must be >= 0.")

        base_username = "seeduser"
        with transaction.atomic():
            existing_phones = set(
                User.objects.exclude(phone__isnull=True).values_list("phone", flat=True)
            )
            phone_iter = phone_generator(existing_phones)
            existing_usernames = set(
                User.objects.filter(username__startswith=base_username).values_list(
                    "username", flat=True
                )
            )
            index = 1
            for _ in range(count):
                while f"{base_username}{index}" in existing_usernames:
                    index += 1
                User.objects.create_user(
                    username=f"{base_username}{index}",
                    phone=next(phone_iter),
                    password=options["password"],
                    credits_balance=credits,
                    **profile_seed(index, options["city"]),
                )
                index += 1

        self.stdout.write(self.style.SUCCESS(f"Created users: {count}"))
