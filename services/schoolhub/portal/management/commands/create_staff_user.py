"""Create or update a teacher or admin account.

Usage examples:
  python manage.py create_staff_user --email teacher1@example.org --organization pbs --password 'CHANGE_ME'
  python manage.py create_staff_user --email admin@example.org --role ADMIN --password 'CHANGE_ME' --first-name Ada
  python manage.py create_staff_user --email teacher1@example.org --organization pbs --password 'NEW' --update
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from portal.models import UserProfile, account_username
from portal.services.accounts import create_account, resolve_organization


class Command(BaseCommand):
    help = "Create or update a staff account (TEACHER or ADMIN) inside one organization."

    def add_arguments(self, parser):
        parser.add_argument("--email", required=True, help="Login email")
        parser.add_argument(
            "--organization",
            default=None,
            help="Organization code or login-form value (default: SCHOOLHUB_DEFAULT_ORG_CODE).",
        )
        parser.add_argument("--password", default=None, help="Password (required for new users)")
        parser.add_argument(
            "--role",
            default=UserProfile.ROLE_TEACHER,
            choices=sorted(UserProfile.STAFF_ROLES),
            help="Staff role (default: TEACHER).",
        )
        parser.add_argument("--first-name", default=None, help="First name")
        parser.add_argument("--last-name", default=None, help="Last name")
        parser.add_argument(
            "--update",
            action="store_true",
            help="Update an existing user instead of failing if the email is already registered.",
        )

        active_group = parser.add_mutually_exclusive_group()
        active_group.add_argument(
            "--active",
            action="store_true",
            help="Mark account active.",
        )
        active_group.add_argument(
            "--inactive",
            action="store_true",
            help="Mark account inactive.",
        )

    def handle(self, *args, **opts):
        email = (opts.get("email") or "").strip().lower()
        password = opts.get("password")
        role = opts["role"]
        update = bool(opts.get("update"))
        if not email:
            raise CommandError("--email is required.")

        organization = resolve_organization(opts.get("organization"))
        User = get_user_model()
        user = User.objects.filter(username=account_username(organization.id, email)).select_related("profile").first()
        exists = user is not None

        if exists and not update:
            raise CommandError(f"User '{email}' already exists in {organization.code}. Re-run with --update.")
        if not exists and update:
            raise CommandError(f"User '{email}' does not exist in {organization.code}. Remove --update to create.")

        if opts.get("active"):
            target_active, explicit_active = True, True
        elif opts.get("inactive"):
            target_active, explicit_active = False, True
        else:
            target_active, explicit_active = True, False

        if not exists:
            if not password:
                raise CommandError("--password is required when creating a new staff user.")
            user = create_account(
                organization=organization,
                email=email,
                password=password,
                first_name=opts.get("first_name") or "",
                last_name=opts.get("last_name") or "",
                role=role,
            )
            if not target_active:
                user.is_active = False
                user.save(update_fields=["is_active"])
            self.stdout.write(
                self.style.SUCCESS(
                    f"Created {role.lower()} '{email}' in {organization.code} (is_active={user.is_active})."
                )
            )
            return

        # Update existing user.
        changed_fields: list[str] = []
        password_updated = False

        profile = user.profile
        if profile.role != role:
            profile.role = role
            profile.classroom = None
            profile.save(update_fields=["role", "classroom", "updated_at"])
            changed_fields.append("role")

        if explicit_active and user.is_active != target_active:
            user.is_active = target_active
            changed_fields.append("is_active")

        for opt_name, attr in (("first_name", "first_name"), ("last_name", "last_name")):
            value = opts.get(opt_name)
            if value is not None and getattr(user, attr) != value.strip():
                setattr(user, attr, value.strip())
                changed_fields.append(attr)

        if password:
            user.set_password(password)
            password_updated = True

        user_fields = [f for f in changed_fields if f != "role"]
        if password_updated:
            user_fields.append("password")
        if user_fields:
            user.save(update_fields=user_fields)

        if changed_fields or password_updated:
            self.stdout.write(
                self.style.SUCCESS(
                    f"Updated '{email}' (changed: "
                    f"{', '.join(changed_fields + (['password'] if password_updated else []))})."
                )
            )
        else:
            self.stdout.write(self.style.WARNING(f"No changes for '{email}'."))
