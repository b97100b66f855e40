from typing import Iterable, Sequence

from rest_framework.permissions import BasePermission

OPERATOR_ROLES = (
    "operator_support",
    "operator_moderator",
    "operator_admin",
)


def _is_staff(request) -> bool:
    user = getattr(request, "user", None)
    return bool(user and user.is_authenticated and user.is_staff)


def operator_roles(request) -> frozenset:
    """Group names of the requesting staff user, looked up once per request."""
    cached = getattr(request, "_operator_roles", None)
    if cached is None:
        cached = frozenset(request.user.groups.values_list("name", flat=True))
        request._operator_roles = cached
    return cached


class IsOperator(BasePermission):
    """Staff users only; rental operators act on any user's rentals."""

    def has_permission(self, request, view):
        return _is_staff(request)


class HasOperatorRole(BasePermission):
    required_roles: Sequence[str] = ()

    def has_permission(self, request, view):
        if not (_is_staff(request) and self.required_roles):
            return False
        return not operator_roles(request).isdisjoint(self.required_roles)

    @classmethod
    def with_roles(cls, roles: Iterable[str]):
        """Build a permission class bound to ``roles``."""
        return type(f"{cls.__name__}WithRoles", (cls,), {"required_roles": tuple(roles)})
