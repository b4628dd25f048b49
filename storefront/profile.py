# storefront/profile.py
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from .models import Role, User

SIGNIN_URL = "/signin"
ADMIN_DASHBOARD_URL = "/admin"
PROFILE_TABS = ["Order History", "Topup Information"]


def profile_redirect(user: Optional[User], order_id: Optional[str]) -> Optional[str]:
    """Where /profile sends the caller instead of rendering, if anywhere.

    The session is checked first: anonymous callers always go to sign in,
    even when they carry an order id.
    """
    if user is None:
        return SIGNIN_URL
    if order_id:
        return f"/order?orderId={quote(order_id, safe='')}"
    return None


def profile_actions(role: Role) -> List[str]:
    if role is Role.USER:
        return ["becomeFakeAdmin"]
    if role is Role.FAKE_ADMIN:
        return ["removeFakeAdmin"]
    return []


def profile_view(user: User) -> Dict[str, Any]:
    return {
        "title": f"{user.name}'s profile",
        "heading": user.display_name or user.name,
        "subheading": user.name if user.display_name else None,
        "email": user.email,
        "image": user.image,
        "role": user.role.value,
        "displayName": user.display_name or "",
        "actions": profile_actions(user.role),
        "adminDashboardUrl": ADMIN_DASHBOARD_URL if user.role.can_view_dashboard else None,
        "tabs": PROFILE_TABS,
        "topupInformation": dict(user.requirements or {}),
    }
