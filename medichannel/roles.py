"""Per-role navigation.

Each role maps to one view class carrying its sidebar menu and the tab shown
after login. Callers ask ``view_for(role)`` instead of branching on the role.
"""
from dataclasses import dataclass
from typing import Dict, List, Type, Union

from medichannel.models import Role


@dataclass(frozen=True)
class MenuItem:
    id: str
    label: str


class RoleView:
    """Base class for role views."""
    role: Role
    menu: List[MenuItem] = []
    default_tab: str = ""

    def has_tab(self, tab: str) -> bool:
        return any(item.id == tab for item in self.menu)

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "default_tab": self.default_tab,
            "menu": [{"id": item.id, "label": item.label} for item in self.menu],
        }


class PatientView(RoleView):
    role = Role.PATIENT
    menu = [
        MenuItem("search", "Find Doctors"),
        MenuItem("appointments", "My Appointments"),
        MenuItem("history", "Medical History"),
        MenuItem("profile", "Profile"),
    ]
    default_tab = "search"


class DoctorView(RoleView):
    role = Role.DOCTOR
    menu = [
        MenuItem("schedule", "My Schedule"),
        MenuItem("appointments", "Appointments"),
        MenuItem("patients", "My Patients"),
        MenuItem("profile", "Profile"),
    ]
    default_tab = "schedule"


class AdminView(RoleView):
    role = Role.ADMIN
    menu = [
        MenuItem("dashboard", "Dashboard"),
        MenuItem("doctors", "Manage Doctors"),
        MenuItem("appointments", "All Appointments"),
        MenuItem("reports", "Reports"),
    ]
    default_tab = "dashboard"


ROLE_VIEWS: Dict[Role, Type[RoleView]] = {
    view.role: view for view in (PatientView, DoctorView, AdminView)
}


def view_for(role: Union[Role, str]) -> RoleView:
    """
    Select the view for a role.

    Raises:
        ValueError: Unknown role
    """
    return ROLE_VIEWS[Role(role)]()
