"""
Account status normalization

User rows have been persisted in two shapes over time:

- ``approved`` / ``deactivated`` booleans
- ``pending_approval`` / ``is_active`` booleans

``derive_account_status`` is the only place that reads either shape. The
rule for every flag is: an explicit boolean for that flag wins, otherwise
it is derived from the other variant, otherwise a permissive default is
used (approved, not deactivated).
"""

from dataclasses import dataclass

STATUS_ACTIVE = "active"
STATUS_PENDING = "pending"
STATUS_INACTIVE = "inactive"

LOGIN_OK = None
LOGIN_INACTIVE = "INACTIVE"
LOGIN_PENDING = "PENDING_APPROVAL"


@dataclass(frozen=True)
class AccountStatus:
    approved: bool
    deactivated: bool

    @property
    def pending_approval(self):
        return not self.approved

    @property
    def is_active(self):
        return self.approved and not self.deactivated

    @property
    def label(self):
        if self.deactivated:
            return STATUS_INACTIVE
        if not self.approved:
            return STATUS_PENDING
        return STATUS_ACTIVE

    def login_block(self, is_admin=False):
        """Error code that blocks login, or None. Deactivation is checked first."""
        if self.deactivated:
            return LOGIN_INACTIVE
        if not self.approved and not is_admin:
            return LOGIN_PENDING
        return LOGIN_OK

    def to_dict(self):
        return {
            "approved": self.approved,
            "deactivated": self.deactivated,
            "pending_approval": self.pending_approval,
            "is_active": self.is_active,
            "status": self.label,
        }


def _flag(row, name):
    value = row.get(name) if isinstance(row, dict) else getattr(row, name, None)
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "t", "1", "yes"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "f", "0", "no"):
        return False
    return None


def derive_account_status(row):
    """
    Build an AccountStatus from a dict or object in either schema variant.

    approved:    ``approved`` if set, else ``not pending_approval``, else True
    deactivated: ``deactivated`` if set, else ``not is_active``, else False

    Unrecognised values (None, junk strings) count as unset.
    """
    approved = _flag(row, "approved")
    pending = _flag(row, "pending_approval")
    if approved is None:
        approved = not pending if pending is not None else True

    deactivated = _flag(row, "deactivated")
    active = _flag(row, "is_active")
    if deactivated is None:
        deactivated = (active is False) if active is not None else False

    return AccountStatus(approved=approved, deactivated=deactivated)
