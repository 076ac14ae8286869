import secrets
from datetime import datetime, timedelta, timezone

from flask_login import UserMixin
from sqlalchemy import or_
from werkzeug.security import check_password_hash, generate_password_hash

from frenzy import db
from frenzy.utils.account_status import (
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    STATUS_PENDING,
    derive_account_status,
)
from frenzy.utils.timezone_utils import ensure_utc, isoformat_utc

MIN_PASSWORD_LENGTH = 8


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Profile information
    first_name = db.Column(db.String(50))
    last_name = db.Column(db.String(50))
    name = db.Column(db.String(100))

    # Account status
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    pending_approval = db.Column(db.Boolean, default=True, nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)

    # Password reset
    reset_token = db.Column(db.String(100), unique=True, nullable=True)
    reset_token_expiry = db.Column(db.DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    last_login = db.Column(db.DateTime(timezone=True))

    picks = db.relationship(
        "Pick", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_user_created_at", "created_at"),
        db.Index("idx_user_status", "pending_approval", "is_active"),
    )

    def __repr__(self):
        return f"<User {self.email}>"

    @staticmethod
    def normalize_email(email):
        return (email or "").strip().lower()

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        return check_password_hash(self.password_hash, password or "")

    def generate_reset_token(self, hours=2):
        """Generate a password reset token"""
        self.reset_token = secrets.token_urlsafe(32)
        self.reset_token_expiry = datetime.now(timezone.utc) + timedelta(hours=hours)
        return self.reset_token

    @staticmethod
    def verify_reset_token(token):
        """Verify reset token and return user if valid"""
        if not token:
            return None
        user = User.query.filter_by(reset_token=token).first()
        if user and user.reset_token_expiry:
            if ensure_utc(user.reset_token_expiry) > datetime.now(timezone.utc):
                return user
        return None

    def clear_reset_token(self):
        """Clear reset token after use"""
        self.reset_token = None
        self.reset_token_expiry = None

    @property
    def display_name(self):
        """First name, then full name, then a placeholder"""
        return self.first_name or self.name or f"User {self.id}"

    @property
    def account_status(self):
        return derive_account_status(self)

    @staticmethod
    def status_criteria(status):
        """
        SQL criteria selecting users whose ``account_status.label`` is
        ``status``. Deactivation wins over a pending signup, as in the label.
        """
        if status == STATUS_INACTIVE:
            return [User.is_active.is_(False)]
        if status == STATUS_PENDING:
            return [User.is_active.is_(True), User.pending_approval.is_(True)]
        if status == STATUS_ACTIVE:
            return [User.is_active.is_(True), User.pending_approval.is_(False)]
        raise ValueError(f"Unknown account status: {status}")

    def approve(self):
        self.pending_approval = False
        self.is_active = True

    def decline(self):
        """Soft-decline: no longer pending, but cannot log in"""
        self.pending_approval = False
        self.is_active = False

    def activate(self):
        self.is_active = True
        self.pending_approval = False

    def deactivate(self):
        self.is_active = False

    def update_last_login(self):
        """Update last login timestamp"""
        self.last_login = datetime.now(timezone.utc)
        db.session.commit()

    def to_dict(self, include_private=False):
        data = {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "name": self.name,
            "display_name": self.display_name,
            "is_admin": bool(self.is_admin),
        }
        data.update(self.account_status.to_dict())
        if include_private:
            data["created_at"] = isoformat_utc(self.created_at)
            data["last_login"] = isoformat_utc(self.last_login)
        return data

    @staticmethod
    def get_by_email(email):
        return User.query.filter_by(email=User.normalize_email(email)).first()

    @staticmethod
    def count_active_admins():
        return User.query.filter_by(is_admin=True, is_active=True).count()

    def is_last_active_admin(self):
        return bool(self.is_admin and self.is_active) and User.count_active_admins() <= 1

    @staticmethod
    def search(status="all", q=None):
        """
        List users for the admin screen.

        status: pending, active, inactive or all. Returns None for an
        unknown status.
        """
        query = User.query
        if status in (STATUS_ACTIVE, STATUS_PENDING, STATUS_INACTIVE):
            query = query.filter(*User.status_criteria(status))
        elif status != "all":
            return None

        if q and q.strip():
            like = f"%{q.strip()}%"
            query = query.filter(
                or_(
                    User.email.ilike(like),
                    User.name.ilike(like),
                    User.first_name.ilike(like),
                    User.last_name.ilike(like),
                )
            )

        return query.order_by(User.created_at.desc(), User.id.desc()).all()
