from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

USER_ROLES = ("admin", "manager", "cashier")


class User(db.Model):
    """
    Staff account.

    Transactions reference users by id only (cashier). Authentication and
    session handling live outside this service; here a user is the identity
    a cashier reference must resolve to.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.CheckConstraint("role IN ('admin', 'manager', 'cashier')", name="ck_users_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(16), nullable=False, default="cashier")

    # Tenant scope; admins can read across companies
    company_name = db.Column(db.String(120), nullable=False, default="Unknown", index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "company_name": self.company_name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
