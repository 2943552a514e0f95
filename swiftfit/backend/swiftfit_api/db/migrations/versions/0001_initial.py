from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    "userrole": ("admin", "instructor", "student"),
    "classstatus": ("scheduled", "completed", "cancelled"),
    "bookingstatus": ("confirmed", "cancelled", "attended", "no_show", "late_cancel"),
    "cancellationtype": ("on_time", "late", "no_show", "class_cancelled"),
    "purchasetype": ("package", "membership"),
    "paymentstatus": ("pending", "completed", "failed", "refunded"),
    "paymentmethodtype": ("square", "stub", "admin", "cash"),
    "actortype": ("student", "instructor", "admin", "system"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255)),
        sa.Column("password_hash", sa.String(length=255)),
        sa.Column("email_verified", sa.Boolean(), server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("role", _enum("userrole"), server_default="student"),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("email_reminders", sa.Boolean(), server_default=sa.true()),
        sa.Column("reminder_hours_before", sa.Integer(), server_default="24"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "instructors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_profile_id",
            sa.Integer(),
            sa.ForeignKey("user_profiles.id", ondelete="SET NULL"),
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("bio", sa.Text()),
        sa.Column("specialties", sa.String(length=255)),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
    )

    op.create_table(
        "class_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        sa.Column("duration_minutes", sa.Integer(), server_default="50"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
    )

    op.create_table(
        "classes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "class_type_id",
            sa.Integer(),
            sa.ForeignKey("class_types.id", ondelete="CASCADE"),
        ),
        sa.Column(
            "instructor_id",
            sa.Integer(),
            sa.ForeignKey("instructors.id", ondelete="SET NULL"),
        ),
        sa.Column("date", sa.Date(), index=True),
        sa.Column("start_time", sa.Time()),
        sa.Column("end_time", sa.Time()),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="15"),
        sa.Column("price", sa.Numeric(10, 2)),
        sa.Column("status", _enum("classstatus"), server_default="scheduled"),
        sa.CheckConstraint("capacity > 0", name="ck_classes_capacity_positive"),
    )

    op.create_table(
        "packages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("expiration_days", sa.Integer()),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
    )

    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("price_monthly", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_unlimited", sa.Boolean(), server_default=sa.false()),
        sa.Column("credits_per_month", sa.Integer()),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "student_profile_id",
            sa.Integer(),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column("amount", sa.Numeric(10, 2)),
        sa.Column("currency", sa.CHAR(length=3), server_default="USD"),
        sa.Column("payment_method", _enum("paymentmethodtype")),
        sa.Column("external_payment_id", sa.String(length=128), index=True),
        sa.Column("status", _enum("paymentstatus"), server_default="pending"),
        sa.Column("payment_date", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("notes", sa.Text()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("external_payment_id", name="uq_payment_external_payment_id"),
    )

    op.create_table(
        "student_purchases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "student_profile_id",
            sa.Integer(),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column("purchase_type", _enum("purchasetype"), nullable=False),
        sa.Column("package_id", sa.Integer(), sa.ForeignKey("packages.id")),
        sa.Column("membership_id", sa.Integer(), sa.ForeignKey("memberships.id")),
        sa.Column("credits_remaining", sa.Integer()),
        sa.Column("credits_total", sa.Integer()),
        sa.Column("purchased_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(timezone=True), index=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("auto_renew", sa.Boolean(), server_default=sa.false()),
        sa.Column("next_billing_date", sa.DateTime(timezone=True)),
        sa.Column(
            "payment_id",
            sa.Integer(),
            sa.ForeignKey("payments.id", ondelete="SET NULL"),
        ),
        sa.Column("notes", sa.Text()),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "class_id",
            sa.Integer(),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column(
            "student_profile_id",
            sa.Integer(),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column("status", _enum("bookingstatus"), server_default="confirmed"),
        sa.Column("booked_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("cancellation_type", _enum("cancellationtype")),
        sa.Column("credits_used", sa.Integer(), server_default="0"),
        sa.Column(
            "purchase_id",
            sa.Integer(),
            sa.ForeignKey("student_purchases.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "payment_id",
            sa.Integer(),
            sa.ForeignKey("payments.id", ondelete="SET NULL"),
        ),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("credits_used >= 0", name="ck_bookings_credits_used_non_negative"),
    )

    op.create_table(
        "waitlist",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "class_id",
            sa.Integer(),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column(
            "student_profile_id",
            sa.Integer(),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("notified", sa.Boolean(), server_default=sa.false()),
        sa.UniqueConstraint("class_id", "student_profile_id", name="uq_waitlist_student_class"),
    )

    op.create_table(
        "payment_methods",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "student_profile_id",
            sa.Integer(),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column("square_card_id", sa.String(length=255), nullable=False, unique=True),
        sa.Column("card_brand", sa.String(length=32)),
        sa.Column("last_4", sa.String(length=4)),
        sa.Column("exp_month", sa.Integer()),
        sa.Column("exp_year", sa.Integer()),
        sa.Column("is_default", sa.Boolean(), server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "class_reminder_tracking",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "student_profile_id",
            sa.Integer(),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column("email", sa.String(length=255)),
        sa.Column("last_class_date", sa.Date(), nullable=False),
        sa.Column("reminder_scheduled_for", sa.Date(), nullable=False, index=True),
        sa.Column("reminder_sent", sa.Boolean(), server_default=sa.false()),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "studio_info",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("studio_name", sa.String(length=255), server_default="Swift Fit Pilates"),
        sa.Column("email", sa.String(length=255)),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("address", sa.Text()),
        sa.Column("cancellation_window_hours", sa.Integer(), server_default="24"),
        sa.Column("late_cancel_penalty", sa.Numeric(10, 2)),
        sa.Column("no_show_penalty", sa.Numeric(10, 2)),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_type", _enum("actortype")),
        sa.Column("actor_id", sa.Integer()),
        sa.Column("action", sa.String(length=64), index=True),
        sa.Column("entity_type", sa.String(length=64)),
        sa.Column("entity_id", sa.Integer()),
        sa.Column("payload", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    for table in (
        "audit_logs",
        "studio_info",
        "class_reminder_tracking",
        "payment_methods",
        "waitlist",
        "bookings",
        "student_purchases",
        "payments",
        "memberships",
        "packages",
        "classes",
        "class_types",
        "instructors",
        "user_profiles",
        "users",
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
