"""
Table definitions (SQLAlchemy Core).

Only used to create the schema; all queries are written as text() SQL in the
store. Column names are lower-case so unquoted SQL works on PostgreSQL.

Tables:
- users            - login accounts (username == student roll)
- students         - student profiles, `approved` lifecycle
- companies        - recruiting companies
- jobs             - job postings with eligibility thresholds
- applications     - one row per (student, job), UNIQUE
- portal_settings  - single row of admin switches
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    false,
    func,
    true,
)

metadata = MetaData()


users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(20), nullable=False, server_default="student"),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)


students = Table(
    "students",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("roll", String(50), nullable=False, unique=True),
    Column("name", String(200)),
    Column("gender", String(20)),
    Column("date_of_birth", String(20)),
    Column("category", String(20)),
    Column("pwd", Boolean, nullable=False, server_default=false()),
    Column("rank", Integer),
    Column("registered_for", String(20)),
    Column("program", String(100)),
    Column("department", String(100)),
    Column("course", String(100)),
    Column("address", Text),
    Column("x_marks", Numeric(5, 2)),
    Column("xii_marks", Numeric(5, 2)),
    Column("ug_college", String(200)),
    Column("ug_cpi", Numeric(4, 2)),
    Column("cpi", Numeric(4, 2)),
    Column("spi1", Numeric(4, 2)),
    Column("spi2", Numeric(4, 2)),
    Column("spi3", Numeric(4, 2)),
    Column("spi4", Numeric(4, 2)),
    Column("spi5", Numeric(4, 2)),
    Column("spi6", Numeric(4, 2)),
    Column("spi7", Numeric(4, 2)),
    Column("spi8", Numeric(4, 2)),
    Column("current_sem", Integer),
    Column("resume_link", String(500)),
    Column("resume_path", String(500)),
    Column("other_achievements", Text),
    Column("projects", Text),
    Column("profile_picture", String(500)),
    Column("approved", String(20), nullable=False, server_default="created"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
)


companies = Table(
    "companies",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("company_name", String(200), nullable=False),
    Column("company_address", Text),
    Column("website", String(300)),
    Column("status", String(20), nullable=False, server_default="registered"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)


jobs = Table(
    "jobs",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("company_id", Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
    Column("job_title", String(200), nullable=False),
    Column("description", Text),
    Column("min_x_marks", Numeric(5, 2), nullable=False, server_default="0"),
    Column("min_xii_marks", Numeric(5, 2), nullable=False, server_default="0"),
    Column("min_cpi", Numeric(4, 2), nullable=False, server_default="0"),
    Column("eligible_programs", String(500), nullable=False, server_default=""),
    Column("eligible_departments", String(1000), nullable=False, server_default=""),
    Column("category", String(20), nullable=False),
    Column("classification", String(20), nullable=False),
    Column("only_for_ews", Boolean, nullable=False, server_default=false()),
    Column("only_for_pwd", Boolean, nullable=False, server_default=false()),
    Column("approval_status", String(20), nullable=False, server_default="pending"),
    Column("job_status", String(30), nullable=False, server_default="open"),
    Column("start_date", DateTime(timezone=True)),
    Column("last_date", DateTime(timezone=True)),
    Column("jaf_path", String(500)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)


applications = Table(
    "applications",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("student_id", Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("status", String(20), nullable=False, server_default="applied"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint("student_id", "job_id", name="unique_student_job_application"),
)


portal_settings = Table(
    "portal_settings",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("registrations_allowed", Boolean, nullable=False, server_default=true()),
    Column("cpi_change_allowed", Boolean, nullable=False, server_default=false()),
)
