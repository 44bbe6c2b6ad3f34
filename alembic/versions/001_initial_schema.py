"""001 – Initial schema: tenants, HRIS and payroll tables, indexes.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Shared column blocks
# ---------------------------------------------------------------------------

_ID = "id UUID PRIMARY KEY DEFAULT uuid_generate_v4()"
_TENANT = "organization_id UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE"
_AUDIT = """
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_by  UUID,
            updated_by  UUID"""
_SOFT_DELETE = """
            deleted_at  TIMESTAMPTZ,
            deleted_by  UUID"""

# Dropped in reverse order on downgrade
TABLES = [
    "organizations",
    "locations",
    "departments",
    "employees",
    "user_sessions",
    "role_assignments",
    "audit_trail",
    "employee_access_control",
    "restricted_access_log",
    "employment_history",
    "contracts",
    "employee_documents",
    "performance_reviews",
    "benefit_plans",
    "benefit_enrollments",
    "attendance_records",
    "worker_types",
    "worker_type_assignments",
    "pay_components",
    "employee_pay_components",
    "employee_deductions",
    "tax_rule_sets",
    "tax_brackets",
    "exchange_rates",
    "currency_conversions",
    "currency_configs",
    "approval_rules",
    "approval_requests",
    "approval_actions",
    "work_schedules",
    "shifts",
    "time_entries",
    "timesheets",
    "employee_compensation",
    "payroll_runs",
    "paychecks",
]


def _live_unique(name: str, table: str, columns: str) -> None:
    """Unique among rows that are not soft-deleted."""
    op.execute(f"CREATE UNIQUE INDEX {name} ON {table} ({columns}) WHERE deleted_at IS NULL")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    op.execute('CREATE EXTENSION IF NOT EXISTS "pg_trgm"')

    # ══════════════════════════════════════════════════════════════════════
    # Tenants & core HR
    # ══════════════════════════════════════════════════════════════════════

    # ── 1. organizations ──────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE organizations (
            {_ID},
            name           VARCHAR(200) NOT NULL,
            slug           VARCHAR(100) NOT NULL UNIQUE,
            country        VARCHAR(2)   NOT NULL DEFAULT 'US',
            base_currency  VARCHAR(3)   NOT NULL DEFAULT 'USD',
            timezone       VARCHAR(50)  DEFAULT 'UTC',
            is_active      BOOLEAN      DEFAULT TRUE,
            created_at     TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at     TIMESTAMPTZ  NOT NULL DEFAULT NOW()
        )
    """)

    # ── 2. locations ──────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE locations (
            {_ID},
            {_TENANT},
            location_name   VARCHAR(150) NOT NULL,
            location_code   VARCHAR(30),
            location_type   VARCHAR(30)  DEFAULT 'branch',
            address_line1   VARCHAR(255),
            address_line2   VARCHAR(255),
            city            VARCHAR(100),
            state_province  VARCHAR(100),
            postal_code     VARCHAR(20),
            country         VARCHAR(2),
            phone           VARCHAR(30),
            email           VARCHAR(255),
            timezone        VARCHAR(50)  DEFAULT 'UTC',
            is_primary      BOOLEAN      DEFAULT FALSE,
            is_active       BOOLEAN      DEFAULT TRUE,{_AUDIT},{_SOFT_DELETE}
        )
    """)

    # ── 3. departments ────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE departments (
            {_ID},
            {_TENANT},
            department_name      VARCHAR(150) NOT NULL,
            department_code      VARCHAR(30),
            description          TEXT,
            parent_department_id UUID REFERENCES departments(id),
            location_id          UUID REFERENCES locations(id),
            cost_center          VARCHAR(50),
            is_active            BOOLEAN DEFAULT TRUE,{_AUDIT},{_SOFT_DELETE}
        )
    """)

    # ── 4. employees ──────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE employees (
            {_ID},
            {_TENANT},
            employee_number     VARCHAR(30)  NOT NULL,
            first_name          VARCHAR(100) NOT NULL,
            middle_name         VARCHAR(100),
            last_name           VARCHAR(100) NOT NULL,
            preferred_name      VARCHAR(100),
            email               VARCHAR(255) NOT NULL,
            phone               VARCHAR(30),
            gender              VARCHAR(20),
            date_of_birth       DATE,
            nationality         VARCHAR(50),
            address             JSONB,
            emergency_contact   JSONB,
            department_id       UUID REFERENCES departments(id),
            location_id         UUID REFERENCES locations(id),
            manager_id          UUID REFERENCES employees(id),
            job_title           VARCHAR(200),
            employment_type     VARCHAR(20)  NOT NULL DEFAULT 'full_time',
            employment_status   VARCHAR(20)  NOT NULL DEFAULT 'active',
            hire_date           DATE         NOT NULL,
            termination_date    DATE,
            is_vip              BOOLEAN      DEFAULT FALSE,
            is_restricted       BOOLEAN      DEFAULT FALSE,
            restriction_level   VARCHAR(20),
            restricted_by       UUID,
            restricted_at       TIMESTAMPTZ,
            restriction_reason  VARCHAR(500),
            profile_photo_url   TEXT,
            google_id           VARCHAR(255),{_AUDIT},{_SOFT_DELETE}
        )
    """)
    _live_unique("uq_employees_org_email", "employees", "organization_id, email")
    _live_unique("uq_employees_org_number", "employees", "organization_id, employee_number")
    op.execute("CREATE INDEX ix_employees_department ON employees (department_id)")
    op.execute("CREATE INDEX ix_employees_manager ON employees (manager_id)")
    op.execute(
        "CREATE INDEX ix_employees_name_trgm ON employees "
        "USING gin ((first_name || ' ' || last_name) gin_trgm_ops)"
    )

    # ══════════════════════════════════════════════════════════════════════
    # Auth & audit
    # ══════════════════════════════════════════════════════════════════════

    # ── 5. user_sessions ──────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE user_sessions (
            {_ID},
            employee_id         UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            token_hash          VARCHAR(512) NOT NULL,
            refresh_token_hash  VARCHAR(512),
            ip_address          INET,
            user_agent          TEXT,
            device_info         JSONB,
            expires_at          TIMESTAMPTZ NOT NULL,
            is_revoked          BOOLEAN DEFAULT FALSE,
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_user_sessions_token_hash ON user_sessions (token_hash)")
    op.execute("CREATE INDEX ix_user_sessions_refresh_token_hash ON user_sessions (refresh_token_hash)")

    # ── 6. role_assignments ───────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE role_assignments (
            {_ID},
            {_TENANT},
            employee_id  UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            role         VARCHAR(30) NOT NULL,
            assigned_by  UUID,
            assigned_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            revoked_at   TIMESTAMPTZ,
            is_active    BOOLEAN DEFAULT TRUE
        )
    """)

    # ── 7. audit_trail ────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE audit_trail (
            {_ID},
            organization_id  UUID,
            actor_id         UUID,
            action           VARCHAR(50) NOT NULL,
            entity_type      VARCHAR(50) NOT NULL,
            entity_id        UUID        NOT NULL,
            old_values       JSONB,
            new_values       JSONB,
            ip_address       INET,
            user_agent       TEXT,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_org ON audit_trail (organization_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail (entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_actor_id ON audit_trail (actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_action ON audit_trail (action)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail (created_at)")

    # ══════════════════════════════════════════════════════════════════════
    # HRIS
    # ══════════════════════════════════════════════════════════════════════

    # ── 8. employee_access_control ────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE employee_access_control (
            {_ID},
            {_TENANT},
            employee_id             UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            restriction_level       VARCHAR(20),
            allowed_user_ids        JSONB DEFAULT '[]'::jsonb,
            allowed_roles           JSONB DEFAULT '[]'::jsonb,
            allowed_department_ids  JSONB DEFAULT '[]'::jsonb,
            restrict_compensation   BOOLEAN DEFAULT TRUE,
            restrict_personal_info  BOOLEAN DEFAULT FALSE,
            restrict_performance    BOOLEAN DEFAULT FALSE,
            restrict_documents      BOOLEAN DEFAULT FALSE,
            restrict_time_off       BOOLEAN DEFAULT FALSE,
            restrict_benefits       BOOLEAN DEFAULT FALSE,
            restrict_attendance     BOOLEAN DEFAULT FALSE,
            restriction_reason      VARCHAR(500),{_AUDIT},{_SOFT_DELETE}
        )
    """)
    _live_unique("uq_access_control_employee", "employee_access_control", "organization_id, employee_id")

    # ── 9. restricted_access_log ──────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE restricted_access_log (
            {_ID},
            {_TENANT},
            employee_id     UUID        NOT NULL,
            user_id         UUID        NOT NULL,
            access_type     VARCHAR(30) NOT NULL,
            access_granted  BOOLEAN     NOT NULL,
            denial_reason   VARCHAR(255),
            endpoint        VARCHAR(500),
            http_method     VARCHAR(10),
            ip_address      INET,
            user_agent      TEXT,
            accessed_at     TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX idx_restricted_access_employee ON restricted_access_log (employee_id, accessed_at)"
    )

    # ── 10. employment_history ────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE employment_history (
            {_ID},
            {_TENANT},
            employee_id         UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            start_date          DATE NOT NULL,
            end_date            DATE,
            is_current          BOOLEAN DEFAULT TRUE,
            is_rehire           BOOLEAN DEFAULT FALSE,
            employment_status   VARCHAR(20) DEFAULT 'active',
            employment_type     VARCHAR(20),
            department_id       UUID,
            location_id         UUID,
            manager_id          UUID,
            job_title           VARCHAR(200),
            termination_reason  VARCHAR(30),
            termination_notes   TEXT,
            is_rehire_eligible  BOOLEAN,
            rehire_notes        TEXT,{_AUDIT}
        )
    """)
    op.execute(
        "CREATE UNIQUE INDEX uq_employment_history_current ON employment_history (employee_id) "
        "WHERE is_current"
    )

    # ── 11. contracts ─────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE contracts (
            {_ID},
            {_TENANT},
            contract_number     VARCHAR(50) NOT NULL,
            employee_id         UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            contract_type       VARCHAR(20) NOT NULL,
            status              VARCHAR(20) NOT NULL DEFAULT 'draft',
            start_date          DATE NOT NULL,
            end_date            DATE,
            salary_amount       NUMERIC(14, 2),
            currency            VARCHAR(3),
            pay_frequency       VARCHAR(20),
            hours_per_week      NUMERIC(5, 2),
            notice_period_days  INTEGER,
            terms               TEXT,
            signed_at           TIMESTAMPTZ,
            termination_date    DATE,
            termination_reason  TEXT,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    _live_unique("uq_contracts_org_number", "contracts", "organization_id, contract_number")

    # ── 12. employee_documents ────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE employee_documents (
            {_ID},
            {_TENANT},
            employee_id        UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            document_name      VARCHAR(255)  NOT NULL,
            document_type      VARCHAR(30)   NOT NULL,
            file_url           VARCHAR(1000) NOT NULL,
            file_name          VARCHAR(255),
            file_size          BIGINT,
            mime_type          VARCHAR(100),
            description        TEXT,
            issue_date         DATE,
            expiry_date        DATE,
            issuing_authority  VARCHAR(255),
            document_number    VARCHAR(100),
            is_confidential    BOOLEAN NOT NULL DEFAULT FALSE,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    op.execute("CREATE INDEX ix_employee_documents_document_type ON employee_documents (document_type)")
    op.execute("CREATE INDEX ix_employee_documents_expiry_date ON employee_documents (expiry_date)")

    # ── 13. performance_reviews ───────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE performance_reviews (
            {_ID},
            {_TENANT},
            employee_id            UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            reviewer_id            UUID NOT NULL REFERENCES employees(id) ON DELETE RESTRICT,
            review_type            VARCHAR(20) NOT NULL,
            review_period_start    DATE NOT NULL,
            review_period_end      DATE NOT NULL,
            due_date               DATE,
            status                 VARCHAR(20) NOT NULL DEFAULT 'draft',
            overall_rating         SMALLINT,
            strengths              TEXT,
            areas_for_improvement  TEXT,
            goals                  JSONB,
            reviewer_comments      TEXT,
            employee_comments      TEXT,
            submitted_at           TIMESTAMPTZ,
            completed_at           TIMESTAMPTZ,{_AUDIT},{_SOFT_DELETE},
            CONSTRAINT ck_performance_reviews_rating
                CHECK (overall_rating IS NULL OR (overall_rating >= 1 AND overall_rating <= 5))
        )
    """)
    op.execute("CREATE INDEX ix_performance_reviews_status ON performance_reviews (status)")

    # ── 14. benefit_plans ─────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE benefit_plans (
            {_ID},
            {_TENANT},
            plan_name               VARCHAR(200) NOT NULL,
            plan_type               VARCHAR(20)  NOT NULL,
            description             TEXT,
            provider                VARCHAR(200),
            coverage_level          VARCHAR(30),
            effective_date          DATE NOT NULL,
            termination_date        DATE,
            employee_cost           NUMERIC(12, 2) NOT NULL DEFAULT 0,
            employer_contribution   NUMERIC(12, 2) NOT NULL DEFAULT 0,
            contribution_frequency  VARCHAR(20) NOT NULL DEFAULT 'monthly',
            waiting_period_days     INTEGER NOT NULL DEFAULT 0,
            eligibility_rules       JSONB,
            is_active               BOOLEAN NOT NULL DEFAULT TRUE,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    op.execute("CREATE INDEX ix_benefit_plans_plan_type ON benefit_plans (plan_type)")

    # ── 15. benefit_enrollments ───────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE benefit_enrollments (
            {_ID},
            {_TENANT},
            employee_id            UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            plan_id                UUID NOT NULL REFERENCES benefit_plans(id) ON DELETE RESTRICT,
            enrollment_date        DATE NOT NULL,
            coverage_start_date    DATE NOT NULL,
            coverage_end_date      DATE,
            coverage_level         VARCHAR(30),
            employee_contribution  NUMERIC(12, 2) NOT NULL DEFAULT 0,
            employer_contribution  NUMERIC(12, 2) NOT NULL DEFAULT 0,
            beneficiaries          JSONB,
            status                 VARCHAR(20) NOT NULL DEFAULT 'active',
            termination_reason     TEXT,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    op.execute("CREATE INDEX ix_benefit_enrollments_status ON benefit_enrollments (status)")

    # ── 16. attendance_records ────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE attendance_records (
            {_ID},
            {_TENANT},
            employee_id         UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            attendance_date     DATE NOT NULL,
            clock_in_time       TIMESTAMPTZ,
            clock_out_time      TIMESTAMPTZ,
            clock_in_location   VARCHAR(255),
            clock_out_location  VARCHAR(255),
            total_hours         NUMERIC(5, 2),
            status              VARCHAR(20) NOT NULL DEFAULT 'present',
            notes               TEXT,
            is_manual           BOOLEAN NOT NULL DEFAULT FALSE,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    op.execute("CREATE INDEX ix_attendance_records_attendance_date ON attendance_records (attendance_date)")
    op.execute("CREATE INDEX ix_attendance_employee_date ON attendance_records (employee_id, attendance_date)")

    # ══════════════════════════════════════════════════════════════════════
    # Payroll
    # ══════════════════════════════════════════════════════════════════════

    # ── 17. worker_types ──────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE worker_types (
            {_ID},
            {_TENANT},
            name                    VARCHAR(100) NOT NULL,
            code                    VARCHAR(30)  NOT NULL,
            description             TEXT,
            default_pay_frequency   VARCHAR(20) NOT NULL DEFAULT 'monthly',
            default_payment_method  VARCHAR(20) NOT NULL DEFAULT 'ach',
            benefits_eligible       BOOLEAN NOT NULL DEFAULT TRUE,
            overtime_eligible       BOOLEAN NOT NULL DEFAULT TRUE,
            pto_eligible            BOOLEAN NOT NULL DEFAULT TRUE,
            sick_leave_eligible     BOOLEAN NOT NULL DEFAULT TRUE,
            vacation_accrual_rate   NUMERIC(5, 4) NOT NULL DEFAULT 0,
            is_active               BOOLEAN NOT NULL DEFAULT TRUE,{_AUDIT},{_SOFT_DELETE},
            CONSTRAINT ck_worker_types_accrual
                CHECK (vacation_accrual_rate >= 0 AND vacation_accrual_rate <= 1)
        )
    """)
    _live_unique("uq_worker_types_org_code", "worker_types", "organization_id, code")

    # ── 18. worker_type_assignments ───────────────────────────────────────
    op.execute(f"""
        CREATE TABLE worker_type_assignments (
            {_ID},
            {_TENANT},
            employee_id     UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            worker_type_id  UUID NOT NULL REFERENCES worker_types(id) ON DELETE RESTRICT,
            effective_from  DATE NOT NULL,
            effective_to    DATE,
            is_current      BOOLEAN NOT NULL DEFAULT TRUE,
            notes           TEXT,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    op.execute(
        "CREATE INDEX ix_worker_type_assignments_current ON worker_type_assignments (employee_id, is_current)"
    )

    # ── 19. pay_components ────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE pay_components (
            {_ID},
            {_TENANT},
            code                VARCHAR(50)  NOT NULL,
            name                VARCHAR(150) NOT NULL,
            component_type      VARCHAR(20)  NOT NULL,
            category            VARCHAR(30)  NOT NULL,
            calculation_type    VARCHAR(20)  NOT NULL DEFAULT 'fixed_amount',
            default_amount      NUMERIC(12, 2),
            default_rate        NUMERIC(9, 4),
            is_taxable          BOOLEAN NOT NULL DEFAULT TRUE,
            is_recurring        BOOLEAN NOT NULL DEFAULT TRUE,
            is_pre_tax          BOOLEAN NOT NULL DEFAULT FALSE,
            is_active           BOOLEAN NOT NULL DEFAULT TRUE,
            description         TEXT,
            temporal_condition  JSONB,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    _live_unique("uq_pay_components_org_code", "pay_components", "organization_id, code")

    # ── 20. employee_pay_components ───────────────────────────────────────
    op.execute(f"""
        CREATE TABLE employee_pay_components (
            {_ID},
            {_TENANT},
            employee_id       UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            pay_component_id  UUID NOT NULL REFERENCES pay_components(id) ON DELETE CASCADE,
            amount            NUMERIC(12, 2),
            rate              NUMERIC(9, 4),
            effective_from    DATE NOT NULL,
            effective_to      DATE,
            is_active         BOOLEAN NOT NULL DEFAULT TRUE,
            notes             TEXT,{_AUDIT},{_SOFT_DELETE}
        )
    """)

    # ── 21. employee_deductions ───────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE employee_deductions (
            {_ID},
            {_TENANT},
            employee_id       UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            deduction_type    VARCHAR(20)  NOT NULL,
            name              VARCHAR(150) NOT NULL,
            code              VARCHAR(50)  NOT NULL,
            calculation_type  VARCHAR(20)  NOT NULL DEFAULT 'fixed_amount',
            amount            NUMERIC(12, 2),
            percentage        NUMERIC(7, 4),
            max_per_payroll   NUMERIC(12, 2),
            max_annual        NUMERIC(14, 2),
            is_pre_tax        BOOLEAN NOT NULL DEFAULT FALSE,
            is_recurring      BOOLEAN NOT NULL DEFAULT TRUE,
            frequency         VARCHAR(20),
            effective_from    DATE NOT NULL,
            effective_to      DATE,
            is_active         BOOLEAN NOT NULL DEFAULT TRUE,
            priority          INTEGER NOT NULL DEFAULT 100,
            notes             TEXT,
            source_type       VARCHAR(50),
            source_id         UUID,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    op.execute("CREATE INDEX ix_employee_deductions_source_id ON employee_deductions (source_id)")

    # ── 22. tax_rule_sets ─────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE tax_rule_sets (
            {_ID},
            {_TENANT},
            tax_type              VARCHAR(30)  NOT NULL,
            tax_name              VARCHAR(150) NOT NULL,
            country               VARCHAR(2)   NOT NULL,
            state                 VARCHAR(50),
            locality              VARCHAR(100),
            effective_from        DATE NOT NULL,
            effective_to          DATE,
            calculation_method    VARCHAR(20) NOT NULL DEFAULT 'bracket',
            flat_rate             NUMERIC(7, 4),
            annual_cap            NUMERIC(14, 2),
            allowance_per_period  NUMERIC(12, 2) NOT NULL DEFAULT 0,
            is_active             BOOLEAN NOT NULL DEFAULT TRUE,
            description           TEXT,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    op.execute(
        "CREATE INDEX ix_tax_rule_sets_lookup ON tax_rule_sets (organization_id, country, effective_from)"
    )

    # ── 23. tax_brackets ──────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE tax_brackets (
            {_ID},
            {_TENANT},
            tax_rule_set_id  UUID NOT NULL REFERENCES tax_rule_sets(id) ON DELETE CASCADE,
            bracket_order    INTEGER NOT NULL,
            income_min       NUMERIC(14, 2) NOT NULL DEFAULT 0,
            income_max       NUMERIC(14, 2),
            rate_percentage  NUMERIC(7, 4)  NOT NULL,
            fixed_amount     NUMERIC(12, 2) NOT NULL DEFAULT 0,{_AUDIT},{_SOFT_DELETE},
            CONSTRAINT ck_tax_brackets_order CHECK (bracket_order >= 1),
            CONSTRAINT ck_tax_brackets_rate CHECK (rate_percentage >= 0 AND rate_percentage <= 100)
        )
    """)
    _live_unique("uq_tax_brackets_order", "tax_brackets", "tax_rule_set_id, bracket_order")

    # ── 24. exchange_rates ────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE exchange_rates (
            {_ID},
            {_TENANT},
            from_currency   VARCHAR(3)     NOT NULL,
            to_currency     VARCHAR(3)     NOT NULL,
            rate            NUMERIC(18, 8) NOT NULL,
            effective_from  DATE NOT NULL,
            effective_to    DATE,
            source          VARCHAR(50) NOT NULL DEFAULT 'manual',
            status          VARCHAR(20) NOT NULL DEFAULT 'active',
            notes           TEXT,{_AUDIT},{_SOFT_DELETE},
            CONSTRAINT ck_exchange_rates_positive CHECK (rate > 0),
            CONSTRAINT ck_exchange_rates_pair CHECK (from_currency <> to_currency)
        )
    """)
    op.execute(
        "CREATE INDEX ix_exchange_rates_pair ON exchange_rates "
        "(organization_id, from_currency, to_currency, effective_from)"
    )

    # ── 25. currency_conversions ──────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE currency_conversions (
            {_ID},
            {_TENANT},
            from_currency     VARCHAR(3)     NOT NULL,
            to_currency       VARCHAR(3)     NOT NULL,
            from_amount       NUMERIC(16, 4) NOT NULL,
            to_amount         NUMERIC(16, 4) NOT NULL,
            rate_used         NUMERIC(18, 8) NOT NULL,
            exchange_rate_id  UUID REFERENCES exchange_rates(id) ON DELETE SET NULL,
            source            VARCHAR(50) NOT NULL,
            rounding_mode     VARCHAR(20) NOT NULL,
            decimal_places    INTEGER     NOT NULL,
            reference_type    VARCHAR(50) NOT NULL,
            reference_id      UUID        NOT NULL,
            created_by        UUID,
            created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_currency_conversions_reference ON currency_conversions (reference_type, reference_id)"
    )

    # ── 26. currency_configs ──────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE currency_configs (
            {_ID},
            {_TENANT},
            supported_currencies               JSONB NOT NULL DEFAULT '[]'::jsonb,
            default_rounding_mode              VARCHAR(20) NOT NULL DEFAULT 'half_up',
            default_decimal_places             INTEGER NOT NULL DEFAULT 2,
            require_approval_for_rate_changes  BOOLEAN NOT NULL DEFAULT TRUE,{_AUDIT},
            CONSTRAINT uq_currency_configs_org UNIQUE (organization_id)
        )
    """)

    # ── 27. approval_rules ────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE approval_rules (
            {_ID},
            {_TENANT},
            name                VARCHAR(150) NOT NULL,
            rule_type           VARCHAR(30)  NOT NULL,
            conditions          JSONB   NOT NULL DEFAULT '{{}}'::jsonb,
            required_approvals  INTEGER NOT NULL DEFAULT 1,
            approver_user_ids   JSONB   NOT NULL DEFAULT '[]'::jsonb,
            approver_role       VARCHAR(30),
            expiration_hours    INTEGER,
            priority            INTEGER NOT NULL DEFAULT 0,
            enabled             BOOLEAN NOT NULL DEFAULT TRUE,
            description         TEXT,{_AUDIT},{_SOFT_DELETE}
        )
    """)

    # ── 28. approval_requests ─────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE approval_requests (
            {_ID},
            {_TENANT},
            approval_rule_id    UUID REFERENCES approval_rules(id) ON DELETE SET NULL,
            request_type        VARCHAR(30) NOT NULL,
            reference_type      VARCHAR(50),
            reference_id        UUID,
            request_data        JSONB NOT NULL DEFAULT '{{}}'::jsonb,
            reason              TEXT,
            priority            VARCHAR(10) NOT NULL DEFAULT 'normal',
            status              VARCHAR(20) NOT NULL DEFAULT 'pending',
            required_approvals  INTEGER NOT NULL DEFAULT 1,
            current_approvals   INTEGER NOT NULL DEFAULT 0,
            expires_at          TIMESTAMPTZ,
            resolved_at         TIMESTAMPTZ,
            resolved_by         UUID,
            rejection_reason    TEXT,{_AUDIT}
        )
    """)
    op.execute(
        "CREATE INDEX ix_approval_requests_reference ON approval_requests (reference_type, reference_id)"
    )
    op.execute("CREATE INDEX ix_approval_requests_status ON approval_requests (organization_id, status)")

    # ── 29. approval_actions ──────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE approval_actions (
            {_ID},
            {_TENANT},
            approval_request_id  UUID NOT NULL REFERENCES approval_requests(id) ON DELETE CASCADE,
            action               VARCHAR(20) NOT NULL,
            comments             TEXT,
            actor_id             UUID NOT NULL,
            created_at           TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 30. work_schedules ────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE work_schedules (
            {_ID},
            {_TENANT},
            name        VARCHAR(150) NOT NULL,
            start_date  DATE NOT NULL,
            end_date    DATE NOT NULL,
            status      VARCHAR(20) NOT NULL DEFAULT 'draft',
            notes       TEXT,{_AUDIT},{_SOFT_DELETE}
        )
    """)

    # ── 31. shifts ────────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE shifts (
            {_ID},
            {_TENANT},
            schedule_id    UUID NOT NULL REFERENCES work_schedules(id) ON DELETE CASCADE,
            employee_id    UUID REFERENCES employees(id) ON DELETE SET NULL,
            shift_date     DATE NOT NULL,
            start_time     TIME NOT NULL,
            end_time       TIME NOT NULL,
            station_id     UUID,
            role_id        UUID,
            shift_type_id  UUID,
            break_minutes  INTEGER NOT NULL DEFAULT 0,
            status         VARCHAR(20) NOT NULL DEFAULT 'scheduled',
            notes          TEXT,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    op.execute("CREATE INDEX ix_shifts_shift_date ON shifts (shift_date)")
    op.execute("CREATE INDEX ix_shifts_station_id ON shifts (station_id)")
    op.execute("CREATE INDEX ix_shifts_role_id ON shifts (role_id)")

    # ── 32. time_entries ──────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE time_entries (
            {_ID},
            {_TENANT},
            employee_id       UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            entry_date        DATE NOT NULL,
            clock_in          TIMESTAMPTZ,
            clock_out         TIMESTAMPTZ,
            break_minutes     INTEGER NOT NULL DEFAULT 0,
            worked_hours      NUMERIC(5, 2) NOT NULL DEFAULT 0,
            regular_hours     NUMERIC(5, 2) NOT NULL DEFAULT 0,
            overtime_hours    NUMERIC(5, 2) NOT NULL DEFAULT 0,
            entry_type        VARCHAR(20) NOT NULL DEFAULT 'regular',
            shift_type_id     UUID,
            status            VARCHAR(20) NOT NULL DEFAULT 'draft',
            notes             TEXT,
            approved_by       UUID,
            approved_at       TIMESTAMPTZ,
            rejection_reason  TEXT,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    op.execute("CREATE INDEX ix_time_entries_employee_date ON time_entries (employee_id, entry_date)")
    op.execute("CREATE INDEX ix_time_entries_status ON time_entries (status)")

    # ── 33. timesheets ────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE timesheets (
            {_ID},
            {_TENANT},
            employee_id       UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            period_start      DATE NOT NULL,
            period_end        DATE NOT NULL,
            regular_hours     NUMERIC(7, 2) NOT NULL DEFAULT 0,
            overtime_hours    NUMERIC(7, 2) NOT NULL DEFAULT 0,
            pto_hours         NUMERIC(7, 2) NOT NULL DEFAULT 0,
            sick_hours        NUMERIC(7, 2) NOT NULL DEFAULT 0,
            total_hours       NUMERIC(7, 2) NOT NULL DEFAULT 0,
            status            VARCHAR(20) NOT NULL DEFAULT 'draft',
            notes             TEXT,
            submitted_at      TIMESTAMPTZ,
            submitted_by      UUID,
            approved_at       TIMESTAMPTZ,
            approved_by       UUID,
            rejection_reason  TEXT,
            payroll_run_id    UUID,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    op.execute("CREATE INDEX ix_timesheets_employee_period ON timesheets (employee_id, period_start)")
    op.execute("CREATE INDEX ix_timesheets_status ON timesheets (status)")
    op.execute("CREATE INDEX ix_timesheets_payroll_run_id ON timesheets (payroll_run_id)")

    # ── 34. employee_compensation ─────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE employee_compensation (
            {_ID},
            {_TENANT},
            employee_id          UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            compensation_type    VARCHAR(20)    NOT NULL,
            amount               NUMERIC(12, 2) NOT NULL,
            overtime_multiplier  NUMERIC(4, 2)  NOT NULL DEFAULT 1.5,
            currency             VARCHAR(3)     NOT NULL,
            pay_frequency        VARCHAR(20)    NOT NULL DEFAULT 'bi-weekly',
            effective_from       DATE NOT NULL,
            effective_to         DATE,
            is_current           BOOLEAN NOT NULL DEFAULT TRUE,
            notes                TEXT,{_AUDIT},{_SOFT_DELETE},
            CONSTRAINT ck_employee_compensation_amount CHECK (amount >= 0)
        )
    """)
    op.execute(
        "CREATE INDEX ix_employee_compensation_employee ON employee_compensation (employee_id, effective_from)"
    )

    # ── 35. payroll_runs ──────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE payroll_runs (
            {_ID},
            {_TENANT},
            run_number        VARCHAR(30)  NOT NULL,
            run_name          VARCHAR(150) NOT NULL,
            run_type          VARCHAR(20)  NOT NULL DEFAULT 'regular',
            pay_period_start  DATE NOT NULL,
            pay_period_end    DATE NOT NULL,
            payment_date      DATE NOT NULL,
            status            VARCHAR(20) NOT NULL DEFAULT 'draft',
            total_employees   INTEGER        NOT NULL DEFAULT 0,
            total_gross       NUMERIC(14, 2) NOT NULL DEFAULT 0,
            total_taxes       NUMERIC(14, 2) NOT NULL DEFAULT 0,
            total_deductions  NUMERIC(14, 2) NOT NULL DEFAULT 0,
            total_net         NUMERIC(14, 2) NOT NULL DEFAULT 0,
            currency          VARCHAR(3) NOT NULL,
            calculated_at     TIMESTAMPTZ,
            calculated_by     UUID,
            approved_at       TIMESTAMPTZ,
            approved_by       UUID,
            finalized_at      TIMESTAMPTZ,
            finalized_by      UUID,
            notes             TEXT,{_AUDIT},{_SOFT_DELETE},
            CONSTRAINT ck_payroll_runs_period CHECK (pay_period_end > pay_period_start)
        )
    """)
    _live_unique("uq_payroll_runs_org_number", "payroll_runs", "organization_id, run_number")

    # ── 36. paychecks ─────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE paychecks (
            {_ID},
            {_TENANT},
            payroll_run_id       UUID NOT NULL REFERENCES payroll_runs(id) ON DELETE CASCADE,
            employee_id          UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            compensation_id      UUID REFERENCES employee_compensation(id) ON DELETE SET NULL,
            reissued_from_id     UUID REFERENCES paychecks(id) ON DELETE SET NULL,
            pay_period_start     DATE NOT NULL,
            pay_period_end       DATE NOT NULL,
            payment_date         DATE NOT NULL,
            compensation_type    VARCHAR(20) NOT NULL,
            regular_hours        NUMERIC(7, 2)  NOT NULL DEFAULT 0,
            overtime_hours       NUMERIC(7, 2)  NOT NULL DEFAULT 0,
            pto_hours            NUMERIC(7, 2)  NOT NULL DEFAULT 0,
            hourly_rate          NUMERIC(12, 4),
            regular_pay          NUMERIC(14, 2) NOT NULL DEFAULT 0,
            overtime_pay         NUMERIC(14, 2) NOT NULL DEFAULT 0,
            pto_pay              NUMERIC(14, 2) NOT NULL DEFAULT 0,
            component_earnings   NUMERIC(14, 2) NOT NULL DEFAULT 0,
            gross_pay            NUMERIC(14, 2) NOT NULL DEFAULT 0,
            pre_tax_deductions   NUMERIC(14, 2) NOT NULL DEFAULT 0,
            taxable_income       NUMERIC(14, 2) NOT NULL DEFAULT 0,
            total_taxes          NUMERIC(14, 2) NOT NULL DEFAULT 0,
            post_tax_deductions  NUMERIC(14, 2) NOT NULL DEFAULT 0,
            total_deductions     NUMERIC(14, 2) NOT NULL DEFAULT 0,
            net_pay              NUMERIC(14, 2) NOT NULL DEFAULT 0,
            currency             VARCHAR(3) NOT NULL,
            earnings             JSONB NOT NULL DEFAULT '[]'::jsonb,
            taxes                JSONB NOT NULL DEFAULT '[]'::jsonb,
            deductions           JSONB NOT NULL DEFAULT '[]'::jsonb,
            status               VARCHAR(20) NOT NULL DEFAULT 'pending',
            payment_method       VARCHAR(20) NOT NULL DEFAULT 'ach',
            voided_at            TIMESTAMPTZ,
            voided_by            UUID,
            void_reason          TEXT,
            notes                TEXT,{_AUDIT},{_SOFT_DELETE}
        )
    """)
    op.execute("CREATE INDEX ix_paychecks_run ON paychecks (payroll_run_id)")
    op.execute("CREATE INDEX ix_paychecks_employee_period ON paychecks (employee_id, pay_period_end)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for table in reversed(TABLES):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
