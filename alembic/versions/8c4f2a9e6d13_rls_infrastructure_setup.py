"""RLS infrastructure setup

Revision ID: 8c4f2a9e6d13
Revises: 5a1e0c7d2b91
Create Date: 2026-10-18 09:40:05.118204

This migration sets up the infrastructure for Row-Level Security (RLS):

1. app_account_id() - the account acting in this transaction, read from
   app.current_account_id.

2. app_session_survey_id() - the survey a magic-link session is scoped to,
   read from app.current_survey_id.

3. survey_accepts_responses(survey_id) - eligibility check usable from
   policies on other tables without granting SELECT on surveys.

4. Verifies that service_role has BYPASSRLS (Supabase default).

Both session variables are set via SET LOCAL in the application layer
(app/core/rls.py) on each request.
"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8c4f2a9e6d13"
down_revision: Union[str, None] = "5a1e0c7d2b91"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Set up RLS infrastructure components."""
    # Note: Each statement must be in a separate op.execute() for asyncpg compatibility
    op.execute("""
        CREATE OR REPLACE FUNCTION app_account_id()
        RETURNS UUID AS $$
            SELECT NULLIF(current_setting('app.current_account_id', true), '')::uuid;
        $$ LANGUAGE sql STABLE
    """)

    op.execute("""
        COMMENT ON FUNCTION app_account_id() IS
            'Returns the current account ID from session context. '
            'Set via SET LOCAL app.current_account_id = uuid in the application layer. '
            'Returns NULL if not set. Used in RLS policies for row filtering.'
    """)

    op.execute("""
        CREATE OR REPLACE FUNCTION app_session_survey_id()
        RETURNS UUID AS $$
            SELECT NULLIF(current_setting('app.current_survey_id', true), '')::uuid;
        $$ LANGUAGE sql STABLE
    """)

    op.execute("""
        COMMENT ON FUNCTION app_session_survey_id() IS
            'Returns the survey a magic-link session is scoped to, or NULL.'
    """)

    # SECURITY DEFINER so policies on responses can check the parent survey
    # without the caller being able to SELECT surveys
    op.execute("""
        CREATE OR REPLACE FUNCTION survey_accepts_responses(p_survey_id UUID)
        RETURNS BOOLEAN AS $$
            SELECT EXISTS (
                SELECT 1 FROM surveys
                WHERE id = p_survey_id
                AND status = 'active'
                AND unique_link IS NOT NULL
            );
        $$ LANGUAGE sql STABLE SECURITY DEFINER
    """)

    op.execute("""
        COMMENT ON FUNCTION survey_accepts_responses(UUID) IS
            'Returns TRUE if the survey is active and has a unique link.'
    """)

    op.execute("""
        CREATE OR REPLACE FUNCTION is_survey_owner(p_survey_id UUID)
        RETURNS BOOLEAN AS $$
            SELECT EXISTS (
                SELECT 1 FROM surveys
                WHERE id = p_survey_id
                AND owner_account_id = app_account_id()
            );
        $$ LANGUAGE sql STABLE SECURITY DEFINER
    """)

    # Verify service_role has BYPASSRLS for service-level operations
    op.execute("""
        DO $$
        BEGIN
            IF EXISTS (
                SELECT 1 FROM pg_roles
                WHERE rolname = 'service_role' AND rolbypassrls = false
            ) THEN
                ALTER ROLE service_role BYPASSRLS;
                RAISE NOTICE 'Granted BYPASSRLS to service_role';
            END IF;
        END $$
    """)


def downgrade() -> None:
    """Remove RLS infrastructure components."""
    op.execute("DROP FUNCTION IF EXISTS is_survey_owner(UUID)")
    op.execute("DROP FUNCTION IF EXISTS survey_accepts_responses(UUID)")
    op.execute("DROP FUNCTION IF EXISTS app_session_survey_id()")
    op.execute("DROP FUNCTION IF EXISTS app_account_id()")
