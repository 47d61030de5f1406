"""RLS policies for survey tables

Revision ID: d7b3e1f05a28
Revises: 8c4f2a9e6d13
Create Date: 2026-10-18 10:02:47.660391

Mirrors app/core/access_policy.py at the storage layer:

1. profiles - an account reads and updates only its own row
2. surveys - owners manage their surveys; a magic-link session reads the
   one survey it is scoped to while that survey is eligible
3. responses - anyone may insert into an eligible survey; only the owner
   reads or deletes; nobody updates
4. magic_links, audit_logs - no policies, so only BYPASSRLS roles touch them

Anonymous callers never get SELECT on any of these tables.
"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "d7b3e1f05a28"
down_revision: Union[str, None] = "8c4f2a9e6d13"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLES = ("profiles", "surveys", "responses", "magic_links", "audit_logs")


def upgrade() -> None:
    """Enable RLS on survey tables with policies matching the access policy."""
    for table in TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")

    # =========================================================================
    # 1. PROFILES
    # =========================================================================
    op.execute("""
        CREATE POLICY profiles_select_own ON profiles
            FOR SELECT
            USING (id = app_account_id())
    """)

    # First-login fallback when the signup trigger didn't create the row
    op.execute("""
        CREATE POLICY profiles_insert_own ON profiles
            FOR INSERT
            WITH CHECK (id = app_account_id())
    """)

    op.execute("""
        CREATE POLICY profiles_update_own ON profiles
            FOR UPDATE
            USING (id = app_account_id())
            WITH CHECK (id = app_account_id())
    """)

    # =========================================================================
    # 2. SURVEYS
    # =========================================================================
    op.execute("""
        CREATE POLICY surveys_owner_select ON surveys
            FOR SELECT
            USING (owner_account_id = app_account_id())
    """)

    op.execute("""
        CREATE POLICY surveys_session_select ON surveys
            FOR SELECT
            USING (
                id = app_session_survey_id()
                AND status = 'active'
                AND unique_link IS NOT NULL
            )
    """)

    op.execute("""
        CREATE POLICY surveys_owner_insert ON surveys
            FOR INSERT
            WITH CHECK (owner_account_id = app_account_id())
    """)

    # Ownership never changes: WITH CHECK pins it
    op.execute("""
        CREATE POLICY surveys_owner_update ON surveys
            FOR UPDATE
            USING (owner_account_id = app_account_id())
            WITH CHECK (owner_account_id = app_account_id())
    """)

    op.execute("""
        CREATE POLICY surveys_owner_delete ON surveys
            FOR DELETE
            USING (owner_account_id = app_account_id())
    """)

    # =========================================================================
    # 3. RESPONSES
    # =========================================================================
    op.execute("""
        CREATE POLICY responses_insert_eligible ON responses
            FOR INSERT
            WITH CHECK (survey_accepts_responses(survey_id))
    """)

    op.execute("""
        CREATE POLICY responses_owner_select ON responses
            FOR SELECT
            USING (is_survey_owner(survey_id))
    """)

    op.execute("""
        CREATE POLICY responses_owner_delete ON responses
            FOR DELETE
            USING (is_survey_owner(survey_id))
    """)


def downgrade() -> None:
    """Drop survey table policies and disable RLS."""
    op.execute("DROP POLICY IF EXISTS responses_owner_delete ON responses")
    op.execute("DROP POLICY IF EXISTS responses_owner_select ON responses")
    op.execute("DROP POLICY IF EXISTS responses_insert_eligible ON responses")
    op.execute("DROP POLICY IF EXISTS surveys_owner_delete ON surveys")
    op.execute("DROP POLICY IF EXISTS surveys_owner_update ON surveys")
    op.execute("DROP POLICY IF EXISTS surveys_owner_insert ON surveys")
    op.execute("DROP POLICY IF EXISTS surveys_session_select ON surveys")
    op.execute("DROP POLICY IF EXISTS surveys_owner_select ON surveys")
    op.execute("DROP POLICY IF EXISTS profiles_update_own ON profiles")
    op.execute("DROP POLICY IF EXISTS profiles_insert_own ON profiles")
    op.execute("DROP POLICY IF EXISTS profiles_select_own ON profiles")

    for table in reversed(TABLES):
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
