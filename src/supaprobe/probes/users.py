"""Auth user administration with the service role key"""

from supaprobe.config.settings import ProbeConfig
from supaprobe.core.data_factory import DataFactory
from supaprobe.models.operations import (
    AdminCreateUserStep, AdminDeleteUserStep, AdminListUsersStep, AdminUpdateUserStep,
    ProbeSequence, SignInStep, SignOutStep,
)


def build_users_list(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    return ProbeSequence(
        name="users-list",
        description="List auth users",
        steps=[AdminListUsersStep(name="list auth users")],
    )


def build_users_demo(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    """Recreate the demo account with a confirmed email and prove it can sign in"""
    config.require_demo_credentials("users-demo")
    return ProbeSequence(
        name="users-demo",
        description="Recreate the demo user and verify it can sign in",
        steps=[
            AdminListUsersStep(name="find existing demo user", email=config.demo_email, save_as="existing"),
            AdminDeleteUserStep(name="delete existing demo user", user_id="${existing.id}"),
            AdminCreateUserStep(
                name="create demo user",
                email=config.demo_email,
                password=config.demo_password,
                email_confirm=True,
                save_as="demo_user",
                expect_fields={"email": config.demo_email},
                on_failure="abort",
            ),
            SignInStep(
                name="sign in as demo user",
                email=config.demo_email,
                password=config.demo_password,
                expect_session=True,
            ),
            SignOutStep(name="sign out", expect_session=False),
        ],
    )


def build_users_password(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    """Reset the demo user's password to the configured one and verify it"""
    config.require_demo_credentials("users-password")
    return ProbeSequence(
        name="users-password",
        description="Set the demo user's password and verify sign-in",
        steps=[
            AdminListUsersStep(
                name="find demo user",
                email=config.demo_email,
                save_as="user",
                expect_rows=1,
                on_failure="abort",
            ),
            AdminUpdateUserStep(
                name="update password",
                user_id="${user.id}",
                attributes={"password": config.demo_password},
                on_failure="abort",
            ),
            SignInStep(
                name="sign in with new password",
                email=config.demo_email,
                password=config.demo_password,
                expect_session=True,
            ),
            SignOutStep(name="sign out", expect_session=False),
        ],
    )
