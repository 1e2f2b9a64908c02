"""
Sign-in, sign-up and auth-function checks

Scratch accounts created here use the configured scratch email domain so
the sweeper can find them if cleanup is interrupted.
"""

from supaprobe.config.settings import ProbeConfig
from supaprobe.core.data_factory import DataFactory
from supaprobe.models.operations import (
    AdminDeleteUserStep, AdminListUsersStep, GetSessionStep, GetUserStep,
    ProbeSequence, ReadStep, RpcStep, SignInStep, SignOutStep, SignUpStep,
)


def build_auth_signin(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    config.require_demo_credentials("auth-signin")
    return ProbeSequence(
        name="auth-signin",
        description="Demo user signs in, reads as an authenticated user and signs out",
        steps=[
            GetSessionStep(name="session before sign-in", expect_session=False),
            SignInStep(
                name="sign in demo user",
                email=config.demo_email,
                password=config.demo_password,
                save_as="login",
                expect_session=True,
                on_failure="abort",
            ),
            GetSessionStep(name="session after sign-in", expect_session=True),
            GetUserStep(name="current user", expect_fields={"email": "${login.user.email}"}),
            ReadStep(name="read clients while signed in", table="clients", select="id, name", limit=1),
            SignOutStep(name="sign out", expect_session=False),
            GetSessionStep(name="session after sign-out", expect_session=False),
        ],
    )


def build_auth_invalid(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    return ProbeSequence(
        name="auth-invalid",
        description="Wrong credentials are rejected and leave no session behind",
        steps=[
            SignInStep(
                name="sign in with wrong password",
                email=factory.scratch_email("nobody"),
                password=factory.scratch_password(),
                expect="error",
                expect_session=False,
            ),
            GetSessionStep(name="no session after rejection", expect_session=False),
            GetUserStep(name="no user after rejection", expect="error"),
        ],
    )


def build_auth_signup(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    email = factory.scratch_email("signup")
    password = factory.scratch_password()
    return ProbeSequence(
        name="auth-signup",
        description="Self-service sign-up of a scratch user, sign-in attempt, admin removal",
        steps=[
            SignUpStep(name="sign up scratch user", email=email, password=password, on_failure="abort"),
            AdminListUsersStep(name="find scratch user", email=email, save_as="scratch_user", expect_rows=1),
            # Projects that require email confirmation refuse this sign-in
            SignInStep(name="sign in scratch user", email=email, password=password, expect="any"),
            SignOutStep(name="sign out"),
        ],
        cleanup=[
            AdminListUsersStep(name="look up scratch user", email=email, save_as="scratch_user"),
            AdminDeleteUserStep(name="delete scratch user", user_id="${scratch_user.id}"),
        ],
    )


def build_auth_function(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    return ProbeSequence(
        name="auth-function",
        description="Call the test_auth_access database function and a basic table read",
        steps=[
            RpcStep(name="call test_auth_access", function="test_auth_access"),
            ReadStep(name="basic clients access", table="clients", select="id, name", limit=1),
        ],
    )
