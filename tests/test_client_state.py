import pytest

from storefront.client.state import (
    AppState, AuthStatus, UserSummary, can_access_admin, transition,
    ErrorsReported, LoggedOut, LoginSucceeded, ProfileFailed, ProfileLoaded,
    RefreshFailed, RefreshSucceeded, SessionExpired, Start,
)

USER = UserSummary(id="u1", phone="09121234567", first_name="Sara", last_name="Ahmadi", role="customer")
ADMIN = UserSummary(id="u2", phone="09121234568", first_name="Ali", last_name="Rad", role="admin")


def run(*commands, state=None):
    state = state or AppState()
    for command in commands:
        state = transition(state, command)
        assert state is not None, f"{command!r} rejected"
    return state


def test_start_then_refresh_then_profile_reaches_authenticated():
    state = run(Start())
    assert state.status is AuthStatus.REFRESHING
    state = run(RefreshSucceeded(state.epoch), ProfileLoaded(state.epoch, USER), state=state)
    assert state.status is AuthStatus.AUTHENTICATED
    assert state.user == USER
    assert state.is_settled


def test_start_is_one_shot():
    state = run(Start())
    assert transition(state, Start()) is None
    state = run(RefreshSucceeded(state.epoch), state=state)
    assert transition(state, Start()) is None
    # RefreshSucceeded is accepted once, so the profile fetch it gates happens once
    assert transition(state, RefreshSucceeded(state.epoch)) is None


def test_failed_refresh_settles_unauthenticated():
    state = run(Start())
    state = run(RefreshFailed(state.epoch), state=state)
    assert state.status is AuthStatus.UNAUTHENTICATED
    assert state.is_settled


def test_profile_transport_failure_goes_to_error_and_can_restart():
    state = run(Start())
    state = run(RefreshSucceeded(state.epoch), ProfileFailed(state.epoch, transport=True, message="offline"), state=state)
    assert state.status is AuthStatus.ERROR
    assert state.banner == "offline"
    assert run(Start(), state=state).status is AuthStatus.REFRESHING


def test_stale_epoch_responses_are_discarded():
    state = run(Start())
    stale_epoch = state.epoch
    state = run(RefreshFailed(stale_epoch), state=state)
    state = run(LoginSucceeded(state.epoch, USER), state=state)
    assert state.epoch == stale_epoch + 1
    assert transition(state, ProfileLoaded(stale_epoch, ADMIN)) is None


def test_logout_and_session_expiry_bump_epoch():
    state = run(LoginSucceeded(0, USER))
    logged_in_epoch = state.epoch
    out = run(LoggedOut(), state=state)
    assert out.status is AuthStatus.UNAUTHENTICATED
    assert out.user is None
    assert out.epoch == logged_in_epoch + 1

    expired = run(SessionExpired(), state=state)
    assert expired.status is AuthStatus.UNAUTHENTICATED
    assert expired.banner
    assert transition(expired, SessionExpired()) is None


def test_login_not_accepted_while_authenticated_or_refreshing():
    assert transition(run(LoginSucceeded(0, USER)), LoginSucceeded(1, USER)) is None
    refreshing = run(Start())
    assert transition(refreshing, LoginSucceeded(refreshing.epoch, USER)) is None


def test_errors_reported_keep_status():
    state = run(ErrorsReported.from_field_errors(0, "Invalid phone number or password", [{"field": "phone", "msg": "bad"}]))
    assert state.status is AuthStatus.INITIAL
    assert state.field_errors == (("phone", "bad"),)


def test_can_access_admin():
    assert can_access_admin(run(LoginSucceeded(0, ADMIN)))
    assert not can_access_admin(run(LoginSucceeded(0, USER)))
    assert not can_access_admin(AppState(user=ADMIN))


def test_unknown_command():
    with pytest.raises(TypeError):
        transition(AppState(), object())
