import asyncio

import pytest

from storefront.client import StorefrontClient
from storefront.client.cart_reconciler import CartMode
from storefront.client.errors import ApiError, ResendThrottled, TransportError, ValidationError
from storefront.client.guest_cart import GUEST_CART_KEY
from storefront.client.otp import DELIVERY_FAILED_MESSAGE, OTPStatus
from storefront.client.session_identity import SESSION_KEY
from storefront.client.state import AuthStatus
from storefront.client.storage import MemoryStorage

PHONE = "09121234567"
PASSWORD = "secret123"


async def signed_up_client(transport):
    client = StorefrontClient(transport=transport, storage=MemoryStorage())
    await client.start()
    await client.auth.register(PHONE, PASSWORD, "Sara", "Ahmadi")
    await client.cart.wait_idle()
    assert client.state.status is AuthStatus.AUTHENTICATED
    return client


@pytest.mark.asyncio
async def test_first_visit_settles_as_guest_and_mints_session_id(transport):
    storage = MemoryStorage()
    client = StorefrontClient(transport=transport, storage=storage)
    state = await client.start()
    assert state.status is AuthStatus.UNAUTHENTICATED
    assert storage.get(SESSION_KEY)
    assert transport.count("GET", "/auth/profile") == 0
    await client.close()


@pytest.mark.asyncio
async def test_concurrent_start_fetches_profile_once(transport):
    first = await signed_up_client(transport)

    # Second client shares the cookie jar but has no access token yet
    second = StorefrontClient(transport=transport, storage=MemoryStorage())
    transport.calls.clear()
    await asyncio.gather(second.start(), second.start(), second.start())

    assert second.state.status is AuthStatus.AUTHENTICATED
    assert second.state.user.phone == PHONE
    assert transport.count("POST", "/auth/refresh") == 1
    assert transport.count("GET", "/auth/profile") == 1
    await first.close()


@pytest.mark.asyncio
async def test_guest_cart_merges_once_on_login(transport):
    storage = MemoryStorage()
    client = StorefrontClient(transport=transport, storage=storage)
    await client.start()
    await client.cart.add_item("p1", 2)
    await client.cart.add_item("p2", 1)
    await client.cart.add_item("p1", 1)
    merge_key = storage.get(SESSION_KEY)
    guest_items = client.guest_cart.items()

    await client.auth.register(PHONE, PASSWORD, "Sara", "Ahmadi")
    await client.cart.wait_idle()

    expected = [{"productId": "p1", "quantity": 3}, {"productId": "p2", "quantity": 1}]
    assert client.cart.items() == expected
    assert storage.get(GUEST_CART_KEY) is None
    assert storage.get(SESSION_KEY) is None
    assert transport.count("POST", "/cart/merge") == 1

    # A retried merge with the same key does not double count
    assert await client.api.merge_cart(merge_key, guest_items) == expected
    assert await client.api.get_cart() == expected

    # Server cart operations after the merge
    await client.cart.add_item("p3")
    assert [line["productId"] for line in client.cart.items()] == ["p1", "p2", "p3"]
    await client.close()


@pytest.mark.asyncio
async def test_empty_guest_cart_loads_server_cart(transport):
    client = await signed_up_client(transport)
    assert transport.count("POST", "/cart/merge") == 0
    assert transport.count("GET", "/cart") == 1
    await client.close()


@pytest.mark.asyncio
async def test_logout_returns_to_empty_guest_cart(transport):
    storage = MemoryStorage()
    client = StorefrontClient(transport=transport, storage=storage)
    await client.start()
    await client.cart.add_item("p1", 2)
    await client.auth.register(PHONE, PASSWORD, "Sara", "Ahmadi")
    await client.cart.wait_idle()

    await client.auth.logout()
    await client.cart.wait_idle()
    assert client.state.status is AuthStatus.UNAUTHENTICATED
    assert client.cart.items() == []
    assert storage.get(SESSION_KEY)

    # Logging back in with an empty guest cart does not merge again
    await client.auth.login(PHONE, PASSWORD)
    await client.cart.wait_idle()
    assert client.cart.items() == [{"productId": "p1", "quantity": 2}]
    assert transport.count("POST", "/cart/merge") == 1
    await client.close()


@pytest.mark.asyncio
async def test_expired_access_token_is_refreshed_once_for_concurrent_requests(transport, clock):
    client = await signed_up_client(transport)
    old_token = client.api.access_token
    clock.advance(minutes=16)
    transport.calls.clear()

    profile, cart, again = await asyncio.gather(
        client.api.get_profile(), client.api.get_cart(), client.api.get_profile(),
    )
    assert profile["phone"] == PHONE and again["phone"] == PHONE
    assert cart == []
    assert transport.count("POST", "/auth/refresh") == 1
    assert client.api.access_token != old_token
    await client.close()


@pytest.mark.asyncio
async def test_failed_silent_refresh_expires_the_session(transport, clock):
    client = await signed_up_client(transport)
    transport.http.cookies.clear()
    clock.advance(minutes=16)

    with pytest.raises(ApiError) as exc:
        await client.cart.add_item("p1")
    assert exc.value.status == 401
    await client.cart.wait_idle()
    assert client.state.status is AuthStatus.UNAUTHENTICATED
    assert client.state.banner
    assert client.api.access_token is None
    await client.close()


@pytest.mark.asyncio
async def test_wrong_login_sets_banner_without_leaving_unauthenticated(transport):
    client = await signed_up_client(transport)
    await client.auth.logout()
    state = await client.auth.login(PHONE, "wrong-pass")
    assert state.status is AuthStatus.UNAUTHENTICATED
    assert state.banner == "Invalid phone number or password"
    await client.close()


@pytest.mark.asyncio
async def test_profile_update_refreshes_held_user(transport):
    client = await signed_up_client(transport)
    state = await client.auth.update_profile(first_name="Leila")
    assert state.user.first_name == "Leila"
    assert state.user.last_name == "Ahmadi"
    await client.close()


@pytest.mark.asyncio
async def test_otp_resend_is_throttled_locally_and_verify_updates_user(transport, otp_provider):
    client = await signed_up_client(transport)
    now = [0.0]
    verifier = client.otp_verifier()
    verifier.clock = lambda: now[0]

    with pytest.raises(ValidationError):
        await verifier.verify(PHONE, "12345")

    await verifier.send_challenge(PHONE)
    now[0] = 60.0
    with pytest.raises(ResendThrottled) as exc:
        await verifier.send_challenge(PHONE)
    assert exc.value.retry_after == 60
    assert transport.count("POST", "/auth/otp/send") == 1
    assert transport.count("POST", "/auth/otp/verify") == 0

    assert await verifier.verify(PHONE, otp_provider.last_code(PHONE)) is True
    assert client.state.user.mobile_verified is True
    await client.close()


@pytest.mark.asyncio
async def test_otp_resend_is_allowed_once_countdown_runs_out(transport, clock, otp_provider):
    client = await signed_up_client(transport)
    now = [0.0]
    verifier = client.otp_verifier()
    verifier.clock = lambda: now[0]

    await verifier.send_challenge(PHONE)
    first_code = otp_provider.last_code(PHONE)

    now[0] = 120.0
    clock.advance(seconds=120)
    assert verifier.seconds_until_resend() == 0
    assert await verifier.send_challenge(PHONE) is OTPStatus.SENT
    assert transport.count("POST", "/auth/otp/send") == 2
    assert len(otp_provider.sent) == 2

    code = otp_provider.last_code(PHONE)
    if code != first_code:
        assert await verifier.verify(PHONE, first_code) is False
    assert await verifier.verify(PHONE, code) is True
    assert verifier.status is OTPStatus.VERIFIED
    await client.close()


@pytest.mark.asyncio
async def test_failed_otp_dispatch_returns_verifier_to_idle(transport, otp_provider):
    client = await signed_up_client(transport)
    verifier = client.otp_verifier()

    otp_provider.fail = True
    with pytest.raises(ApiError) as exc:
        await verifier.send_challenge(PHONE)
    assert exc.value.status == 502
    assert verifier.status is OTPStatus.IDLE
    assert verifier.error == DELIVERY_FAILED_MESSAGE
    assert verifier.seconds_until_resend() == 0

    # Nothing blocks asking again straight away
    otp_provider.fail = False
    assert await verifier.send_challenge(PHONE) is OTPStatus.SENT
    assert verifier.error is None
    await client.close()


@pytest.mark.asyncio
async def test_item_added_after_lost_merge_response_is_not_dropped(transport):
    send = transport.request
    dropped = []

    async def lose_first_merge_response(method, path, json=None, token=None):
        response = await send(method, path, json=json, token=token)
        if path == "/cart/merge" and not dropped:
            dropped.append(response)
            raise TransportError()
        return response

    transport.request = lose_first_merge_response
    client = StorefrontClient(transport=transport, storage=MemoryStorage())
    await client.start()
    await client.cart.add_item("p1", 2)
    await client.auth.register(PHONE, PASSWORD, "Sara", "Ahmadi")
    await client.cart.wait_idle()
    assert isinstance(client.cart.last_error, TransportError)

    await client.cart.add_item("p9")
    expected = [{"productId": "p1", "quantity": 2}, {"productId": "p9", "quantity": 1}]
    assert client.cart.mode is CartMode.SERVER
    assert client.cart.items() == expected
    assert client.guest_cart.items() == []
    assert await client.api.get_cart() == expected
    assert transport.count("POST", "/cart/merge") == 2
    await client.close()
