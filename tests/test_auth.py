"""Tests for the identity session"""
from unittest.mock import AsyncMock

import pytest

from storefront.auth import IdentitySession


def test_anonymous_by_default():
    """Test a new session has no user and no token."""
    identity = IdentitySession()

    assert identity.is_authenticated is False
    assert identity.user_id is None
    assert identity.get_token() is None


def test_partial_credentials_are_anonymous():
    """Test a user id without a token (or the reverse) is not signed in."""
    assert IdentitySession(user_id="user-1").is_authenticated is False
    assert IdentitySession(token="tok").get_token() is None


@pytest.mark.asyncio
async def test_login_and_logout_notify_listeners():
    """Test every login, including a token refresh, notifies observers."""
    identity = IdentitySession()
    listener = AsyncMock()
    identity.subscribe(listener)

    await identity.login("user-1", "tok")
    await identity.login("user-1", "tok-refreshed")
    await identity.logout()

    assert [call.args for call in listener.await_args_list] == [
        (True, "user-1"),
        (True, "user-1"),
        (False, None),
    ]
    assert identity.get_token() is None


@pytest.mark.asyncio
async def test_expire_signs_out():
    """Test the session-expired path behaves like logout."""
    identity = IdentitySession(user_id="user-1", token="tok")
    listener = AsyncMock()
    identity.subscribe(listener)

    await identity.expire()

    assert identity.is_authenticated is False
    listener.assert_awaited_once_with(False, None)


@pytest.mark.asyncio
async def test_unsubscribe_stops_notifications():
    """Test an unsubscribed listener is not called."""
    identity = IdentitySession()
    listener = AsyncMock()
    unsubscribe = identity.subscribe(listener)

    unsubscribe()
    await identity.login("user-1", "tok")

    listener.assert_not_awaited()


@pytest.mark.asyncio
async def test_login_requires_credentials():
    """Test login with an empty user id is rejected."""
    with pytest.raises(ValueError):
        await IdentitySession().login("", "tok")
