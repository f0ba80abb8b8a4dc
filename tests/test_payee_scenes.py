"""
Integration Tests: payee list, create and remove flows
"""

import pytest

from conftest import TEST_TOKEN

PAYEE = {"id": "p1", "nickName": "bob", "email": "bob@example.com"}


# ============================================================================
# LIST
# ============================================================================

@pytest.mark.asyncio
async def test_list_payees_pages(send, logged_in, services, responder):
    services.payees.get_payees.return_value = {"data": [PAYEE], "hasMore": True}

    await send(callback="list_payees:2")

    services.payees.get_payees.assert_awaited_once_with(TEST_TOKEN, page=2, limit=5)
    assert "6. *bob*" in responder.last_text
    assert "list_payees:1" in responder.callback_data()
    assert "list_payees:3" in responder.callback_data()
    assert "delete_payee" in responder.callback_data()


@pytest.mark.asyncio
async def test_empty_payee_list(send, logged_in, responder):
    await send(text="/payees")

    assert "You don't have any saved recipients yet." in responder.last_text
    assert "delete_payee" not in responder.callback_data()


# ============================================================================
# CREATE
# ============================================================================

@pytest.mark.asyncio
async def test_create_payee_full_flow(send, logged_in, services, responder):
    services.payees.create_payee.return_value = {"id": "p2", "nickName": "alice"}

    await send(callback="add_payee")
    await send(text="Alice@Example.com")
    await send(text="alice")
    await send(text="Alice")
    await send(text="Smith")
    assert logged_in.scene.state == "confirm"
    assert "Name: Alice Smith" in responder.last_text

    await send(callback="confirm_payee")

    services.payees.create_payee.assert_awaited_once_with(
        TEST_TOKEN, "alice@example.com", "alice", "Alice", "Smith",
    )
    assert "Payee Saved" in responder.last_text
    assert logged_in.scene is None


@pytest.mark.asyncio
async def test_names_can_be_skipped(send, logged_in, services):
    services.payees.create_payee.return_value = {"id": "p2", "nickName": "alice"}

    await send(callback="add_payee")
    await send(text="alice@example.com")
    await send(text="alice")
    await send(callback="skip")
    await send(callback="skip")
    await send(callback="confirm_payee")

    services.payees.create_payee.assert_awaited_once_with(TEST_TOKEN, "alice@example.com", "alice", None, None)


@pytest.mark.asyncio
async def test_short_nickname_is_rejected(send, logged_in, responder):
    await send(callback="add_payee")
    await send(text="alice@example.com")

    await send(text="a")

    assert logged_in.scene.state == "enter_nickname"
    assert "2 to 50 characters" in responder.last_text


@pytest.mark.asyncio
async def test_save_payee_after_transfer_skips_email(send, logged_in, responder):
    await send(callback="save_payee:bob@example.com")

    assert logged_in.scene.state == "enter_nickname"
    assert logged_in.scene.data["email"] == "bob@example.com"
    assert "bob@example.com" in responder.last_text


@pytest.mark.asyncio
async def test_save_payee_with_bad_email_asks_for_one(send, logged_in):
    await send(callback="save_payee:nonsense")

    assert logged_in.scene.state == "enter_email"


@pytest.mark.asyncio
async def test_create_payee_failure(send, logged_in, services, responder):
    await send(callback="save_payee:bob@example.com")
    await send(text="bob")
    await send(callback="skip")
    await send(callback="skip")

    await send(callback="confirm_payee")

    assert "Failed to Save Payee" in responder.last_text
    assert logged_in.scene is None


# ============================================================================
# REMOVE
# ============================================================================

@pytest.mark.asyncio
async def test_remove_payee_from_list(send, logged_in, services, responder):
    services.payees.get_payees.return_value = {"data": [PAYEE], "hasMore": False}
    services.payees.get_payee.return_value = PAYEE
    services.payees.delete_payee.return_value = True

    await send(callback="delete_payee")
    assert "select_payee:p1" in responder.callback_data()

    await send(callback="select_payee:p1")
    assert logged_in.scene.state == "confirm"

    await send(callback="confirm_remove")

    services.payees.delete_payee.assert_awaited_once_with(TEST_TOKEN, "p1")
    assert "was removed" in responder.last_text
    assert logged_in.scene is None


@pytest.mark.asyncio
async def test_remove_payee_by_typed_id(send, logged_in, services):
    services.payees.get_payee.return_value = PAYEE

    await send(callback="delete_payee")
    await send(text="p1")

    services.payees.get_payee.assert_awaited_once_with(TEST_TOKEN, "p1")
    assert logged_in.scene.state == "confirm"


@pytest.mark.asyncio
async def test_remove_payee_with_preselected_id(send, logged_in, services):
    services.payees.get_payee.return_value = PAYEE

    await send(callback="delete_payee:p1")

    assert logged_in.scene.state == "confirm"
    assert logged_in.scene.data["payee_name"] == "bob"


@pytest.mark.asyncio
async def test_back_from_remove_confirmation(send, logged_in, services):
    services.payees.get_payee.return_value = PAYEE
    await send(callback="delete_payee:p1")

    await send(callback="back_to_payees")

    assert logged_in.scene.state == "select_payee"
    services.payees.delete_payee.assert_not_awaited()


@pytest.mark.asyncio
async def test_remove_failure(send, logged_in, services, responder):
    services.payees.get_payee.return_value = PAYEE
    await send(callback="delete_payee:p1")

    await send(callback="confirm_remove")

    assert "Failed to Remove Payee" in responder.last_text
    assert logged_in.scene is None
