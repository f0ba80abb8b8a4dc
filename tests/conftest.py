"""
Shared fixtures: a controllable clock, a recording responder, services with
mocked Copperx API calls, and a factory for handler contexts.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from copperx_bot.handlers.context import HandlerContext
from copperx_bot.handlers.events import Event, Responder
from copperx_bot.handlers.router import build_router
from copperx_bot.scenes import build_scene_manager
from copperx_bot.services.auth_service import AuthService
from copperx_bot.services.container import Services
from copperx_bot.services.rate_limiter import RateLimiter
from copperx_bot.session.models import AuthState, Session
from copperx_bot.utils.encryption import TokenCipher

TEST_APP_KEY = "test-app-key-0123456789"
TEST_TOKEN = "test-access-token"
USER_ID = 1001
CHAT_ID = 2002


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponder(Responder):
    """Records every outbound message and callback answer"""

    def __init__(self):
        self.replies = []
        self.answers = []

    async def reply(self, text, reply_markup=None):
        self.replies.append((text, reply_markup))

    async def answer_callback(self, text=None):
        self.answers.append(text)

    @property
    def texts(self):
        return [text for text, _ in self.replies]

    @property
    def last_text(self):
        return self.replies[-1][0] if self.replies else None

    @property
    def last_markup(self):
        return self.replies[-1][1] if self.replies else None

    def callback_data(self):
        """Every callback_data on the last reply's keyboard"""
        markup = self.last_markup
        if markup is None:
            return []
        return [button.callback_data for row in markup.inline_keyboard for button in row]


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cipher():
    return TokenCipher(TEST_APP_KEY)


@pytest.fixture
def api():
    """ApiClient with every HTTP verb mocked"""
    client = Mock()
    client.get = AsyncMock(return_value={})
    client.post = AsyncMock(return_value={})
    client.put = AsyncMock(return_value={})
    client.delete = AsyncMock(return_value={})
    return client


@pytest.fixture
def services(api, cipher, clock):
    """Real auth and rate limiting; domain services are mocks"""
    wallets = Mock()
    wallets.get_wallets = AsyncMock(return_value=[])
    wallets.get_default_wallet = AsyncMock(return_value=None)
    wallets.set_default_wallet = AsyncMock(return_value={})
    wallets.create_wallet = AsyncMock(return_value=None)
    wallets.get_balances = AsyncMock(return_value=[])
    wallets.get_supported_networks = AsyncMock(return_value=[])
    wallets.get_default_balance = AsyncMock(return_value=None)

    transfers = Mock()
    transfers.send = AsyncMock(return_value=None)
    transfers.withdraw_to_bank = AsyncMock(return_value=None)
    transfers.send_batch = AsyncMock(return_value=None)
    transfers.get_transfers = AsyncMock(return_value=None)
    transfers.get_transfer = AsyncMock(return_value=None)

    payees = Mock()
    payees.get_payees = AsyncMock(return_value={"data": [], "hasMore": False})
    payees.get_payee = AsyncMock(return_value=None)
    payees.create_payee = AsyncMock(return_value=None)
    payees.delete_payee = AsyncMock(return_value=False)

    accounts = Mock()
    accounts.get_bank_accounts = AsyncMock(return_value=[])
    accounts.get_providers = AsyncMock(return_value=[])
    accounts.create_bank_account = AsyncMock(return_value=None)

    quotes = Mock()
    quotes.get_offramp_quote = AsyncMock(return_value=None)

    kyc = Mock()
    kyc.get_kycs = AsyncMock(return_value=[])
    kyc.get_latest_kyc = AsyncMock(return_value={"status": "approved"})

    notifications = Mock()
    notifications.enabled = True
    notifications.subscribe = AsyncMock(return_value=True)
    notifications.send_test = AsyncMock(return_value=True)
    notifications.is_subscribed = Mock(return_value=False)

    return Services(
        api=api,
        auth=AuthService(api, cipher, clock=clock),
        wallets=wallets,
        transfers=transfers,
        payees=payees,
        accounts=accounts,
        quotes=quotes,
        kyc=kyc,
        notifications=notifications,
        rate_limiter=RateLimiter(clock=clock),
    )


@pytest.fixture
def session(clock):
    return Session(created_at=clock(), updated_at=clock())


@pytest.fixture
def logged_in(session, cipher, clock):
    """The session, authenticated with TEST_TOKEN for another hour"""
    session.auth = AuthState(
        is_authenticated=True,
        access_token=cipher.encrypt(TEST_TOKEN),
        expires_at=clock() + 3600,
        email="user@example.com",
        user_id="user-1",
        organization_id="org-1",
    )
    return session


@pytest.fixture
def scenes():
    return build_scene_manager()


@pytest.fixture
def router(scenes):
    return build_router(scenes)


@pytest.fixture
def responder():
    return FakeResponder()


@pytest.fixture
def make_ctx(services, session, scenes, responder):
    """Build a HandlerContext for one text message or button press"""

    def factory(text=None, callback=None, session=session, responder=responder, user_id=USER_ID):
        event = Event(
            user_id=user_id,
            chat_id=CHAT_ID,
            username="tester",
            first_name="Test",
            text=text,
            callback_data=callback,
        )
        return HandlerContext(event, session, services, responder, scenes=scenes)

    return factory


@pytest.fixture
def send(router, make_ctx):
    """Dispatch one event through the router: `await send(text=...)`"""

    async def dispatch(text=None, callback=None, **kwargs):
        ctx = make_ctx(text=text, callback=callback, **kwargs)
        await router.dispatch(ctx)
        return ctx

    return dispatch
