"""
TeamTime - Test Configuration and Fixtures
"""
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient, ASGITransport
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['INVITE_TOKEN_SECRET'] = 'test-invite-secret-for-testing-only'
os.environ['SITE_URL'] = 'https://teamtime.test'
os.environ['PUBLIC_HOST'] = ''
os.environ['SENDGRID_API_KEY'] = ''
os.environ['SMTP_USER'] = ''
os.environ['SMTP_PASSWORD'] = ''
os.environ['DEFAULT_LOCALE'] = 'en'

from app.main import app
from app.api.v1.endpoints.invitations import get_email_service, get_token_codec
from app.services.invite_token_service import TokenCodec
from app.services.time_aggregation import TimeEntry

fake = Faker()

TEST_SECRET = os.environ['INVITE_TOKEN_SECRET']
FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Millisecond clock that tests can move forward"""

    def __init__(self, start: datetime = FIXED_NOW):
        self.now_ms = int(start.timestamp() * 1000)

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def codec(clock: FakeClock) -> TokenCodec:
    """Token codec with the test secret and a controllable clock"""
    return TokenCodec(TEST_SECRET, clock=clock)


@pytest.fixture
def mailer() -> AsyncMock:
    """Stand-in for the email service; reports successful delivery"""
    mock = AsyncMock()
    mock.send_invitation_email.return_value = True
    return mock


@pytest.fixture
async def client(codec: TokenCodec, mailer: AsyncMock) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with codec and email overrides"""
    app.dependency_overrides[get_token_codec] = lambda: codec
    app.dependency_overrides[get_email_service] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_entry() -> Callable[..., TimeEntry]:
    """Factory for finished time entries starting on FIXED_NOW's day"""

    def _make(
        project_id: str = 'proj-a',
        user_id: str = 'user-x',
        start: str = '09:00',
        minutes: int = 60,
        break_minutes: int = 0,
        **kwargs,
    ) -> TimeEntry:
        hour, minute = (int(part) for part in start.split(':'))
        start_time = kwargs.pop('start_time', FIXED_NOW.replace(hour=hour, minute=minute))
        kwargs.setdefault('project_name', f'Project {project_id}')
        kwargs.setdefault('user_name', fake.name())
        return TimeEntry(
            start_time=start_time,
            end_time=kwargs.pop('end_time', start_time + timedelta(minutes=minutes)),
            break_minutes=break_minutes,
            project_id=project_id,
            user_id=user_id,
            **kwargs,
        )

    return _make


def entry_row(
    project_id: str = 'proj-a',
    user_id: str = 'user-x',
    start: str = '2024-05-01T09:00:00Z',
    end: str = '2024-05-01T10:00:00Z',
    break_minutes: int = 0,
    **kwargs,
) -> dict:
    """JSON row in the joined shape the data store returns"""
    row = {
        'id': kwargs.pop('id', fake.uuid4()),
        'project_id': project_id,
        'user_id': user_id,
        'start_time': start,
        'end_time': end,
        'break_minutes': break_minutes,
        'projects': {'name': kwargs.pop('project_name', f'Project {project_id}')},
        'profiles': {'full_name': kwargs.pop('user_name', f'User {user_id}')},
    }
    row.update(kwargs)
    return row


@pytest.fixture
def make_row() -> Callable[..., dict]:
    return entry_row
