"""Shared fixtures for re-signer tests."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from resigner.api.app import app
from resigner.core.resigner import CredentialResigner, ResignerSecrets
from resigner.core.signing import sign_credential

UPSTREAM_SECRET = "123456:upstream-bot-token"
DOWNSTREAM_SECRET = "downstream-client-secret"
CLIENT_ID = "client-42"

LAUNCH_PAIRS = [
    ("query_id", "AAHdF6IQAAAAAN0XohDhrOrc"),
    ("user", '{"id":279058397,"first_name":"Vlad","username":"vdkfrost","language_code":"ru"}'),
    ("auth_date", "1662771648"),
]


@pytest.fixture
def secrets() -> ResignerSecrets:
    return ResignerSecrets(
        upstream_secret=UPSTREAM_SECRET,
        downstream_secret=DOWNSTREAM_SECRET,
        downstream_client_id=CLIENT_ID,
    )


@pytest.fixture
def resigner(secrets) -> CredentialResigner:
    return CredentialResigner(secrets)


@pytest.fixture
def signed_init_data() -> str:
    """Launch data correctly signed under the upstream secret."""
    return sign_credential(LAUNCH_PAIRS, UPSTREAM_SECRET)


@pytest_asyncio.fixture
async def client(resigner):
    """HTTP test client with fixture secrets injected on app state."""
    app.state.resigner = resigner

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    del app.state.resigner


@pytest.fixture
def launch_pairs() -> list[tuple[str, str]]:
    return list(LAUNCH_PAIRS)
