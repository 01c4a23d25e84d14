"""
Unit Tests for HTTP Middleware
Tests for: logging skip rules, request IDs, team context, security headers, size limit
"""
import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from app.core.logging_config import log_context
from app.core.middleware import (
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
    should_skip_logging,
)


@pytest.fixture
def context_app() -> FastAPI:
    """Small app that reports the team context seen by the handler"""
    app = FastAPI()
    app.add_middleware(RequestSizeLimitMiddleware, max_size=100)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    @app.get('/context')
    async def read_context():
        return {'team_id': log_context().get('team_id', '')}

    @app.post('/context')
    async def accept_body():
        return {'ok': True}

    return app


@pytest.fixture
async def context_client(context_app):
    async with AsyncClient(transport=ASGITransport(app=context_app), base_url='http://test') as ac:
        yield ac


class TestShouldSkipLogging:

    @pytest.mark.parametrize('path', ['/health', '/', '/docs', '/api/v1/health/live', '/static/app.js'])
    def test_skipped(self, path):
        assert should_skip_logging(path) is True

    @pytest.mark.parametrize('path', ['/api/v1/invitations', '/api/v1/exports/time-entries'])
    def test_logged(self, path):
        assert should_skip_logging(path) is False


class TestRequestLoggingMiddleware:

    @pytest.mark.asyncio
    async def test_generates_request_id(self, context_client):
        response = await context_client.get('/context')

        assert len(response.headers['X-Request-ID']) == 8
        assert response.headers['X-Response-Time'].endswith('ms')

    @pytest.mark.asyncio
    async def test_propagates_incoming_request_id(self, context_client):
        response = await context_client.get('/context', headers={'X-Request-ID': 'abc-123'})

        assert response.headers['X-Request-ID'] == 'abc-123'

    @pytest.mark.asyncio
    async def test_team_id_from_header(self, context_client):
        response = await context_client.get('/context', headers={'X-Team-ID': 'team-7'})

        assert response.json() == {'team_id': 'team-7'}

    @pytest.mark.asyncio
    async def test_team_id_from_query(self, context_client):
        response = await context_client.get('/context', params={'teamId': 'team-9'})

        assert response.json() == {'team_id': 'team-9'}


class TestSecurityHeaders:

    @pytest.mark.asyncio
    async def test_headers_present(self, context_client):
        response = await context_client.get('/context')

        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['X-Frame-Options'] == 'DENY'


class TestRequestSizeLimit:

    @pytest.mark.asyncio
    async def test_rejects_large_body(self, context_client):
        response = await context_client.post('/context', content=b'x' * 200)

        assert response.status_code == 413

    @pytest.mark.asyncio
    async def test_accepts_small_body(self, context_client):
        response = await context_client.post('/context', content=b'{}')

        assert response.status_code == 200
