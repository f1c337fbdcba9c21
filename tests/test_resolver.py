"""Tests for access token resolution and per-request headers."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from solidpod import SolidPod
from solidpod.auth import basic_authorization
from solidpod.exceptions import NoCredentialsAvailable, TokenExchangeFailed
from solidpod.identity import TokenSet, access_token_hash
from solidpod.observability import SolidMetrics

from conftest import SERVER, TOKEN_ENDPOINT, form_of


@pytest.fixture
def with_client_credentials(pod, identity):
    identity.client_id = "svc-id"
    identity.client_secret = pod.cipher.encrypt("svc-secret")
    return pod.identities.save(identity)


class TestResolve:
    """Credential path selection."""

    def test_oidc_token_wins(self, server, pod, authed):
        authed.client_id = "svc-id"
        authed.client_secret = pod.cipher.encrypt("svc-secret")

        assert pod.resolver.resolve(authed) == "AT1"
        assert server.sent("POST", TOKEN_ENDPOINT) == []

    def test_expired_token_falls_back_to_client_credentials(self, server, pod, with_client_credentials):
        with_client_credentials.token_set = TokenSet(
            access_token="AT1", expires_in=60, issued_at=datetime.now(timezone.utc) - timedelta(seconds=120)
        )
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "CC1"})

        assert pod.resolver.resolve(with_client_credentials) == "CC1"

    def test_expired_token_without_fallback(self, server, pod, authed):
        authed.token_set = TokenSet(
            access_token="AT1", expires_in=60, issued_at=datetime.now(timezone.utc) - timedelta(seconds=120)
        )

        assert pod.resolver.resolve(authed) == "AT1"
        assert server.sent("POST", TOKEN_ENDPOINT) == []

    def test_client_credentials_grant(self, server, pod, with_client_credentials):
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "CC1", "token_type": "DPoP"})

        assert pod.resolver.resolve(with_client_credentials) == "CC1"

        request = server.sent("POST", TOKEN_ENDPOINT)[0]
        assert form_of(request) == {"grant_type": "client_credentials", "scope": "openid webid"}
        assert request.headers["authorization"] == basic_authorization("svc-id", "svc-secret")

        claims = jwt.get_unverified_claims(request.headers["dpop"])
        assert claims["htm"] == "POST"
        assert claims["htu"] == TOKEN_ENDPOINT
        assert "ath" not in claims

    def test_client_credentials_not_cached(self, server, pod, with_client_credentials):
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "CC1"})
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "CC2"})

        assert pod.resolver.resolve(with_client_credentials) == "CC1"
        assert pod.resolver.resolve(with_client_credentials) == "CC2"

    def test_client_credentials_rejected(self, server, pod, with_client_credentials):
        server.add("POST", TOKEN_ENDPOINT, 401, json={"error": "invalid_client"})

        with pytest.raises(TokenExchangeFailed) as exc_info:
            pod.resolver.resolve(with_client_credentials)
        assert exc_info.value.error == "invalid_client"
        assert exc_info.value.status == 401

    def test_no_credentials(self, pod, identity):
        with pytest.raises(NoCredentialsAvailable, match="acme:alice"):
            pod.resolver.resolve(identity)

    def test_half_configured_credentials(self, pod, identity):
        identity.client_id = "svc-id"
        with pytest.raises(NoCredentialsAvailable):
            pod.resolver.resolve(identity)

    def test_empty_token_falls_through(self, server, pod, with_client_credentials):
        with_client_credentials.token_set = TokenSet.model_construct(access_token="")
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "CC1"})
        assert pod.resolver.resolve(with_client_credentials) == "CC1"

    def test_metrics(self, config, store, server, identity):
        metrics = SolidMetrics()
        solid = SolidPod.from_config(config, store=store, http=server.client(), metrics=metrics)
        identity.token_set = TokenSet(access_token="AT1")
        solid.resolver.resolve(identity)
        with pytest.raises(NoCredentialsAvailable):
            solid.resolver.resolve(solid.identities.get_or_create("acme", "bob"))

        assert metrics.value("solidpod_token_resolutions_total", {"source": "oidc"}) == 1.0
        assert metrics.value("solidpod_token_resolutions_total", {"source": "none"}) == 1.0


class TestAuthorizationHeaders:
    """Headers attached to every protected request."""

    def test_headers(self, pod, authed):
        url = f"{SERVER}/alice/notes/?page=2"
        headers = pod.resolver.authorization_headers(authed, "get", url)

        assert headers["Authorization"] == "DPoP AT1"
        claims = jwt.get_unverified_claims(headers["DPoP"])
        assert claims["htm"] == "GET"
        assert claims["htu"] == f"{SERVER}/alice/notes/"
        assert claims["ath"] == access_token_hash("AT1")

    def test_fresh_proof_per_call(self, pod, authed):
        url = f"{SERVER}/alice/"
        first = pod.resolver.authorization_headers(authed, "GET", url)["DPoP"]
        second = pod.resolver.authorization_headers(authed, "GET", url)["DPoP"]

        assert first != second
        assert jwt.get_unverified_claims(first)["jti"] != jwt.get_unverified_claims(second)["jti"]

    def test_client_credentials_token_is_bound(self, server, pod, with_client_credentials):
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "CC1"})
        headers = pod.resolver.authorization_headers(with_client_credentials, "PUT", f"{SERVER}/alice/x")

        assert headers["Authorization"] == "DPoP CC1"
        assert jwt.get_unverified_claims(headers["DPoP"])["ath"] == access_token_hash("CC1")
