"""Tests for the OIDC registration, authorization and token exchange flow."""

import base64
import json
from urllib.parse import parse_qs, urlsplit

import pytest
from jose import jws, jwt

from solidpod.auth import AuthState, basic_authorization, challenge_for, select_client_auth
from solidpod.exceptions import (
    ClientNotRegistered,
    ClientRegistrationFailed,
    ConfigurationError,
    TokenExchangeFailed,
)

from conftest import (
    AUTHORIZATION_ENDPOINT,
    REDIRECT_URI,
    REGISTRATION_ENDPOINT,
    SERVER,
    TOKEN_ENDPOINT,
    discovery_document,
    form_of,
    json_of,
)

WEBID = f"{SERVER}/alice/profile/card#me"
CLIENT_KEY = "oidc:client:solidpod:acme:alice"


def register_client(server, pod, identity, secret="SECRET"):
    payload = {"client_id": "cid", "client_name": "solidpod"}
    if secret:
        payload["client_secret"] = secret
    server.add("POST", REGISTRATION_ENDPOINT, 201, json=payload)
    return pod.auth.register(identity)


def query_of(url):
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


class TestClientAuthSelection:
    @pytest.mark.parametrize(
        "supported, expected",
        [
            (None, "client_secret_basic"),
            ([], "client_secret_basic"),
            (["client_secret_basic", "client_secret_post"], "client_secret_basic"),
            (["client_secret_post"], "client_secret_post"),
            (["private_key_jwt"], "client_secret_basic"),
        ],
    )
    def test_select(self, supported, expected):
        assert select_client_auth(supported) == expected

    def test_basic_value_is_urlencoded(self):
        expected = base64.b64encode(b"my%20client:s%3Acret").decode()
        assert basic_authorization("my client", "s:cret") == f"Basic {expected}"


class TestRegister:
    """Dynamic client registration."""

    def test_success(self, server, pod, identity, store):
        registration = register_client(server, pod, identity)

        assert registration.client_id == "cid"
        assert registration.client_secret == "SECRET"
        assert registration.redirect_uri == REDIRECT_URI

        body = json_of(server.sent("POST", REGISTRATION_ENDPOINT)[0])
        assert body == {"client_name": "solidpod", "redirect_uris": [REDIRECT_URI]}

    def test_secret_encrypted_at_rest(self, server, pod, identity, store):
        register_client(server, pod, identity)
        stored = json.loads(store.get(CLIENT_KEY))

        assert stored["client_secret"] != "SECRET"
        assert pod.cipher.decrypt(stored["client_secret"]) == "SECRET"

    def test_restore(self, server, pod, identity):
        assert pod.auth.restore(identity) is None
        register_client(server, pod, identity)

        restored = pod.auth.restore(identity)
        assert restored.client_id == "cid"
        assert restored.client_secret == "SECRET"

    def test_extra_params(self, server, pod, identity):
        server.add("POST", REGISTRATION_ENDPOINT, 201, json={"client_id": "cid"})
        pod.auth.register(identity, extra_params={"token_endpoint_auth_method": "client_secret_basic"})

        body = json_of(server.sent("POST", REGISTRATION_ENDPOINT)[0])
        assert body["token_endpoint_auth_method"] == "client_secret_basic"

    def test_rejected_carries_body(self, server, pod, identity):
        server.add("POST", REGISTRATION_ENDPOINT, 400, text="invalid redirect_uri")

        with pytest.raises(ClientRegistrationFailed) as exc_info:
            pod.auth.register(identity)
        assert exc_info.value.status == 400
        assert exc_info.value.body == "invalid redirect_uri"
        assert "invalid redirect_uri" in str(exc_info.value)

    def test_missing_client_id(self, server, pod, identity):
        server.add("POST", REGISTRATION_ENDPOINT, 201, json={"client_secret": "x"})
        with pytest.raises(ClientRegistrationFailed, match="client_id"):
            pod.auth.register(identity)

    def test_requires_redirect_uri(self, pod, identity):
        pod.auth.redirect_uri = None
        with pytest.raises(ConfigurationError):
            pod.auth.register(identity)


class TestAuthorize:
    """Authorization redirect with PKCE."""

    def test_requires_registration(self, pod, identity):
        with pytest.raises(ClientNotRegistered):
            pod.auth.authorize(identity)

    def test_url(self, server, pod, identity, store):
        register_client(server, pod, identity)
        url = pod.auth.authorize(identity)

        assert url.startswith(f"{AUTHORIZATION_ENDPOINT}?")
        params = query_of(url)
        assert params["response_type"] == "code"
        assert params["client_id"] == "cid"
        assert params["redirect_uri"] == REDIRECT_URI
        assert params["scope"] == "openid webid offline_access"
        assert params["code_challenge_method"] == "S256"

        verifier = store.get("oidc:session:acme:alice:verifier")
        assert params["code_challenge"] == challenge_for(verifier)
        assert params["state"] == store.get("oidc:session:acme:alice:state")

    def test_verifier_is_fresh(self, server, pod, identity, store):
        register_client(server, pod, identity)
        pod.auth.authorize(identity)
        first = store.get("oidc:session:acme:alice:verifier")
        pod.auth.authorize(identity)
        assert store.get("oidc:session:acme:alice:verifier") != first


class TestExchangeCode:
    """Authorization code exchange."""

    @pytest.fixture
    def requested(self, server, pod, identity):
        register_client(server, pod, identity)
        pod.auth.authorize(identity)
        return identity

    def test_basic_auth_and_proof(self, server, pod, requested, store):
        verifier = store.get("oidc:session:acme:alice:verifier")
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "AT1", "token_type": "DPoP"})

        tokens = pod.auth.exchange_code(requested, "CODE1")

        assert tokens.access_token == "AT1"
        request = server.sent("POST", TOKEN_ENDPOINT)[0]
        form = form_of(request)
        assert form["grant_type"] == "authorization_code"
        assert form["code"] == "CODE1"
        assert form["code_verifier"] == verifier
        assert form["redirect_uri"] == REDIRECT_URI
        assert "client_secret" not in form
        assert request.headers["authorization"] == basic_authorization("cid", "SECRET")

        claims = jwt.get_unverified_claims(request.headers["dpop"])
        assert claims["htm"] == "POST"
        assert claims["htu"] == TOKEN_ENDPOINT
        assert "ath" not in claims

    def test_post_auth_when_only_post_supported(self, server, pod, identity):
        discovery_url = f"{SERVER}/.well-known/openid-configuration"
        server.routes.pop(("GET", discovery_url))
        server.add("GET", discovery_url, json=discovery_document(["client_secret_post"]))
        register_client(server, pod, identity)
        pod.auth.authorize(identity)
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "AT1"})

        pod.auth.exchange_code(identity, "CODE1")

        request = server.sent("POST", TOKEN_ENDPOINT)[0]
        form = form_of(request)
        assert form["client_id"] == "cid"
        assert form["client_secret"] == "SECRET"
        assert "authorization" not in request.headers

    def test_public_client(self, server, pod, identity):
        register_client(server, pod, identity, secret=None)
        pod.auth.authorize(identity)
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "AT1"})

        pod.auth.exchange_code(identity, "CODE1")

        request = server.sent("POST", TOKEN_ENDPOINT)[0]
        assert form_of(request)["client_id"] == "cid"
        assert "authorization" not in request.headers

    def test_persists_tokens_and_webid(self, server, pod, requested, store):
        id_token = jwt.encode({"webid": WEBID, "sub": "other"}, "secret", algorithm="HS256")
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "AT1", "id_token": id_token})

        pod.auth.exchange_code(requested, "CODE1")

        loaded = pod.identities.load("acme:alice")
        assert loaded.access_token == "AT1"
        assert loaded.webid == WEBID
        assert loaded.issuer == SERVER
        assert store.scan_prefix("oidc:session:acme:alice:") == {}

    def test_opaque_id_token_keeps_webid_empty(self, server, pod, requested):
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "AT1", "id_token": "ID1"})
        pod.auth.exchange_code(requested, "CODE1")
        assert requested.webid is None

    def test_provider_error(self, server, pod, requested):
        server.add(
            "POST", TOKEN_ENDPOINT, 400, json={"error": "invalid_grant", "error_description": "expired"}
        )

        with pytest.raises(TokenExchangeFailed, match="expired") as exc_info:
            pod.auth.exchange_code(requested, "CODE1")

        assert exc_info.value.error == "invalid_grant"
        assert exc_info.value.status == 400
        assert requested.token_set is None
        assert pod.identities.load("acme:alice").token_set is None
        assert pod.auth.state(requested) == AuthState.AUTHORIZATION_REQUESTED

    def test_http_error_without_json(self, server, pod, requested):
        server.add("POST", TOKEN_ENDPOINT, 502, text="bad gateway")
        with pytest.raises(TokenExchangeFailed) as exc_info:
            pod.auth.exchange_code(requested, "CODE1")
        assert exc_info.value.error == "http_error"

    def test_missing_access_token(self, server, pod, requested):
        server.add("POST", TOKEN_ENDPOINT, json={"token_type": "DPoP"})
        with pytest.raises(TokenExchangeFailed) as exc_info:
            pod.auth.exchange_code(requested, "CODE1")
        assert exc_info.value.error == "invalid_response"
        assert requested.token_set is None

    def test_state_mismatch(self, server, pod, requested):
        with pytest.raises(TokenExchangeFailed) as exc_info:
            pod.auth.exchange_code(requested, "CODE1", state="forged")
        assert exc_info.value.error == "invalid_state"
        assert server.sent("POST", TOKEN_ENDPOINT) == []

    def test_matching_state(self, server, pod, requested, store):
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "AT1"})
        state = store.get("oidc:session:acme:alice:state")
        assert pod.auth.exchange_code(requested, "CODE1", state=state).access_token == "AT1"

    def test_unregistered(self, pod, identity):
        with pytest.raises(ClientNotRegistered):
            pod.auth.exchange_code(identity, "CODE1")


class TestLogoutAndState:
    """Derived state across the whole flow."""

    def test_transitions(self, server, pod, identity):
        assert pod.auth.state(identity) == AuthState.UNREGISTERED

        register_client(server, pod, identity)
        assert pod.auth.state(identity) == AuthState.REGISTERED

        pod.auth.authorize(identity)
        assert pod.auth.state(identity) == AuthState.AUTHORIZATION_REQUESTED

        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "AT1"})
        pod.auth.exchange_code(identity, "CODE1")
        assert pod.auth.state(identity) == AuthState.AUTHENTICATED

        pod.auth.logout(identity)
        assert pod.auth.state(identity) == AuthState.REVOKED

        pod.auth.authorize(identity)
        assert pod.auth.state(identity) == AuthState.AUTHORIZATION_REQUESTED

    def test_logout_clears_token_and_key(self, server, pod, identity):
        register_client(server, pod, identity)
        pod.auth.authorize(identity)
        server.add("POST", TOKEN_ENDPOINT, json={"access_token": "AT1"})
        pod.auth.exchange_code(identity, "CODE1")
        assert pod.keys.get("acme:alice") is not None

        pod.auth.logout(identity)

        assert pod.keys.get("acme:alice") is None
        assert pod.identities.load("acme:alice").token_set is None
        assert pod.auth.restore(identity) is not None

    def test_state_is_per_scope(self, server, pod, identity):
        register_client(server, pod, identity)
        bob = pod.identities.get_or_create("acme", "bob")
        assert pod.auth.state(bob) == AuthState.UNREGISTERED

    def test_logout_keeps_nested_scope_session(self, server, pod, identity, store):
        nested = pod.identities.get_or_create("acme", "alice:bob")
        register_client(server, pod, identity)
        register_client(server, pod, nested)
        pod.auth.authorize(identity)
        pod.auth.authorize(nested)

        pod.auth.logout(identity)

        assert pod.auth.state(identity) == AuthState.REVOKED
        assert pod.auth.state(nested) == AuthState.AUTHORIZATION_REQUESTED
        assert set(store.scan_prefix("oidc:session:acme:alice:bob:")) == {
            "oidc:session:acme:alice:bob:verifier",
            "oidc:session:acme:alice:bob:state",
            "oidc:session:acme:alice:bob:client-name",
        }


class TestMintProof:
    def test_forwards_to_minter(self, pod):
        proof = pod.auth.mint_proof("GET", f"{SERVER}/alice/", access_token="AT1", scope="acme:alice")

        header = jws.get_unverified_header(proof)
        assert header["jwk"] == pod.keys.get_or_create("acme:alice").public_jwk
        assert "ath" in jwt.get_unverified_claims(proof)
