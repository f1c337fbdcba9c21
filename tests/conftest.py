"""Shared fixtures: a stub Solid server behind ``httpx.MockTransport``."""

import json
from typing import Callable, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from solidpod import SolidConfig, SolidPod
from solidpod.identity import SecretCipher, TokenSet
from solidpod.storage import MemoryCredentialStore

SERVER = "http://solid.test"
REDIRECT_URI = "https://app.test/solid/callback"
TOKEN_ENDPOINT = f"{SERVER}/.oidc/token"
REGISTRATION_ENDPOINT = f"{SERVER}/.oidc/reg"
AUTHORIZATION_ENDPOINT = f"{SERVER}/.oidc/auth"


def discovery_document(auth_methods: Optional[list] = None) -> dict:
    document = {
        "issuer": f"{SERVER}/",
        "authorization_endpoint": AUTHORIZATION_ENDPOINT,
        "token_endpoint": TOKEN_ENDPOINT,
        "registration_endpoint": REGISTRATION_ENDPOINT,
    }
    if auth_methods is not None:
        document["token_endpoint_auth_methods_supported"] = auth_methods
    return document


class StubServer:
    """Answers requests from queued canned responses and records every request.

    Each (method, url) route keeps a queue; responses are consumed in order
    and the last one repeats. Unknown routes answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Callable[[httpx.Request], httpx.Response]]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, status: int = 200, *, json=None, text=None, headers=None) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json=json, text=text, headers=headers)

        self.add_handler(method, url, respond)

    def add_handler(self, method: str, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes.setdefault((method.upper(), url), []).append(handler)

    def fail(self, method: str, url: str) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.add_handler(method, url, refuse)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, str(request.url)))
        if not queue:
            return httpx.Response(404, text="not found")
        handler = queue.pop(0) if len(queue) > 1 else queue[0]
        return handler(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handle))

    def sent(self, method: str, url: Optional[str] = None) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and (url is None or str(r.url) == url)]


def form_of(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def json_of(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def server():
    stub = StubServer()
    stub.add("GET", f"{SERVER}/.well-known/openid-configuration", json=discovery_document())
    return stub


@pytest.fixture
def config():
    return SolidConfig(
        server_url=SERVER,
        redirect_uri=REDIRECT_URI,
        secret_key=SecretCipher.generate_key(),
    )


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def pod(config, store, server):
    with SolidPod.from_config(config, store=store, http=server.client()) as solid:
        yield solid


@pytest.fixture
def identity(pod):
    return pod.identities.get_or_create("acme", "alice")


@pytest.fixture
def authed(pod, identity):
    """Identity holding a user-delegated access token."""
    identity.token_set = TokenSet(access_token="AT1")
    return pod.identities.save(identity)
