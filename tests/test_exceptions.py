"""Tests for the centralized exception hierarchy."""

import pytest

from solidpod.exceptions import (
    AccountSetupFailed,
    AuthenticationError,
    ClientNotRegistered,
    ClientRegistrationFailed,
    ConfigurationError,
    IdentityError,
    ImportPartialFailure,
    NoCredentialsAvailable,
    PermissionCheckFailed,
    ProofGenerationFailed,
    ProtocolError,
    RequestFailed,
    ResourceCreationFailed,
    ResourceRequestFailed,
    SolidPodError,
    StorageError,
    TokenExchangeFailed,
)
from solidpod.resources import CreationAttempt


class TestExceptionHierarchy:
    """Verify the exception class hierarchy is correct."""

    def test_base_exception_exists(self):
        assert issubclass(SolidPodError, Exception)

    @pytest.mark.parametrize(
        "exc_cls",
        [
            ConfigurationError,
            StorageError,
            IdentityError,
            AuthenticationError,
            ProtocolError,
            ImportPartialFailure,
        ],
    )
    def test_direct_subclasses_of_solidpod_error(self, exc_cls):
        assert issubclass(exc_cls, SolidPodError)
        assert exc_cls.__bases__ == (SolidPodError,)

    @pytest.mark.parametrize(
        "exc_cls",
        [
            ClientRegistrationFailed,
            ClientNotRegistered,
            TokenExchangeFailed,
            NoCredentialsAvailable,
            AccountSetupFailed,
        ],
    )
    def test_authentication_subclasses(self, exc_cls):
        assert exc_cls.__bases__ == (AuthenticationError,)

    @pytest.mark.parametrize(
        "exc_cls",
        [RequestFailed, ResourceRequestFailed, ResourceCreationFailed, PermissionCheckFailed],
    )
    def test_protocol_subclasses(self, exc_cls):
        assert exc_cls.__bases__ == (ProtocolError,)

    def test_proof_generation_is_identity_error(self):
        assert issubclass(ProofGenerationFailed, IdentityError)


class TestExceptionContext:
    """Errors carry enough context to diagnose without retrying."""

    def test_registration_failure_carries_response(self):
        err = ClientRegistrationFailed("rejected", status=400, body='{"error":"invalid_redirect_uri"}')
        assert err.status == 400
        assert "invalid_redirect_uri" in str(err)
        assert "400" in str(err)

    def test_registration_failure_without_status(self):
        assert str(ClientRegistrationFailed("no client_id")) == "no client_id"

    def test_token_exchange_message_includes_description(self):
        err = TokenExchangeFailed("invalid_grant", "expired", status=400)
        assert err.error == "invalid_grant"
        assert err.description == "expired"
        assert str(err) == "invalid_grant: expired"

    def test_token_exchange_without_description(self):
        assert str(TokenExchangeFailed("invalid_client")) == "invalid_client"

    def test_request_failed_uppercases_method(self):
        err = RequestFailed("get", "http://solid.test/x", "timed out")
        assert err.method == "GET"
        assert str(err) == "GET http://solid.test/x failed: timed out"

    def test_resource_request_failed(self):
        err = ResourceRequestFailed("http://solid.test/x", 403, "forbidden", action="delete")
        assert err.status == 403
        assert str(err).startswith("delete http://solid.test/x returned 403")

    def test_creation_failure_summarizes_attempts(self):
        attempts = [
            CreationAttempt(strategy="post_metadata", status=409),
            CreationAttempt(strategy="post_empty", status=500),
            CreationAttempt(strategy="put_metadata", status=None, body="refused"),
        ]
        err = ResourceCreationFailed("http://solid.test/a/b/", attempts)
        assert len(err.attempts) == 3
        assert "post_metadata=409" in str(err)
        assert "put_metadata=None" in str(err)

    def test_import_partial_failure(self):
        err = ImportPartialFailure("vehicles", "item3", "boom")
        assert err.item_key == "item3"
        assert str(err) == "vehicles/item3: boom"

    def test_catch_all_with_base(self):
        with pytest.raises(SolidPodError):
            raise NoCredentialsAvailable("nothing stored")
