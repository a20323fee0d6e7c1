"""Passwordless registration and login with passkeys.

Each ceremony has a start step, which hands the browser a challenge and
parks it in a per-username state document, and a finish step, which checks
the signed response against that challenge. The parked state is removed when
the ceremony finishes, successfully or not.
"""
from datetime import datetime, timezone
from typing import Any, Dict
import json
import uuid

from webauthn import (
    generate_authentication_options,
    generate_registration_options,
    options_to_json,
    verify_authentication_response,
    verify_registration_response,
)
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url
from webauthn.helpers.exceptions import (
    InvalidAuthenticationResponse,
    InvalidCBORData,
    InvalidJSONStructure,
    InvalidRegistrationResponse,
)
from webauthn.helpers.structs import PublicKeyCredentialDescriptor, UserVerificationRequirement

from livepoll.core.config import settings
from livepoll.core.errors import PollAppError
from livepoll.core.jwt import create_access_token
from livepoll.core.logging_config import get_logger
from livepoll.db.user_repository import UserRepository
from livepoll.models.user import User, UserLoginState, UserRegistrationState

logger = get_logger(__name__)

CEREMONY_ERRORS = (
    InvalidRegistrationResponse,
    InvalidAuthenticationResponse,
    InvalidJSONStructure,
    InvalidCBORData,
)


def _state_challenge(state: Dict[str, Any], ceremony: str) -> bytes:
    try:
        return base64url_to_bytes(state["challenge"])
    except (KeyError, TypeError, ValueError):
        raise PollAppError.serialization(f"Failed to deserialize the {ceremony} state.")


def _stored_bytes(value: str, what: str) -> bytes:
    try:
        return base64url_to_bytes(value)
    except (TypeError, ValueError):
        raise PollAppError.serialization(f"Stored {what} is malformed.")


async def start_registration(users: UserRepository, username: str) -> Dict[str, Any]:
    if await users.find_user(username) is not None:
        raise PollAppError.conflict("User is already registered.")

    user_id = uuid.uuid4()
    options = generate_registration_options(
        rp_id=settings.RP_ID,
        rp_name=settings.RP_NAME,
        user_id=user_id.bytes,
        user_name=username,
        user_display_name=username,
    )
    await users.store_reg_state(
        UserRegistrationState(
            user_id=str(user_id),
            username=username,
            state={"challenge": bytes_to_base64url(options.challenge)},
        )
    )
    logger.info("Registration started for %s", username)
    return json.loads(options_to_json(options))


async def finish_registration(
    users: UserRepository, username: str, credential: Dict[str, Any]
) -> User:
    reg_state = await users.get_reg_state(username)
    if reg_state is None:
        raise PollAppError.unauthenticated("Registration state not found for the user.")

    try:
        challenge = _state_challenge(reg_state.state, "registration")
        try:
            verified = verify_registration_response(
                credential=credential,
                expected_challenge=challenge,
                expected_rp_id=settings.RP_ID,
                expected_origin=settings.RP_ORIGIN,
            )
        except CEREMONY_ERRORS as e:
            logger.info("Error during registration finish for %s: %s", username, e)
            raise PollAppError.invalid("Failed to finish the passkey registration process.")

        user = User(
            id=reg_state.user_id,
            username=username,
            credential_id=bytes_to_base64url(verified.credential_id),
            public_key=bytes_to_base64url(verified.credential_public_key),
            sign_count=verified.sign_count,
            created_at=datetime.now(timezone.utc),
        )
        await users.insert_user(user)
    finally:
        await users.delete_reg_state(username)
    logger.info("User %s registered", username)
    return user


async def start_authentication(users: UserRepository, username: str) -> Dict[str, Any]:
    user = await users.get_user_credentials(username)

    options = generate_authentication_options(
        rp_id=settings.RP_ID,
        allow_credentials=[
            PublicKeyCredentialDescriptor(id=_stored_bytes(user.credential_id, "credential id"))
        ],
        user_verification=UserVerificationRequirement.PREFERRED,
    )
    await users.store_login_state(
        UserLoginState(username=username, state={"challenge": bytes_to_base64url(options.challenge)})
    )
    return json.loads(options_to_json(options))


async def finish_authentication(
    users: UserRepository, username: str, credential: Dict[str, Any]
) -> str:
    """Verify the assertion and return a freshly issued access token."""
    login_state = await users.get_login_state(username)
    if login_state is None:
        logger.info("No login state found for user: %s", username)
        raise PollAppError.unauthenticated("User doesn't have an active login state.")

    try:
        challenge = _state_challenge(login_state.state, "authentication")
        user = await users.get_user_credentials(username)
        try:
            verified = verify_authentication_response(
                credential=credential,
                expected_challenge=challenge,
                expected_rp_id=settings.RP_ID,
                expected_origin=settings.RP_ORIGIN,
                credential_public_key=_stored_bytes(user.public_key, "public key"),
                credential_current_sign_count=user.sign_count,
            )
        except CEREMONY_ERRORS as e:
            logger.warning("Authentication challenge failed for user %s: %s", username, e)
            raise PollAppError.invalid("Authentication failed.")
    finally:
        await users.delete_login_state(username)

    await users.update_sign_count(username, verified.new_sign_count)
    logger.info("Authentication successful for user: %s", username)
    return create_access_token(subject=username)
