import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from carebook.auth import jwt_handler
from carebook.auth.dependencies import get_current_user


def test_access_token_round_trip() -> None:
    token = jwt_handler.create_access_token('7', role='doctor')

    payload = jwt_handler.decode_access_token(token)

    assert payload['sub'] == '7'
    assert payload['role'] == 'doctor'


def test_expired_token_is_rejected() -> None:
    token = jwt_handler.create_access_token('7', expires_minutes=-5)

    with pytest.raises(jwt.ExpiredSignatureError):
        jwt_handler.decode_access_token(token)


def test_get_current_user_rejects_garbage_token() -> None:
    credentials = HTTPAuthorizationCredentials(scheme='Bearer', credentials='not-a-token')

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=credentials)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token'


def test_get_current_user_rejects_non_numeric_subject() -> None:
    credentials = HTTPAuthorizationCredentials(
        scheme='Bearer',
        credentials=jwt_handler.create_access_token('someone@example.com'),
    )

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=credentials)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token subject'
