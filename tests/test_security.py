from datetime import timedelta

import pytest

from app.core.constants import RoleEnum
from app.core.security import InvalidToken, create_access_token, decode_access_token


def test_token_round_trip_carries_role():
    payload = decode_access_token(create_access_token(42, RoleEnum.ACADEMY))
    assert payload.user_id == 42
    assert payload.role == RoleEnum.ACADEMY


def test_expired_token_is_rejected():
    token = create_access_token(1, RoleEnum.STUDENT, expires_delta=timedelta(minutes=-1))
    with pytest.raises(InvalidToken):
        decode_access_token(token)


def test_demoted_user_token_is_refused(client, user_factory, db_session):
    user = user_factory(RoleEnum.STUDENT)
    token = create_access_token(user.id, RoleEnum.SUPER_ADMIN)

    response = client.get("/enrollments/", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"
