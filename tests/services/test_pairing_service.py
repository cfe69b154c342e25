"""Tests for the pairing coordinator."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from runsight_stage.core.errors import (
    ERR_DATABASE_QUERY,
    DeviceAlreadyRegistered,
    InvalidOrExpiredCode,
    PairingCodeUnavailable,
    SessionNotFound,
    StoreUnavailable,
)
from runsight_stage.models import (
    PAIRING_STATUS_EXPIRED,
    PAIRING_STATUS_PAIRED,
    PAIRING_STATUS_PENDING,
    Device,
    PairingSession,
)
from runsight_stage.services.pairing import PairingService


@pytest.fixture()
def pairing(db_session, fake_clock) -> PairingService:
    return PairingService(db_session, now=fake_clock)


def _session_row(db_session, session_id: str) -> PairingSession:
    db_session.expire_all()
    return db_session.get(PairingSession, session_id)


def test_request_issues_six_digit_pending_code(pairing, db_session, fake_clock, test_user) -> None:
    result = pairing.request_pairing_code(test_user.id)

    assert len(result.code) == 6
    assert result.code.isdigit()
    assert result.session_id.startswith("pair_")
    assert result.expires_in_seconds == 300
    assert result.expires_at == fake_clock.current + pairing.ttl

    row = _session_row(db_session, result.session_id)
    assert row.status == PAIRING_STATUS_PENDING
    assert row.user_id == test_user.id
    assert row.device_id is None


def test_each_request_creates_a_new_session(pairing, test_user) -> None:
    first = pairing.request_pairing_code(test_user.id)
    second = pairing.request_pairing_code(test_user.id)

    assert first.session_id != second.session_id


def test_verify_claims_session_and_issues_token(pairing, db_session, test_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)

    device = pairing.verify_pairing_code(
        issued.code,
        "wrist-01",
        "smartwatch",
        firmware_version="1.2.0",
        mac_address="AA:BB:CC:DD:EE:FF",
    )

    assert device.user_id == test_user.id
    assert device.is_active is True
    assert len(device.device_token) == 64
    row = _session_row(db_session, issued.session_id)
    assert row.status == PAIRING_STATUS_PAIRED
    assert row.device_id == "wrist-01"
    assert row.paired_at is not None


def test_verify_rejects_unknown_code(pairing, db_session, test_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)
    unknown = "000000" if issued.code != "000000" else "111111"

    with pytest.raises(InvalidOrExpiredCode):
        pairing.verify_pairing_code(unknown, "wrist-01", "smartwatch")

    assert db_session.query(Device).count() == 0


def test_verify_rejects_expired_code(pairing, db_session, fake_clock, test_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)
    fake_clock.advance(minutes=5)

    with pytest.raises(InvalidOrExpiredCode):
        pairing.verify_pairing_code(issued.code, "wrist-01", "smartwatch")

    assert db_session.query(Device).count() == 0


def test_verify_accepts_code_just_before_expiry(pairing, fake_clock, test_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)
    fake_clock.advance(minutes=4, seconds=59)

    device = pairing.verify_pairing_code(issued.code, "wrist-01", "smartwatch")

    assert device.device_id == "wrist-01"


def test_code_cannot_be_claimed_twice(pairing, db_session, test_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)
    pairing.verify_pairing_code(issued.code, "wrist-01", "smartwatch")

    with pytest.raises(InvalidOrExpiredCode):
        pairing.verify_pairing_code(issued.code, "wrist-02", "smartwatch")

    assert db_session.query(Device).filter(Device.device_id == "wrist-02").count() == 0


def test_concurrent_claim_losing_the_update_is_rejected(
    pairing, db_session, mocker, test_user
) -> None:
    issued = pairing.request_pairing_code(test_user.id)
    pairing.verify_pairing_code(issued.code, "wrist-01", "smartwatch")

    # A second claimant that read the session while it was still pending.
    mocker.patch.object(
        PairingService,
        "_find_claimable",
        return_value=SimpleNamespace(id=issued.session_id, user_id=test_user.id),
    )

    with pytest.raises(InvalidOrExpiredCode):
        pairing.verify_pairing_code(issued.code, "wrist-02", "smartwatch")

    assert db_session.query(Device).filter(Device.device_id == "wrist-02").count() == 0
    assert _session_row(db_session, issued.session_id).device_id == "wrist-01"


def test_duplicate_device_leaves_session_pending(pairing, db_session, test_user) -> None:
    first = pairing.request_pairing_code(test_user.id)
    pairing.verify_pairing_code(first.code, "wrist-01", "smartwatch")
    second = pairing.request_pairing_code(test_user.id)

    with pytest.raises(DeviceAlreadyRegistered) as exc_info:
        pairing.verify_pairing_code(second.code, "wrist-01", "smartwatch")

    assert exc_info.value.details == {"device_id": "wrist-01"}
    assert _session_row(db_session, second.session_id).status == PAIRING_STATUS_PENDING


def test_duplicate_device_detected_on_insert(pairing, db_session, mocker, test_user) -> None:
    first = pairing.request_pairing_code(test_user.id)
    pairing.verify_pairing_code(first.code, "wrist-01", "smartwatch")
    second = pairing.request_pairing_code(test_user.id)
    mocker.patch.object(PairingService, "_device_exists", return_value=False)

    with pytest.raises(DeviceAlreadyRegistered):
        pairing.verify_pairing_code(second.code, "wrist-01", "smartwatch")

    assert _session_row(db_session, second.session_id).status == PAIRING_STATUS_PENDING
    assert db_session.query(Device).count() == 1


def test_removed_device_still_blocks_pairing(pairing, db_session, test_user) -> None:
    first = pairing.request_pairing_code(test_user.id)
    device = pairing.verify_pairing_code(first.code, "wrist-01", "smartwatch")
    device.is_active = False
    db_session.commit()
    second = pairing.request_pairing_code(test_user.id)

    with pytest.raises(DeviceAlreadyRegistered):
        pairing.verify_pairing_code(second.code, "wrist-01", "smartwatch")


def test_status_reports_remaining_seconds(pairing, fake_clock, test_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)
    fake_clock.advance(seconds=60)

    status = pairing.get_pairing_status(issued.session_id, test_user.id)

    assert status.paired is False
    assert status.expired is False
    assert status.remaining_seconds == 240
    assert status.device is None


def test_status_marks_lapsed_session_expired(pairing, db_session, fake_clock, test_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)
    fake_clock.advance(minutes=5)

    status = pairing.get_pairing_status(issued.session_id, test_user.id)

    assert status.expired is True
    assert status.paired is False
    assert status.remaining_seconds == 0
    assert _session_row(db_session, issued.session_id).status == PAIRING_STATUS_EXPIRED


def test_status_of_paired_session_includes_device(pairing, test_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)
    pairing.verify_pairing_code(issued.code, "wrist-01", "smartwatch", firmware_version="2.0.1")

    status = pairing.get_pairing_status(issued.session_id, test_user.id)

    assert status.paired is True
    assert status.expired is False
    assert status.device is not None
    assert status.device.device_id == "wrist-01"
    assert status.device.firmware_version == "2.0.1"


def test_paired_session_never_reported_expired(pairing, db_session, fake_clock, test_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)
    pairing.verify_pairing_code(issued.code, "wrist-01", "smartwatch")
    fake_clock.advance(hours=1)

    status = pairing.get_pairing_status(issued.session_id, test_user.id)

    assert status.paired is True
    assert status.expired is False
    assert _session_row(db_session, issued.session_id).status == PAIRING_STATUS_PAIRED


def test_status_of_foreign_session_is_not_found(pairing, test_user, other_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)

    with pytest.raises(SessionNotFound):
        pairing.get_pairing_status(issued.session_id, other_user.id)


def test_status_of_unknown_session_is_not_found(pairing, test_user) -> None:
    with pytest.raises(SessionNotFound):
        pairing.get_pairing_status("pair_deadbeef", test_user.id)


def test_lapsed_pending_code_can_be_reissued(
    pairing, db_session, fake_clock, mocker, test_user
) -> None:
    mocker.patch(
        "runsight_stage.services.pairing.generate_pairing_code", return_value="123456"
    )
    first = pairing.request_pairing_code(test_user.id)
    fake_clock.advance(minutes=6)

    second = pairing.request_pairing_code(test_user.id)

    assert second.code == first.code == "123456"
    assert _session_row(db_session, first.session_id).status == PAIRING_STATUS_EXPIRED
    assert _session_row(db_session, second.session_id).status == PAIRING_STATUS_PENDING


def test_live_pending_code_is_never_reissued(db_session, fake_clock, mocker, test_user) -> None:
    mocker.patch(
        "runsight_stage.services.pairing.generate_pairing_code", return_value="123456"
    )
    pairing = PairingService(db_session, now=fake_clock, max_code_attempts=3)
    pairing.request_pairing_code(test_user.id)

    with pytest.raises(PairingCodeUnavailable):
        pairing.request_pairing_code(test_user.id)

    pending = (
        db_session.query(PairingSession)
        .filter(PairingSession.status == PAIRING_STATUS_PENDING)
        .count()
    )
    assert pending == 1


def test_insert_conflict_on_pending_code_redraws(
    pairing, db_session, mocker, test_user
) -> None:
    mocker.patch(
        "runsight_stage.services.pairing.generate_pairing_code", return_value="123456"
    )
    pairing.request_pairing_code(test_user.id)

    # Simulate a concurrent issuer that passed the pre-check with the same code.
    mocker.patch.object(PairingService, "_code_is_free", return_value=True)
    mocker.patch(
        "runsight_stage.services.pairing.generate_pairing_code",
        side_effect=["123456", "654321"],
    )

    result = pairing.request_pairing_code(test_user.id)

    assert result.code == "654321"
    codes = sorted(
        code
        for (code,) in db_session.query(PairingSession.code).filter(
            PairingSession.status == PAIRING_STATUS_PENDING
        )
    )
    assert codes == ["123456", "654321"]


def _store_down() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("database is locked"))


def test_request_surfaces_store_failure(pairing, db_session, mocker, test_user) -> None:
    user_id = test_user.id
    mocker.patch.object(db_session, "commit", side_effect=_store_down())
    rollback = mocker.spy(db_session, "rollback")

    with pytest.raises(StoreUnavailable) as exc_info:
        pairing.request_pairing_code(user_id)

    assert exc_info.value.code == ERR_DATABASE_QUERY
    assert exc_info.value.http_status == 500
    rollback.assert_called_once_with()
    mocker.stopall()
    assert db_session.query(PairingSession).count() == 0


def test_verify_surfaces_store_failure_on_claim(pairing, db_session, mocker, test_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)
    mocker.patch.object(db_session, "commit", side_effect=_store_down())
    rollback = mocker.spy(db_session, "rollback")

    with pytest.raises(StoreUnavailable):
        pairing.verify_pairing_code(issued.code, "wrist-01", "smartwatch")

    assert rollback.called
    mocker.stopall()
    assert db_session.query(Device).count() == 0
    assert _session_row(db_session, issued.session_id).status == PAIRING_STATUS_PENDING


def test_verify_surfaces_store_failure_on_lookup(pairing, db_session, mocker) -> None:
    mocker.patch.object(db_session, "query", side_effect=_store_down())
    rollback = mocker.spy(db_session, "rollback")

    with pytest.raises(StoreUnavailable):
        pairing.verify_pairing_code("123456", "wrist-01", "smartwatch")

    assert rollback.called


def test_status_surfaces_store_failure(pairing, db_session, mocker, test_user) -> None:
    issued = pairing.request_pairing_code(test_user.id)
    user_id = test_user.id
    mocker.patch.object(db_session, "query", side_effect=_store_down())

    with pytest.raises(StoreUnavailable):
        pairing.get_pairing_status(issued.session_id, user_id)
