"""Tests for the certificate verification pipeline."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

import prismstudio.databases.postgres.model as models
from prismstudio.config import get_settings
from prismstudio.repository import verification_log_repository
from prismstudio.services.rate_limiter import RateLimiter
from prismstudio.services.verification_service import (
    CertificateVerificationService,
    compute_verification_hash,
    expiry_status,
    track_display_name,
)

from conftest import NOW

IP = "203.0.113.77"


@pytest.fixture
def service(db_session, memory_store, clock) -> CertificateVerificationService:
    limiter = RateLimiter(store=memory_store, window_seconds=300, max_requests=10, now=clock)
    return CertificateVerificationService(
        db=db_session,
        rate_limiter=limiter,
        settings=get_settings(),
        now=clock,
    )


def log_entries(db_session):
    return db_session.query(models.VerificationLog).order_by(models.VerificationLog.id).all()


class TestVerify:
    """Test each stage of the pipeline."""

    @pytest.mark.asyncio
    async def test_verified_certificate(self, service, make_certificate, db_session) -> None:
        make_certificate(valid_until=None, project_title="Churn model")

        result = await service.verify("ps2506ds148", IP, "pytest", "POST")

        assert result.status_code == 200
        body = result.body
        assert body["success"] is True
        certificate = body["certificate"]
        assert certificate["id"] == "PS2506DS148"
        assert certificate["studentName"] == "Asha Verma"
        assert certificate["track"] == "Data Science"
        assert certificate["isExpired"] is False
        assert certificate["daysUntilExpiry"] is None
        assert certificate["durationMonths"] == 2
        assert certificate["supervisorName"] == "PrismStudio Team"
        assert certificate["skills"] == ["Python", "Pandas"]
        assert certificate["projectTitle"] == "Churn model"
        assert len(certificate["verificationHash"]) == 16
        assert body["verificationDetails"]["verificationId"] == certificate["verificationHash"]
        assert body["verificationDetails"]["ipAddress"] == "203.0.113.***"
        assert body["issuer"]["name"] == "PrismStudio"
        assert body["issuer"]["verificationUrl"].endswith("?cert=PS2506DS148")
        assert body["timestamp"] == "2026-10-17T12:00:00.000Z"

        entries = log_entries(db_session)
        assert len(entries) == 1
        assert entries[0].success is True
        assert entries[0].certificate_id == "PS2506DS148"
        assert entries[0].request_method == "POST"
        assert entries[0].user_agent == "pytest"

    @pytest.mark.asyncio
    async def test_future_expiry_is_not_expired(self, service, make_certificate) -> None:
        make_certificate(valid_until=NOW + timedelta(days=10, hours=1))

        result = await service.verify("PS2506DS148", IP)

        assert result.body["certificate"]["isExpired"] is False
        assert result.body["certificate"]["daysUntilExpiry"] == 11

    @pytest.mark.asyncio
    async def test_past_expiry_is_expired(self, service, make_certificate) -> None:
        make_certificate(valid_until=NOW - timedelta(days=3))

        result = await service.verify("PS2506DS148", IP)

        assert result.status_code == 200
        assert result.body["certificate"]["isExpired"] is True
        assert result.body["certificate"]["daysUntilExpiry"] == -3

    @pytest.mark.asyncio
    async def test_unknown_certificate(self, service, db_session) -> None:
        result = await service.verify("PS2506ZZ999", IP)

        assert result.status_code == 404
        assert result.body["success"] is False
        assert result.body["certificateId"] == "PS2506ZZ999"
        assert result.body["supportContact"] == "team@prismstudio.co.in"
        assert "timestamp" in result.body

        entries = log_entries(db_session)
        assert len(entries) == 1
        assert entries[0].success is False

    @pytest.mark.asyncio
    async def test_revoked_certificate_is_not_found(self, service, make_certificate) -> None:
        make_certificate(is_active=False)

        result = await service.verify("PS2506DS148", IP)

        assert result.status_code == 404

    @pytest.mark.asyncio
    async def test_bad_format(self, service, db_session) -> None:
        result = await service.verify("PS25D148", IP)

        assert result.status_code == 400
        assert result.body["success"] is False
        assert result.body["error"] == "Invalid certificate ID format"
        assert result.body["format_hint"] == "Expected format: PS2506DS148"

        entries = log_entries(db_session)
        assert len(entries) == 1
        assert entries[0].certificate_id == "PS25D148"
        assert entries[0].success is False

    @pytest.mark.asyncio
    async def test_missing_id_is_not_logged(self, service, db_session) -> None:
        result = await service.verify("   ", IP)

        assert result.status_code == 400
        assert result.body["error"] == "Certificate ID is required"
        assert log_entries(db_session) == []

    @pytest.mark.asyncio
    async def test_rate_limited_request_is_not_logged(self, service, make_certificate, db_session) -> None:
        make_certificate()
        for _ in range(10):
            assert (await service.verify("PS2506DS148", IP)).status_code == 200

        result = await service.verify("PS2506DS148", IP)

        assert result.status_code == 429
        assert result.body == {
            "success": False,
            "error": "Rate limit exceeded. Please wait before trying again.",
            "retryAfter": 300,
        }
        assert len(log_entries(db_session)) == 10

    @pytest.mark.asyncio
    async def test_log_failure_does_not_fail_verification(self, service, make_certificate, monkeypatch) -> None:
        make_certificate()

        def broken_create_log(*args, **kwargs):
            raise RuntimeError("log table unavailable")

        monkeypatch.setattr(verification_log_repository, "create_log", broken_create_log)

        assert (await service.verify("PS2506DS148", IP)).status_code == 200
        assert (await service.verify("PS2506ZZ999", IP)).status_code == 404

    @pytest.mark.asyncio
    async def test_certificate_survives_failed_log_write(self, service, make_certificate, monkeypatch) -> None:
        make_certificate()

        def dropped_connection(db, *args, **kwargs):
            db.expire_all()
            db.close()
            raise OperationalError("INSERT INTO verification_logs", {}, Exception("database unavailable"))

        monkeypatch.setattr(verification_log_repository, "create_log", dropped_connection)

        result = await service.verify("PS2506DS148", IP)

        assert result.status_code == 200
        assert result.body["certificate"]["id"] == "PS2506DS148"
        assert result.body["certificate"]["studentName"] == "Asha Verma"

    @pytest.mark.asyncio
    async def test_lookup_failure_propagates(self, service, monkeypatch) -> None:
        from prismstudio.repository import certificate_repository

        def broken_lookup(*args, **kwargs):
            raise RuntimeError("database down")

        monkeypatch.setattr(certificate_repository, "find_active_by_certificate_id", broken_lookup)

        with pytest.raises(RuntimeError):
            await service.verify("PS2506DS148", IP)


class TestEnrichment:
    """Test the derived fields."""

    def test_hash_is_stable_within_a_day(self) -> None:
        morning = compute_verification_hash("abc", "PS2506DS148", NOW.replace(hour=1))
        evening = compute_verification_hash("abc", "PS2506DS148", NOW.replace(hour=23))
        assert morning == evening

    def test_hash_changes_daily(self) -> None:
        today = compute_verification_hash("abc", "PS2506DS148", NOW)
        tomorrow = compute_verification_hash("abc", "PS2506DS148", NOW + timedelta(days=1))
        assert today != tomorrow

    def test_hash_depends_on_stored_hash_and_id(self) -> None:
        base = compute_verification_hash("abc", "PS2506DS148", NOW)
        assert base != compute_verification_hash("abd", "PS2506DS148", NOW)
        assert base != compute_verification_hash("abc", "PS2506DS149", NOW)

    def test_expiry_status(self) -> None:
        assert expiry_status(None, NOW) == (False, None)
        assert expiry_status(NOW + timedelta(hours=1), NOW) == (False, 1)
        assert expiry_status(NOW - timedelta(hours=1), NOW) == (True, 0)

    def test_expiry_status_accepts_naive_datetimes(self) -> None:
        naive = (NOW + timedelta(days=2)).replace(tzinfo=None)
        assert expiry_status(naive, NOW) == (False, 2)

    def test_track_display_name(self) -> None:
        assert track_display_name("ui_ux_design") == "UI/UX Design"
        assert track_display_name("quantum_basket_weaving") == "quantum_basket_weaving"
        assert track_display_name(None) is None
