import pytest

from notifications import tasks
from notifications.models import NotificationLog

pytestmark = pytest.mark.django_db


def test_send_rental_otps_logs_one_sms_per_participant(rental_factory, caplog):
    rental = rental_factory()

    with caplog.at_level("INFO", logger="notifications.tasks"):
        tasks.send_rental_otps(rental.pk)

    logs = rental.notifications.filter(kind=NotificationLog.Kind.RENTAL_OTP)
    assert logs.count() == 2
    assert set(logs.values_list("status", flat=True)) == {NotificationLog.Status.SENT}
    assert set(logs.values_list("user_id", flat=True)) == {rental.renter_id, rental.host_id}
    assert set(logs.values_list("phone", flat=True)) == {rental.renter.phone, rental.host.phone}
    assert any("1111" in record.getMessage() for record in caplog.records)


def test_missing_phone_is_logged_as_failed(rental_factory, user_factory):
    host = user_factory(phone=None)
    rental = rental_factory(host=host)

    tasks.send_rental_otps(rental.pk)

    failed = NotificationLog.objects.get(user=host)
    assert failed.status == NotificationLog.Status.FAILED
    assert failed.rental == rental
    assert failed.phone == ""
    assert failed.error == "missing destination phone"


def test_status_update_includes_cancel_reason(rental_factory, caplog):
    rental = rental_factory(status="cancelled", cancel_reason="rain")

    with caplog.at_level("INFO", logger="notifications.tasks"):
        tasks.send_rental_status_update(rental.pk, "cancelled")

    logs = NotificationLog.objects.filter(kind=NotificationLog.Kind.RENTAL_STATUS)
    assert logs.count() == 2
    assert set(logs.values_list("rental_status", flat=True)) == {"cancelled"}
    assert any("Reason: rain" in record.getMessage() for record in caplog.records)


def test_log_survives_rental_deletion(rental_factory):
    rental = rental_factory()
    tasks.send_rental_otps(rental.pk)

    rental.delete()

    assert NotificationLog.objects.filter(rental__isnull=True).count() == 2


def test_unknown_rental_is_skipped():
    tasks.send_rental_otps(999999)

    assert not NotificationLog.objects.exists()
