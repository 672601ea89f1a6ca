"""
Tests for the read-only payment admin.
"""

from django.urls import reverse

from payments.tests.factories import PaymentFactory, ProcessedWebhookEventFactory


class TestPaymentAdmin:
    def test_changelist(self, admin_client):
        PaymentFactory(amount_cents=1250)

        response = admin_client.get(reverse("admin:payments_payment_changelist"))

        assert response.status_code == 200
        assert b"12.50 USD" in response.content

    def test_detail_is_read_only(self, admin_client):
        entry = ProcessedWebhookEventFactory()

        response = admin_client.get(reverse("admin:payments_payment_change", args=[entry.payment.pk]))

        assert response.status_code == 200
        assert entry.processor_event_id.encode() in response.content

    def test_cannot_add(self, admin_client):
        assert admin_client.get(reverse("admin:payments_payment_add")).status_code == 403

    def test_cannot_edit(self, admin_client):
        payment = PaymentFactory()

        response = admin_client.post(
            reverse("admin:payments_payment_change", args=[payment.pk]),
            {"state": "succeeded"},
        )

        assert response.status_code == 403


class TestProcessedWebhookEventAdmin:
    def test_changelist(self, admin_client):
        ProcessedWebhookEventFactory(processor_event_id="evt_admin")

        response = admin_client.get(reverse("admin:payments_processedwebhookevent_changelist"))

        assert response.status_code == 200
        assert b"evt_admin" in response.content

    def test_cannot_delete(self, admin_client):
        entry = ProcessedWebhookEventFactory()

        response = admin_client.get(reverse("admin:payments_processedwebhookevent_delete", args=[entry.pk]))

        assert response.status_code == 403
